"""
Tests for civai.

This package contains tests for:
- Feed-forward networks and their binary format
- Neuroevolution operators (mutation, crossover, selection)
- Population management and the evolutionary trainer
- Training sessions and generation logs
"""
