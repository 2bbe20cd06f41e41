"""
Neural network infrastructure for evolved policies.

This module provides:
- NeuralNetwork: feed-forward sigmoid network built from a topology
- Binary serialization in a strict positional format
- File helpers that save atomically
"""
from .feedforward import NeuralNetwork, validate_topology
from .serialization import (
    dump,
    dumps,
    load,
    loads,
    save_network,
    load_network,
)

__all__ = [
    # Network
    'NeuralNetwork',
    'validate_topology',

    # Serialization
    'dump',
    'dumps',
    'load',
    'loads',
    'save_network',
    'load_network',
]
