"""
Pytest fixtures for civai tests.

Provides fixtures for:
- Seeded random generators
- Small training parameter sets
- Networks with known weights
"""
import numpy as np
import pytest

from civai.evolution import TrainingParameters
from civai.networks import NeuralNetwork


@pytest.fixture
def rng() -> np.random.Generator:
    """Return a seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_params() -> TrainingParameters:
    """Return parameters for a small, fast run."""
    return TrainingParameters(
        population_size=6,
        generation_count=4,
        input_size=3,
        output_size=2,
        min_hidden_layers=1,
        max_hidden_layers=3,
        min_neurons_per_layer=2,
        max_neurons_per_layer=6,
        mutation_rate=0.2,
        tournament_size=2,
        architecture_mutation_rate=0.5,
    )


@pytest.fixture
def known_network() -> NeuralNetwork:
    """Return a [2, 3, 1] network with fixed weights and biases."""
    return NeuralNetwork.from_parameters(
        [2, 3, 1],
        weights=[
            [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]],
            [[0.7, -0.8, 0.9]],
        ],
        biases=[
            [0.0, -0.1, 0.1],
            [0.2],
        ],
    )

