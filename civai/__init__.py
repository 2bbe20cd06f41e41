"""
Neuroevolution of feed-forward control policies.

Evolves fully-connected sigmoid networks of variable hidden-layer
topology with a genetic algorithm. Networks are scored by an
external fitness function supplied by the caller (usually a game
simulation that plays the network as a policy).

This package provides:
- NeuralNetwork: topology, weights, inference and binary persistence
- EvolutionaryLearning: population-based trainer with tournament
  selection, topology/weight crossover and architecture mutation
- TrainingSession: load a seed network, train, save the result

Example usage:
    from civai import EvolutionaryLearning, TrainingParameters

    params = TrainingParameters(
        population_size=100,
        generation_count=50,
        input_size=12,
        output_size=4,
    )
    trainer = EvolutionaryLearning(params, seed=42)
    network = trainer.train(evaluate)
    print(network.layers)
"""
from .exceptions import (
    ShapeMismatchError,
    DeserializationError,
    ConfigurationError,
)
from .networks import NeuralNetwork, load_network, save_network
from .evolution import EvolutionaryLearning, TrainingParameters
from .training import TrainingSession, TrainingResult, averaged_evaluator

__version__ = '0.1.0'

__all__ = [
    # Errors
    'ShapeMismatchError',
    'DeserializationError',
    'ConfigurationError',

    # Networks
    'NeuralNetwork',
    'load_network',
    'save_network',

    # Evolution
    'EvolutionaryLearning',
    'TrainingParameters',

    # Training sessions
    'TrainingSession',
    'TrainingResult',
    'averaged_evaluator',
]
