"""
Configuration for an evolution run.
"""
import math
from dataclasses import dataclass, fields
from typing import Tuple

from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class TrainingParameters:
    """
    Immutable configuration for EvolutionaryLearning.

    Validated once on construction; an invalid combination raises
    ConfigurationError before any generation runs.
    """

    # Population
    population_size: int
    generation_count: int

    # Fixed network interface
    input_size: int
    output_size: int

    # Architecture search space
    min_hidden_layers: int = 1
    max_hidden_layers: int = 4
    min_neurons_per_layer: int = 4
    max_neurons_per_layer: int = 16

    # Mutation
    mutation_rate: float = 0.1
    weight_perturbation: float = 0.5
    architecture_mutation_rate: float = 0.2
    resize_delta: int = 2

    # Selection
    tournament_size: int = 3

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type in (int, 'int') and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
            if f.type in (float, 'float') and (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
            ):
                raise ConfigurationError(f"{f.name} must be a finite number, got {value!r}")

        if self.population_size < 2:
            raise ConfigurationError(
                f"population_size must be at least 2, got {self.population_size}"
            )
        if self.generation_count < 0:
            raise ConfigurationError(
                f"generation_count must not be negative, got {self.generation_count}"
            )
        if self.input_size < 1 or self.output_size < 1:
            raise ConfigurationError(
                f"input_size and output_size must be positive, "
                f"got {self.input_size} and {self.output_size}"
            )

        if self.min_hidden_layers < 0:
            raise ConfigurationError(
                f"min_hidden_layers must not be negative, got {self.min_hidden_layers}"
            )
        if self.min_hidden_layers > self.max_hidden_layers:
            raise ConfigurationError(
                f"min_hidden_layers ({self.min_hidden_layers}) exceeds "
                f"max_hidden_layers ({self.max_hidden_layers})"
            )
        if self.min_neurons_per_layer < 1:
            raise ConfigurationError(
                f"min_neurons_per_layer must be positive, got {self.min_neurons_per_layer}"
            )
        if self.min_neurons_per_layer > self.max_neurons_per_layer:
            raise ConfigurationError(
                f"min_neurons_per_layer ({self.min_neurons_per_layer}) exceeds "
                f"max_neurons_per_layer ({self.max_neurons_per_layer})"
            )

        for name in ('mutation_rate', 'architecture_mutation_rate'):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {rate}")

        if self.weight_perturbation < 0:
            raise ConfigurationError(
                f"weight_perturbation must not be negative, got {self.weight_perturbation}"
            )
        if self.resize_delta < 0:
            raise ConfigurationError(f"resize_delta must not be negative, got {self.resize_delta}")
        if self.tournament_size < 1:
            raise ConfigurationError(
                f"tournament_size must be at least 1, got {self.tournament_size}"
            )

    @property
    def hidden_layer_bounds(self) -> Tuple[int, int]:
        """(min, max) number of hidden layers."""
        return self.min_hidden_layers, self.max_hidden_layers

    @property
    def neuron_bounds(self) -> Tuple[int, int]:
        """(min, max) width of a hidden layer."""
        return self.min_neurons_per_layer, self.max_neurons_per_layer
