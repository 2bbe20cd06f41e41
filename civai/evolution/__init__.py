"""
Neuroevolution of network weights and hidden-layer topology.

This module provides:
- TrainingParameters: validated, immutable run configuration
- Genome and HiddenLayers: the unit of selection and its topology
- Mutation operators (weights and architecture)
- Topology crossover with uniform weight inheritance
- Tournament and elite selection
- Population management and the EvolutionaryLearning trainer

Example usage:
    from civai.evolution import EvolutionaryLearning, TrainingParameters

    params = TrainingParameters(
        population_size=50,
        generation_count=100,
        input_size=12,
        output_size=4,
        mutation_rate=0.1,
    )

    trainer = EvolutionaryLearning(params, seed=0)
    best_network = trainer.train(evaluate)

    for stats in trainer.history:
        print(f"Gen {stats.generation}: best={stats.best_fitness:.3f}")
"""
from .config import TrainingParameters
from .genome import Genome, HiddenLayers
from .mutations import (
    WeightMutator,
    ArchitectureMutator,
    CombinedMutator,
    transfer_compatible_weights,
)
from .crossover import TopologyCrossover
from .selection import (
    TournamentSelection,
    EliteSelection,
    rank_population,
)
from .population import (
    Population,
    GenerationStats,
    FitnessFunction,
)
from .trainer import EvolutionaryLearning

__all__ = [
    # Configuration
    'TrainingParameters',

    # Genomes
    'Genome',
    'HiddenLayers',

    # Mutations
    'WeightMutator',
    'ArchitectureMutator',
    'CombinedMutator',
    'transfer_compatible_weights',

    # Crossover
    'TopologyCrossover',

    # Selection
    'TournamentSelection',
    'EliteSelection',
    'rank_population',

    # Population management
    'Population',
    'GenerationStats',
    'FitnessFunction',
    'EvolutionaryLearning',
]
