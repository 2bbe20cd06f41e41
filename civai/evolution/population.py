"""
Population management for evolving networks.

Handles the lifecycle of a fixed-size population of genomes:
- Initialization (random, or diversity around a seed network)
- Evaluation (one fitness call per genome)
- Evolution (elite carry-over, tournament selection, crossover, mutation)
- Generation advancement
"""
import logging
import math
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..exceptions import ConfigurationError
from ..networks import NeuralNetwork
from .config import TrainingParameters
from .crossover import TopologyCrossover
from .genome import Genome
from .mutations import CombinedMutator
from .selection import EliteSelection, TournamentSelection, rank_population

logger = logging.getLogger(__name__)

FitnessFunction = Callable[[NeuralNetwork], float]


@dataclass
class GenerationStats:
    """Statistics for a generation."""
    generation: int = 0
    best_fitness: float = 0.0
    avg_fitness: float = 0.0
    min_fitness: float = 0.0
    fitness_std: float = 0.0
    best_topology: Tuple[int, ...] = field(default_factory=tuple)
    num_architecture_mutations: int = 0
    num_inherited_transitions: int = 0
    num_new_individuals: int = 0


class Population:
    """
    Manages a population of evolving genomes.

    Handles the complete evolutionary cycle:
    1. Initialize population (random genomes or variations of a seed)
    2. Evaluate fitness
    3. Rank and keep the elite
    4. Create offspring (tournament selection + crossover + mutation)
    5. Replace old generation

    Example:
        pop = Population(params, rng=np.random.default_rng(0))
        pop.initialize_random()

        for gen in range(params.generation_count):
            pop.evaluate_all(fitness_function)
            pop.evolve_generation()
    """

    def __init__(
        self,
        params: TrainingParameters,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the population manager.

        Args:
            params: Training parameters.
            rng: Random generator used by every stochastic operator.
        """
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()

        # Population state
        self.individuals: List[Genome] = []
        self.generation = 0

        # Operator counts of the evolve step that produced this generation
        self.offspring_stats: Optional[GenerationStats] = None

        # Evolution operators
        self.mutator = CombinedMutator(params, rng=self.rng)
        self.crossover = TopologyCrossover(rng=self.rng)
        self.selection = TournamentSelection(
            tournament_size=params.tournament_size,
            rng=self.rng,
        )
        self.elite_selection = EliteSelection(elite_count=1)

    def __len__(self) -> int:
        return len(self.individuals)

    def initialize_random(self) -> None:
        """Fill the population with random topologies and weights."""
        self.individuals = [
            Genome.random(self.params, self.rng, id=f"gen0_ind_{i:03d}")
            for i in range(self.params.population_size)
        ]
        self.generation = 0
        self.offspring_stats = None

    def initialize_from_network(self, seed: NeuralNetwork) -> None:
        """
        Initialize around a known network.

        Genome 0 is an exact copy of the seed. Every other genome is a
        copy of the seed mutated once, to spread the population around it.

        Args:
            seed: Network to start from. It is copied, never modified.

        Raises:
            ConfigurationError: If the seed's input or output width does
                not match the training parameters.
        """
        if (seed.input_size, seed.output_size) != (self.params.input_size, self.params.output_size):
            raise ConfigurationError(
                f"Seed network {list(seed.layers)} does not match input_size="
                f"{self.params.input_size}, output_size={self.params.output_size}"
            )

        origin = Genome.from_network(seed, id='gen0_seed')
        self.individuals = [origin]

        while len(self.individuals) < self.params.population_size:
            variant, _ = self.mutator.mutate(
                origin.copy(
                    id=f"gen0_ind_{len(self.individuals):03d}",
                    parent_ids=[origin.id],
                    mutation_history=['initial_variation'],
                ),
                in_place=True,
            )
            self.individuals.append(variant)

        self.generation = 0
        self.offspring_stats = None

    def evaluate_all(
        self,
        fitness_function: FitnessFunction,
        executor: Optional[Executor] = None,
    ) -> GenerationStats:
        """
        Evaluate fitness for all individuals.

        The fitness function is called exactly once per genome. With an
        executor the calls run concurrently, but every score is collected
        before anything is ranked.

        Args:
            fitness_function: Scores a network; higher is better.
            executor: Optional executor to spread the calls over.

        Returns:
            Generation statistics, including the operator counts of the
            evolve step that produced this generation.

        Raises:
            ValueError: If a score is not a finite number.
            Exception: Whatever the fitness function raised.
        """
        networks = [ind.network for ind in self.individuals]

        try:
            if executor is not None:
                fitnesses = list(executor.map(fitness_function, networks))
            else:
                fitnesses = [fitness_function(network) for network in networks]
        except Exception:
            logger.error(f"Fitness evaluation failed in generation {self.generation}")
            raise

        fitnesses = [float(fitness) for fitness in fitnesses]
        for ind, fitness in zip(self.individuals, fitnesses):
            if not math.isfinite(fitness):
                raise ValueError(
                    f"Fitness function returned {fitness} for {ind.id} "
                    f"in generation {self.generation}"
                )

        for ind, fitness in zip(self.individuals, fitnesses):
            ind.fitness = fitness

        best = self.get_best()
        values = [ind.fitness for ind in self.individuals]
        stats = GenerationStats(
            generation=self.generation,
            best_fitness=best.fitness,
            avg_fitness=sum(values) / len(values),
            min_fitness=min(values),
            fitness_std=self._std(values),
            best_topology=best.topology,
        )

        offspring = self.offspring_stats
        if offspring is not None and offspring.generation == self.generation:
            stats.num_architecture_mutations = offspring.num_architecture_mutations
            stats.num_inherited_transitions = offspring.num_inherited_transitions
            stats.num_new_individuals = offspring.num_new_individuals

        return stats

    def ranked(self) -> List[Genome]:
        """Individuals by descending fitness, ties in population order."""
        return rank_population(self.individuals)

    def evolve_generation(self) -> GenerationStats:
        """
        Create the next generation through evolution.

        The current population must have been evaluated.

        Returns:
            Operator statistics for the new generation.
        """
        ranked = self.ranked()
        next_gen = self.generation + 1
        stats = GenerationStats(generation=next_gen)

        # Preserve elite
        new_individuals = [
            elite.copy(
                generation=next_gen,
                parent_ids=[elite.id],
                mutation_history=['elite'],
                id=f"gen{next_gen}_elite_{i:02d}",
            )
            for i, elite in enumerate(self.elite_selection.get_elite(ranked))
        ]

        # Fill rest with offspring
        while len(new_individuals) < self.params.population_size:
            parent_a, parent_b = self.selection.select_pair(ranked)
            child, inheritance = self.crossover.crossover(parent_a, parent_b)
            child, mutation_info = self.mutator.mutate(child, in_place=True)

            child.generation = next_gen
            child.id = f"gen{next_gen}_ind_{len(new_individuals):03d}"
            new_individuals.append(child)

            stats.num_new_individuals += 1
            stats.num_inherited_transitions += len(inheritance['inherited_transitions'])
            stats.num_architecture_mutations += len(mutation_info['architecture_mutations'])

        # Replace population
        self.individuals = new_individuals
        self.generation = next_gen
        self.offspring_stats = stats

        return stats

    def get_best(self) -> Genome:
        """Best evaluated individual; ties go to the lowest index."""
        return self.ranked()[0]

    def _std(self, values: List[float]) -> float:
        """Calculate standard deviation."""
        if len(values) < 2:
            return 0.0
        mean = sum(values) / len(values)
        variance = sum((x - mean) ** 2 for x in values) / len(values)
        return variance ** 0.5
