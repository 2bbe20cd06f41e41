"""
Evolutionary trainer.

Runs the generation loop over a Population:

    INIT -> (EVALUATE -> RANK -> ELITE-CARRY -> REPRODUCE -> MUTATE
    -> REPLACE) x generation_count -> FINAL-SELECT

The elite is part of the population evaluated at the start of each
generation, so its score is always fresh rather than carried over
from the generation where it was first measured.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from typing import Callable, List, Optional

import numpy as np

from ..networks import NeuralNetwork
from .config import TrainingParameters
from .genome import Genome
from .population import FitnessFunction, GenerationStats, Population

logger = logging.getLogger(__name__)


class EvolutionaryLearning:
    """
    Genetic algorithm over feed-forward network topologies and weights.

    All randomness comes from one numpy Generator, so two trainers
    built with the same seed and given a deterministic fitness function
    produce the same run.

    Attributes:
        parameters: Validated training parameters.
        rng: Random generator threaded through every operator.
        population: Population of the latest run (None before train()).
        history: Fitness statistics, one entry per evaluated generation.
        best: Best genome of the latest run.

    Example:
        trainer = EvolutionaryLearning(params, seed=42)
        network = trainer.train(evaluate)
    """

    def __init__(
        self,
        parameters: TrainingParameters,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize the trainer.

        Args:
            parameters: Training parameters (already validated).
            rng: Random generator to use. Takes precedence over ``seed``.
            seed: Seed for a new generator when ``rng`` is not given.
        """
        self.parameters = parameters
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.population: Optional[Population] = None
        self.history: List[GenerationStats] = []
        self.best: Optional[Genome] = None

    def train(
        self,
        fitness_function: FitnessFunction,
        initial_network: Optional[NeuralNetwork] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[int, GenerationStats], None]] = None,
        max_workers: Optional[int] = None,
    ) -> NeuralNetwork:
        """
        Run a full evolution and return the best network.

        Args:
            fitness_function: Scores a network; higher is better. Called
                once per genome per generation, plus once per genome for
                the final selection. Must not modify the network.
            initial_network: Optional seed network to evolve from.
            should_stop: Checked before every generation; returning True
                ends the loop and goes straight to the final selection.
            progress_callback: Called with (generation, stats) after each
                evaluation.
            max_workers: If set, evaluate each generation on a thread pool
                of this size.

        Returns:
            The best network of the final population.
        """
        params = self.parameters
        population = Population(params, rng=self.rng)
        self.population = population
        self.history = []
        self.best = None

        if initial_network is not None:
            population.initialize_from_network(initial_network)
            logger.info(
                f"Initialized {len(population)} genomes around seed network "
                f"{list(initial_network.layers)}"
            )
        else:
            population.initialize_random()
            logger.info(f"Initialized {len(population)} random genomes")

        if max_workers:
            pool_context = ThreadPoolExecutor(max_workers=max_workers)
        else:
            pool_context = nullcontext()

        with pool_context as executor:
            for generation in range(params.generation_count):
                if should_stop is not None and should_stop():
                    logger.info(f"Stop requested before generation {generation}")
                    break

                stats = population.evaluate_all(fitness_function, executor=executor)
                self._record(stats, progress_callback)

                evolve_stats = population.evolve_generation()
                logger.debug(
                    f"Generation {evolve_stats.generation}: "
                    f"{evolve_stats.num_new_individuals} offspring, "
                    f"{evolve_stats.num_architecture_mutations} architecture mutations, "
                    f"{evolve_stats.num_inherited_transitions} inherited transitions"
                )

            # Final selection on fresh scores
            stats = population.evaluate_all(fitness_function, executor=executor)
            self._record(stats, progress_callback)

        self.best = population.get_best()
        logger.info(
            f"Training complete: best fitness {self.best.fitness:.4f} "
            f"with topology {list(self.best.topology)}"
        )
        return self.best.network

    def _record(
        self,
        stats: GenerationStats,
        progress_callback: Optional[Callable[[int, GenerationStats], None]],
    ) -> None:
        self.history.append(stats)
        logger.info(
            f"Generation {stats.generation}: best={stats.best_fitness:.4f} "
            f"avg={stats.avg_fitness:.4f} topology={list(stats.best_topology)}"
        )
        if progress_callback:
            progress_callback(stats.generation, stats)
