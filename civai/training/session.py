"""
Training session orchestration.

A session wraps one EvolutionaryLearning run with its file I/O:
the seed network is loaded once before the first generation and the
trained network is saved once after the last, never in between.
"""
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..evolution import EvolutionaryLearning, FitnessFunction, GenerationStats, TrainingParameters
from ..networks import NeuralNetwork, load_network, save_network
from .logs import GenerationLogger

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Results from a training session."""
    network: NeuralNetwork
    best_fitness: float = 0.0
    generations_run: int = 0
    seeded: bool = False
    training_time_seconds: float = 0.0
    network_path: Optional[str] = None
    history: List[GenerationStats] = field(default_factory=list)


class TrainingSession:
    """
    Load, evolve and save a policy network.

    If ``network_path`` exists it seeds the population; otherwise the
    population starts from random genomes. The best network is written
    back to ``network_path`` atomically, so the file on disk is always
    either the previous network or the new one.

    Example:
        session = TrainingSession(params, 'trained_network.nn', seed=7)
        result = session.run(averaged_evaluator(play_game, repeats=5))
        print(f"Best fitness: {result.best_fitness:.3f}")
    """

    def __init__(
        self,
        parameters: TrainingParameters,
        network_path: Union[str, Path],
        log_dir: Optional[Union[str, Path]] = None,
        experiment_name: str = 'evolution',
        seed: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize the session.

        Args:
            parameters: Training parameters.
            network_path: Where the seed is read from and the result saved.
            log_dir: Optional directory for a JSON-lines generation log.
            experiment_name: Log file name (without extension).
            seed: Seed for the run's random generator.
            max_workers: Thread pool size for fitness evaluation.
        """
        self.parameters = parameters
        self.network_path = Path(network_path)
        self.max_workers = max_workers
        self.trainer = EvolutionaryLearning(parameters, seed=seed)
        self.generation_logger = (
            GenerationLogger(str(log_dir), experiment_name) if log_dir is not None else None
        )

    def load_seed(self) -> Optional[NeuralNetwork]:
        """
        Load the seed network, if there is one.

        Returns:
            The stored network, or None when the file does not exist.

        Raises:
            DeserializationError: If the file exists but is corrupt.
        """
        if not self.network_path.exists():
            logger.info(f"No network at {self.network_path}, starting from random genomes")
            return None
        return load_network(self.network_path)

    def run(
        self,
        fitness_function: FitnessFunction,
        should_stop: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[int, GenerationStats], None]] = None,
    ) -> TrainingResult:
        """
        Run the full session.

        Args:
            fitness_function: Scores a network; higher is better.
            should_stop: Optional cancellation check, evaluated once per
                generation. A stopped run still saves its best network.
            progress_callback: Called with (generation, stats).

        Returns:
            Training results.
        """
        seed_network = self.load_seed()

        def on_generation(generation: int, stats: GenerationStats) -> None:
            if self.generation_logger is not None:
                self.generation_logger.log_generation(stats)
            if progress_callback:
                progress_callback(generation, stats)

        start_time = time.time()
        network = self.trainer.train(
            fitness_function,
            initial_network=seed_network,
            should_stop=should_stop,
            progress_callback=on_generation,
            max_workers=self.max_workers,
        )
        elapsed = time.time() - start_time

        path = save_network(network, self.network_path)

        if self.generation_logger is not None:
            summary = self.generation_logger.summary()
            logger.info(
                f"Logged {summary['generations']} generations to "
                f"{self.generation_logger.path}: best {summary['best_fitness']:.4f} "
                f"in generation {summary['best_generation']}, "
                f"avg fitness gain {summary['avg_fitness_gain']:+.4f}"
            )

        return TrainingResult(
            network=network,
            best_fitness=self.trainer.best.fitness,
            generations_run=self.trainer.population.generation,
            seeded=seed_network is not None,
            training_time_seconds=elapsed,
            network_path=str(path),
            history=list(self.trainer.history),
        )
