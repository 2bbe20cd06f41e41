"""
Ranking and selection strategies.

Genomes are ranked by descending fitness. Ties keep their population
order (the sort is stable), so a ranking depends only on the scores
and never on the order in which evaluations finished.

- Tournament: best of ``k`` uniform draws with replacement
- Elite: the top of the ranking, carried over unchanged
"""
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .genome import Genome


def rank_population(population: Sequence[Genome]) -> List[Genome]:
    """
    Order genomes by descending fitness, ties broken by population index.

    Raises:
        ValueError: If a genome has not been evaluated or has a
            non-finite fitness.
    """
    for index, genome in enumerate(population):
        if genome.fitness is None:
            raise ValueError(f"Genome {genome.id or index} has not been evaluated")
        if not math.isfinite(genome.fitness):
            raise ValueError(f"Genome {genome.id or index} has non-finite fitness {genome.fitness}")

    return sorted(population, key=lambda genome: genome.fitness, reverse=True)


class TournamentSelection:
    """
    Tournament selection strategy.

    Draws ``tournament_size`` genomes uniformly with replacement and
    keeps the best of the draw. Because the input is ranked, the winner
    is simply the draw with the lowest rank index.

    Tournament size controls selection pressure:
    - k=1: uniform random selection
    - k=2: low pressure, more diversity
    - k=7: high pressure, faster convergence

    Example:
        selection = TournamentSelection(tournament_size=3, rng=rng)
        parent_a, parent_b = selection.select_pair(ranked)
    """

    def __init__(
        self,
        tournament_size: int = 3,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize tournament selection.

        Args:
            tournament_size: Number of draws per tournament.
            rng: Random generator shared with the rest of the run.
        """
        if tournament_size < 1:
            raise ValueError(f"tournament_size must be at least 1, got {tournament_size}")

        self.tournament_size = tournament_size
        self.rng = rng if rng is not None else np.random.default_rng()

    def select_one(self, ranked: Sequence[Genome]) -> Genome:
        """Run one tournament over a ranked population."""
        if not ranked:
            raise ValueError("Cannot select from an empty population")

        contestants = self.rng.integers(len(ranked), size=self.tournament_size)
        return ranked[int(contestants.min())]

    def select(self, ranked: Sequence[Genome], num_to_select: int) -> List[Genome]:
        """
        Select genomes by independent tournaments.

        Args:
            ranked: Population sorted by rank_population().
            num_to_select: Number of tournaments to run.

        Returns:
            Winners, one per tournament. Repeats are allowed.
        """
        return [self.select_one(ranked) for _ in range(num_to_select)]

    def select_pair(self, ranked: Sequence[Genome]) -> Tuple[Genome, Genome]:
        """Select two parents independently; both may be the same genome."""
        return self.select_one(ranked), self.select_one(ranked)


class EliteSelection:
    """
    Elitism: preserve the best genomes unchanged.

    The elite bypass crossover and mutation and go directly to the
    next generation as deep copies.
    """

    def __init__(self, elite_count: int = 1):
        """
        Initialize elite selection.

        Args:
            elite_count: Number of elite genomes to preserve.
        """
        self.elite_count = elite_count

    def get_elite(self, ranked: Sequence[Genome]) -> List[Genome]:
        """Get the elite from a ranked population."""
        return list(ranked[:self.elite_count])
