"""
Helpers for building fitness functions.

The trainer calls a fitness function once per genome and never
averages. Noisy evaluations, such as a simulation with random events,
should be averaged here instead.
"""
from functools import wraps

from ..evolution import FitnessFunction
from ..networks import NeuralNetwork


def averaged_evaluator(fitness_function: FitnessFunction, repeats: int = 5) -> FitnessFunction:
    """
    Wrap a fitness function so that it returns the mean of several runs.

    Args:
        fitness_function: Possibly stochastic fitness function.
        repeats: Number of independent calls to average.

    Returns:
        Fitness function with the same signature.
    """
    if repeats < 1:
        raise ValueError(f"repeats must be at least 1, got {repeats}")

    @wraps(fitness_function)
    def evaluate(network: NeuralNetwork) -> float:
        total = 0.0
        for _ in range(repeats):
            total += fitness_function(network)
        return total / repeats

    return evaluate
