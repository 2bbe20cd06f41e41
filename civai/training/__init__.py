"""
Training sessions around the evolutionary trainer.

This module provides:
- TrainingSession: seed loading, evolution, atomic save
- GenerationLogger: JSON-lines log of generation statistics
- averaged_evaluator: mean of repeated fitness calls

Example usage:
    from civai.training import TrainingSession, averaged_evaluator

    session = TrainingSession(params, 'trained_network.nn', log_dir='./logs')
    result = session.run(averaged_evaluator(play_game, repeats=5))
"""
from .evaluators import averaged_evaluator
from .logs import GenerationLogger
from .session import TrainingSession, TrainingResult

__all__ = [
    'averaged_evaluator',
    'GenerationLogger',
    'TrainingSession',
    'TrainingResult',
]
