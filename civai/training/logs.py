"""
Per-generation statistics log.

Every evaluated generation becomes one JSON line holding the fields of
its GenerationStats plus a wall-clock timestamp. A log can be read back
into GenerationStats records, so runs can be plotted or compared after
the fact without re-running them.
"""
import json
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

from ..evolution import GenerationStats

STATS_FIELDS = tuple(f.name for f in fields(GenerationStats))


def stats_to_record(stats: GenerationStats) -> Dict[str, Any]:
    """JSON-ready record for one generation."""
    record = asdict(stats)
    record['best_topology'] = list(stats.best_topology)
    record['timestamp'] = datetime.now().isoformat()
    return record


def stats_from_record(record: Dict[str, Any]) -> GenerationStats:
    """Rebuild GenerationStats from a logged record; unknown keys are ignored."""
    values = {name: record[name] for name in STATS_FIELDS if name in record}
    values['best_topology'] = tuple(values.get('best_topology', ()))
    return GenerationStats(**values)


class GenerationLogger:
    """
    JSON-lines log of one experiment's generation statistics.

    Records go to ``<log_dir>/<experiment_name>.jsonl``. A new logger
    appends to an existing file; ``history`` only holds what this
    logger wrote.

    Example:
        gen_log = GenerationLogger('./logs', 'civ')
        trainer.train(evaluate, progress_callback=lambda g, s: gen_log.log_generation(s))
        print(gen_log.summary()['best_fitness'])
    """

    def __init__(
        self,
        log_dir: Union[str, Path],
        experiment_name: str = 'evolution',
    ):
        self.experiment_name = experiment_name
        self.path = Path(log_dir) / f'{experiment_name}.jsonl'
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self.history: List[GenerationStats] = []

    def log_generation(self, stats: GenerationStats) -> None:
        """Append one generation to the log file."""
        with open(self.path, 'a') as f:
            f.write(json.dumps(stats_to_record(stats)) + '\n')
        self.history.append(stats)

    @staticmethod
    def read(path: Union[str, Path]) -> List[GenerationStats]:
        """Parse a log file back into GenerationStats, in file order."""
        with open(path, 'r') as f:
            return [stats_from_record(json.loads(line)) for line in f if line.strip()]

    def summary(self) -> Dict[str, Any]:
        """
        Summarise best and average fitness over the logged generations.

        Returns:
            Empty dict when nothing was logged. Otherwise the best
            generation (first one on ties), the change in average fitness
            from the first to the last generation, and operator totals.
        """
        if not self.history:
            return {}

        first = self.history[0]
        last = self.history[-1]
        best = max(self.history, key=lambda stats: stats.best_fitness)

        return {
            'experiment_name': self.experiment_name,
            'generations': len(self.history),
            'best_fitness': best.best_fitness,
            'best_generation': best.generation,
            'best_topology': list(best.best_topology),
            'final_avg_fitness': last.avg_fitness,
            'avg_fitness_gain': last.avg_fitness - first.avg_fitness,
            'architecture_mutations': sum(s.num_architecture_mutations for s in self.history),
            'inherited_transitions': sum(s.num_inherited_transitions for s in self.history),
        }
