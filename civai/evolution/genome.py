"""
Genome representation: a hidden-layer topology plus its network.

The hidden-layer list is the mutable part of a genome. The input and
output widths are fixed by the problem, so a genome only stores the
hidden widths and the network built for ``[input] + hidden + [output]``.
"""
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from ..networks import NeuralNetwork
from .config import TrainingParameters


class HiddenLayers:
    """
    Owned, growable sequence of hidden-layer widths.

    Each instance holds its own list; copies never share it, so mutating
    a child's layers cannot leak into the parent it was copied from.
    The edit operations check the configured bounds and report whether
    anything changed.

    Example:
        hidden = HiddenLayers([8, 8])
        hidden.insert(1, 12, params)   # -> [8, 12, 8]
        hidden.resize(0, -2, params)   # -> [6, 12, 8]
    """

    def __init__(self, sizes: Iterable[int] = ()):
        self._sizes = [int(size) for size in sizes]
        if any(size <= 0 for size in self._sizes):
            raise ValueError(f"Hidden layer sizes must be positive, got {self._sizes}")

    def __len__(self) -> int:
        return len(self._sizes)

    def __iter__(self) -> Iterator[int]:
        return iter(self._sizes)

    def __getitem__(self, index: int) -> int:
        return self._sizes[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, HiddenLayers):
            return self._sizes == other._sizes
        if isinstance(other, (list, tuple)):
            return self._sizes == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"HiddenLayers({self._sizes})"

    def as_tuple(self) -> Tuple[int, ...]:
        return tuple(self._sizes)

    def copy(self) -> 'HiddenLayers':
        return HiddenLayers(self._sizes)

    def topology(self, input_size: int, output_size: int) -> Tuple[int, ...]:
        """Full layer list for the given fixed input and output widths."""
        return (input_size,) + tuple(self._sizes) + (output_size,)

    def insert(self, position: int, size: int, params: TrainingParameters) -> bool:
        """
        Insert a hidden layer of ``size`` neurons before ``position``.

        Returns:
            False if the genome already has ``max_hidden_layers`` layers.

        Raises:
            ValueError: If the position or size is out of range.
        """
        _, max_layers = params.hidden_layer_bounds
        min_neurons, max_neurons = params.neuron_bounds

        if len(self._sizes) >= max_layers:
            return False
        if not 0 <= position <= len(self._sizes):
            raise ValueError(f"Insert position {position} out of range for {self._sizes}")
        if not min_neurons <= size <= max_neurons:
            raise ValueError(f"Layer size {size} outside [{min_neurons}, {max_neurons}]")

        self._sizes.insert(position, int(size))
        return True

    def remove(self, position: int, params: TrainingParameters) -> bool:
        """
        Remove the hidden layer at ``position``.

        Returns:
            False if the genome already has only ``min_hidden_layers`` layers.
        """
        min_layers, _ = params.hidden_layer_bounds
        if len(self._sizes) <= min_layers:
            return False
        if not 0 <= position < len(self._sizes):
            raise ValueError(f"Remove position {position} out of range for {self._sizes}")

        del self._sizes[position]
        return True

    def resize(self, position: int, delta: int, params: TrainingParameters) -> bool:
        """
        Change the width of one layer by ``delta``, clamped to the neuron bounds.

        Returns:
            True if the width actually changed.
        """
        if not 0 <= position < len(self._sizes):
            raise ValueError(f"Resize position {position} out of range for {self._sizes}")

        min_neurons, max_neurons = params.neuron_bounds
        old_size = self._sizes[position]
        new_size = min(max(old_size + int(delta), min_neurons), max_neurons)
        self._sizes[position] = new_size
        return new_size != old_size


@dataclass(eq=False)
class Genome:
    """
    Unit of selection: a hidden topology and the network built from it.

    Attributes:
        hidden: Hidden-layer widths.
        network: Network whose hidden layers equal ``hidden``.
        fitness: Last score from the fitness function, None until evaluated.
        generation: Generation this genome was created in.
        parent_ids: Ids of the genomes it was derived from.
        mutation_history: Operators applied when it was created.
        id: Identifier, unique within a run.
    """
    hidden: HiddenLayers
    network: NeuralNetwork
    fitness: Optional[float] = None
    generation: int = 0
    parent_ids: List[str] = field(default_factory=list)
    mutation_history: List[str] = field(default_factory=list)
    id: str = ''

    def __post_init__(self):
        if not self.is_consistent():
            raise ValueError(
                f"Network hidden layers {list(self.network.hidden_layers)} "
                f"do not match genome topology {list(self.hidden)}"
            )

    @classmethod
    def random(
        cls,
        params: TrainingParameters,
        rng: np.random.Generator,
        **kwargs,
    ) -> 'Genome':
        """Draw a hidden topology within the configured bounds and build its network."""
        min_layers, max_layers = params.hidden_layer_bounds
        min_neurons, max_neurons = params.neuron_bounds

        count = int(rng.integers(min_layers, max_layers + 1))
        sizes = rng.integers(min_neurons, max_neurons + 1, size=count)
        hidden = HiddenLayers(sizes.tolist())
        network = NeuralNetwork(
            hidden.topology(params.input_size, params.output_size),
            rng=rng,
        )
        return cls(hidden=hidden, network=network, **kwargs)

    @classmethod
    def from_network(cls, network: NeuralNetwork, **kwargs) -> 'Genome':
        """Wrap a deep copy of an existing network."""
        return cls(
            hidden=HiddenLayers(network.hidden_layers),
            network=network.deep_copy(),
            **kwargs,
        )

    @property
    def topology(self) -> Tuple[int, ...]:
        return self.network.layers

    def is_consistent(self) -> bool:
        return self.network.hidden_layers == self.hidden.as_tuple()

    def copy(self, **overrides) -> 'Genome':
        """Deep, alias-free copy; keyword arguments replace metadata fields."""
        values = {
            'hidden': self.hidden.copy(),
            'network': self.network.deep_copy(),
            'fitness': self.fitness,
            'generation': self.generation,
            'parent_ids': list(self.parent_ids),
            'mutation_history': list(self.mutation_history),
            'id': self.id,
        }
        values.update(overrides)
        return Genome(**values)
