"""
Fully-connected feed-forward networks with sigmoid activations.

A network is described by its topology: the ordered layer widths
``[input, hidden..., output]``. Each transition between two layers
is an ``nn.Linear`` whose weight matrix has shape ``[out][in]`` and
whose bias vector has length ``out``. Every layer, including the
output layer, is squashed through a sigmoid.

Networks here are evolved, never trained by gradient descent, so
all parameters are created with ``requires_grad=False`` and the
mutation operators are free to edit them in place.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import torch
import torch.nn as nn

from ..exceptions import ShapeMismatchError

# Range of the uniform distribution used for fresh weights and biases
INIT_LOW = -1.0
INIT_HIGH = 1.0


def validate_topology(layers: Sequence[int]) -> Tuple[int, ...]:
    """
    Check a topology and return it as a tuple of ints.

    Args:
        layers: Layer widths, input first and output last.

    Returns:
        The topology as an immutable tuple.

    Raises:
        ShapeMismatchError: If there are fewer than two layers or any
            width is not a positive integer.
    """
    try:
        topology = tuple(int(size) for size in layers)
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(f"Topology must be a sequence of integers: {e}") from e

    if len(topology) < 2:
        raise ShapeMismatchError(
            f"Topology needs at least an input and an output layer, got {list(topology)}"
        )
    if any(size <= 0 for size in topology):
        raise ShapeMismatchError(f"Layer sizes must be positive, got {list(topology)}")
    return topology


def _as_tensor(values: Any, expected_shape: Tuple[int, ...], label: str) -> torch.Tensor:
    """Copy values into a fresh float64 tensor of exactly ``expected_shape``."""
    if isinstance(values, torch.Tensor):
        tensor = values.detach().to(device='cpu', dtype=torch.float64).clone()
    else:
        try:
            tensor = torch.from_numpy(np.array(values, dtype=np.float64))
        except (TypeError, ValueError) as e:
            raise ShapeMismatchError(f"{label} is not a rectangular numeric array: {e}") from e

    if tuple(tensor.shape) != expected_shape:
        raise ShapeMismatchError(
            f"{label} has shape {list(tensor.shape)}, expected {list(expected_shape)}"
        )
    if not torch.isfinite(tensor).all():
        raise ValueError(f"{label} contains non-finite values")

    return tensor


class NeuralNetwork(nn.Module):
    """
    A feed-forward sigmoid network with an explicit topology.

    Attributes:
        layers: Full topology as a tuple, ``(input, hidden..., output)``.

    Example:
        network = NeuralNetwork([12, 8, 8, 4], rng=np.random.default_rng(0))
        actions = network.feed_forward([0.0] * 12)
        clone = network.deep_copy()
    """

    def __init__(
        self,
        layers: Sequence[int],
        weights: Optional[Sequence[Any]] = None,
        biases: Optional[Sequence[Any]] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Build a network for a topology.

        With no explicit parameters, every weight and bias is drawn
        independently from U(-1, 1) using ``rng``.

        Args:
            layers: Layer widths, input first and output last.
            weights: Optional weight matrices, one ``[out][in]`` matrix per
                transition. Must be given together with ``biases``.
            biases: Optional bias vectors, one per transition.
            rng: Random generator for fresh parameters. A new unseeded
                generator is used when omitted.

        Raises:
            ShapeMismatchError: If the topology is invalid or the supplied
                parameters do not match it.
        """
        super().__init__()
        self.layers = validate_topology(layers)

        if (weights is None) != (biases is None):
            raise ShapeMismatchError("weights and biases must be supplied together")

        transitions = list(zip(self.layers[:-1], self.layers[1:]))

        if weights is not None:
            if len(weights) != len(transitions) or len(biases) != len(transitions):
                raise ShapeMismatchError(
                    f"Topology {list(self.layers)} has {len(transitions)} transitions, "
                    f"got {len(weights)} weight matrices and {len(biases)} bias vectors"
                )
            weight_tensors = [
                _as_tensor(w, (out_f, in_f), f"weights[{i}]")
                for i, (w, (in_f, out_f)) in enumerate(zip(weights, transitions))
            ]
            bias_tensors = [
                _as_tensor(b, (out_f,), f"biases[{i}]")
                for i, (b, (_, out_f)) in enumerate(zip(biases, transitions))
            ]
        else:
            if rng is None:
                rng = np.random.default_rng()
            weight_tensors = []
            bias_tensors = []
            for in_f, out_f in transitions:
                weight_tensors.append(torch.from_numpy(
                    rng.uniform(INIT_LOW, INIT_HIGH, size=(out_f, in_f))
                ))
                bias_tensors.append(torch.from_numpy(
                    rng.uniform(INIT_LOW, INIT_HIGH, size=out_f)
                ))

        # Built on the meta device; the real parameters are assigned below
        self._linears = nn.ModuleList()
        for (in_f, out_f), weight, bias in zip(transitions, weight_tensors, bias_tensors):
            linear = nn.Linear(in_f, out_f, device='meta', dtype=torch.float64)
            linear.weight = nn.Parameter(weight, requires_grad=False)
            linear.bias = nn.Parameter(bias, requires_grad=False)
            self._linears.append(linear)

    @classmethod
    def from_parameters(
        cls,
        layers: Sequence[int],
        weights: Sequence[Any],
        biases: Sequence[Any],
    ) -> 'NeuralNetwork':
        """
        Build a network from explicit weights and biases.

        The values are copied; the new network never aliases the inputs.

        Raises:
            ShapeMismatchError: If any array shape disagrees with ``layers``.
        """
        return cls(layers, weights=weights, biases=biases)

    @property
    def input_size(self) -> int:
        return self.layers[0]

    @property
    def output_size(self) -> int:
        return self.layers[-1]

    @property
    def hidden_layers(self) -> Tuple[int, ...]:
        """Widths of the hidden layers, in order."""
        return self.layers[1:-1]

    @property
    def weights(self) -> List[torch.Tensor]:
        """Live weight matrices, one ``[out, in]`` tensor per transition."""
        return [linear.weight for linear in self._linears]

    @property
    def biases(self) -> List[torch.Tensor]:
        """Live bias vectors, one ``[out]`` tensor per transition."""
        return [linear.bias for linear in self._linears]

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Forward pass for a single input ``[in]`` or a batch ``[N, in]``."""
        for linear in self._linears:
            x = torch.sigmoid(linear(x))
        return x

    def feed_forward(self, inputs: Sequence[float]) -> torch.Tensor:
        """
        Run one input vector through the network.

        Args:
            inputs: Exactly ``layers[0]`` numbers.

        Returns:
            1-D float64 tensor with the output layer's activations.

        Raises:
            ShapeMismatchError: If the input length is wrong. Nothing is
                computed in that case.
        """
        try:
            x = torch.as_tensor(np.asarray(inputs, dtype=np.float64))
        except (TypeError, ValueError) as e:
            raise ShapeMismatchError(f"Input is not a numeric vector: {e}") from e

        if x.dim() != 1 or x.shape[0] != self.input_size:
            raise ShapeMismatchError(
                f"Input size {list(x.shape)} does not match first layer size {self.input_size}"
            )

        with torch.no_grad():
            return self.forward(x)

    def deep_copy(self) -> 'NeuralNetwork':
        """Return an independent network holding identical values."""
        return NeuralNetwork(
            self.layers,
            weights=[w.detach().clone() for w in self.weights],
            biases=[b.detach().clone() for b in self.biases],
        )

    def equals(self, other: Any) -> bool:
        """Deep value equality of topology, weights and biases."""
        if self is other:
            return True
        if not isinstance(other, NeuralNetwork):
            return False
        if self.layers != other.layers:
            return False

        return all(
            torch.equal(a, b) for a, b in zip(self.weights, other.weights)
        ) and all(
            torch.equal(a, b) for a, b in zip(self.biases, other.biases)
        )

    def parameter_count(self) -> int:
        """Count weights and biases."""
        return sum(p.numel() for p in self.parameters())

    def describe(self) -> List[Dict[str, Any]]:
        """Get information about each transition in the network."""
        return [
            {
                'index': i,
                'in_features': linear.in_features,
                'out_features': linear.out_features,
                'parameters': linear.weight.numel() + linear.bias.numel(),
            }
            for i, linear in enumerate(self._linears)
        ]

    def extra_repr(self) -> str:
        return f"layers={list(self.layers)}"
