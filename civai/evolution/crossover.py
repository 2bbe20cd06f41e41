"""
Crossover operator for genomes with divergent topologies.

The child takes its whole hidden topology from one parent, picked
with equal probability; topologies are never merged. A fresh network
is built for that topology and then, for every transition whose weight
matrix has the same shape in the child and in both parents, each weight
is taken from one parent or the other with equal probability.

Transitions near the input are the most likely to line up, so they
are the ones usually inherited. Once the topologies diverge, every
later transition keeps its fresh random weights. Biases are never
inherited.
"""
from typing import Any, Dict, Optional, Tuple

import numpy as np
import torch

from ..networks import NeuralNetwork
from .genome import Genome


class TopologyCrossover:
    """
    Topology-copying crossover with uniform weight inheritance.

    Example:
        crossover = TopologyCrossover(rng)
        child, info = crossover.crossover(parent_a, parent_b)
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def crossover(
        self,
        parent_a: Genome,
        parent_b: Genome,
    ) -> Tuple[Genome, Dict[str, Any]]:
        """
        Create offspring from two parent genomes.

        Args:
            parent_a: First parent.
            parent_b: Second parent (may be the same genome as parent_a).

        Returns:
            Tuple of (child genome, inheritance info).

        Raises:
            ValueError: If the parents disagree on input or output width.
        """
        net_a = parent_a.network
        net_b = parent_b.network

        if (net_a.input_size, net_a.output_size) != (net_b.input_size, net_b.output_size):
            raise ValueError(
                f"Parents must share input/output widths, got "
                f"{list(net_a.layers)} and {list(net_b.layers)}"
            )

        if self.rng.random() < 0.5:
            hidden = parent_a.hidden.copy()
            topology_from = 'a'
        else:
            hidden = parent_b.hidden.copy()
            topology_from = 'b'

        child_network = NeuralNetwork(
            hidden.topology(net_a.input_size, net_a.output_size),
            rng=self.rng,
        )

        inherited = []
        with torch.no_grad():
            for i, child_w in enumerate(child_network.weights):
                if i >= len(net_a.weights) or i >= len(net_b.weights):
                    break

                weight_a = net_a.weights[i]
                weight_b = net_b.weights[i]
                if not child_w.shape == weight_a.shape == weight_b.shape:
                    continue

                # Each weight randomly from A or B
                mask = torch.from_numpy(self.rng.random(tuple(child_w.shape)) < 0.5)
                child_w.copy_(torch.where(mask, weight_a, weight_b))
                inherited.append(i)

        child = Genome(
            hidden=hidden,
            network=child_network,
            parent_ids=[parent_a.id, parent_b.id],
            mutation_history=['crossover'],
        )

        inheritance_info = {
            'topology_from': topology_from,
            'inherited_transitions': inherited,
        }
        return child, inheritance_info
