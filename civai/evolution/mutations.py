"""
Network mutation operators for neuroevolution.

Implements two types of mutations:
1. Weight perturbation: add uniform noise to individual weights
2. Architecture mutations: insert, remove or resize a hidden layer

Architecture mutations change the hidden-layer list of a genome. The
network is then rebuilt for the new topology, keeping every weight
whose position still exists.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import torch

from ..networks import NeuralNetwork
from .config import TrainingParameters
from .genome import Genome, HiddenLayers

logger = logging.getLogger(__name__)


class WeightMutator:
    """
    Weight perturbation mutation operator.

    Each weight scalar is perturbed independently with probability
    ``mutation_rate`` by noise drawn from U(-perturbation, perturbation).
    Biases are left untouched.

    Example:
        mutator = WeightMutator(mutation_rate=0.1, rng=rng)
        child_network = mutator.mutate(parent_network)
    """

    def __init__(
        self,
        mutation_rate: float = 0.1,
        perturbation: float = 0.5,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the weight mutator.

        Args:
            mutation_rate: Probability of mutating each weight (0-1).
            perturbation: Half-width of the uniform noise.
            rng: Random generator shared with the rest of the run.
        """
        self.mutation_rate = mutation_rate
        self.perturbation = perturbation
        self.rng = rng if rng is not None else np.random.default_rng()

    def mutate(
        self,
        network: NeuralNetwork,
        in_place: bool = False,
    ) -> NeuralNetwork:
        """
        Apply weight perturbation to a network.

        Args:
            network: The network to mutate.
            in_place: If True, modify network in place.
                     If False, return a new mutated copy.

        Returns:
            Mutated network (same object if in_place=True).
        """
        if not in_place:
            network = network.deep_copy()

        if self.mutation_rate <= 0.0:
            return network

        with torch.no_grad():
            for weight in network.weights:
                shape = tuple(weight.shape)
                mask = self.rng.random(shape) < self.mutation_rate
                noise = self.rng.uniform(-self.perturbation, self.perturbation, size=shape)
                weight.add_(torch.from_numpy(noise * mask))

        return network


class ArchitectureMutator:
    """
    Hidden-layer architecture mutation operator.

    With probability ``architecture_mutation_rate`` exactly one of three
    operations is picked uniformly:
    - add_layer: insert a randomly sized layer at a random position
    - remove_layer: drop a randomly chosen layer
    - resize_layer: change one layer's width by a delta in
      [-resize_delta, resize_delta], clamped to the neuron bounds

    An operation whose precondition fails (too many or too few layers)
    does nothing, so the layer count and widths always stay inside the
    configured bounds.

    Example:
        mutator = ArchitectureMutator(params, rng)
        new_hidden, mutations = mutator.mutate(genome.hidden)
    """

    OPERATIONS = ('add_layer', 'remove_layer', 'resize_layer')

    def __init__(
        self,
        params: TrainingParameters,
        rng: Optional[np.random.Generator] = None,
    ):
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()

    def mutate(self, hidden: HiddenLayers) -> Tuple[HiddenLayers, List[str]]:
        """
        Maybe apply one architecture mutation.

        Args:
            hidden: Hidden layers to start from. Never modified.

        Returns:
            Tuple of (new hidden layers, list of mutations applied).
        """
        hidden = hidden.copy()
        mutations_applied = []

        if self.rng.random() < self.params.architecture_mutation_rate:
            operation = self.OPERATIONS[int(self.rng.integers(len(self.OPERATIONS)))]
            if getattr(self, operation)(hidden):
                mutations_applied.append(operation)

        return hidden, mutations_applied

    def add_layer(self, hidden: HiddenLayers) -> bool:
        _, max_layers = self.params.hidden_layer_bounds
        if len(hidden) >= max_layers:
            return False

        min_neurons, max_neurons = self.params.neuron_bounds
        size = int(self.rng.integers(min_neurons, max_neurons + 1))
        position = int(self.rng.integers(len(hidden) + 1))
        return hidden.insert(position, size, self.params)

    def remove_layer(self, hidden: HiddenLayers) -> bool:
        min_layers, _ = self.params.hidden_layer_bounds
        if len(hidden) <= min_layers:
            return False

        position = int(self.rng.integers(len(hidden)))
        return hidden.remove(position, self.params)

    def resize_layer(self, hidden: HiddenLayers) -> bool:
        if not len(hidden):
            return False

        position = int(self.rng.integers(len(hidden)))
        delta = int(self.rng.integers(-self.params.resize_delta, self.params.resize_delta + 1))
        return hidden.resize(position, delta, self.params)


def transfer_compatible_weights(
    source: NeuralNetwork,
    target: NeuralNetwork,
) -> int:
    """
    Copy weights and biases from source into target where positions overlap.

    Transitions are matched by index. Equal shapes are copied whole;
    for resized transitions the overlapping top-left block is copied and
    the rest of the target keeps its own values.

    Returns:
        Number of transitions copied whole.
    """
    copied = 0

    with torch.no_grad():
        pairs = zip(source.weights, source.biases, target.weights, target.biases)
        for src_w, src_b, dst_w, dst_b in pairs:
            if src_w.shape == dst_w.shape:
                dst_w.copy_(src_w)
                dst_b.copy_(src_b)
                copied += 1
                continue

            # Partial transfer for resized layers
            rows = min(src_w.shape[0], dst_w.shape[0])
            cols = min(src_w.shape[1], dst_w.shape[1])
            dst_w[:rows, :cols] = src_w[:rows, :cols]
            dst_b[:rows] = src_b[:rows]

    return copied


class CombinedMutator:
    """
    Combined architecture and weight mutation for genomes.

    Applies an architecture mutation (rebuilding the network when the
    topology changes) followed by weight perturbation.
    """

    def __init__(
        self,
        params: TrainingParameters,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the combined mutator.

        Args:
            params: Training parameters holding rates and bounds.
            rng: Random generator shared with the rest of the run.
        """
        self.params = params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.architecture_mutator = ArchitectureMutator(params, rng=self.rng)
        self.weight_mutator = WeightMutator(
            mutation_rate=params.mutation_rate,
            perturbation=params.weight_perturbation,
            rng=self.rng,
        )

    def mutate(
        self,
        genome: Genome,
        mutate_architecture: bool = True,
        mutate_weights: bool = True,
        in_place: bool = False,
    ) -> Tuple[Genome, Dict[str, Any]]:
        """
        Apply combined mutations.

        Args:
            genome: Genome to mutate.
            mutate_architecture: Whether to try an architecture mutation.
            mutate_weights: Whether to apply weight perturbation.
            in_place: If False, mutate and return a deep copy.

        Returns:
            Tuple of (mutated genome, mutation info dict).
        """
        if not in_place:
            genome = genome.copy()

        mutation_info = {
            'architecture_mutations': [],
            'weight_mutated': False,
        }

        if mutate_architecture:
            hidden, mutations = self.architecture_mutator.mutate(genome.hidden)
            mutation_info['architecture_mutations'] = mutations

            if hidden != genome.hidden:
                network = NeuralNetwork(
                    hidden.topology(genome.network.input_size, genome.network.output_size),
                    rng=self.rng,
                )
                transfer_compatible_weights(genome.network, network)
                logger.debug(
                    f"{', '.join(mutations)}: {list(genome.hidden)} -> {list(hidden)}"
                )
                genome.hidden = hidden
                genome.network = network

        if mutate_weights:
            self.weight_mutator.mutate(genome.network, in_place=True)
            mutation_info['weight_mutated'] = True

        genome.mutation_history.extend(mutation_info['architecture_mutations'])
        if mutation_info['weight_mutated']:
            genome.mutation_history.append('weight_perturbation')

        return genome, mutation_info
