"""
Tests for population management and the evolutionary trainer.

Tests the generation loop for:
- Population initialization (random and seeded)
- Elitism and constant population size
- Failure handling in fitness evaluation
- Cancellation, progress reporting and reproducibility
"""
import threading

import numpy as np
import pytest
import torch

from civai.exceptions import ConfigurationError
from civai.evolution import EvolutionaryLearning, Population, TrainingParameters
from civai.networks import NeuralNetwork

from .factories import output_sum


class CountingFitness:
    """Deterministic fitness that counts its calls."""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, network):
        with self._lock:
            self.calls += 1
        return output_sum(network)


class TestPopulation:
    """Tests for Population."""

    def test_initialize_random(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()

        assert len(population) == small_params.population_size
        assert population.generation == 0
        assert [g.id for g in population.individuals][:2] == ['gen0_ind_000', 'gen0_ind_001']
        assert all(g.fitness is None for g in population.individuals)

    def test_evaluate_all_assigns_fitness(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()

        stats = population.evaluate_all(output_sum)

        fitnesses = [g.fitness for g in population.individuals]
        assert stats.generation == 0
        assert stats.best_fitness == max(fitnesses)
        assert stats.min_fitness == min(fitnesses)
        assert stats.avg_fitness == pytest.approx(sum(fitnesses) / len(fitnesses))
        assert stats.best_topology == population.get_best().topology

    def test_evolve_keeps_size_and_elite(self, small_params, rng):
        """Test that the elite is carried over as an exact copy."""
        population = Population(small_params, rng=rng)
        population.initialize_random()
        population.evaluate_all(output_sum)
        best = population.get_best()

        stats = population.evolve_generation()

        assert len(population) == small_params.population_size
        assert population.generation == 1
        elite = population.individuals[0]
        assert elite.id == 'gen1_elite_00'
        assert elite.parent_ids == [best.id]
        assert elite.hidden == best.hidden
        assert elite.network.equals(best.network)
        assert elite.network is not best.network
        assert stats.num_new_individuals == small_params.population_size - 1

    def test_evaluated_stats_carry_operator_counts(self, small_params, rng):
        """Test that scoring a generation reports how it was produced."""
        population = Population(small_params, rng=rng)
        population.initialize_random()
        first = population.evaluate_all(output_sum)
        evolved = population.evolve_generation()

        scored = population.evaluate_all(output_sum)

        assert first.num_new_individuals == 0
        assert scored.generation == 1
        assert scored.num_new_individuals == evolved.num_new_individuals
        assert scored.num_architecture_mutations == evolved.num_architecture_mutations
        assert scored.num_inherited_transitions == evolved.num_inherited_transitions

    def test_reinitialize_clears_operator_counts(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()
        population.evaluate_all(output_sum)
        population.evolve_generation()

        population.initialize_random()

        assert population.offspring_stats is None
        assert population.evaluate_all(output_sum).num_new_individuals == 0

    def test_offspring_respect_bounds(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()

        for _ in range(5):
            population.evaluate_all(output_sum)
            population.evolve_generation()

            for genome in population.individuals:
                assert genome.is_consistent()
                assert 1 <= len(genome.hidden) <= 3
                assert all(2 <= size <= 6 for size in genome.hidden)
                assert genome.topology[0] == 3
                assert genome.topology[-1] == 2

    def test_evolve_requires_evaluation(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()

        with pytest.raises(ValueError, match="not been evaluated"):
            population.evolve_generation()


class TestSeededInitialization:
    """Tests for starting from a known network."""

    @pytest.fixture
    def params(self):
        return TrainingParameters(
            population_size=5,
            generation_count=2,
            input_size=4,
            output_size=2,
            min_hidden_layers=1,
            max_hidden_layers=3,
            min_neurons_per_layer=4,
            max_neurons_per_layer=10,
            mutation_rate=0.5,
        )

    @pytest.fixture
    def seed_network(self, rng):
        return NeuralNetwork([4, 8, 8, 2], rng=rng)

    def test_first_genome_is_seed(self, params, seed_network, rng):
        """Test that genome 0 equals the seed and the others are variations."""
        reference = seed_network.deep_copy()
        population = Population(params, rng=rng)

        population.initialize_from_network(seed_network)

        assert len(population) == 5
        assert population.individuals[0].network.equals(seed_network)
        assert population.individuals[0].network is not seed_network
        assert population.individuals[0].hidden == [8, 8]
        for genome in population.individuals[1:]:
            assert not genome.network.equals(seed_network)
            assert genome.mutation_history[0] == 'initial_variation'
            assert genome.parent_ids == ['gen0_seed']
        assert seed_network.equals(reference)

    def test_interface_mismatch(self, params, rng):
        population = Population(params, rng=rng)

        with pytest.raises(ConfigurationError, match="does not match"):
            population.initialize_from_network(NeuralNetwork([5, 8, 2], rng=rng))

    def test_trainer_rejects_mismatched_seed(self, params, rng):
        trainer = EvolutionaryLearning(params, rng=rng)

        with pytest.raises(ConfigurationError):
            trainer.train(output_sum, initial_network=NeuralNetwork([4, 3], rng=rng))

    def test_seeded_training_never_loses_seed(self, params, seed_network):
        """Test that a seeded run returns something at least as fit as the seed."""
        trainer = EvolutionaryLearning(params, seed=3)

        best = trainer.train(output_sum, initial_network=seed_network)

        assert output_sum(best) >= output_sum(seed_network)


class TestEvolutionaryLearning:
    """Tests for the full training loop."""

    def test_returns_network_with_fixed_interface(self, small_params):
        best = EvolutionaryLearning(small_params, seed=0).train(output_sum)

        assert isinstance(best, NeuralNetwork)
        assert best.input_size == 3
        assert best.output_size == 2
        assert 1 <= len(best.hidden_layers) <= 3

    def test_elitism_is_monotonic(self, small_params):
        """Test that with a deterministic fitness the best score never drops."""
        trainer = EvolutionaryLearning(small_params, seed=11)
        trainer.train(output_sum)

        best_scores = [stats.best_fitness for stats in trainer.history]
        assert best_scores == sorted(best_scores)
        assert trainer.best.fitness == best_scores[-1]

    def test_history_length_and_callback(self, small_params):
        generations = []

        trainer = EvolutionaryLearning(small_params, seed=1)
        trainer.train(
            output_sum,
            progress_callback=lambda generation, stats: generations.append(generation),
        )

        assert generations == [0, 1, 2, 3, 4]
        assert len(trainer.history) == small_params.generation_count + 1
        assert trainer.population.generation == small_params.generation_count

    def test_history_reports_operator_counts(self, small_params):
        """Test that every evolved generation records its offspring and operators."""
        recorded = []
        trainer = EvolutionaryLearning(small_params, seed=0)

        trainer.train(output_sum, progress_callback=lambda generation, stats: recorded.append(stats))

        assert trainer.history[0].num_new_individuals == 0
        for stats in trainer.history[1:]:
            assert stats.num_new_individuals == small_params.population_size - 1
        assert sum(s.num_architecture_mutations for s in trainer.history) > 0
        assert sum(s.num_inherited_transitions for s in trainer.history) > 0
        assert recorded == trainer.history

    def test_fitness_call_count(self, small_params):
        """Test one call per genome per generation plus the final selection."""
        fitness = CountingFitness()

        EvolutionaryLearning(small_params, seed=2).train(fitness)

        assert fitness.calls == small_params.population_size * (small_params.generation_count + 1)

    def test_zero_generations(self):
        """Test that only the initial population is evaluated."""
        params = TrainingParameters(
            population_size=4,
            generation_count=0,
            input_size=3,
            output_size=2,
            tournament_size=2,
        )
        fitness = CountingFitness()
        trainer = EvolutionaryLearning(params, seed=5)

        best = trainer.train(fitness)

        assert fitness.calls == 4
        assert len(trainer.history) == 1
        assert trainer.population.generation == 0
        scores = [g.fitness for g in trainer.population.individuals]
        assert trainer.best.fitness == max(scores)
        assert best is trainer.best.network

    def test_fitness_exception_propagates(self, small_params):
        def broken(network):
            raise RuntimeError("simulation crashed")

        with pytest.raises(RuntimeError, match="simulation crashed"):
            EvolutionaryLearning(small_params, seed=0).train(broken)

    @pytest.mark.parametrize('score', [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_fitness(self, small_params, score):
        with pytest.raises(ValueError, match="Fitness function returned"):
            EvolutionaryLearning(small_params, seed=0).train(lambda network: score)

    def test_non_finite_leaves_scores_unassigned(self, small_params, rng):
        population = Population(small_params, rng=rng)
        population.initialize_random()
        scores = iter([1.0, 2.0, float('nan'), 3.0, 4.0, 5.0])

        with pytest.raises(ValueError):
            population.evaluate_all(lambda network: next(scores))

        assert all(g.fitness is None for g in population.individuals)

    def test_should_stop(self, small_params):
        """Test that a stop request ends the loop and still selects a best network."""
        checks = []

        def should_stop():
            checks.append(True)
            return len(checks) > 2

        trainer = EvolutionaryLearning(small_params, seed=4)
        best = trainer.train(output_sum, should_stop=should_stop)

        assert len(checks) == 3
        assert trainer.population.generation == 2
        assert len(trainer.history) == 3
        assert best is trainer.best.network

    def test_stop_before_first_generation(self, small_params):
        trainer = EvolutionaryLearning(small_params, seed=4)
        trainer.train(output_sum, should_stop=lambda: True)

        assert len(trainer.history) == 1
        assert trainer.population.generation == 0

    def test_same_seed_same_run(self, small_params):
        """Test that a run is fully determined by its seed."""
        first = EvolutionaryLearning(small_params, seed=99)
        second = EvolutionaryLearning(small_params, seed=99)

        best_a = first.train(output_sum)
        best_b = second.train(output_sum)

        assert best_a.equals(best_b)
        assert [s.best_fitness for s in first.history] == [s.best_fitness for s in second.history]
        assert [s.best_topology for s in first.history] == [s.best_topology for s in second.history]

    def test_different_seed_different_run(self, small_params):
        best_a = EvolutionaryLearning(small_params, seed=1).train(output_sum)
        best_b = EvolutionaryLearning(small_params, seed=2).train(output_sum)

        assert not best_a.equals(best_b)

    def test_parallel_matches_serial(self, small_params):
        """Test that a thread pool changes nothing about the result."""
        serial = EvolutionaryLearning(small_params, seed=21)
        parallel = EvolutionaryLearning(small_params, seed=21)
        fitness = CountingFitness()

        best_serial = serial.train(output_sum)
        best_parallel = parallel.train(fitness, max_workers=4)

        assert best_serial.equals(best_parallel)
        assert [s.avg_fitness for s in serial.history] == [s.avg_fitness for s in parallel.history]
        assert fitness.calls == small_params.population_size * (small_params.generation_count + 1)

    def test_fitness_sees_unmodified_networks(self, small_params):
        """Test that evaluation order does not matter to the networks it sees."""
        seen = []

        def recording(network):
            seen.append(network.deep_copy())
            return output_sum(network)

        trainer = EvolutionaryLearning(small_params, seed=8)
        trainer.train(recording)

        final = trainer.population.individuals
        last_seen = seen[-len(final):]
        for genome, copy in zip(final, last_seen):
            assert genome.network.equals(copy)

    def test_rng_and_seed(self, small_params):
        """Test that an explicit generator takes precedence over a seed."""
        a = EvolutionaryLearning(small_params, rng=np.random.default_rng(5), seed=1)
        b = EvolutionaryLearning(small_params, seed=5)

        assert a.train(output_sum).equals(b.train(output_sum))

    def test_learns_simple_target(self):
        """Test that evolution improves on a simple regression target."""
        params = TrainingParameters(
            population_size=20,
            generation_count=15,
            input_size=2,
            output_size=1,
            min_hidden_layers=1,
            max_hidden_layers=2,
            min_neurons_per_layer=2,
            max_neurons_per_layer=6,
            mutation_rate=0.3,
        )
        cases = [([0.0, 0.0], 0.1), ([1.0, 1.0], 0.9), ([1.0, 0.0], 0.5)]

        def fitness(network):
            error = 0.0
            for inputs, target in cases:
                error += (network.feed_forward(inputs)[0].item() - target) ** 2
            return -error

        trainer = EvolutionaryLearning(params, seed=17)
        trainer.train(fitness)

        assert trainer.history[-1].best_fitness >= trainer.history[0].best_fitness
        assert trainer.history[-1].best_fitness > trainer.history[0].avg_fitness
        assert torch.is_tensor(trainer.best.network.feed_forward([0.5, 0.5]))
