import numpy as np
import pytest

from mcrm.colony import (INITIALIZATION_STRATEGIES, SEARCH_STRATEGIES, ColonyEngine, levy_step,
                         weighted_choice)
from mcrm.config import ColonyConfig
from mcrm.data import Dataset, FeatureSchema
from mcrm.pareto import dominates


def _engine(dataset, cut_points, seed=1, **options):
    config = ColonyConfig(**dict({'colony_size': 10, 'max_epochs': 30, 'limit': 5}, **options))
    engine = ColonyEngine(config, random_state=seed)
    engine.initialize(dataset, cut_points)
    return engine


def test_optimize_before_initialize_is_fatal():
    with pytest.raises(RuntimeError):
        ColonyEngine(ColonyConfig(colony_size=4)).optimize_step()


def test_fatal_configuration_and_data(toy_dataset, toy_schema):
    with pytest.raises(ValueError):
        ColonyConfig(colony_size=1)

    engine = ColonyEngine(ColonyConfig(colony_size=4), random_state=0)
    empty = Dataset(np.zeros((0, 2)), np.array([], dtype=int))
    with pytest.raises(ValueError):
        engine.initialize(empty, toy_schema)
    with pytest.raises(ValueError):
        engine.initialize(toy_dataset, [[0.0, 2.5, 5.0], []])
    with pytest.raises(ValueError):
        engine.initialize(toy_dataset, [[0.0, 2.5, 5.0]])
    with pytest.raises(ValueError):
        engine.initialize(toy_dataset, toy_schema, importance=[1.0])


def test_initial_population(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points)
    population = engine.population
    assert len(population) == 5
    schema = FeatureSchema(separable_cut_points)
    for solution in population:
        assert solution.evaluated
        assert solution.trials == 0
        assert np.all(solution.nectar >= 0)
        assert np.all(solution.nectar <= schema.upper_bounds)
    assert engine.global_best.fitness == max(s.fitness for s in population)
    assert engine.current_epoch == 0


def test_global_best_never_decreases(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points)
    previous = engine.global_best.fitness
    while not engine.optimize_step():
        current = engine.global_best.fitness
        assert current >= previous
        previous = current
    best = [record['best_fitness'] for record in engine.history]
    assert best == sorted(best)


def test_runs_are_reproducible_with_a_seed(separable_dataset, separable_cut_points):
    first = _engine(separable_dataset, separable_cut_points, seed=3)
    second = _engine(separable_dataset, separable_cut_points, seed=3)
    for _ in range(10):
        first.optimize_step()
        second.optimize_step()
    assert first.global_best.nectar.tolist() == second.global_best.nectar.tolist()
    assert [r['mean_fitness'] for r in first.history] == [r['mean_fitness'] for r in second.history]


def test_injected_generator_is_used(separable_dataset, separable_cut_points):
    config = ColonyConfig(colony_size=10, max_epochs=5)
    first = ColonyEngine(config, rng=np.random.default_rng(11))
    second = ColonyEngine(config, rng=np.random.default_rng(11))
    first.initialize(separable_dataset, separable_cut_points)
    second.initialize(separable_dataset, separable_cut_points)
    assert [s.nectar.tolist() for s in first.population] == [s.nectar.tolist() for s in second.population]


def test_step_reports_done_at_max_epochs(toy_dataset, toy_schema):
    engine = _engine(toy_dataset, toy_schema, colony_size=4, max_epochs=3)
    assert engine.optimize_step() is False
    assert engine.optimize_step() is False
    assert engine.optimize_step() is True
    assert engine.current_epoch == 3
    assert engine.optimize_step() is True
    assert engine.current_epoch == 3
    assert len(engine.history) == 3


def test_search_finds_the_separating_threshold(toy_dataset, toy_schema):
    engine = _engine(toy_dataset, toy_schema, colony_size=6, max_epochs=20)
    while not engine.optimize_step():
        pass
    best = engine.global_best
    assert best.accuracy == 1.0
    assert best.coverage == 1.0
    assert best.complexity == 1.0
    rules = engine.rules()
    assert len(rules) == 2
    assert all(rule.confidence == 1.0 for rule in rules)


def test_archive_is_empty_without_multi_objective(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points, max_epochs=5)
    while not engine.optimize_step():
        pass
    assert engine.archive == []


def test_multi_objective_archive_is_bounded_and_non_dominated(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points, max_epochs=15,
                     multi_objective=True, archive_size=3)
    while not engine.optimize_step():
        archive = engine.archive
        assert 1 <= len(archive) <= 3
        for a in archive:
            assert not any(dominates(b.objectives, a.objectives) for b in archive)
    assert all(record['archive_size'] <= 3 for record in engine.history)


def test_population_follows_adaptive_colony_size(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points, max_epochs=4, diversity_threshold=2.0)
    sizes = []
    while True:
        done = engine.optimize_step()
        assert len(engine.population) == engine.controller.food_number
        sizes.append(len(engine.population))
        if done:
            break
    assert sizes == [6, 7, 8, 9]


def test_stagnation_is_flagged(toy_dataset, toy_schema):
    engine = _engine(toy_dataset, toy_schema, colony_size=4, max_epochs=40, early_stopping_patience=1)
    seen = []
    done = False
    while not done:
        done = engine.optimize_step()
        seen.append(engine.stagnated)
        assert engine.stagnated == (engine.stagnation > 1)
    assert any(seen)
    assert engine.current_epoch == 40


def test_improvement_clears_stagnation(separable_dataset, separable_cut_points):
    engine = _engine(separable_dataset, separable_cut_points, seed=5, max_epochs=60,
                     early_stopping_patience=1)
    while not engine.optimize_step():
        if engine.stagnation == 0:
            assert not engine.stagnated


def test_importance_initializer_uses_middle_index(separable_dataset, separable_cut_points):
    config = ColonyConfig(colony_size=10, max_epochs=5, feature_selection_probability=0.0)
    engine = ColonyEngine(config, random_state=0)
    engine.initialize(separable_dataset, separable_cut_points, importance=np.array([1.0, 0.0, 0.0]))
    sizes = engine.schema.sizes
    for _ in range(10):
        nectar = engine._init_importance()
        assert nectar[0] == sizes[0] // 2
        assert nectar[1] in (0, sizes[1] - 1)
        assert nectar[2] in (0, sizes[2] - 1)


def test_entropy_initializer_picks_best_split(toy_dataset, toy_schema):
    engine = ColonyEngine(ColonyConfig(colony_size=4), random_state=0)
    engine.initialize(toy_dataset, toy_schema)
    assert engine._init_entropy().tolist() == [1, 1]


def test_weighted_choice():
    rng = np.random.default_rng(0)
    draws = {weighted_choice(rng, [('a', 1.0), ('b', 0.0)]) for _ in range(50)}
    assert draws == {'a'}
    names = {weighted_choice(rng, SEARCH_STRATEGIES) for _ in range(200)}
    assert names == {name for name, _ in SEARCH_STRATEGIES}
    assert sum(weight for _, weight in INITIALIZATION_STRATEGIES) == pytest.approx(1.0)
    with pytest.raises(ValueError):
        weighted_choice(rng, [('a', 0.0)])


def test_levy_steps_are_heavy_tailed():
    rng = np.random.default_rng(0)
    steps = np.array([levy_step(rng) for _ in range(2000)])
    steps = steps[np.isfinite(steps)]
    assert np.median(np.abs(steps)) < 1.5
    assert np.max(np.abs(steps)) > 5.0


def test_moves_clamp_into_the_cut_point_range(toy_dataset, toy_schema):
    engine = _engine(toy_dataset, toy_schema, colony_size=4)
    assert engine._clamp(0, -5) == 0
    assert engine._clamp(1, 99) == toy_schema.sizes[1] - 1
    assert engine._clamp(1, 1.7) == 1
