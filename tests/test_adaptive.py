import numpy as np
import pytest

from mcrm.adaptive import AdaptiveController, population_diversity
from mcrm.config import ColonyConfig


def test_identical_population_has_zero_diversity():
    assert population_diversity([np.array([1, 2, 3])] * 6) == 0.0


def test_fully_distinct_population_has_unit_diversity():
    nectars = [np.full(4, k) for k in range(5)]
    assert population_diversity(nectars) == 1.0


def test_partial_diversity():
    assert population_diversity([[0, 0], [0, 1]]) == pytest.approx(0.5)
    assert population_diversity([[0, 0], [0, 1], [1, 1]]) == pytest.approx((0.5 + 1.0 + 0.5) / 3)


def test_diversity_of_single_vector_is_zero():
    assert population_diversity([[1, 2]]) == 0.0
    assert population_diversity([]) == 0.0


def test_colony_size_follows_diversity():
    controller = AdaptiveController(ColonyConfig(colony_size=30, diversity_threshold=0.1))
    controller.update(diversity=0.05, stagnation=0, population_best_accuracy=1.0, global_best_accuracy=1.0)
    assert controller.colony_size == 32
    assert controller.food_number == 16
    controller.update(diversity=0.15, stagnation=0, population_best_accuracy=1.0, global_best_accuracy=1.0)
    assert controller.colony_size == 32
    controller.update(diversity=0.5, stagnation=0, population_best_accuracy=1.0, global_best_accuracy=1.0)
    assert controller.colony_size == 31


def test_colony_size_is_bounded():
    controller = AdaptiveController(ColonyConfig(colony_size=30, min_colony_size=20, max_colony_size=34))
    for _ in range(10):
        controller.update(0.0, 0, 1.0, 1.0)
    assert controller.colony_size == 34
    for _ in range(30):
        controller.update(1.0, 0, 1.0, 1.0)
    assert controller.colony_size == 20


def test_colony_bounds_include_initial_size():
    controller = AdaptiveController(ColonyConfig(colony_size=4))
    controller.update(1.0, 0, 1.0, 1.0)
    assert controller.colony_size == 4


def test_mutation_rate_adapts_to_stagnation():
    config = ColonyConfig(mutation_rate=0.1, early_stopping_patience=30)
    controller = AdaptiveController(config)
    controller.update(0.15, 11, 1.0, 1.0)
    assert controller.mutation_rate == pytest.approx(0.11)
    for _ in range(50):
        controller.update(0.15, 11, 1.0, 1.0)
    assert controller.mutation_rate == pytest.approx(0.3)

    controller = AdaptiveController(config)
    controller.update(0.15, 10, 1.0, 1.0)
    assert controller.mutation_rate == pytest.approx(0.099)
    for _ in range(500):
        controller.update(0.15, 0, 1.0, 1.0)
    assert controller.mutation_rate == pytest.approx(0.05)


def test_feature_selection_probability_grows_when_population_lags():
    controller = AdaptiveController(ColonyConfig(feature_selection_probability=0.1))
    controller.update(0.15, 0, population_best_accuracy=0.95, global_best_accuracy=1.0)
    assert controller.feature_selection_probability == pytest.approx(0.1)
    controller.update(0.15, 0, population_best_accuracy=0.5, global_best_accuracy=1.0)
    assert controller.feature_selection_probability == pytest.approx(0.12)
    for _ in range(20):
        controller.update(0.15, 0, 0.5, 1.0)
    assert controller.feature_selection_probability == pytest.approx(0.3)
