import numpy as np
import pytest

from mcrm.data import Dataset
from mcrm.selection import METHODS, FeatureSelector


@pytest.fixture
def informative_dataset():
    rng = np.random.default_rng(5)
    X = rng.normal(size=(200, 4))
    y = (X[:, 2] > 0).astype(int)
    return Dataset(X, y)


@pytest.mark.parametrize('method', ['information_gain', 'chi_square', 'correlation', 'forest', 'hybrid'])
def test_informative_feature_ranks_first(informative_dataset, method):
    selector = FeatureSelector(method, random_state=0)
    scores = selector.importance(informative_dataset)
    assert scores.shape == (4,)
    assert np.all(scores >= 0)
    assert np.argmax(scores) == 2
    assert scores[2] == pytest.approx(1.0)
    assert selector.select(informative_dataset, 1) == [2]


def test_variance_scores():
    X = np.column_stack([np.linspace(0, 1, 50), np.linspace(0, 10, 50), np.full(50, 3.0)])
    scores = FeatureSelector('variance').importance(Dataset(X, np.arange(50) % 2))
    assert scores.tolist()[1] == pytest.approx(1.0)
    assert scores[2] == 0.0
    assert scores[0] < scores[1]


def test_select_orders_by_score(informative_dataset):
    selector = FeatureSelector('information_gain')
    ranked = selector.select(informative_dataset, 4)
    assert sorted(ranked) == [0, 1, 2, 3]
    assert ranked[0] == 2
    assert selector.select(informative_dataset, 0) == []


def test_single_class_gives_zero_forest_scores():
    dataset = Dataset(np.random.default_rng(0).normal(size=(10, 2)), np.zeros(10, dtype=int))
    assert FeatureSelector('forest').importance(dataset).tolist() == [0.0, 0.0]
    assert FeatureSelector('information_gain').importance(dataset).tolist() == [0.0, 0.0]


def test_methods_and_invalid_method():
    assert 'hybrid' in METHODS
    with pytest.raises(ValueError):
        FeatureSelector('relief')


def test_remove_redundant_keeps_the_more_important_feature():
    rng = np.random.default_rng(2)
    a = rng.normal(size=100)
    b = rng.normal(size=100)
    dataset = Dataset(np.column_stack([a, 2 * a, b]), (a > 0).astype(int))
    selector = FeatureSelector('information_gain')
    assert selector.remove_redundant(dataset, 0.8).tolist() == [True, False, True]
    assert selector.remove_redundant(dataset, 0.8, scores=[0.1, 0.9, 0.5]).tolist() == [False, True, True]
    assert selector.remove_redundant(dataset, 1.0).all()


def test_chi_square_scores_single_class():
    dataset = Dataset(np.random.default_rng(0).normal(size=(10, 2)), np.zeros(10, dtype=int))
    assert FeatureSelector('chi_square').importance(dataset).tolist() == [0.0, 0.0]
