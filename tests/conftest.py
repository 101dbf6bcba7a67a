import matplotlib

matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest
from sklearn.datasets import load_iris

from mcrm.data import Dataset, FeatureSchema
from mcrm.fitness import Solution


@pytest.fixture
def toy_dataset():
    """Two features, two well separated classes."""
    X = np.array([[0, 0], [0, 1], [5, 5], [5, 6]], dtype=float)
    y = np.array([0, 0, 1, 1])
    return Dataset(X, y, ['f0', 'f1'])


@pytest.fixture
def toy_schema():
    return FeatureSchema([[0.0, 2.5, 5.0], [0.0, 2.5, 6.0]], ['f0', 'f1'])


@pytest.fixture
def separable_dataset():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(80, 3))
    y = (X[:, 0] > 0).astype(int)
    return Dataset(X, y, ['signal', 'noise_a', 'noise_b'])


@pytest.fixture
def separable_cut_points(separable_dataset):
    cut_points = []
    for f in range(separable_dataset.n_features):
        values = separable_dataset.X[:, f]
        inner = np.quantile(values, [0.2, 0.4, 0.5, 0.6, 0.8])
        cut_points.append(np.unique(np.concatenate([[values.min()], inner, [values.max()]])))
    return cut_points


@pytest.fixture
def iris_frame():
    iris = load_iris(as_frame=True)
    X = iris.data.rename(columns=lambda c: c.replace(' (cm)', '').replace(' ', '_'))
    y = pd.Series(np.asarray(iris.target_names)[iris.target], name='species')
    return X, y


def make_solution(nectar, objectives, fitness=0.0):
    solution = Solution(nectar)
    solution.objectives = np.asarray(objectives, dtype=float)
    solution.fitness = fitness
    solution.evaluated = True
    return solution


@pytest.fixture
def solution_factory():
    return make_solution
