import numpy as np
import pandas as pd
import pytest

from mcrm.config import ColonyConfig
from mcrm.data import Dataset, FeatureSchema


# --- Dataset ---

def test_dataset_is_read_only(toy_dataset):
    with pytest.raises(ValueError):
        toy_dataset.X[0, 0] = 42.0
    assert toy_dataset.n_instances == 4
    assert toy_dataset.n_features == 2
    assert len(toy_dataset) == 4


def test_dataset_default_feature_names():
    dataset = Dataset(np.zeros((3, 2)), [0, 1, 0])
    assert dataset.feature_names == ('x0', 'x1')


def test_dataset_labels_in_first_appearance_order():
    dataset = Dataset(np.zeros((5, 1)), [2, 0, 2, 1, 0])
    assert dataset.labels.tolist() == [2, 0, 1]
    assert dataset.class_counts() == {0: 2, 1: 1, 2: 2}


def test_dataset_from_frame_and_subset():
    df = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [4.0, 5.0, 6.0], 'label': [0, 1, 1]})
    dataset = Dataset.from_frame(df, 'label')
    assert dataset.feature_names == ('a', 'b')
    sub = dataset.subset([0, 2])
    assert sub.X.tolist() == [[1.0, 4.0], [3.0, 6.0]]
    assert sub.y.tolist() == [0, 1]


@pytest.mark.parametrize('X, y', [
    (np.zeros(3), [0, 1, 0]),
    (np.zeros((3, 2)), [0, 1]),
    (np.array([[0.0, np.nan]]), [0]),
    (np.zeros((2, 1)), [0.5, 1.0]),
])
def test_dataset_rejects_invalid_input(X, y):
    with pytest.raises(ValueError):
        Dataset(X, y)


def test_dataset_rejects_wrong_name_count():
    with pytest.raises(ValueError):
        Dataset(np.zeros((2, 2)), [0, 1], ['only_one'])


# --- FeatureSchema ---

def test_schema_bounds():
    schema = FeatureSchema([[1.0, 2.0, 3.0, 4.0], [0.5]])
    assert schema.n_features == 2
    assert schema.sizes.tolist() == [4, 1]
    assert schema.upper_bounds.tolist() == [3, 0]


@pytest.mark.parametrize('cut_points', [
    [],
    [[1.0, 2.0], []],
    [[3.0, 1.0]],
])
def test_schema_rejects_invalid_tables(cut_points):
    with pytest.raises(ValueError):
        FeatureSchema(cut_points)


def test_schema_checks_dataset_dimensionality(toy_dataset):
    schema = FeatureSchema([[0.0, 1.0, 2.0]])
    with pytest.raises(ValueError):
        schema.check_dataset(toy_dataset)


# --- ColonyConfig ---

def test_config_defaults():
    config = ColonyConfig()
    assert config.colony_size == 30
    assert config.food_number == 15
    assert config.limit == 100
    assert config.archive_size == 50
    assert config.enable_caching is True
    assert config.multi_objective is False


@pytest.mark.parametrize('options', [
    {'colony_size': 1},
    {'colony_size': 0},
    {'max_epochs': 0},
    {'mutation_rate': 1.5},
    {'archive_size': 0},
    {'min_colony_size': 60, 'max_colony_size': 40},
    {'diversity_threshold': -0.1},
    {'cache_size': 0},
    {'unknown_option': 3},
])
def test_config_rejects_invalid_options(options):
    with pytest.raises(ValueError):
        ColonyConfig(**options)


def test_config_copy_overrides():
    config = ColonyConfig(colony_size=10)
    other = config.copy(max_epochs=5)
    assert other.colony_size == 10
    assert other.max_epochs == 5
    assert config.max_epochs == 1000
    assert other.as_dict()['max_epochs'] == 5
