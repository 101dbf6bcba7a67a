import json

import numpy as np
import pandas as pd
import pytest

from mcrm.model import ColonyRuleSet, _plain
from mcrm.pareto import dominates


def _model(**options):
    defaults = {'colony_size': 20, 'max_epochs': 30, 'random_state': 0, 'verbose': False}
    defaults.update(options)
    return ColonyRuleSet(**defaults)


@pytest.fixture
def fitted_iris(iris_frame):
    X, y = iris_frame
    return _model().fit(X, y), X, y


def test_fit_sets_attributes(fitted_iris):
    model, X, y = fitted_iris
    assert list(model.classes_) == ['setosa', 'versicolor', 'virginica']
    assert model.feature_names_ == tuple(X.columns)
    assert len(model.cut_points_) == 4
    assert model.feature_importances_.shape == (4,)
    assert model.n_epochs_ == 30
    assert len(model.history_) == 30
    assert model.best_solution_.accuracy > 0
    assert len(model.rules_) >= 1
    assert model.archive_ == []


def test_predict_returns_original_labels(fitted_iris):
    model, X, y = fitted_iris
    predictions = model.predict(X)
    assert predictions.shape == (150,)
    assert set(predictions) <= set(model.classes_)
    assert model.score(X, y) > 0.6


def test_predict_proba_rows_sum_to_one(fitted_iris):
    model, X, _ = fitted_iris
    proba = model.predict_proba(X)
    assert proba.shape == (150, 3)
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert np.all(proba >= 0)


def test_predict_accepts_arrays_and_reordered_frames(fitted_iris):
    model, X, _ = fitted_iris
    expected = model.predict(X)
    assert (model.predict(X.to_numpy()) == expected).all()
    assert (model.predict(X[X.columns[::-1]]) == expected).all()
    with pytest.raises(ValueError):
        model.predict(X.to_numpy()[:, :2])


def test_evaluate_report(fitted_iris):
    model, X, y = fitted_iris
    report = model.evaluate(X, y)
    assert report['confusion_matrix'].shape == (3, 3)
    assert report['confusion_matrix'].sum() == 150
    assert report['n_rules'] == len(model.rules_)
    assert 0.0 <= report['coverage'] <= 1.0


def test_evaluate_warns_on_unseen_labels(fitted_iris):
    model, X, y = fitted_iris
    y_other = y.copy()
    y_other.iloc[0] = 'unknown'
    with pytest.warns(UserWarning, match="not seen during fit"):
        model.evaluate(X, y_other)


def test_export_rules(fitted_iris):
    model, _, _ = fitted_iris
    text = model.export_rules()
    assert text.startswith("=== Colony Rule Set ===")
    assert "Rule 1:" in text
    exported = json.loads(model.export_rules('json'))
    assert len(exported) == len(model.rules_)
    assert exported[0]['label'] in list(model.classes_)
    assert isinstance(exported[0]['conditions'], list)
    frame = model.rules_frame()
    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == len(model.rules_)


def test_plot_history(fitted_iris):
    model, _, _ = fitted_iris
    ax = model.plot_history()
    assert len(ax.get_lines()) == 2


def test_unfitted_model_raises(iris_frame):
    X, _ = iris_frame
    with pytest.raises(RuntimeError):
        _model().predict(X)


def test_invalid_options():
    with pytest.raises(ValueError):
        ColonyRuleSet(colony_size=1)
    with pytest.raises(ValueError):
        ColonyRuleSet(importance='relief')
    with pytest.raises(ValueError):
        ColonyRuleSet(discretization='mdl')


def test_invalid_training_data():
    with pytest.raises(ValueError):
        _model().fit(np.zeros((3, 2)), [0, 1])
    with pytest.raises(ValueError):
        _model().fit(np.zeros((0, 2)), [])


def test_pruning_fallback_keeps_rules(iris_frame):
    X, y = iris_frame
    with pytest.warns(UserWarning, match="Pruning removed every rule"):
        model = _model(max_epochs=5, min_confidence=1.1).fit(X, y)
    assert len(model.rules_) >= 1


def test_multi_objective_archive(iris_frame):
    X, y = iris_frame
    model = _model(max_epochs=10, multi_objective=True, archive_size=5, importance=None).fit(X, y)
    assert model.feature_importances_ is None
    assert 1 <= len(model.archive_) <= 5
    for a in model.archive_:
        assert not any(dominates(b.objectives, a.objectives) for b in model.archive_)


def test_verbose_fit_prints_progress(iris_frame, capsys):
    X, y = iris_frame
    _model(max_epochs=4, verbose=True, log_every=2).fit(X, y)
    out = capsys.readouterr().out
    assert "Starting ColonyRuleSet Fit Process" in out
    assert "Epoch 2:" in out
    assert "=== Colony Rule Set ===" in out


def test_chi_merge_and_chi_square_options(iris_frame):
    X, y = iris_frame
    model = _model(max_epochs=5, discretization='chi_merge', importance='chi_square',
                   redundancy_threshold=0.9).fit(X, y)
    assert model.discretizer.chosen_method_ == 'chi_merge'
    assert model.feature_importances_.shape == (4,)
    # petal length and width are correlated above 0.9, one of them is ignored
    assert np.sum(model.feature_importances_ == 0.0) >= 1
    assert model.score(X, y) > 0


def _reject_constant(name):
    raise ValueError(f"non-standard JSON constant {name}")


def test_json_export_is_strict_json(fitted_iris):
    model, _, _ = fitted_iris
    exported = json.loads(model.export_rules('json'), parse_constant=_reject_constant)
    for entry, rule in zip(exported, model.rules_):
        if rule.confidence == 1.0:
            assert entry['conviction'] is None
        else:
            assert entry['conviction'] == pytest.approx(rule.conviction)


def test_plain_values():
    assert _plain(np.int64(3)) == 3 and isinstance(_plain(np.int64(3)), int)
    assert _plain(float('inf')) is None
    assert _plain(np.float64('nan')) is None
    assert _plain('setosa') == 'setosa'
