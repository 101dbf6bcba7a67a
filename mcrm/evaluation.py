# coding=utf-8
"""Held-out evaluation and k-fold cross validation of rule models."""
from __future__ import annotations

import time

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import StratifiedKFold

from .rules import assign_rules, predict_labels


def evaluate_rules(rules, X, y, default_label: int = -1, labels=None) -> dict:
    """Scores a rule list on labelled data.

    Instances no rule matches are predicted as ``default_label``.

    Args:
        rules (list[Rule]): Rules to apply.
        X (array-like): Feature matrix.
        y (array-like): Integer-encoded true labels.
        default_label (int): Prediction for uncovered instances. Default -1.
        labels (array-like, optional): Label order of the confusion matrix. Defaults to
            the sorted union of true and predicted labels.

    Returns:
        dict: ``accuracy``, ``coverage``, ``n_rules``, ``mean_rule_length`` and
        ``confusion_matrix`` (rows are true labels, columns predictions).
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y).astype(int)
    predictions = predict_labels(X, rules, default=default_label)
    covered = assign_rules(X, rules) >= 0
    if labels is None:
        labels = np.unique(np.concatenate([y, predictions]))
    return {
        'accuracy': float(np.mean(predictions == y)) if len(y) else 0.0,
        'coverage': float(np.mean(covered)) if len(y) else 0.0,
        'n_rules': len(rules),
        'mean_rule_length': float(np.mean([r.length for r in rules])) if rules else 0.0,
        'confusion_matrix': confusion_matrix(y, predictions, labels=labels),
    }


def cross_validate(make_model, X, y, n_splits=10, shuffle=True, random_state=None) -> pd.DataFrame:
    """Stratified k-fold cross validation.

    Args:
        make_model (callable): Returns a fresh unfitted model for every fold; the model
            must provide ``fit``, ``score`` and ``evaluate``.
        X (pd.DataFrame or array-like): Features.
        y (array-like): Class labels.
        n_splits (int): Number of folds. Default 10.
        shuffle (bool): Shuffle before splitting. Default True.
        random_state (int, optional): Seed of the shuffle.

    Returns:
        pd.DataFrame: One row per fold with ``fold``, ``train_accuracy``, ``accuracy``,
        ``coverage``, ``n_rules``, ``mean_rule_length`` and ``fit_seconds``.
    """
    y = np.asarray(y)
    splitter = StratifiedKFold(n_splits=n_splits, shuffle=shuffle,
                               random_state=random_state if shuffle else None)
    rows = []
    for fold, (train_idx, test_idx) in enumerate(splitter.split(np.zeros(len(y)), y)):
        X_train, X_test = _take(X, train_idx), _take(X, test_idx)
        model = make_model()
        start = time.time()
        model.fit(X_train, y[train_idx])
        elapsed = time.time() - start
        report = model.evaluate(X_test, y[test_idx])
        rows.append({
            'fold': fold,
            'train_accuracy': model.score(X_train, y[train_idx]),
            'accuracy': report['accuracy'],
            'coverage': report['coverage'],
            'n_rules': report['n_rules'],
            'mean_rule_length': report['mean_rule_length'],
            'fit_seconds': elapsed,
        })
    return pd.DataFrame(rows)


def _take(X, indices):
    if isinstance(X, pd.DataFrame):
        return X.iloc[indices]
    return np.asarray(X)[indices]
