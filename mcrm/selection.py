# coding=utf-8
"""Feature importance scores used to bias colony initialization."""
from __future__ import annotations

import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.feature_selection import chi2

from .data import Dataset
from .discretization import entropy

METHODS = ('information_gain', 'chi_square', 'correlation', 'variance', 'forest', 'hybrid')


def _normalize(scores) -> np.ndarray:
    scores = np.nan_to_num(np.asarray(scores, dtype=float), nan=0.0)
    scores = np.clip(scores, 0.0, None)
    top = scores.max() if scores.size else 0.0
    return scores / top if top > 0 else scores


def _safe_corr(a, b) -> float:
    if np.std(a) == 0 or np.std(b) == 0:
        return 0.0
    return float(np.corrcoef(a, b)[0, 1])


class FeatureSelector:
    """Scores features by relevance to the class label.

    Scores are non-negative and scaled so that the best feature scores 1.0.

    Args:
        method (str): One of ``'information_gain'``, ``'chi_square'``, ``'correlation'``, ``'variance'``,
            ``'forest'`` or ``'hybrid'`` (``0.4*IG + 0.3*correlation + 0.3*forest``).
        n_bins (int): Equal-width bins used by the information-gain and chi-square scores. Default 10.
        n_estimators (int): Trees of the random forest. Default 100.
        random_state (int, optional): Seed of the random forest.
    """

    def __init__(self, method='information_gain', n_bins=10, n_estimators=100, random_state=None):
        if method not in METHODS:
            raise ValueError(f"Unknown importance method '{method}'. Choose from {METHODS}.")
        self.method = method
        self.n_bins = n_bins
        self.n_estimators = n_estimators
        self.random_state = random_state

    def importance(self, dataset: Dataset) -> np.ndarray:
        if dataset.n_instances == 0:
            raise ValueError("Cannot score features on a dataset with zero instances.")
        if self.method == 'hybrid':
            return (0.4 * self.information_gain_scores(dataset) +
                    0.3 * self.correlation_scores(dataset) +
                    0.3 * self.forest_scores(dataset))
        return getattr(self, f"{self.method}_scores")(dataset)

    def select(self, dataset: Dataset, k: int) -> list:
        """Indices of the ``k`` highest-scoring features, best first (ties by index)."""
        scores = self.importance(dataset)
        order = np.argsort(-scores, kind='stable')
        return [int(f) for f in order[:max(0, k)]]

    def remove_redundant(self, dataset: Dataset, threshold: float = 0.8, scores=None) -> np.ndarray:
        """Boolean mask of the features kept after dropping redundant ones.

        For every pair whose absolute Pearson correlation exceeds ``threshold``, the
        feature with the lower importance score is dropped (the later one on ties).

        Args:
            dataset (Dataset): Data to score and correlate.
            threshold (float): Absolute correlation above which two features are redundant. Default 0.8.
            scores (array-like, optional): Importance scores; computed with :meth:`importance` if omitted.
        """
        scores = self.importance(dataset) if scores is None else np.asarray(scores, dtype=float)
        keep = np.ones(dataset.n_features, dtype=bool)
        for i in range(dataset.n_features):
            for j in range(i + 1, dataset.n_features):
                if abs(_safe_corr(dataset.X[:, i], dataset.X[:, j])) > threshold:
                    if scores[i] < scores[j]:
                        keep[i] = False
                    else:
                        keep[j] = False
        return keep

    def _bins(self, values) -> np.ndarray:
        lo, hi = values.min(), values.max()
        if hi > lo:
            return ((values - lo) / (hi - lo) * (self.n_bins - 1)).astype(int)
        return np.zeros(len(values), dtype=int)

    # --- Scores ---

    def information_gain_scores(self, dataset: Dataset) -> np.ndarray:
        y = dataset.y
        base = entropy(y)
        n = len(y)
        scores = np.zeros(dataset.n_features)
        for f in range(dataset.n_features):
            bins = self._bins(dataset.X[:, f])
            conditional = sum(np.sum(bins == b) / n * entropy(y[bins == b]) for b in np.unique(bins))
            scores[f] = base - conditional
        return _normalize(scores)

    def chi_square_scores(self, dataset: Dataset) -> np.ndarray:
        """Chi-square statistic between the binned feature and the label."""
        if len(np.unique(dataset.y)) < 2:
            return np.zeros(dataset.n_features)
        binned = np.column_stack([self._bins(dataset.X[:, f]) for f in range(dataset.n_features)])
        scores, _ = chi2(binned, dataset.y)
        return _normalize(scores)

    def correlation_scores(self, dataset: Dataset) -> np.ndarray:
        """Relevance over redundancy: ``|r(f, y)| / (1 + max_g |r(f, g)|)``."""
        X, y = dataset.X, dataset.y.astype(float)
        n_features = dataset.n_features
        scores = np.zeros(n_features)
        for f in range(n_features):
            relevance = abs(_safe_corr(X[:, f], y))
            redundancy = max((abs(_safe_corr(X[:, f], X[:, g])) for g in range(n_features) if g != f),
                             default=0.0)
            scores[f] = relevance / (1.0 + redundancy)
        return _normalize(scores)

    def variance_scores(self, dataset: Dataset) -> np.ndarray:
        return _normalize(np.var(dataset.X, axis=0))

    def forest_scores(self, dataset: Dataset) -> np.ndarray:
        if len(np.unique(dataset.y)) < 2:
            return np.zeros(dataset.n_features)
        forest = RandomForestClassifier(n_estimators=self.n_estimators, random_state=self.random_state)
        forest.fit(dataset.X, dataset.y)
        return _normalize(forest.feature_importances_)
