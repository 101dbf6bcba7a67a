# coding=utf-8
"""
Candidate cut points for numerical features.

:class:`Discretizer` turns each feature of a :class:`~mcrm.data.Dataset` into an
ascending array of candidate thresholds. The first and last entries are always
the feature's minimum and maximum. The nectar encoding reserves those two
indices for "feature not used", so the padding keeps every generated cut
point at a selectable interior index.
"""
from __future__ import annotations

import math
import warnings

import numpy as np
import pandas as pd
from scipy import stats

from .data import Dataset

METHODS = ('entropy', 'chi_merge', 'equal_width', 'equal_frequency')


def entropy(labels) -> float:
    """Shannon entropy (bits) of a label array; 0.0 when empty."""
    labels = np.asarray(labels)
    if labels.size == 0:
        return 0.0
    _, counts = np.unique(labels, return_counts=True)
    p = counts / labels.size
    return float(-np.sum(p * np.log2(p)))


def partition_gain(values, labels, cut_points) -> float:
    """Information gain of partitioning ``labels`` by ``values <= cut_points[i]`` intervals."""
    values = np.asarray(values, dtype=float)
    labels = np.asarray(labels)
    n = len(labels)
    if n == 0 or len(cut_points) == 0:
        return 0.0
    bins = np.searchsorted(np.asarray(cut_points, dtype=float), values, side='left')
    after = 0.0
    for b in np.unique(bins):
        members = labels[bins == b]
        after += len(members) / n * entropy(members)
    return entropy(labels) - after


def information_gain(values, labels, threshold: float) -> float:
    """Information gain of the binary split ``value <= threshold``."""
    return partition_gain(values, labels, [threshold])


def adjacent_chi_square(counts) -> np.ndarray:
    """Chi-square statistic of every adjacent pair of rows of a class-count table.

    Args:
        counts (array-like): Shape (n_intervals, n_classes), class counts per interval.

    Returns:
        np.ndarray: Shape (n_intervals - 1,). Classes absent from both intervals
        of a pair do not contribute.
    """
    counts = np.asarray(counts, dtype=float)
    a, b = counts[:-1], counts[1:]
    rows_a = a.sum(axis=1, keepdims=True)
    rows_b = b.sum(axis=1, keepdims=True)
    columns = a + b
    total = rows_a + rows_b
    expected_a = rows_a * columns / total
    expected_b = rows_b * columns / total
    chi = (np.divide((a - expected_a) ** 2, expected_a, out=np.zeros_like(a), where=expected_a > 0) +
           np.divide((b - expected_b) ** 2, expected_b, out=np.zeros_like(b), where=expected_b > 0))
    return chi.sum(axis=1)


class Discretizer:
    """Supervised and unsupervised cut-point generation.

    Args:
        method (str): ``'entropy'`` (recursive binary splitting at class boundaries),
            ``'chi_merge'`` (bottom-up merging of adjacent intervals with similar class
            distributions), ``'equal_width'``, ``'equal_frequency'`` or ``'auto'``, which keeps
            whichever method gives the highest mean information gain. Default ``'auto'``.
        max_intervals (int): Upper bound on intervals per feature. Default 10.
        min_intervals (int): Lower bound on intervals for the unsupervised methods. Default 2.
        min_gain (float): Minimum information gain for an entropy split. Default 0.01.
        significance (float): Level of the ChiMerge independence test; adjacent intervals
            whose chi-square falls below the critical value are merged. Default 0.05.

    Attributes:
        chosen_method_ (str): Method actually used by the last :meth:`discretize` call.
    """

    def __init__(self, method='auto', max_intervals=10, min_intervals=2, min_gain=0.01, significance=0.05):
        if method not in METHODS + ('auto',):
            raise ValueError(f"Unknown discretization method '{method}'. "
                             f"Choose from {METHODS + ('auto',)}.")
        if min_intervals < 1 or max_intervals < min_intervals:
            raise ValueError("Require 1 <= min_intervals <= max_intervals.")
        if not 0 < significance < 1:
            raise ValueError("significance must lie in (0, 1).")
        self.method = method
        self.max_intervals = max_intervals
        self.min_intervals = min_intervals
        self.min_gain = min_gain
        self.significance = significance
        self.chosen_method_ = None

    def discretize(self, dataset: Dataset) -> list:
        """Returns one ascending, padded cut-point array per feature."""
        if dataset.n_instances == 0:
            raise ValueError("Cannot discretize a dataset with zero instances.")

        if self.method == 'auto':
            best_score = -math.inf
            best = None
            for method in METHODS:
                cut_points = self._discretize_with(dataset, method)
                score = self.score(dataset, cut_points)
                if score > best_score:
                    best_score, best = score, (method, cut_points)
            self.chosen_method_, cut_points = best
        else:
            self.chosen_method_ = self.method
            cut_points = self._discretize_with(dataset, self.method)

        for f, points in enumerate(cut_points):
            if len(points) <= 2:
                warnings.warn(f"Feature '{dataset.feature_names[f]}' produced no interior cut points "
                              f"and cannot appear in rules.")
        return cut_points

    def score(self, dataset: Dataset, cut_points) -> float:
        """Mean information gain of the partitions induced by the interior cut points."""
        gains = [partition_gain(dataset.X[:, f], dataset.y, np.asarray(points)[1:-1])
                 for f, points in enumerate(cut_points)]
        return float(np.mean(gains)) if gains else 0.0

    def n_intervals(self, n_instances: int) -> int:
        return min(self.max_intervals, max(self.min_intervals, int(math.sqrt(n_instances))))

    def _discretize_with(self, dataset: Dataset, method: str) -> list:
        cut_points = []
        for f in range(dataset.n_features):
            values = dataset.X[:, f]
            if method == 'entropy':
                inner = self.entropy_cuts(values, dataset.y)
            elif method == 'chi_merge':
                inner = self.chi_merge_cuts(values, dataset.y)
            elif method == 'equal_width':
                inner = self.equal_width_cuts(values)
            else:
                inner = self.equal_frequency_cuts(values)
            cut_points.append(self._pad(values, inner))
        return cut_points

    @staticmethod
    def _pad(values, inner) -> np.ndarray:
        lo, hi = float(np.min(values)), float(np.max(values))
        inner = [c for c in inner if lo < c < hi]
        return np.unique(np.concatenate([[lo], np.asarray(inner, dtype=float), [hi]]))

    # --- Methods ---

    def entropy_cuts(self, values, labels) -> np.ndarray:
        """Recursive binary splitting at the highest-gain class boundary of each segment."""
        values = np.asarray(values, dtype=float)
        labels = np.asarray(labels)
        order = np.argsort(values, kind='stable')
        cuts = []
        self._split(values[order], labels[order], cuts)
        return np.unique(np.asarray(cuts, dtype=float))

    def _split(self, values, labels, cuts):
        if len(cuts) >= self.max_intervals - 1 or len(values) < 2:
            return
        base = entropy(labels)
        n = len(values)
        best_gain, best_index = 0.0, -1
        for i in range(1, n):
            # candidate boundaries separate distinct values with different labels
            if labels[i] == labels[i - 1] or values[i] == values[i - 1]:
                continue
            gain = base - (i / n * entropy(labels[:i]) + (n - i) / n * entropy(labels[i:]))
            if gain > best_gain and gain > self.min_gain:
                best_gain, best_index = gain, i
        if best_index < 0:
            return
        cuts.append((values[best_index] + values[best_index - 1]) / 2.0)
        self._split(values[:best_index], labels[:best_index], cuts)
        self._split(values[best_index:], labels[best_index:], cuts)

    def chi_merge_cuts(self, values, labels) -> np.ndarray:
        """ChiMerge: starts from one interval per distinct value and repeatedly merges the
        adjacent pair with the lowest chi-square statistic.

        Merging continues while there are more than ``max_intervals`` intervals, or while
        the lowest statistic is below the critical value at ``significance`` and more than
        ``min_intervals`` intervals remain.
        """
        values = np.asarray(values, dtype=float)
        labels = np.asarray(labels)
        distinct, position = np.unique(values, return_inverse=True)
        classes, label_index = np.unique(labels, return_inverse=True)
        counts = np.zeros((len(distinct), len(classes)))
        np.add.at(counts, (position.ravel(), label_index.ravel()), 1)
        # each interval is [first distinct value, last distinct value]
        lower = list(distinct)
        upper = list(distinct)
        counts = list(counts)

        threshold = stats.chi2.ppf(1.0 - self.significance, max(1, len(classes) - 1))
        while len(counts) > 1:
            chi = adjacent_chi_square(np.asarray(counts))
            i = int(np.argmin(chi))
            too_many = len(counts) > self.max_intervals
            similar = chi[i] < threshold and len(counts) > self.min_intervals
            if not (too_many or similar):
                break
            counts[i] = counts[i] + counts.pop(i + 1)
            upper[i] = upper.pop(i + 1)
            lower.pop(i + 1)
        return np.array([(upper[i] + lower[i + 1]) / 2.0 for i in range(len(counts) - 1)])

    def equal_width_cuts(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        k = self.n_intervals(len(values))
        lo, hi = values.min(), values.max()
        width = (hi - lo) / k
        return np.array([lo + (i + 1) * width for i in range(k - 1)])

    def equal_frequency_cuts(self, values) -> np.ndarray:
        k = self.n_intervals(len(values))
        quantiles = pd.Series(values, dtype=float).quantile(np.linspace(0, 1, k + 1)[1:-1])
        return np.sort(quantiles.unique())
