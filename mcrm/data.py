# coding=utf-8
"""Dataset and feature-schema containers consumed by the optimizer."""
from __future__ import annotations

import numpy as np
import pandas as pd


class Dataset:
    """Immutable numeric feature matrix with integer class labels.

    Args:
        X (array-like): Feature matrix of shape (n_samples, n_features).
        y (array-like): Integer-encoded class labels of length n_samples.
        feature_names (list, optional): Column names used when rules are printed.
            Defaults to ``x0, x1, ...``.

    Raises:
        ValueError: If shapes disagree, X is not two-dimensional, or X holds
            non-finite values.
    """

    def __init__(self, X, y, feature_names=None):
        X = np.array(X, dtype=float)
        y = np.array(y)
        if X.ndim != 2:
            raise ValueError(f"X must be two-dimensional, got shape {X.shape}.")
        if y.ndim != 1 or len(y) != X.shape[0]:
            raise ValueError(f"y ({y.shape}) must be one-dimensional with one label per row of X ({X.shape[0]}).")
        if not np.all(np.isfinite(X)):
            raise ValueError("X contains missing or non-finite values; impute them before fitting.")
        if y.size and not np.issubdtype(y.dtype, np.integer):
            if not np.all(np.mod(y.astype(float), 1) == 0):
                raise ValueError("y must hold integer-encoded class labels.")
        y = y.astype(int)

        if feature_names is None:
            feature_names = [f"x{i}" for i in range(X.shape[1])]
        feature_names = [str(name) for name in feature_names]
        if len(feature_names) != X.shape[1]:
            raise ValueError(f"Expected {X.shape[1]} feature names, got {len(feature_names)}.")

        X.setflags(write=False)
        y.setflags(write=False)
        self._X = X
        self._y = y
        self._feature_names = tuple(feature_names)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, target: str) -> 'Dataset':
        """Builds a dataset from a DataFrame whose ``target`` column is already label-encoded."""
        if target not in df.columns:
            raise ValueError(f"Target column '{target}' not found.")
        features = df.drop(columns=[target])
        return cls(features.to_numpy(dtype=float), df[target].to_numpy(), list(features.columns))

    @property
    def X(self) -> np.ndarray:
        return self._X

    @property
    def y(self) -> np.ndarray:
        return self._y

    @property
    def feature_names(self) -> tuple:
        return self._feature_names

    @property
    def n_instances(self) -> int:
        return self._X.shape[0]

    @property
    def n_features(self) -> int:
        return self._X.shape[1]

    @property
    def labels(self) -> np.ndarray:
        """Distinct labels in order of first appearance."""
        _, first = np.unique(self._y, return_index=True)
        return self._y[np.sort(first)]

    def class_counts(self) -> dict:
        labels, counts = np.unique(self._y, return_counts=True)
        return {int(label): int(count) for label, count in zip(labels, counts)}

    def subset(self, indices) -> 'Dataset':
        indices = np.asarray(indices)
        return Dataset(self._X[indices], self._y[indices], self._feature_names)

    def __len__(self):
        return self.n_instances

    def __repr__(self):
        return f"Dataset(n_instances={self.n_instances}, n_features={self.n_features})"


class FeatureSchema:
    """Immutable per-feature cut-point table for one optimization run.

    ``cut_points[f]`` is the ascending array of candidate thresholds for feature
    ``f``. The schema fixes the dimensionality of every nectar vector and the
    valid index range ``[0, len(cut_points[f]) - 1]`` of each dimension.

    Raises:
        ValueError: If the table is empty, a feature has no cut points, or a
            feature's cut points are not ascending.
    """

    def __init__(self, cut_points, feature_names=None):
        cut_points = list(cut_points)
        if not cut_points:
            raise ValueError("The cut-point table has no features.")

        arrays = []
        for f, points in enumerate(cut_points):
            points = np.array(points, dtype=float).ravel()
            if points.size == 0:
                raise ValueError(f"Feature {f} has no candidate cut points.")
            if np.any(np.diff(points) < 0):
                raise ValueError(f"Cut points of feature {f} are not in ascending order.")
            points.setflags(write=False)
            arrays.append(points)

        if feature_names is None:
            feature_names = [f"x{i}" for i in range(len(arrays))]
        if len(feature_names) != len(arrays):
            raise ValueError(f"Expected {len(arrays)} feature names, got {len(feature_names)}.")

        self._cut_points = tuple(arrays)
        self._sizes = np.array([len(points) for points in arrays], dtype=int)
        self._sizes.setflags(write=False)
        self._feature_names = tuple(str(name) for name in feature_names)

    @property
    def cut_points(self) -> tuple:
        return self._cut_points

    @property
    def n_features(self) -> int:
        return len(self._cut_points)

    @property
    def sizes(self) -> np.ndarray:
        """Number of candidate cut points per feature."""
        return self._sizes

    @property
    def upper_bounds(self) -> np.ndarray:
        """Largest valid nectar index per feature."""
        return self._sizes - 1

    @property
    def feature_names(self) -> tuple:
        return self._feature_names

    def check_dataset(self, dataset: Dataset):
        if dataset.n_features != self.n_features:
            raise ValueError(f"Cut-point table covers {self.n_features} features "
                             f"but the dataset has {dataset.n_features}.")

    def __repr__(self):
        return f"FeatureSchema(n_features={self.n_features}, sizes={self._sizes.tolist()})"
