# coding=utf-8
"""
Nectar encoding of a rule model.

A nectar vector holds one cut-point index per feature. The two boundary
indices of a feature, ``0`` and ``len(cut_points[f]) - 1``, mean the feature
is left out of the rule model; any interior index selects the feature and
picks ``cut_points[f][index]`` as its threshold.
"""
from __future__ import annotations

import numpy as np

from .data import FeatureSchema


def clamp_index(index, n_cuts: int) -> int:
    """Clamps a cut-point index into ``[0, n_cuts - 1]``."""
    return int(min(max(int(index), 0), n_cuts - 1))


def clamp_nectar(nectar, schema: FeatureSchema) -> np.ndarray:
    """Returns a copy of ``nectar`` with every index clamped into its valid range."""
    nectar = np.asarray(nectar, dtype=np.int64)
    if nectar.shape != (schema.n_features,):
        raise ValueError(f"Nectar of shape {nectar.shape} does not match {schema.n_features} features.")
    return np.clip(nectar, 0, schema.upper_bounds).astype(np.int64)


def is_selected(index: int, n_cuts: int) -> bool:
    """True iff ``index`` is an interior cut-point index."""
    return 0 < index < n_cuts - 1


def decode(nectar, schema: FeatureSchema) -> tuple[list, dict]:
    """Decodes a nectar vector into the selected features and their thresholds.

    Out-of-range indices are clamped before the selection test, so decoding
    never fails on a malformed vector of the right length.

    Args:
        nectar (array-like): One cut-point index per feature.
        schema (FeatureSchema): Cut-point table the indices refer to.

    Returns:
        tuple: ``(selected, thresholds)`` where ``selected`` is the ascending list
        of selected feature indices and ``thresholds`` maps each of them to its
        threshold value.
    """
    nectar = clamp_nectar(nectar, schema)
    selected = []
    thresholds = {}
    for f, (index, points) in enumerate(zip(nectar, schema.cut_points)):
        if is_selected(index, len(points)):
            selected.append(f)
            thresholds[f] = float(points[index])
    return selected, thresholds


def middle_index(n_cuts: int) -> int:
    return n_cuts // 2
