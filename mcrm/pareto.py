# coding=utf-8
"""
Pareto dominance, crowding distance and NSGA-II style selection.

All objectives are maximized. Solutions are referred to by their position in
the list they were passed in, never by identity.
"""
from __future__ import annotations

import numpy as np


def dominates(obj_a, obj_b) -> bool:
    """True iff ``obj_a`` is at least as good as ``obj_b`` everywhere and strictly better somewhere."""
    obj_a = np.asarray(obj_a, dtype=float)
    obj_b = np.asarray(obj_b, dtype=float)
    return bool(np.all(obj_a >= obj_b) and np.any(obj_a > obj_b))


def _objective_matrix(solutions) -> np.ndarray:
    if not solutions:
        return np.zeros((0, 0))
    return np.array([s.objectives for s in solutions], dtype=float)


def crowding_distances(points) -> np.ndarray:
    """Crowding distance of each row of an (n_points, n_objectives) matrix.

    For every objective the points are sorted, the two extremes get an infinite
    distance and each interior point adds the normalized gap between its
    neighbours. Objectives on which all points agree contribute nothing.
    """
    points = np.asarray(points, dtype=float)
    n = points.shape[0]
    distances = np.zeros(n)
    if n == 0:
        return distances
    for m in range(points.shape[1]):
        order = np.argsort(points[:, m], kind='stable')
        values = points[order, m]
        distances[order[0]] = distances[order[-1]] = np.inf
        value_range = values[-1] - values[0]
        if value_range == 0:
            continue
        for i in range(1, n - 1):
            distances[order[i]] += (values[i + 1] - values[i - 1]) / value_range
    return distances


def non_dominated_fronts(points) -> list:
    """Peels successive non-dominated fronts off a set of objective vectors.

    Returns:
        list[list[int]]: Row indices per front, best front first, each in ascending order.
    """
    points = np.asarray(points, dtype=float)
    remaining = list(range(points.shape[0]))
    fronts = []
    while remaining:
        front = [i for i in remaining
                 if not any(dominates(points[j], points[i]) for j in remaining if j != i)]
        fronts.append(front)
        in_front = set(front)
        remaining = [i for i in remaining if i not in in_front]
    return fronts


def environmental_selection(population, archive_members, size: int) -> list:
    """Selects the next generation from the union of population and archive.

    Archive members whose nectar vector already occurs in the population are
    not merged twice. Fronts are taken whole while they fit; the front that
    would overflow is truncated by descending crowding distance.

    Returns:
        list[Solution]: ``min(size, len(pool))`` copies; trial counters are kept.
    """
    pool = [s.copy() for s in population]
    present = {tuple(s.nectar.tolist()) for s in pool}
    for member in archive_members:
        key = tuple(member.nectar.tolist())
        if key not in present:
            present.add(key)
            pool.append(member.copy())

    points = _objective_matrix(pool)
    selected = []
    for front in non_dominated_fronts(points):
        room = size - len(selected)
        if room <= 0:
            break
        if len(front) <= room:
            selected.extend(front)
            continue
        distances = crowding_distances(points[front])
        ranked = np.argsort(-distances, kind='stable')
        selected.extend(front[k] for k in ranked[:room])
    return [pool[i] for i in selected]


class ParetoArchive:
    """Bounded archive of mutually non-dominated solutions.

    Args:
        max_size (int): Maximum number of members kept after any update.
    """

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}.")
        self.max_size = max_size
        self._members = []

    @property
    def members(self) -> list:
        return list(self._members)

    def __len__(self):
        return len(self._members)

    def clear(self):
        self._members = []

    def update(self, population):
        """Offers every solution of ``population`` to the archive, in order.

        A candidate is skipped if its nectar vector is already archived or an
        archive member dominates it. Otherwise the members it dominates are
        removed, a copy of it is inserted, and the archive is truncated by
        repeatedly dropping the most crowded member (the first one on ties).
        """
        for candidate in population:
            key = tuple(candidate.nectar.tolist())
            if any(tuple(m.nectar.tolist()) == key for m in self._members):
                continue
            if any(dominates(m.objectives, candidate.objectives) for m in self._members):
                continue
            self._members = [m for m in self._members
                             if not dominates(candidate.objectives, m.objectives)]
            self._members.append(candidate.copy())
            self._truncate()

    def _truncate(self):
        while len(self._members) > self.max_size:
            distances = crowding_distances(_objective_matrix(self._members))
            del self._members[int(np.argmin(distances))]
