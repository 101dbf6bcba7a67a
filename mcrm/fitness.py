# coding=utf-8
"""
Candidate solutions and their evaluation.

A :class:`Solution` is a food source of the colony: a nectar vector plus the
scores of the rule model it decodes to. :class:`RuleEvaluator` builds that
rule model on the training data and scores it on three objectives, all to be
maximized:

    objectives[0] = accuracy
    objectives[1] = 1 / (1 + complexity)
    objectives[2] = coverage

The scalar cost is ``-(0.5 * accuracy + 0.3 * objectives[1] + 0.2 * coverage)``
and fitness is the usual bee-colony transform of cost, so a better weighted
score always means a higher fitness.
"""
from __future__ import annotations

import math
import sys
from collections import namedtuple

import numpy as np

from .data import Dataset, FeatureSchema
from .encoding import decode
from .rules import build_rules, score_rules

# Sentinel cost of a solution that selects no feature
WORST_COST = sys.float_info.max

OBJECTIVE_WEIGHTS = (0.5, 0.3, 0.2)

Evaluation = namedtuple('Evaluation', ['objectives', 'cost', 'fitness', 'accuracy', 'complexity', 'coverage'])

DEGENERATE = Evaluation(objectives=(0.0, 0.0, 0.0), cost=WORST_COST, fitness=0.0,
                        accuracy=0.0, complexity=math.inf, coverage=0.0)


def fitness_from_cost(cost: float) -> float:
    """Bee-colony fitness transform; strictly decreasing in ``cost``."""
    if cost >= 0:
        return 1.0 / (1.0 + cost)
    return 1.0 + abs(cost)


def weighted_cost(accuracy: float, simplicity: float, coverage: float) -> float:
    w_acc, w_simple, w_cov = OBJECTIVE_WEIGHTS
    return -(w_acc * accuracy + w_simple * simplicity + w_cov * coverage)


class Solution:
    """One food source: a nectar vector and the scores of the rule model it encodes.

    Args:
        nectar (array-like): One cut-point index per feature.

    Attributes:
        objectives (np.ndarray): ``[accuracy, 1/(1+complexity), coverage]``.
        cost (float): Weighted scalar cost (lower is better).
        fitness (float): Bee-colony fitness (higher is better).
        trials (int): Consecutive failed improvement attempts.
        selection_probability (float): Onlooker selection probability.
        evaluated (bool): False whenever the nectar changed since the last evaluation.
    """

    def __init__(self, nectar):
        self.nectar = np.array(nectar, dtype=np.int64)
        self.objectives = np.zeros(3)
        self.cost = WORST_COST
        self.fitness = 0.0
        self.accuracy = 0.0
        self.complexity = math.inf
        self.coverage = 0.0
        self.trials = 0
        self.selection_probability = 0.0
        self.evaluated = False

    def set_gene(self, index: int, value: int):
        self.nectar[index] = int(value)
        self.evaluated = False

    def apply(self, evaluation: Evaluation):
        self.objectives = np.array(evaluation.objectives, dtype=float)
        self.cost = evaluation.cost
        self.fitness = evaluation.fitness
        self.accuracy = evaluation.accuracy
        self.complexity = evaluation.complexity
        self.coverage = evaluation.coverage
        self.evaluated = True

    @property
    def evaluation(self) -> Evaluation:
        return Evaluation(tuple(float(v) for v in self.objectives), self.cost, self.fitness,
                          self.accuracy, self.complexity, self.coverage)

    def copy(self) -> 'Solution':
        """Structural clone; the copy shares no arrays with the original."""
        clone = Solution(self.nectar)
        clone.objectives = self.objectives.copy()
        clone.cost = self.cost
        clone.fitness = self.fitness
        clone.accuracy = self.accuracy
        clone.complexity = self.complexity
        clone.coverage = self.coverage
        clone.trials = self.trials
        clone.selection_probability = self.selection_probability
        clone.evaluated = self.evaluated
        return clone

    def __repr__(self):
        return (f"Solution(nectar={self.nectar.tolist()}, fitness={self.fitness:.4f}, "
                f"accuracy={self.accuracy:.4f}, complexity={self.complexity:.2f}, "
                f"coverage={self.coverage:.4f}, trials={self.trials})")


class RuleEvaluator:
    """Scores nectar vectors on a fixed training set, memoizing by nectar vector.

    Args:
        dataset (Dataset): Training data. Must hold at least one instance.
        schema (FeatureSchema): Cut-point table the nectar indices refer to.
        enable_caching (bool): Memoize evaluations. Default True.
        cache_size (int, optional): Maximum number of cached evaluations; the oldest
            entry is evicted first. None means unbounded.

    Raises:
        ValueError: If the dataset is empty or does not match the schema.
    """

    def __init__(self, dataset: Dataset, schema: FeatureSchema, enable_caching=True, cache_size=None):
        if dataset.n_instances == 0:
            raise ValueError("Cannot evaluate rule models on a dataset with zero instances.")
        schema.check_dataset(dataset)
        self.dataset = dataset
        self.schema = schema
        self.enable_caching = enable_caching
        self.cache_size = cache_size
        self._cache = {}
        self.hits = 0
        self.misses = 0

    def evaluate(self, solution: Solution, use_cache=True) -> Evaluation:
        """Scores ``solution`` in place and returns its :class:`Evaluation`.

        A cache hit restores the stored evaluation without rebuilding rules;
        with ``use_cache=False`` the rules are rebuilt and the cache entry refreshed.
        """
        key = tuple(int(v) for v in solution.nectar)
        if self.enable_caching and use_cache and key in self._cache:
            self.hits += 1
            evaluation = self._cache[key]
        else:
            self.misses += 1
            evaluation = self._compute(solution.nectar)
            if self.enable_caching:
                self._store(key, evaluation)
        solution.apply(evaluation)
        return evaluation

    def rules_for(self, solution: Solution) -> list:
        """Rule list encoded by ``solution``, with metrics on the training data."""
        selected, thresholds = decode(solution.nectar, self.schema)
        return build_rules(self.dataset.X, self.dataset.y, selected, thresholds)

    def clear_cache(self):
        self._cache.clear()
        self.hits = 0
        self.misses = 0

    @property
    def cache_length(self) -> int:
        return len(self._cache)

    def _store(self, key, evaluation):
        if key in self._cache:
            self._cache[key] = evaluation
            return
        if self.cache_size is not None and len(self._cache) >= self.cache_size:
            del self._cache[next(iter(self._cache))]
        self._cache[key] = evaluation

    def _compute(self, nectar) -> Evaluation:
        selected, thresholds = decode(nectar, self.schema)
        if not selected:
            return DEGENERATE

        rules = build_rules(self.dataset.X, self.dataset.y, selected, thresholds)
        accuracy, complexity, coverage = score_rules(self.dataset.X, self.dataset.y, rules)
        simplicity = 1.0 / (1.0 + complexity)
        cost = weighted_cost(accuracy, simplicity, coverage)
        return Evaluation(objectives=(accuracy, simplicity, coverage), cost=cost,
                          fitness=fitness_from_cost(cost), accuracy=accuracy,
                          complexity=complexity, coverage=coverage)
