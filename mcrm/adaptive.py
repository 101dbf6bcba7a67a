# coding=utf-8
"""Population diversity and self-adaptive control of colony parameters."""
from __future__ import annotations

import numpy as np

from .config import ColonyConfig


def population_diversity(nectars) -> float:
    """Mean pairwise normalized Hamming distance between nectar vectors.

    0.0 for identical vectors (and for fewer than two vectors), 1.0 when every
    pair differs in every dimension.
    """
    vectors = np.asarray([np.asarray(v) for v in nectars])
    if vectors.ndim != 2 or vectors.shape[0] < 2 or vectors.shape[1] == 0:
        return 0.0
    n = vectors.shape[0]
    total = 0.0
    for i in range(n - 1):
        total += float(np.sum(np.mean(vectors[i + 1:] != vectors[i], axis=1)))
    return total / (n * (n - 1) / 2)


class AdaptiveController:
    """Adjusts colony size, mutation rate and initialization bias after every epoch.

    Rules:
        * diversity below ``diversity_threshold`` grows the colony by 2 bees,
          diversity above twice the threshold shrinks it by 1;
        * stagnation above a third of the patience raises the mutation rate by 10%,
          otherwise it decays by 1%;
        * when the population's best accuracy falls below 90% of the global best's,
          the feature-selection probability grows by 20%.

    Every parameter stays within its configured bounds. The colony-size bounds are
    widened to include the initial colony size.
    """

    def __init__(self, config: ColonyConfig):
        self.colony_size = config.colony_size
        self.mutation_rate = float(config.mutation_rate)
        self.feature_selection_probability = float(config.feature_selection_probability)

        self.min_colony_size = min(config.min_colony_size, config.colony_size)
        self.max_colony_size = max(config.max_colony_size, config.colony_size)
        self.min_mutation_rate = min(config.min_mutation_rate, self.mutation_rate)
        self.max_mutation_rate = max(config.max_mutation_rate, self.mutation_rate)
        self.max_feature_selection_probability = max(config.max_feature_selection_probability,
                                                     self.feature_selection_probability)
        self.diversity_threshold = config.diversity_threshold
        self.patience = config.early_stopping_patience

    @property
    def food_number(self) -> int:
        return self.colony_size // 2

    def update(self, diversity: float, stagnation: int,
               population_best_accuracy: float, global_best_accuracy: float):
        if diversity < self.diversity_threshold:
            self.colony_size = min(self.colony_size + 2, self.max_colony_size)
        elif diversity > 2 * self.diversity_threshold:
            self.colony_size = max(self.colony_size - 1, self.min_colony_size)

        if stagnation > self.patience / 3:
            self.mutation_rate = min(self.mutation_rate * 1.1, self.max_mutation_rate)
        else:
            self.mutation_rate = max(self.mutation_rate * 0.99, self.min_mutation_rate)

        if population_best_accuracy < 0.9 * global_best_accuracy:
            self.feature_selection_probability = min(self.feature_selection_probability * 1.2,
                                                     self.max_feature_selection_probability)

    def __repr__(self):
        return (f"AdaptiveController(colony_size={self.colony_size}, "
                f"mutation_rate={self.mutation_rate:.4f}, "
                f"feature_selection_probability={self.feature_selection_probability:.4f})")
