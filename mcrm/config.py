# coding=utf-8
"""
Configuration for the colony rule optimizer.

Defaults follow the parameter set used in the MCRM experiments: a colony of
30 bees (15 food sources), an abandonment limit of 100 trials and a bounded
Pareto archive of 50 solutions.
"""
from __future__ import annotations

import numbers


_DEFAULTS = {
    'colony_size': 30,
    'max_epochs': 1000,
    'limit': 100,
    'feature_selection_probability': 0.1,
    'mutation_rate': 0.1,
    'diversity_threshold': 0.1,
    'early_stopping_patience': 50,
    'archive_size': 50,
    'enable_caching': True,
    'cache_size': None,
    'multi_objective': False,
    'min_colony_size': 20,
    'max_colony_size': 50,
    'min_mutation_rate': 0.05,
    'max_mutation_rate': 0.3,
    'max_feature_selection_probability': 0.3,
    'verbose': False,
}


def _check_int(name, value, minimum):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < minimum:
        raise ValueError(f"{name} must be an integer >= {minimum}, got {value!r}.")


def _check_probability(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be a number between 0 and 1, got {value!r}.")


class ColonyConfig:
    """Validated option set for :class:`mcrm.colony.ColonyEngine`.

    Args:
        colony_size (int): Number of bees. Half of them are employed bees, so the
            population holds ``colony_size // 2`` food sources. Default 30.
        max_epochs (int): Number of optimize steps before the run is finished. Default 1000.
        limit (int): Abandonment limit; a food source whose trial counter exceeds it
            is reinitialized by a scout bee. Default 100.
        feature_selection_probability (float): Initialization bias; probability that the
            importance-biased initializer keeps a low-importance feature. Default 0.1.
        mutation_rate (float): Probability that a neighborhood move also resets one extra
            random dimension. Adapted during the run. Default 0.1.
        diversity_threshold (float): Population diversity below which the colony grows. Default 0.1.
        early_stopping_patience (int): Stagnant epochs before early stopping is signalled. Default 50.
        archive_size (int): Bound of the Pareto archive. Default 50.
        enable_caching (bool): Memoize evaluations by nectar vector. Default True.
        cache_size (int, optional): Maximum cached evaluations; oldest entries are evicted
            first. None means unbounded. Default None.
        multi_objective (bool): Maintain the Pareto archive and apply NSGA-II environmental
            selection every epoch. Default False.
        min_colony_size (int): Lower bound for the adaptive colony size. Default 20.
        max_colony_size (int): Upper bound for the adaptive colony size. Default 50.
        min_mutation_rate (float): Floor for the adaptive mutation rate. Default 0.05.
        max_mutation_rate (float): Cap for the adaptive mutation rate. Default 0.3.
        max_feature_selection_probability (float): Cap for the adaptive initialization bias. Default 0.3.
        verbose (bool): Print the stagnation notice. Default False.

    Raises:
        ValueError: If an option is unknown or has an invalid value, or if the
            resulting food number is not positive.
    """

    def __init__(self, **options):
        unknown = set(options) - set(_DEFAULTS)
        if unknown:
            raise ValueError(f"Unknown configuration option(s): {sorted(unknown)}")

        values = dict(_DEFAULTS)
        values.update(options)

        _check_int('colony_size', values['colony_size'], 0)
        if values['colony_size'] // 2 <= 0:
            raise ValueError(f"colony_size={values['colony_size']} gives a food number of "
                             f"{values['colony_size'] // 2}; at least 2 bees are required.")
        _check_int('max_epochs', values['max_epochs'], 1)
        _check_int('limit', values['limit'], 0)
        _check_int('early_stopping_patience', values['early_stopping_patience'], 1)
        _check_int('archive_size', values['archive_size'], 1)
        _check_int('min_colony_size', values['min_colony_size'], 2)
        _check_int('max_colony_size', values['max_colony_size'], 2)
        if values['min_colony_size'] > values['max_colony_size']:
            raise ValueError("min_colony_size must not exceed max_colony_size.")
        if values['cache_size'] is not None:
            _check_int('cache_size', values['cache_size'], 1)

        for name in ('feature_selection_probability', 'mutation_rate',
                     'min_mutation_rate', 'max_mutation_rate',
                     'max_feature_selection_probability'):
            _check_probability(name, values[name])
        if values['min_mutation_rate'] > values['max_mutation_rate']:
            raise ValueError("min_mutation_rate must not exceed max_mutation_rate.")

        threshold = values['diversity_threshold']
        if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real) or threshold < 0:
            raise ValueError(f"diversity_threshold must be a non-negative number, got {threshold!r}.")

        values['enable_caching'] = bool(values['enable_caching'])
        values['multi_objective'] = bool(values['multi_objective'])
        values['verbose'] = bool(values['verbose'])

        self._values = values
        for name, value in values.items():
            setattr(self, name, value)

    @property
    def food_number(self) -> int:
        """Number of food sources (employed bees)."""
        return self.colony_size // 2

    def as_dict(self) -> dict:
        return dict(self._values)

    def copy(self, **overrides) -> 'ColonyConfig':
        values = self.as_dict()
        values.update(overrides)
        return ColonyConfig(**values)

    def __repr__(self):
        items = ', '.join(f"{k}={v!r}" for k, v in self._values.items())
        return f"ColonyConfig({items})"
