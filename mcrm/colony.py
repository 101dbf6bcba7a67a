# coding=utf-8
"""
Artificial bee colony search over rule models.

The engine keeps a population of food sources (:class:`~mcrm.fitness.Solution`)
and improves it one epoch at a time. Each call to
:meth:`ColonyEngine.optimize_step` runs, in order:

    1. employed-bee phase: one neighbourhood move per food source;
    2. selection probabilities from fitness;
    3. onlooker-bee phase: one round-robin pass choosing sources by probability;
    4. global-best update and stagnation count;
    5. scout-bee phase: abandoned sources are reinitialized;
    6. (multi-objective mode) Pareto archive update and environmental selection;
    7. adaptive parameter update and population resize;
    8. stagnation check.

All randomness comes from a single ``numpy.random.Generator``.
"""
from __future__ import annotations

import math

import numpy as np

from .adaptive import AdaptiveController, population_diversity
from .config import ColonyConfig
from .data import Dataset, FeatureSchema
from .discretization import information_gain
from .encoding import clamp_index, middle_index
from .fitness import RuleEvaluator, Solution
from .pareto import ParetoArchive, environmental_selection

LEVY_BETA = 1.5

INITIALIZATION_STRATEGIES = (
    ('random', 0.25),
    ('importance', 0.25),
    ('entropy', 0.25),
    ('hybrid', 0.25),
)

SEARCH_STRATEGIES = (
    ('large_neighborhood', 0.25),
    ('adaptive', 0.25),
    ('local', 0.25),
    ('levy_flight', 0.25),
)


def weighted_choice(rng: np.random.Generator, pairs):
    """Draws one name from a sequence of ``(name, weight)`` pairs with probability proportional to weight."""
    names = [name for name, _ in pairs]
    weights = np.array([weight for _, weight in pairs], dtype=float)
    if not names or np.any(weights < 0) or weights.sum() <= 0:
        raise ValueError(f"Cannot draw from strategy weights {list(pairs)}.")
    return names[int(rng.choice(len(names), p=weights / weights.sum()))]


def levy_step(rng: np.random.Generator, beta: float = LEVY_BETA) -> float:
    """One heavy-tailed step from Mantegna's algorithm for a Levy-stable law of index ``beta``."""
    sigma = (math.gamma(1 + beta) * math.sin(math.pi * beta / 2) /
             (math.gamma((1 + beta) / 2) * beta * 2 ** ((beta - 1) / 2))) ** (1 / beta)
    u = rng.standard_normal() * sigma
    v = rng.standard_normal()
    if v == 0:
        return math.copysign(math.inf, u)
    return u / abs(v) ** (1 / beta)


class ColonyEngine:
    """Bee-colony optimizer of nectar vectors.

    Args:
        config (ColonyConfig, optional): Run configuration. Defaults to ``ColonyConfig()``.
        rng (numpy.random.Generator, optional): Random source. Takes precedence over ``random_state``.
        random_state (int, optional): Seed for a fresh generator when ``rng`` is not given.

    Example:
        >>> engine = ColonyEngine(ColonyConfig(colony_size=10, max_epochs=20), random_state=0)
        >>> engine.initialize(dataset, cut_points)
        >>> while not engine.optimize_step():
        ...     pass
        >>> engine.global_best
    """

    def __init__(self, config: ColonyConfig = None, rng: np.random.Generator = None, random_state=None):
        self.config = config if config is not None else ColonyConfig()
        self.rng = rng if rng is not None else np.random.default_rng(random_state)

        self.dataset = None
        self.schema = None
        self.evaluator = None
        self.controller = None
        self.importance = None

        self._population = None
        self._archive = ParetoArchive(self.config.archive_size)
        self._global_best = None
        self._last_best_fitness = -math.inf
        self._current_epoch = 0
        self._stagnation = 0
        self._stagnated = False
        self._entropy_choice = None
        self._init_strategies = ()
        self.history = []

    # --- Lifecycle ---

    def initialize(self, dataset: Dataset, cut_points, importance=None):
        """Seeds and evaluates the population for a new run.

        Args:
            dataset (Dataset): Label-encoded training data.
            cut_points (FeatureSchema or sequence of array-like): Candidate thresholds per feature.
            importance (array-like, optional): Non-negative importance score per feature,
                enabling the importance-biased initializer.

        Raises:
            ValueError: If the dataset is empty, a feature has no cut points, the
                cut-point table does not match the dataset, or the importance vector
                has the wrong length.
        """
        if dataset.n_instances == 0:
            raise ValueError("Cannot initialize the colony with a dataset of zero instances.")
        if dataset.n_features == 0:
            raise ValueError("Cannot initialize the colony with a dataset of zero features.")
        schema = cut_points if isinstance(cut_points, FeatureSchema) else FeatureSchema(cut_points, dataset.feature_names)
        schema.check_dataset(dataset)

        if importance is not None:
            importance = np.asarray(importance, dtype=float)
            if importance.shape != (dataset.n_features,):
                raise ValueError(f"Expected {dataset.n_features} importance scores, got shape {importance.shape}.")

        self.dataset = dataset
        self.schema = schema
        self.importance = importance
        self.evaluator = RuleEvaluator(dataset, schema, self.config.enable_caching, self.config.cache_size)
        self.controller = AdaptiveController(self.config)
        self._archive = ParetoArchive(self.config.archive_size)
        self._current_epoch = 0
        self._stagnation = 0
        self._stagnated = False
        self.history = []

        self._init_strategies = tuple(pair for pair in INITIALIZATION_STRATEGIES
                                      if importance is not None or pair[0] != 'importance')
        self._entropy_choice = self._best_gain_indices()

        self._population = [self._new_solution() for _ in range(self.config.food_number)]
        self._global_best = None
        self._last_best_fitness = -math.inf
        for solution in self._population:
            self._offer_global_best(solution)
        self._last_best_fitness = self._global_best.fitness

    def optimize_step(self) -> bool:
        """Runs one epoch.

        Returns:
            bool: True once the epoch counter has reached ``max_epochs``. A call on a
            finished run does nothing and returns True.

        Raises:
            RuntimeError: If :meth:`initialize` has not been called.
        """
        if self._population is None:
            raise RuntimeError("ColonyEngine.initialize() must be called before optimize_step().")
        if self.done:
            return True

        self._current_epoch += 1

        self._send_employed_bees()
        self._assign_probabilities()
        self._send_onlooker_bees()
        self._update_global_best()
        self._send_scout_bees()

        if self.config.multi_objective:
            self._archive.update(self._population)
            self._population = environmental_selection(self._population, self._archive.members,
                                                       len(self._population))

        diversity = population_diversity([s.nectar for s in self._population])
        self._adapt(diversity)
        self._check_convergence()
        self._record(diversity)

        return self.done

    # --- Accessors ---

    @property
    def done(self) -> bool:
        return self._current_epoch >= self.config.max_epochs

    @property
    def current_epoch(self) -> int:
        return self._current_epoch

    @property
    def global_best(self) -> Solution:
        """Copy of the fittest solution seen so far; None before initialization."""
        return self._global_best.copy() if self._global_best is not None else None

    @property
    def archive(self) -> list:
        """Pareto archive members; empty unless multi-objective mode is on."""
        if not self.config.multi_objective:
            return []
        return self._archive.members

    @property
    def population(self) -> list:
        return [s.copy() for s in self._population] if self._population is not None else []

    @property
    def stagnation(self) -> int:
        return self._stagnation

    @property
    def stagnated(self) -> bool:
        """True while the stagnation count exceeds ``early_stopping_patience``; an improvement clears it."""
        return self._stagnated

    def rules(self, solution: Solution = None) -> list:
        """Rule list of ``solution`` (the global best by default) on the training data."""
        if self.evaluator is None:
            raise RuntimeError("ColonyEngine.initialize() must be called first.")
        return self.evaluator.rules_for(solution if solution is not None else self._global_best)

    # --- Initialization strategies ---

    def _new_solution(self) -> Solution:
        solution = Solution(self._initial_nectar())
        self.evaluator.evaluate(solution)
        return solution

    def _initial_nectar(self) -> np.ndarray:
        strategy = weighted_choice(self.rng, self._init_strategies)
        return getattr(self, f"_init_{strategy}")()

    def _init_random(self) -> np.ndarray:
        return np.array([self.rng.integers(size) for size in self.schema.sizes], dtype=np.int64)

    def _init_importance(self) -> np.ndarray:
        nectar = np.zeros(self.schema.n_features, dtype=np.int64)
        probability = self.controller.feature_selection_probability
        for f, size in enumerate(self.schema.sizes):
            if self.importance[f] > 0.5:
                nectar[f] = middle_index(size)
            elif size > 2 and self.rng.random() < probability:
                nectar[f] = self.rng.integers(1, size - 1)
            else:
                nectar[f] = 0 if self.rng.random() < 0.5 else size - 1
        return nectar

    def _init_entropy(self) -> np.ndarray:
        return self._entropy_choice.copy()

    def _init_hybrid(self) -> np.ndarray:
        nectar = np.zeros(self.schema.n_features, dtype=np.int64)
        for f, size in enumerate(self.schema.sizes):
            if self.rng.random() < 0.5:
                nectar[f] = self.rng.integers(size)
            else:
                nectar[f] = middle_index(size)
        return nectar

    def _best_gain_indices(self) -> np.ndarray:
        """Per feature, the interior cut index with the highest information gain (0 if none)."""
        X, y = self.dataset.X, self.dataset.y
        choice = np.zeros(self.schema.n_features, dtype=np.int64)
        for f, points in enumerate(self.schema.cut_points):
            best_gain = -math.inf
            for index in range(1, len(points) - 1):
                gain = information_gain(X[:, f], y, points[index])
                if gain > best_gain:
                    best_gain = gain
                    choice[f] = index
        return choice

    # --- Neighbourhood strategies ---

    def _search(self, i: int, j: int):
        """Applies one randomly drawn move to food source ``i`` using neighbour ``j``."""
        current = self._population[i]
        neighbor = self._population[j]
        strategy = weighted_choice(self.rng, SEARCH_STRATEGIES)
        candidate = getattr(self, f"_move_{strategy}")(current, neighbor)
        if self.rng.random() < self.controller.mutation_rate:
            f = int(self.rng.integers(self.schema.n_features))
            candidate.set_gene(f, self.rng.integers(self.schema.sizes[f]))
        self._accept(i, candidate)

    def _move_large_neighborhood(self, current: Solution, neighbor: Solution) -> Solution:
        candidate = current.copy()
        for _ in range(int(self.rng.integers(1, 4))):
            f = int(self.rng.integers(self.schema.n_features))
            phi = self.rng.uniform(-1.0, 1.0)
            value = int(current.nectar[f] + phi * (current.nectar[f] - neighbor.nectar[f]))
            candidate.set_gene(f, self._clamp(f, value))
        return candidate

    def _move_adaptive(self, current: Solution, neighbor: Solution) -> Solution:
        candidate = current.copy()
        step = min(1.0, max(0.1, abs(current.fitness - neighbor.fitness)))
        f = int(self.rng.integers(self.schema.n_features))
        phi = self.rng.uniform(-step, step)
        value = int(current.nectar[f] + phi * (current.nectar[f] - neighbor.nectar[f]))
        candidate.set_gene(f, self._clamp(f, value))
        return candidate

    def _move_local(self, current: Solution, neighbor: Solution) -> Solution:
        candidate = current.copy()
        f = int(self.rng.integers(self.schema.n_features))
        direction = 1 if self.rng.random() < 0.5 else -1
        candidate.set_gene(f, self._clamp(f, current.nectar[f] + direction))
        return candidate

    def _move_levy_flight(self, current: Solution, neighbor: Solution) -> Solution:
        candidate = current.copy()
        f = int(self.rng.integers(self.schema.n_features))
        size = int(self.schema.sizes[f])
        # steps beyond +-size clamp to the same boundary index
        levy = min(max(levy_step(self.rng), -4.0), 4.0)
        step = int(levy * size / 4)
        candidate.set_gene(f, self._clamp(f, current.nectar[f] + step))
        return candidate

    def _clamp(self, f: int, value) -> int:
        return clamp_index(value, int(self.schema.sizes[f]))

    def _accept(self, i: int, candidate: Solution):
        self.evaluator.evaluate(candidate)
        current = self._population[i]
        if candidate.fitness > current.fitness:
            candidate.trials = 0
            candidate.selection_probability = current.selection_probability
            self._population[i] = candidate
        else:
            current.trials += 1

    # --- Bee phases ---

    def _neighbor_of(self, i: int) -> int:
        n = len(self._population)
        if n < 2:
            return i
        j = int(self.rng.integers(n - 1))
        return j + 1 if j >= i else j

    def _send_employed_bees(self):
        for i in range(len(self._population)):
            self._search(i, self._neighbor_of(i))

    def _assign_probabilities(self):
        fitness = np.array([s.fitness for s in self._population])
        if fitness.sum() > 0:
            probabilities = 0.9 * fitness / fitness.max() + 0.1
        else:
            probabilities = np.full(len(fitness), 1.0 / len(fitness))
        for solution, probability in zip(self._population, probabilities):
            solution.selection_probability = float(probability)

    def _send_onlooker_bees(self):
        food_number = len(self._population)
        chosen = 0
        for i in range(food_number):
            if chosen >= food_number:
                break
            if self.rng.random() < self._population[i].selection_probability:
                chosen += 1
                self._search(i, self._neighbor_of(i))

    def _send_scout_bees(self):
        for i, solution in enumerate(self._population):
            if solution.trials > self.config.limit:
                self._population[i] = self._new_solution()
                self._offer_global_best(self._population[i])

    # --- Bookkeeping ---

    def _offer_global_best(self, solution: Solution) -> bool:
        if self._global_best is None or solution.fitness > self._global_best.fitness:
            self._global_best = solution.copy()
            return True
        return False

    def _update_global_best(self):
        for solution in self._population:
            self._offer_global_best(solution)
        if self._global_best.fitness > self._last_best_fitness:
            self._last_best_fitness = self._global_best.fitness
            self._stagnation = 0
            self._stagnated = False
        else:
            self._stagnation += 1

    def _adapt(self, diversity: float):
        best_accuracy = max(s.accuracy for s in self._population)
        self.controller.update(diversity, self._stagnation, best_accuracy, self._global_best.accuracy)
        self._resize(self.controller.food_number)

    def _resize(self, food_number: int):
        """Grows the population with fresh solutions or drops its least fit members."""
        current = len(self._population)
        if food_number > current:
            for _ in range(food_number - current):
                solution = self._new_solution()
                self._population.append(solution)
                self._offer_global_best(solution)
        elif food_number < current:
            ranked = sorted(range(current), key=lambda k: -self._population[k].fitness)
            keep = sorted(ranked[:food_number])
            self._population = [self._population[k] for k in keep]

    def _check_convergence(self):
        if self._stagnation > self.config.early_stopping_patience and not self._stagnated:
            self._stagnated = True
            if self.config.verbose:
                print(f"Early stopping advised: no improvement for {self._stagnation} epochs "
                      f"(epoch {self._current_epoch}).")

    def _record(self, diversity: float):
        fitness = [s.fitness for s in self._population]
        self.history.append({
            'epoch': self._current_epoch,
            'best_fitness': self._global_best.fitness,
            'best_accuracy': self._global_best.accuracy,
            'mean_fitness': float(np.mean(fitness)),
            'diversity': diversity,
            'colony_size': self.controller.colony_size,
            'food_number': len(self._population),
            'mutation_rate': self.controller.mutation_rate,
            'feature_selection_probability': self.controller.feature_selection_probability,
            'stagnation': self._stagnation,
            'archive_size': len(self._archive) if self.config.multi_objective else 0,
            'cache_hits': self.evaluator.hits,
        })
