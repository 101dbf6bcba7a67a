# coding=utf-8
"""
Estimator-style front end of the colony rule miner.

Typical use::

    from mcrm import ColonyRuleSet

    model = ColonyRuleSet(max_epochs=200, random_state=0)
    model.fit(X_train, y_train)
    model.print_rules()
    accuracy = model.score(X_test, y_test)
"""
from __future__ import annotations

import json
import math
import time
import warnings

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from .colony import ColonyEngine
from .config import ColonyConfig
from .data import Dataset, FeatureSchema
from .discretization import Discretizer
from .evaluation import evaluate_rules
from .rules import (CHI_SQUARE_CRITICAL, assign_rules, majority_label, predict_labels,
                    prune_rules, rules_to_frame, simplify_rules)
from .selection import METHODS as IMPORTANCE_METHODS
from .selection import FeatureSelector


def _plain(value):
    """Converts numpy scalars to built-in Python values for JSON export; non-finite floats become None."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class ColonyRuleSet:
    """Multi-objective bee-colony rule set classifier.

    Numerical features are discretized into candidate cut points, a bee colony
    searches for the feature/threshold selection whose bit-pattern rules best
    trade accuracy, simplicity and coverage, and the rules of the best solution
    are pruned and simplified into the final model.

    Args:
        colony_size, max_epochs, limit, feature_selection_probability, mutation_rate,
        diversity_threshold, early_stopping_patience, archive_size, enable_caching,
        cache_size, multi_objective, min_colony_size, max_colony_size,
        min_mutation_rate, max_mutation_rate, max_feature_selection_probability:
            Colony options, see :class:`mcrm.config.ColonyConfig`.
        discretization (str): ``'auto'``, ``'entropy'``, ``'chi_merge'``, ``'equal_width'`` or ``'equal_frequency'``. Default ``'auto'``.
        max_intervals (int): Max intervals per feature. Default 10.
        min_intervals (int): Min intervals per feature for unsupervised discretization. Default 2.
        importance (str or None): Feature-importance method feeding the importance-biased
            initializer (see :class:`mcrm.selection.FeatureSelector`); None disables it.
            Default ``'information_gain'``.
        redundancy_threshold (float, optional): Zero the importance of a feature whose absolute
            correlation with a more important feature exceeds this value. Default None (off).
        min_support (float): Pruning threshold on rule support. Default 0.01.
        min_confidence (float): Pruning threshold on rule confidence. Default 0.5.
        min_significance (float): Pruning threshold on the rule chi-square statistic. Default 3.841.
        min_coverage (int): Pruning threshold on matched training instances. Default 2.
        simplify (bool): Greedily drop conditions that do not hurt a rule. Default True.
        stop_on_stagnation (bool): Stop the search once the colony reports stagnation. Default False.
        random_state (int, optional): Seed of the colony (and of the random forest importance).
        verbose (bool): Print progress. Default True.
        log_every (int): Epochs between progress lines when verbose. Default 100.

    Attributes:
        rules_ (list[Rule]): Final rules, with metrics on the training data.
        classes_ (np.ndarray): Original class labels; rule labels index into it.
        cut_points_ (list[np.ndarray]): Candidate thresholds per feature.
        feature_importances_ (np.ndarray or None): Importance scores used by the colony.
        feature_names_ (tuple): Feature names.
        best_solution_ (Solution): Global best solution of the colony.
        archive_ (list[Solution]): Pareto archive (empty unless ``multi_objective``).
        history_ (pd.DataFrame): Per-epoch search statistics.
        n_epochs_ (int): Epochs actually run.
    """

    def __init__(self, colony_size=30, max_epochs=1000, limit=100,
                 feature_selection_probability=0.1, mutation_rate=0.1,
                 diversity_threshold=0.1, early_stopping_patience=50,
                 archive_size=50, enable_caching=True, cache_size=None,
                 multi_objective=False, min_colony_size=20, max_colony_size=50,
                 min_mutation_rate=0.05, max_mutation_rate=0.3,
                 max_feature_selection_probability=0.3,
                 discretization='auto', max_intervals=10, min_intervals=2,
                 importance='information_gain', redundancy_threshold=None,
                 min_support=0.01, min_confidence=0.5,
                 min_significance=CHI_SQUARE_CRITICAL, min_coverage=2,
                 simplify=True, stop_on_stagnation=False,
                 random_state=None, verbose=True, log_every=100):

        if importance is not None and importance not in IMPORTANCE_METHODS:
            raise ValueError(f"Unknown importance method '{importance}'.")
        if not isinstance(log_every, int) or log_every < 1:
            raise ValueError("log_every must be a positive integer.")

        self.config = ColonyConfig(
            colony_size=colony_size, max_epochs=max_epochs, limit=limit,
            feature_selection_probability=feature_selection_probability,
            mutation_rate=mutation_rate, diversity_threshold=diversity_threshold,
            early_stopping_patience=early_stopping_patience, archive_size=archive_size,
            enable_caching=enable_caching, cache_size=cache_size,
            multi_objective=multi_objective, min_colony_size=min_colony_size,
            max_colony_size=max_colony_size, min_mutation_rate=min_mutation_rate,
            max_mutation_rate=max_mutation_rate,
            max_feature_selection_probability=max_feature_selection_probability,
            verbose=verbose)
        self.discretizer = Discretizer(discretization, max_intervals, min_intervals)
        self.importance = importance
        self.redundancy_threshold = redundancy_threshold
        self.min_support = min_support
        self.min_confidence = min_confidence
        self.min_significance = min_significance
        self.min_coverage = min_coverage
        self.simplify = simplify
        self.stop_on_stagnation = stop_on_stagnation
        self.random_state = random_state
        self.verbose = verbose
        self.log_every = log_every

        # Fitted state
        self.rules_ = None
        self.classes_ = None
        self.cut_points_ = None
        self.feature_importances_ = None
        self.feature_names_ = None
        self.best_solution_ = None
        self.archive_ = []
        self.history_ = None
        self.n_epochs_ = 0
        self.default_label_ = None
        self.class_priors_ = None
        self.engine_ = None
        self._encoder = None

    def _log(self, message):
        if self.verbose:
            print(message)

    # --- Fitting ---

    def fit(self, X, y):
        """Discretizes the data, runs the colony and extracts the final rule set.

        Args:
            X (pd.DataFrame or array-like): Numerical training features, shape (n_samples, n_features).
            y (array-like): Class labels of any hashable type.

        Returns:
            self: The fitted model.

        Raises:
            ValueError: If the data is empty, non-numerical, non-finite or misaligned.
        """
        start_fit = time.time()
        self._log("=" * 50)
        self._log("Starting ColonyRuleSet Fit Process")
        self._log("=" * 50)

        # --- 1. Input Validation and Encoding ---
        self.feature_names_ = None
        self.rules_ = None
        X_arr, names = self._as_matrix(X)
        y = np.asarray(y)
        if len(y) != X_arr.shape[0]:
            raise ValueError(f"X has {X_arr.shape[0]} rows but y has {len(y)} labels.")
        if X_arr.shape[0] == 0:
            raise ValueError("Cannot fit on zero instances.")
        if X_arr.shape[1] == 0:
            raise ValueError("Cannot fit on zero features.")

        self._encoder = LabelEncoder().fit(y)
        y_enc = self._encoder.transform(y)
        self.classes_ = self._encoder.classes_
        dataset = Dataset(X_arr, y_enc, names)
        self.feature_names_ = dataset.feature_names
        self._log(f"Fitting model on {dataset.n_instances} samples, {dataset.n_features} features, "
                  f"{len(self.classes_)} classes")

        # --- 2. Discretization ---
        self._log(f"\nStep 1: Discretizing features (method: {self.discretizer.method})...")
        self.cut_points_ = self.discretizer.discretize(dataset)
        schema = FeatureSchema(self.cut_points_, dataset.feature_names)
        self._log(f" Using '{self.discretizer.chosen_method_}' cut points; "
                  f"candidates per feature: {(schema.sizes - 2).clip(min=0).tolist()}")

        # --- 3. Feature Importance ---
        if self.importance is not None:
            self._log(f"\nStep 2: Scoring features (method: {self.importance})...")
            selector = FeatureSelector(self.importance, random_state=self.random_state)
            self.feature_importances_ = selector.importance(dataset)
            if self.redundancy_threshold is not None:
                keep = selector.remove_redundant(dataset, self.redundancy_threshold, self.feature_importances_)
                self.feature_importances_ = np.where(keep, self.feature_importances_, 0.0)
                dropped = [dataset.feature_names[f] for f in np.flatnonzero(~keep)]
                self._log(f" Redundant features ignored by the initializer: {dropped}")
        else:
            self._log("\nStep 2: Skipping feature importance.")
            self.feature_importances_ = None

        # --- 4. Colony Search ---
        self._log(f"\nStep 3: Running bee colony for up to {self.config.max_epochs} epochs...")
        start_search = time.time()
        self.engine_ = ColonyEngine(self.config, random_state=self.random_state)
        self.engine_.initialize(dataset, schema, self.feature_importances_)
        while not self.engine_.optimize_step():
            epoch = self.engine_.current_epoch
            if epoch % self.log_every == 0:
                best = self.engine_.global_best
                self._log(f" Epoch {epoch}: best fitness={best.fitness:.4f}, accuracy={best.accuracy:.4f}, "
                          f"coverage={best.coverage:.4f}, colony size={self.engine_.controller.colony_size}")
            if self.stop_on_stagnation and self.engine_.stagnated:
                self._log(f" Stopping at epoch {epoch} after stagnation.")
                break
        self._log(f"Colony search took {time.time() - start_search:.2f}s "
                  f"({self.engine_.evaluator.hits} cache hits, {self.engine_.evaluator.misses} evaluations).")

        self.best_solution_ = self.engine_.global_best
        self.archive_ = self.engine_.archive
        self.history_ = pd.DataFrame(self.engine_.history)
        self.n_epochs_ = self.engine_.current_epoch

        # --- 5. Rule Post-processing ---
        self._log("\nStep 4: Pruning and simplifying rules...")
        raw_rules = self.engine_.rules(self.best_solution_)
        rules = prune_rules(raw_rules, self.min_support, self.min_confidence,
                            self.min_significance, self.min_coverage)
        if raw_rules and not rules:
            warnings.warn("Pruning removed every rule; keeping the unpruned rules of the best solution.")
            rules = raw_rules
        self._log(f" {len(raw_rules)} rules generated, {len(rules)} kept after pruning.")
        if self.simplify:
            rules = simplify_rules(rules, dataset.X, dataset.y)
            self._log(f" {len(rules)} rules after simplification.")
        self.rules_ = rules

        self.default_label_, _ = majority_label(dataset.y)
        counts = np.bincount(dataset.y, minlength=len(self.classes_))
        self.class_priors_ = counts / counts.sum()

        self._log("\n" + "=" * 50)
        self._log(f"Fit process complete in {time.time() - start_fit:.2f} seconds.")
        self._log(f"Best solution: {self.best_solution_}")
        self._log(f"Final model has {len(self.rules_)} rules.")
        self._log("=" * 50)
        if self.verbose:
            self.print_rules()
        return self

    # --- Prediction ---

    def _check_fitted(self):
        if self.rules_ is None:
            raise RuntimeError("This ColonyRuleSet instance is not fitted yet. Call 'fit' first.")

    def _as_matrix(self, X):
        """Returns ``(matrix, feature_names)``; DataFrame columns are reordered to the fitted names."""
        if isinstance(X, pd.DataFrame):
            if self.feature_names_ is not None and set(self.feature_names_) <= set(map(str, X.columns)):
                X = X.rename(columns=str)[list(self.feature_names_)]
            try:
                matrix = X.to_numpy(dtype=float)
            except (TypeError, ValueError) as e:
                raise ValueError(f"All feature columns must be numerical: {e}")
            names = [str(c) for c in X.columns]
        else:
            matrix = np.asarray(X, dtype=float)
            if matrix.ndim != 2:
                raise ValueError(f"X must be two-dimensional, got shape {matrix.shape}.")
            names = None
        if self.feature_names_ is not None and matrix.shape[1] != len(self.feature_names_):
            raise ValueError(f"X has {matrix.shape[1]} features, the model was fitted on "
                             f"{len(self.feature_names_)}.")
        return matrix, names

    def _encode_labels(self, y) -> np.ndarray:
        """Encodes labels with the fitted encoder; unseen labels become -1."""
        y = np.asarray(y)
        known = np.isin(y, self.classes_)
        if not np.all(known):
            warnings.warn(f"{int(np.sum(~known))} labels were not seen during fit and count as errors.")
        encoded = np.full(len(y), -1, dtype=int)
        if np.any(known):
            encoded[known] = self._encoder.transform(y[known])
        return encoded

    def predict(self, X) -> np.ndarray:
        """Predicts class labels with the highest-confidence matching rule.

        Instances no rule matches get the majority training class.
        """
        self._check_fitted()
        matrix, _ = self._as_matrix(X)
        encoded = predict_labels(matrix, self.rules_, default=self.default_label_)
        return self.classes_[encoded]

    def predict_proba(self, X) -> np.ndarray:
        """Class probabilities, columns ordered as ``classes_``.

        A matched instance gets the label distribution its classifying rule saw
        during training; an unmatched one gets the training class priors.
        """
        self._check_fitted()
        matrix, _ = self._as_matrix(X)
        assigned = assign_rules(matrix, self.rules_)
        n_classes = len(self.classes_)
        rule_proba = np.zeros((len(self.rules_), n_classes))
        for r, rule in enumerate(self.rules_):
            for label, count in rule.label_counts.items():
                if 0 <= label < n_classes:
                    rule_proba[r, label] = count
            total = rule_proba[r].sum()
            if total > 0:
                rule_proba[r] /= total
            else:
                rule_proba[r, rule.label] = 1.0

        proba = np.tile(self.class_priors_, (matrix.shape[0], 1))
        matched = assigned >= 0
        proba[matched] = rule_proba[assigned[matched]]
        return proba

    def score(self, X, y) -> float:
        """Returns the accuracy of the model on the given data."""
        y_true = np.asarray(y)
        y_pred = self.predict(X)
        total = len(y_true)
        return float((y_pred == y_true).sum() / total) if total > 0 else 0.0

    def evaluate(self, X, y) -> dict:
        """Accuracy, coverage, rule count, mean rule length and confusion matrix on ``(X, y)``."""
        self._check_fitted()
        matrix, _ = self._as_matrix(X)
        return evaluate_rules(self.rules_, matrix, self._encode_labels(y),
                              default_label=self.default_label_,
                              labels=np.arange(len(self.classes_)))

    # --- Reporting ---

    def rules_frame(self) -> pd.DataFrame:
        self._check_fitted()
        return rules_to_frame(self.rules_, self.feature_names_, list(self.classes_))

    def export_rules(self, output_format='text') -> str:
        """Export the rules in the specified format.

        Args:
            output_format (str): Format to export rules ('text' or 'json')

        Returns:
            str: Exported rules as string
        """
        self._check_fitted()
        if not self.rules_:
            return "No rules found in model."

        if output_format == 'json':
            rules_export = []
            for i, rule in enumerate(self.rules_):
                entry = {key: _plain(value) for key, value in rule.to_dict(self.feature_names_).items()}
                entry['label'] = _plain(self.classes_[rule.label])
                entry['rule_id'] = i + 1
                entry['conditions'] = rule.conditions(self.feature_names_)
                rules_export.append(entry)
            return json.dumps(rules_export, indent=2, allow_nan=False)

        output = ["=== Colony Rule Set ==="]
        for i, rule in enumerate(self.rules_):
            output.append(f"Rule {i + 1}: {rule.describe(self.feature_names_, self.classes_)} "
                          f"(support={rule.support:.3f}, confidence={rule.confidence:.3f}, "
                          f"lift={rule.lift:.3f})")
        output.append(f"Default: {self.classes_[self.default_label_]}")
        output.append("=======================")
        return "\n".join(output)

    def print_rules(self):
        print(self.export_rules('text'))

    def plot_history(self, columns=('best_fitness', 'mean_fitness'), ax=None):
        """Plots per-epoch search statistics; returns the matplotlib axes."""
        self._check_fitted()
        if ax is None:
            _, ax = plt.subplots(figsize=(8, 4))
        for column in columns:
            ax.plot(self.history_['epoch'], self.history_[column], label=column)
        ax.set_xlabel('epoch')
        ax.set_title('Colony convergence')
        ax.legend()
        return ax
