# coding=utf-8
"""
Rule generation, classification and post-processing.

A rule model is built from a set of selected features and one threshold per
feature. Every training instance is mapped to a bit pattern over the selected
features (``0`` when the value is ``<=`` the threshold, ``1`` otherwise) and
each distinct pattern becomes one rule predicting the majority label of the
instances that share it.

Ordering conventions:
    * Rules are listed in order of the first instance (in dataset order) that
      produced their pattern.
    * A majority-label tie goes to the label seen first within the pattern group.
    * When several rules match an instance, the rule with the highest confidence
      classifies it; a confidence tie goes to the rule listed first.
"""
from __future__ import annotations

import math

import numpy as np
import pandas as pd
from scipy.stats import chi2

# Critical value of the chi-square distribution at p=0.05 with one degree of freedom
CHI_SQUARE_CRITICAL = 3.841


class Rule:
    """A conjunctive classification rule over thresholded features.

    Args:
        features (sequence of int): Feature indices the rule tests, in order.
        thresholds (sequence of float): Threshold of each feature, aligned with ``features``.
        code (str): Bit pattern aligned with ``features``; ``'0'`` means ``value <= threshold``
            and ``'1'`` means ``value > threshold``.
        label (int): Predicted class label.
        label_counts (dict, optional): Label frequencies among the instances the rule matched
            on the data it was built from.

    Attributes:
        tp, fp, fn, tn (int): Confusion counts relative to ``label``.
        support (float): Fraction of instances matched.
        confidence (float): Fraction of matched instances carrying ``label``.
        lift, conviction, leverage (float): Association-rule interest measures.
        recall, specificity (float): Class recall and specificity of the rule.
        chi_square (float): 2x2 chi-square statistic of rule match vs. label.
        p_value (float): Upper-tail probability of ``chi_square`` with one degree of freedom.
        significant (bool): ``chi_square`` exceeds :data:`CHI_SQUARE_CRITICAL`.
    """

    def __init__(self, features, thresholds, code: str, label: int, label_counts=None):
        features = tuple(int(f) for f in features)
        thresholds = tuple(float(t) for t in thresholds)
        if len(features) != len(thresholds) or len(features) != len(code):
            raise ValueError("features, thresholds and code must have the same length.")
        if any(bit not in '01' for bit in code):
            raise ValueError(f"Invalid rule code '{code}'.")

        self.features = features
        self.thresholds = thresholds
        self.code = code
        self.label = int(label)
        self.label_counts = dict(label_counts) if label_counts else {}

        self.tp = self.fp = self.fn = self.tn = 0
        self.support = 0.0
        self.confidence = 0.0
        self.lift = 0.0
        self.conviction = 0.0
        self.leverage = 0.0
        self.recall = 0.0
        self.specificity = 0.0
        self.chi_square = 0.0
        self.p_value = 1.0
        self.significant = False

    @property
    def length(self) -> int:
        """Number of conditions."""
        return len(self.features)

    @property
    def n_matched(self) -> int:
        return self.tp + self.fp

    def matches(self, X) -> np.ndarray:
        """Boolean mask of the rows of ``X`` that satisfy every condition."""
        X = np.asarray(X, dtype=float)
        if not self.features:
            return np.ones(X.shape[0], dtype=bool)
        bits = X[:, list(self.features)] > np.asarray(self.thresholds)
        expected = np.array([bit == '1' for bit in self.code])
        return np.all(bits == expected, axis=1)

    def set_counts(self, tp: int, fp: int, fn: int, tn: int):
        """Sets the confusion counts and derives every quality metric from them."""
        self.tp, self.fp, self.fn, self.tn = int(tp), int(fp), int(fn), int(tn)
        n = self.tp + self.fp + self.fn + self.tn
        matched = self.tp + self.fp
        class_total = self.tp + self.fn
        prior = class_total / n if n > 0 else 0.0

        self.support = matched / n if n > 0 else 0.0
        self.confidence = self.tp / matched if matched > 0 else 0.0
        self.lift = self.confidence / prior if prior > 0 else 0.0
        if self.confidence < 1.0:
            self.conviction = (1.0 - prior) / (1.0 - self.confidence)
        else:
            self.conviction = math.inf
        self.leverage = (self.tp / n if n > 0 else 0.0) - self.support * prior
        self.recall = self.tp / class_total if class_total > 0 else 0.0
        negatives = self.tn + self.fp
        self.specificity = self.tn / negatives if negatives > 0 else 0.0

        self.chi_square = _chi_square(self.tp, self.fp, self.fn, self.tn)
        self.p_value = float(chi2.sf(self.chi_square, df=1))
        self.significant = self.chi_square > CHI_SQUARE_CRITICAL

    def compute_metrics(self, X, y) -> 'Rule':
        """Recomputes counts and metrics of this rule on ``(X, y)``. Returns self."""
        y = np.asarray(y)
        matched = self.matches(X)
        positive = y == self.label
        tp = int(np.sum(matched & positive))
        fp = int(np.sum(matched & ~positive))
        fn = int(np.sum(~matched & positive))
        tn = int(np.sum(~matched & ~positive))
        labels, counts = _ordered_counts(y[matched])
        self.label_counts = {int(label): int(count) for label, count in zip(labels, counts)}
        self.set_counts(tp, fp, fn, tn)
        return self

    def without(self, position: int) -> 'Rule':
        """New rule with the condition at ``position`` dropped; metrics are not computed."""
        keep = [i for i in range(self.length) if i != position]
        return Rule([self.features[i] for i in keep],
                    [self.thresholds[i] for i in keep],
                    ''.join(self.code[i] for i in keep),
                    self.label)

    def key(self) -> tuple:
        return (self.features, self.thresholds, self.code, self.label)

    def should_be_pruned(self, min_support: float, min_confidence: float,
                         min_significance: float, min_coverage: int) -> bool:
        return (self.support < min_support or
                self.confidence < min_confidence or
                self.chi_square < min_significance or
                self.n_matched < min_coverage)

    def conditions(self, feature_names=None) -> list:
        conditions = []
        for f, threshold, bit in zip(self.features, self.thresholds, self.code):
            name = feature_names[f] if feature_names is not None else f"x{f}"
            op = '<=' if bit == '0' else '>'
            conditions.append(f"{name} {op} {threshold:.6g}")
        return conditions

    def describe(self, feature_names=None, class_names=None) -> str:
        """Readable form, e.g. ``'petal_length <= 2.45 AND petal_width > 1.75 => virginica'``."""
        body = ' AND '.join(self.conditions(feature_names)) or 'TRUE'
        label = class_names[self.label] if class_names is not None else self.label
        return f"{body} => {label}"

    def to_dict(self, feature_names=None, class_names=None) -> dict:
        return {
            'rule': ' AND '.join(self.conditions(feature_names)) or 'TRUE',
            'label': class_names[self.label] if class_names is not None else self.label,
            'length': self.length,
            'code': self.code,
            'support': self.support,
            'confidence': self.confidence,
            'lift': self.lift,
            'conviction': self.conviction,
            'leverage': self.leverage,
            'recall': self.recall,
            'specificity': self.specificity,
            'chi_square': self.chi_square,
            'p_value': self.p_value,
            'significant': self.significant,
            'tp': self.tp,
            'fp': self.fp,
            'fn': self.fn,
            'tn': self.tn,
        }

    def __eq__(self, other):
        return isinstance(other, Rule) and self.key() == other.key()

    def __hash__(self):
        return hash(self.key())

    def __repr__(self):
        return (f"Rule(pattern='{self.code}', label={self.label}, support={self.support:.3f}, "
                f"confidence={self.confidence:.3f}, lift={self.lift:.3f}, length={self.length})")


# --- Helper Functions ---

def _chi_square(tp, fp, fn, tn) -> float:
    """Pearson chi-square statistic of the 2x2 table (matched, label)."""
    n = tp + fp + fn + tn
    if n == 0:
        return 0.0
    observed = ((tp, tp + fp, tp + fn),
                (fp, tp + fp, fp + tn),
                (fn, fn + tn, tp + fn),
                (tn, fn + tn, fp + tn))
    statistic = 0.0
    for count, row_total, col_total in observed:
        expected = row_total * col_total / n
        if expected > 0:
            statistic += (count - expected) ** 2 / expected
    return statistic


def _ordered_counts(labels) -> tuple[np.ndarray, np.ndarray]:
    """Distinct labels and their counts, in order of first appearance."""
    labels = np.asarray(labels)
    if labels.size == 0:
        return labels, np.zeros(0, dtype=int)
    values, first, counts = np.unique(labels, return_index=True, return_counts=True)
    order = np.argsort(first, kind='stable')
    return values[order], counts[order]


def majority_label(labels) -> tuple[int, int]:
    """Returns ``(label, count)`` of the most frequent label; ties go to the label seen first."""
    values, counts = _ordered_counts(labels)
    best_label, best_count = -1, 0
    for label, count in zip(values, counts):
        if count > best_count:
            best_label, best_count = int(label), int(count)
    return best_label, best_count


# --- Rule Generation ---

def build_rules(X, y, features, thresholds) -> list:
    """Partitions the data by bit pattern and builds one majority-label rule per pattern.

    Args:
        X (array-like): Feature matrix of shape (n_samples, n_features).
        y (array-like): Integer class labels.
        features (sequence of int): Selected feature indices.
        thresholds (mapping): Threshold per selected feature index.

    Returns:
        list[Rule]: Rules in order of first pattern occurrence, with counts and
        metrics computed on ``(X, y)``. Empty when no feature is selected or
        the data is empty.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y)
    features = [int(f) for f in features]
    n = len(y)
    if not features or n == 0:
        return []

    cuts = np.array([thresholds[f] for f in features], dtype=float)
    bits = X[:, features] > cuts

    patterns, first_rows, inverse = np.unique(bits, axis=0, return_index=True, return_inverse=True)
    inverse = np.asarray(inverse).ravel()
    class_totals = dict(zip(*np.unique(y, return_counts=True)))

    rules = []
    for p in np.argsort(first_rows, kind='stable'):
        in_group = inverse == p
        group_labels = y[in_group]
        label, tp = majority_label(group_labels)
        matched = int(np.sum(in_group))
        labels, counts = _ordered_counts(group_labels)

        code = ''.join('1' if bit else '0' for bit in patterns[p])
        rule = Rule(features, cuts, code, label,
                    {int(lab): int(cnt) for lab, cnt in zip(labels, counts)})
        fp = matched - tp
        fn = int(class_totals[label]) - tp
        rule.set_counts(tp, fp, fn, n - tp - fp - fn)
        rules.append(rule)

    return rules


# --- Classification ---

def match_matrix(X, rules) -> np.ndarray:
    """Boolean matrix of shape (n_samples, n_rules); entry (i, r) is True when rule r matches row i."""
    X = np.asarray(X, dtype=float)
    if not rules:
        return np.zeros((X.shape[0], 0), dtype=bool)
    return np.column_stack([rule.matches(X) for rule in rules])


def assign_rules(X, rules) -> np.ndarray:
    """Index of the classifying rule per row: the highest-confidence matching rule, -1 if none matches."""
    matrix = match_matrix(X, rules)
    if matrix.shape[1] == 0:
        return np.full(matrix.shape[0], -1, dtype=int)
    confidence = np.array([rule.confidence for rule in rules])
    scores = np.where(matrix, confidence[np.newaxis, :], -np.inf)
    best = np.argmax(scores, axis=1)  # first maximum wins ties
    best[~matrix.any(axis=1)] = -1
    return best


def predict_labels(X, rules, default: int = -1) -> np.ndarray:
    """Predicted label per row; ``default`` where no rule matches."""
    assigned = assign_rules(X, rules)
    if not rules:
        return np.full(len(assigned), default, dtype=int)
    labels = np.array([rule.label for rule in rules], dtype=int)
    return np.where(assigned >= 0, labels[assigned], default)


def score_rules(X, y, rules) -> tuple[float, float, float]:
    """Returns ``(accuracy, complexity, coverage)`` of a rule list on ``(X, y)``.

    Uncovered instances count as misclassified. Complexity is the mean number
    of conditions per rule, and ``inf`` for an empty rule list.
    """
    y = np.asarray(y)
    if len(y) == 0 or not rules:
        return 0.0, math.inf, 0.0
    assigned = assign_rules(X, rules)
    covered = assigned >= 0
    labels = np.array([rule.label for rule in rules], dtype=int)
    correct = covered & (labels[np.where(covered, assigned, 0)] == y)
    accuracy = float(np.mean(correct))
    complexity = float(np.mean([rule.length for rule in rules]))
    coverage = float(np.mean(covered))
    return accuracy, complexity, coverage


# --- Post-processing ---

def prune_rules(rules, min_support: float = 0.01, min_confidence: float = 0.5,
                min_significance: float = CHI_SQUARE_CRITICAL, min_coverage: int = 2) -> list:
    """Drops rules below any of the support, confidence, chi-square or matched-count minimums."""
    return [rule for rule in rules
            if not rule.should_be_pruned(min_support, min_confidence, min_significance, min_coverage)]


def simplify_rule(rule: Rule, X, y, confidence_tolerance: float = 0.05,
                  support_tolerance: float = 0.10) -> Rule:
    """Greedily removes conditions that do not hurt the rule.

    Conditions are tried from last to first; the first removal that keeps
    confidence within ``confidence_tolerance`` and support within
    ``support_tolerance`` (both relative) of the current rule is accepted and
    the search restarts. Stops when no removal is acceptable or one condition
    remains. The label is kept fixed.

    Returns:
        Rule: The simplified rule with metrics on ``(X, y)``; ``rule`` itself
        (re-scored) when nothing could be removed.
    """
    current = rule
    current.compute_metrics(X, y)
    while current.length > 1:
        replaced = False
        for position in reversed(range(current.length)):
            candidate = current.without(position).compute_metrics(X, y)
            if (candidate.confidence >= current.confidence * (1.0 - confidence_tolerance) and
                    candidate.support >= current.support * (1.0 - support_tolerance)):
                current = candidate
                replaced = True
                break
        if not replaced:
            break
    return current


def simplify_rules(rules, X, y) -> list:
    """Simplifies every rule and drops duplicates, keeping the first occurrence."""
    simplified = []
    seen = set()
    for rule in rules:
        candidate = simplify_rule(rule, X, y)
        if candidate.key() in seen:
            continue
        seen.add(candidate.key())
        simplified.append(candidate)
    return simplified


def rules_to_frame(rules, feature_names=None, class_names=None) -> pd.DataFrame:
    """Tabulates rule conditions and quality metrics, one row per rule."""
    rows = [rule.to_dict(feature_names, class_names) for rule in rules]
    columns = list(Rule((), (), '', 0).to_dict().keys())
    return pd.DataFrame(rows, columns=columns)
