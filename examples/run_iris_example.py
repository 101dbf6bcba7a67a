#!/usr/bin/env python
# coding: utf-8
"""
Example script for running ColonyRuleSet on the iris dataset.

This script demonstrates how to:
1. Load the iris data shipped with scikit-learn
2. Train a ColonyRuleSet model
3. Evaluate the model on a held-out split and with cross validation
4. Plot the convergence of the colony
"""

import os
import sys

import matplotlib.pyplot as plt
from sklearn.datasets import load_iris
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix
from sklearn.model_selection import train_test_split

# Add the parent directory to the path so we can import the mcrm package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from mcrm import ColonyRuleSet, cross_validate


def load_data():
    """Load iris as a DataFrame with species names as labels."""
    iris = load_iris(as_frame=True)
    X = iris.data.rename(columns=lambda c: c.replace(' (cm)', '').replace(' ', '_'))
    y = iris.target.map(dict(enumerate(iris.target_names)))
    print(f"Dataset shape: {X.shape}")
    print(f"Target variable distribution:\n{y.value_counts()}")
    return X, y


def train_and_evaluate():
    """Train and evaluate the ColonyRuleSet model."""
    X, y = load_data()
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.3, random_state=42, stratify=y
    )

    model = ColonyRuleSet(
        colony_size=30,
        max_epochs=200,
        limit=50,
        early_stopping_patience=40,
        multi_objective=True,
        discretization='entropy',
        importance='hybrid',
        random_state=42,
        log_every=25,
    )

    print("\n" + "=" * 50)
    print("Training ColonyRuleSet model...")
    model.fit(X_train, y_train)

    print("\n" + "=" * 50)
    print("Making predictions on test set...")
    y_pred = model.predict(X_test)

    print("\n" + "=" * 50)
    print("Model Performance:")
    print(f"Accuracy: {accuracy_score(y_test, y_pred):.4f}")
    print(f"Confusion Matrix:\n{confusion_matrix(y_test, y_pred, labels=model.classes_)}")
    print("\nClassification Report:")
    print(classification_report(y_test, y_pred, zero_division=0))
    print(f"Pareto archive holds {len(model.archive_)} trade-off solutions.")

    print("\n" + "=" * 50)
    print("Rule metrics:")
    print(model.rules_frame()[['rule', 'label', 'support', 'confidence', 'lift', 'p_value']])

    print("\n" + "=" * 50)
    print("5-fold cross validation...")
    folds = cross_validate(
        lambda: ColonyRuleSet(max_epochs=100, discretization='entropy', random_state=0, verbose=False),
        X, y, n_splits=5, random_state=0,
    )
    print(folds)
    print(f"Mean accuracy: {folds['accuracy'].mean():.4f} (+/- {folds['accuracy'].std():.4f})")

    ax = model.plot_history(columns=('best_fitness', 'mean_fitness', 'diversity'))
    ax.figure.tight_layout()
    plt.savefig('colony_convergence.png')
    print("Convergence plot saved as 'colony_convergence.png'")

    return model


if __name__ == "__main__":
    train_and_evaluate()
