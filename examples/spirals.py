#!/usr/bin/env python3
"""
ScalarGrad Demo: Two Spirals
============================

1. Generate the two-spiral dataset
2. Build a 2 -> 16 -> 8 -> 1 tanh network
3. Train it one example at a time with a decaying learning rate
4. Print a coarse decision boundary and the final accuracies

Run: python examples/spirals.py [--plot]
"""

import argparse
import logging
import numpy as np

from scalargrad import (
    MLP,
    TrainingConfig,
    accuracy,
    class_accuracy,
    constant,
    decision_boundary,
    make_spirals,
    train,
)


logging.basicConfig(
    format='%(asctime)s - %(levelname)s - %(message)s',
    level=logging.INFO,
)
logger = logging.getLogger(__name__)


def plot_decision_boundary(model: MLP, X: np.ndarray, y: np.ndarray, title: str) -> None:
    """Save a filled contour of the model output with the data on top."""
    import matplotlib.pyplot as plt

    h = 0.05
    x_min, x_max = X[:, 0].min() - 0.2, X[:, 0].max() + 0.2
    y_min, y_max = X[:, 1].min() - 0.2, X[:, 1].max() + 0.2
    xx, yy = np.meshgrid(np.arange(x_min, x_max, h), np.arange(y_min, y_max, h))

    Z = np.array([
        model([constant(x1), constant(x2)])[0].value
        for x1, x2 in zip(xx.ravel(), yy.ravel())
    ]).reshape(xx.shape)

    plt.figure(figsize=(8, 8))
    plt.contourf(xx, yy, Z, levels=50, cmap='RdBu', alpha=0.8)
    plt.colorbar(label='Model output')
    plt.contour(xx, yy, Z, levels=[0.5], colors='black', linewidths=2)
    plt.scatter(X[:, 0], X[:, 1], c=y, cmap='RdBu', edgecolors='black', s=30)
    plt.title(title)
    plt.tight_layout()
    plt.savefig('./decision_boundary.png', dpi=150)
    plt.close()
    logger.info("Saved decision boundary plot to decision_boundary.png")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--epochs', type=int, default=200)
    parser.add_argument('--lr', type=float, default=0.03)
    parser.add_argument('--points', type=int, default=100, help='points per class')
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--plot', action='store_true', help='save a matplotlib plot')
    args = parser.parse_args()

    X, y = make_spirals(points_per_class=args.points, seed=args.seed)
    logger.info("Generated spirals: X shape %s, y shape %s", X.shape, y.shape)

    model = MLP(2, [16, 8, 1], rng=np.random.default_rng(args.seed))
    logger.info("Model: %s (%d parameters)", model, len(model.parameters()))

    config = TrainingConfig(epochs=args.epochs, learning_rate=args.lr, seed=args.seed, log_every=10)
    train(model, X, y, config)

    print("\nDecision Boundary Sample:")
    print(decision_boundary(model))

    per_class = class_accuracy(model, X, y)
    print("\nFinal Results:")
    print(f"Overall accuracy: {accuracy(model, X, y):.2%}")
    for label, acc in per_class.items():
        print(f"Class {label} accuracy: {acc:.2%}")

    if args.plot:
        plot_decision_boundary(model, X, y, f"Decision Boundary (Accuracy: {accuracy(model, X, y):.1%})")


if __name__ == "__main__":
    main()
