"""
Training Driver
===============

Per-example stochastic gradient descent for an MLP with a single output.

One step of training:
1. Wrap the features in fresh constant nodes
2. Forward pass, then squared error against the target
3. Seed the loss with 1.0 and backpropagate
4. Clipped update of every parameter, then reset their gradients

The graph built in steps 1-3 is dropped when the step returns; only the
network's weights and biases carry over to the next example.
"""

from __future__ import annotations
import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .engine import TOPOLOGICAL, backward_pass, constant
from .nn import MLP, squared_error


logger = logging.getLogger(__name__)

# Output above this is classified as 1
THRESHOLD = 0.5


@dataclass
class TrainingConfig:
    """
    Hyperparameters for train().

    Attributes:
        epochs: Maximum number of passes over the dataset.
        learning_rate: Rate at epoch 0.
        decay: Rate at epoch e is learning_rate / (1 + e * decay).
        seed: Seed for the shuffling generator.
        shuffle: Visit examples in a fresh random order each epoch.
        early_stop_loss: Stop once the mean epoch loss drops below this.
            None disables early stopping.
        log_every: Emit an INFO summary every this many epochs.
        strategy: Backward traversal strategy passed to backward_pass.
    """

    epochs: int = 200
    learning_rate: float = 0.03
    decay: float = 0.001
    seed: Optional[int] = 0
    shuffle: bool = True
    early_stop_loss: Optional[float] = 0.01
    log_every: int = 1
    strategy: str = TOPOLOGICAL

    def __post_init__(self) -> None:
        if self.epochs < 0:
            raise ValueError(f"epochs must be non-negative, got {self.epochs}")
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.decay < 0:
            raise ValueError(f"decay must be non-negative, got {self.decay}")
        if self.log_every < 1:
            raise ValueError(f"log_every must be at least 1, got {self.log_every}")

    def rate_at(self, epoch: int) -> float:
        """Learning rate for the given epoch."""
        return self.learning_rate / (1.0 + epoch * self.decay)


def train_step(
    model: MLP,
    features: Sequence[float],
    target: float,
    rate: float,
    strategy: str = TOPOLOGICAL
) -> float:
    """
    Run one forward/backward/update cycle on a single example.

    Args:
        model: Network with a single output.
        features: Input feature values.
        target: Desired output.
        rate: Learning rate for this update.
        strategy: Backward traversal strategy.

    Returns:
        The example's loss before the update.
    """
    x = [constant(v) for v in features]
    output = model(x)[0]
    loss = squared_error(output, target)

    loss.set_grad(1.0)
    backward_pass(loss, strategy=strategy)
    model.update_params(rate)
    model.zero_grad()

    return loss.value


def train(
    model: MLP,
    X: np.ndarray,
    y: np.ndarray,
    config: Optional[TrainingConfig] = None
) -> List[float]:
    """
    Train the model one example at a time.

    Args:
        model: MLP to train (output width 1).
        X: Training features, shape (n, model.nin).
        y: Training targets, shape (n,).
        config: Hyperparameters; defaults to TrainingConfig().

    Returns:
        Mean loss of each epoch that ran.
    """
    config = config or TrainingConfig()
    if len(X) != len(y):
        raise ValueError(f"X has {len(X)} rows but y has {len(y)}")
    if len(X) == 0:
        raise ValueError("Cannot train on an empty dataset")

    rng = np.random.default_rng(config.seed)
    order = np.arange(len(X))
    losses: List[float] = []

    for epoch in range(config.epochs):
        rate = config.rate_at(epoch)
        if config.shuffle:
            rng.shuffle(order)

        total = 0.0
        for idx in order:
            total += train_step(model, X[idx], float(y[idx]), rate, config.strategy)

        mean_loss = total / len(X)
        losses.append(mean_loss)

        if epoch % config.log_every == 0:
            logger.info("Epoch %d: average loss = %.4f (lr = %.4f)", epoch, mean_loss, rate)
        else:
            logger.debug("Epoch %d: average loss = %.4f (lr = %.4f)", epoch, mean_loss, rate)

        if config.early_stop_loss is not None and mean_loss < config.early_stop_loss:
            logger.info("Reached target loss at epoch %d", epoch)
            break

    return losses


# =============================================================================
# Evaluation
# =============================================================================

def predict(model: MLP, features: Sequence[float]) -> float:
    """Raw network output for one example."""
    return model([constant(v) for v in features])[0].value


def classify(model: MLP, features: Sequence[float]) -> int:
    """Class 1 if the output exceeds THRESHOLD, else 0."""
    return int(predict(model, features) > THRESHOLD)


def accuracy(model: MLP, X: np.ndarray, y: np.ndarray) -> float:
    """
    Fraction of examples classified correctly.

    Args:
        model: Trained MLP.
        X: Feature matrix.
        y: Labels (0 or 1).

    Returns:
        Accuracy as a float between 0 and 1.
    """
    correct = sum(classify(model, xi) == int(yi) for xi, yi in zip(X, y))
    return correct / len(y)


def class_accuracy(model: MLP, X: np.ndarray, y: np.ndarray) -> Dict[int, float]:
    """Accuracy restricted to each label present in y."""
    result = {}
    for label in sorted(set(int(v) for v in y)):
        mask = np.asarray(y) == label
        result[label] = accuracy(model, X[mask], np.asarray(y)[mask])
    return result


def decision_boundary(model: MLP, grid: Sequence[float] = (-1.0, -0.5, 0.0, 0.5, 1.0)) -> str:
    """
    Classify every (x, y) on a square grid and render it as text.

    The top row is the largest y, columns go left to right in x.

    Example:
        >>> print(decision_boundary(model))  # doctest: +SKIP
        0 0 1 1 1
        0 1 1 1 0
        ...
    """
    lines = []
    for yv in reversed(grid):
        lines.append(' '.join(str(classify(model, (xv, yv))) for xv in grid))
    return '\n'.join(lines)
