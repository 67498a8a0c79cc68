"""Synthetic datasets for exercising the network."""

from __future__ import annotations
import numpy as np
from typing import Optional, Tuple


def make_spirals(
    points_per_class: int = 100,
    noise: float = 0.1,
    turns: float = 1.0,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate two interleaved spiral arms for binary classification.

    Point i of each arm sits at radius i/n and angle turns * 2*pi * i/n.
    The second arm is the first rotated by pi. Not linearly separable.

    Args:
        points_per_class: Number of points on each arm.
        noise: Half-width of the uniform noise added to each coordinate.
        turns: Number of full revolutions each arm makes.
        seed: Random seed for reproducibility.

    Returns:
        X: Features array of shape (2 * points_per_class, 2)
        y: Labels array of shape (2 * points_per_class,) with values 0 or 1,
           alternating 0, 1, 0, 1, ...
    """
    if points_per_class < 1:
        raise ValueError(f"points_per_class must be positive, got {points_per_class}")

    rng = np.random.default_rng(seed)
    n = points_per_class

    i = np.arange(n)
    r = i / n
    t = turns * 2 * np.pi * i / n

    arm0 = np.column_stack([r * np.cos(t), r * np.sin(t)])
    arm1 = np.column_stack([r * np.cos(t + np.pi), r * np.sin(t + np.pi)])

    # Interleave: row 2i is arm 0, row 2i+1 is arm 1
    X = np.empty((2 * n, 2))
    X[0::2] = arm0
    X[1::2] = arm1
    X += rng.uniform(-noise, noise, size=X.shape)

    y = np.tile([0, 1], n)

    return X, y
