"""ScalarGrad: reverse-mode autodiff over scalar nodes, and a small tanh MLP."""

from .engine import (
    Node,
    Op,
    constant,
    add,
    multiply,
    subtract,
    square,
    hyperbolic_tangent,
    backward_pass,
    topological_sort,
    draw_graph,
)
from .exceptions import ScalarGradError, ShapeMismatchError, NonFiniteError
from .nn import Module, Neuron, Layer, MLP, squared_error
from .data import make_spirals
from .train import TrainingConfig, train_step, train, predict, classify, accuracy, class_accuracy, decision_boundary

__version__ = "0.1.0"

__all__ = [
    "Node",
    "Op",
    "constant",
    "add",
    "multiply",
    "subtract",
    "square",
    "hyperbolic_tangent",
    "backward_pass",
    "topological_sort",
    "draw_graph",
    "ScalarGradError",
    "ShapeMismatchError",
    "NonFiniteError",
    "Module",
    "Neuron",
    "Layer",
    "MLP",
    "squared_error",
    "make_spirals",
    "TrainingConfig",
    "train_step",
    "train",
    "predict",
    "classify",
    "accuracy",
    "class_accuracy",
    "decision_boundary",
]
