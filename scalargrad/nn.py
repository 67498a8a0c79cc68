"""
Neural Network Module
=====================

Feed-forward building blocks on top of the scalar engine.

This module provides:
- Module: Base class with parameters(), zero_grad() and update_params()
- Neuron: tanh(bias + sum(w_i * x_i))
- Layer: Neurons sharing one input vector
- MLP: Layers threaded one into the next

Weights and biases are the only Nodes that live across examples. Everything
a forward pass builds on top of them is throwaway and becomes garbage once
the caller drops the loss.
"""

from __future__ import annotations
import math
import numpy as np
from typing import Iterator, List, Optional, Sequence, Union

from .engine import Node, Numeric, add, constant, hyperbolic_tangent, multiply, square, subtract
from .exceptions import NonFiniteError, ShapeMismatchError


# Per-parameter gradient magnitude cap applied in update_params
GRAD_CLIP = 1.0

# Half-width of the uniform range weights and biases are drawn from
INIT_SCALE = 0.1


def _as_nodes(x: Sequence[Union[Node, Numeric]]) -> List[Node]:
    return [xi if isinstance(xi, Node) else constant(xi) for xi in x]


class Module:
    """
    Base class for all network components.

    Subclasses override parameters(); gradient reset and the clipped
    gradient-descent update are shared.
    """

    def parameters(self) -> List[Node]:
        """
        Return all persistent trainable leaf nodes in this module.

        Returns:
            List of Nodes, in a stable order.
        """
        return []

    def children(self) -> Iterator[Module]:
        return iter(())

    def zero_grad(self) -> None:
        """
        Reset the gradient of every persistent parameter to zero.

        Only weights and biases are touched. The graph built by the last
        forward pass is left alone; it is discarded with the loss.
        """
        for child in self.children():
            child.zero_grad()

    def update_params(self, rate: float) -> None:
        """
        Take one clipped gradient-descent step on every parameter.

        Args:
            rate: Learning rate.
        """
        for child in self.children():
            child.update_params(rate)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Neuron(Module):
    """
    A single tanh neuron.

    Computes: tanh(b + w_0*x_0 + ... + w_{n-1}*x_{n-1})

    The sum is built left to right starting from the bias, one add node
    per input, so the graph for a neuron is a chain.

    Attributes:
        w: Weight leaf nodes, one per input.
        b: Bias leaf node.

    Example:
        >>> n = Neuron(2, rng=np.random.default_rng(0))
        >>> out = n([constant(1.0), constant(-1.0)])
        >>> -1.0 < out.value < 1.0
        True
    """

    def __init__(
        self,
        nin: int,
        rng: Optional[np.random.Generator] = None,
        init_scale: float = INIT_SCALE
    ) -> None:
        """
        Initialize a neuron.

        Args:
            nin: Number of inputs to this neuron.
            rng: Generator used to draw initial weights and bias.
            init_scale: Parameters start uniform in [-init_scale, init_scale].
                Kept small so tanh does not start out saturated.
        """
        if nin < 1:
            raise ValueError(f"Neuron needs at least one input, got {nin}")
        rng = rng if rng is not None else np.random.default_rng()
        self.w: List[Node] = [
            constant(rng.uniform(-init_scale, init_scale), label=f'w{i}')
            for i in range(nin)
        ]
        self.b: Node = constant(rng.uniform(-init_scale, init_scale), label='b')

    @property
    def nin(self) -> int:
        return len(self.w)

    def __call__(self, x: Sequence[Union[Node, Numeric]]) -> Node:
        """
        Forward pass: build this neuron's subgraph over x.

        Args:
            x: Input nodes (plain numbers are wrapped with constant).

        Returns:
            The tanh output node.

        Raises:
            ShapeMismatchError: If len(x) differs from the number of weights.
        """
        if len(x) != len(self.w):
            raise ShapeMismatchError(len(self.w), len(x))

        act = self.b
        for wi, xi in zip(self.w, _as_nodes(x)):
            act = add(act, multiply(wi, xi))
        return hyperbolic_tangent(act)

    forward = __call__

    def parameters(self) -> List[Node]:
        """Return weights, then bias."""
        return self.w + [self.b]

    def zero_grad(self) -> None:
        for p in self.parameters():
            p.grad = 0.0

    def update_params(self, rate: float) -> None:
        """
        Apply value -= rate * clamp(grad, -GRAD_CLIP, GRAD_CLIP) to each
        weight, then the bias.

        Raises:
            NonFiniteError: If any parameter gradient is NaN or infinite.
                Checked for all parameters before any is modified.
        """
        params = self.parameters()
        for p in params:
            if not math.isfinite(p.grad):
                raise NonFiniteError(f"Non-finite gradient on {p!r}")
        for p in params:
            clipped = min(max(p.grad, -GRAD_CLIP), GRAD_CLIP)
            p.value -= rate * clipped

    def __repr__(self) -> str:
        return f"Neuron({len(self.w)}, tanh)"


class Layer(Module):
    """
    A fully connected layer of neurons.

    Every neuron receives the same input nodes, so each input node ends up
    shared by as many subgraphs as there are neurons.

    Attributes:
        neurons: List of Neuron objects

    Example:
        >>> layer = Layer(3, 4)
        >>> out = layer([constant(1.0), constant(2.0), constant(3.0)])
        >>> len(out)
        4
    """

    def __init__(
        self,
        nin: int,
        nout: int,
        rng: Optional[np.random.Generator] = None,
        init_scale: float = INIT_SCALE
    ) -> None:
        """
        Initialize a layer.

        Args:
            nin: Number of inputs per neuron.
            nout: Number of neurons (outputs).
            rng: Generator shared by all neurons, drawn in neuron order.
            init_scale: See Neuron.
        """
        if nout < 1:
            raise ValueError(f"Layer needs at least one neuron, got {nout}")
        rng = rng if rng is not None else np.random.default_rng()
        self.neurons: List[Neuron] = [
            Neuron(nin, rng=rng, init_scale=init_scale)
            for _ in range(nout)
        ]

    @property
    def nin(self) -> int:
        return self.neurons[0].nin

    @property
    def nout(self) -> int:
        return len(self.neurons)

    def __call__(self, x: Sequence[Union[Node, Numeric]]) -> List[Node]:
        """
        Forward pass: one output per neuron, in neuron order.

        Raises:
            ShapeMismatchError: If len(x) differs from the fan-in.
        """
        if len(x) != self.nin:
            raise ShapeMismatchError(self.nin, len(x))
        x = _as_nodes(x)
        return [n(x) for n in self.neurons]

    forward = __call__

    def children(self) -> Iterator[Module]:
        return iter(self.neurons)

    def parameters(self) -> List[Node]:
        """Return all parameters from all neurons."""
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self) -> str:
        return f"Layer({self.nin} -> {self.nout})"


class MLP(Module):
    """
    Multi-Layer Perceptron: a stack of tanh layers.

    Architecture:
        Input -> Layer_0 -> ... -> Layer_{k-1}

    Every layer, the last one included, applies tanh, so outputs lie in
    (-1, 1).

    Attributes:
        layers: List of Layer objects

    Example:
        >>> model = MLP(2, [16, 8, 1], rng=np.random.default_rng(42))
        >>> out = model([constant(0.5), constant(-0.5)])
        >>> len(out)
        1
    """

    def __init__(
        self,
        nin: int,
        nouts: Sequence[int],
        rng: Optional[np.random.Generator] = None,
        init_scale: float = INIT_SCALE
    ) -> None:
        """
        Initialize an MLP.

        Args:
            nin: Number of input features.
            nouts: Neuron count per layer. Last element is the output width.
            rng: Generator for parameter initialization. Pass a seeded one
                for reproducible runs.
            init_scale: See Neuron.

        Example:
            MLP(2, [16, 8, 1]) creates:
            - Layer 1: 2 -> 16
            - Layer 2: 16 -> 8
            - Layer 3: 8 -> 1
        """
        if not nouts:
            raise ValueError("MLP needs at least one layer")
        rng = rng if rng is not None else np.random.default_rng()
        sizes = [nin] + list(nouts)
        self.layers: List[Layer] = [
            Layer(sizes[i], sizes[i + 1], rng=rng, init_scale=init_scale)
            for i in range(len(nouts))
        ]

    @property
    def nin(self) -> int:
        return self.layers[0].nin

    @property
    def nout(self) -> int:
        return self.layers[-1].nout

    def __call__(self, x: Sequence[Union[Node, Numeric]]) -> List[Node]:
        """
        Forward pass through all layers.

        Args:
            x: Input nodes or numbers.

        Returns:
            The last layer's output nodes (always a list, even for width 1).

        Raises:
            ShapeMismatchError: If len(x) differs from the input size.
        """
        for layer in self.layers:
            x = layer(x)
        return x

    forward = __call__

    def children(self) -> Iterator[Module]:
        return iter(self.layers)

    def parameters(self) -> List[Node]:
        """Return all parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self) -> str:
        layer_strs = [str(layer) for layer in self.layers]
        return f"MLP([{', '.join(layer_strs)}])"


# =============================================================================
# Loss Functions
# =============================================================================

def squared_error(prediction: Node, target: Union[Node, Numeric]) -> Node:
    """
    Per-example squared error: (prediction - target)^2

    Built as square(subtract(prediction, target)), so the difference node
    is shared by both operands of the final multiply.

    Args:
        prediction: Model output node.
        target: Ground truth (node or number).

    Returns:
        Loss node.
    """
    target = target if isinstance(target, Node) else constant(target)
    return square(subtract(prediction, target))
