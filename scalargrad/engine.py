"""
ScalarGrad Engine: Reverse-Mode Differentiation over Scalar Nodes
=================================================================

Every arithmetic operation on a Node allocates a new Node that remembers
which operation produced it and which operand Nodes it was computed from.
The result is a directed acyclic graph whose leaves are constants and
trainable parameters and whose root is usually a loss.

Four operations exist: Leaf, Add, Multiply and HyperbolicTangent. Each one
carries a forward formula (evaluated eagerly at construction) and a local
derivative rule (applied during the backward pass). Subtraction and squaring
are compositions of these and do not get their own tags.

Operands are shared by reference. A Node may be the child of any number of
parents, including the same parent twice (``square(a)`` multiplies ``a`` by
itself), so gradients are always accumulated, never overwritten.
"""

from __future__ import annotations
import enum
import math
import numpy as np
from typing import Dict, List, Set, Tuple, Union

from .exceptions import NonFiniteError


# Type alias for numeric inputs
Numeric = Union[int, float, np.floating, np.integer]


class Op(enum.Enum):
    """Operation tag for a Node, with the child count each one requires."""

    LEAF = ('leaf', 0)
    ADD = ('+', 2)
    MULTIPLY = ('*', 2)
    TANH = ('tanh', 1)

    def __init__(self, symbol: str, arity: int) -> None:
        self.symbol = symbol
        self.arity = arity


class Node:
    """
    A scalar in the computation graph.

    Attributes:
        value: Forward-computed scalar.
        grad: Accumulated gradient of the seeded root with respect to this node.
        children: Operand nodes, in construction order (first, second).
        op: The operation that produced this node.
        label: Optional name for debugging and graph rendering.

    Example:
        >>> a = constant(2.0)
        >>> b = constant(3.0)
        >>> r = multiply(a, b)
        >>> r.set_grad(1.0)
        >>> backward_pass(r)
        >>> a.grad, b.grad
        (3.0, 2.0)
    """

    __slots__ = ('value', 'grad', 'children', 'op', 'label')

    def __init__(
        self,
        value: float,
        children: Tuple[Node, ...] = (),
        op: Op = Op.LEAF,
        label: str = ''
    ) -> None:
        if len(children) != op.arity:
            raise ValueError(
                f"{op.name} expects {op.arity} children, got {len(children)}"
            )
        self.value: float = value
        self.grad: float = 0.0
        self.children: Tuple[Node, ...] = children
        self.op: Op = op
        self.label: str = label

    def __repr__(self) -> str:
        if self.label:
            return f"Node({self.label}={self.value:.4f}, grad={self.grad:.4f})"
        return f"Node(value={self.value:.4f}, grad={self.grad:.4f}, op={self.op.name})"

    @property
    def is_leaf(self) -> bool:
        return self.op is Op.LEAF

    def set_grad(self, grad: float) -> None:
        """
        Overwrite this node's gradient.

        Used once per graph to seed the root (normally with 1.0) before
        calling backward_pass, and to reset parameters between examples.

        Raises:
            NonFiniteError: If grad is NaN or infinite.
        """
        grad = float(grad)
        if not math.isfinite(grad):
            raise NonFiniteError(f"Cannot seed a non-finite gradient: {grad}")
        self.grad = grad

    # =========================================================================
    # Operators
    # =========================================================================

    def __add__(self, other: Union[Node, Numeric]) -> Node:
        return add(self, _lift(other))

    def __radd__(self, other: Numeric) -> Node:
        return add(_lift(other), self)

    def __mul__(self, other: Union[Node, Numeric]) -> Node:
        return multiply(self, _lift(other))

    def __rmul__(self, other: Numeric) -> Node:
        return multiply(_lift(other), self)

    def __neg__(self) -> Node:
        return multiply(self, constant(-1.0))

    def __sub__(self, other: Union[Node, Numeric]) -> Node:
        return subtract(self, _lift(other))

    def __rsub__(self, other: Numeric) -> Node:
        return subtract(_lift(other), self)

    def tanh(self) -> Node:
        return hyperbolic_tangent(self)

    def square(self) -> Node:
        return square(self)

    # =========================================================================
    # Backpropagation
    # =========================================================================

    def _apply_local_rule(self) -> None:
        """Push this node's grad into its children's grads."""
        if self.op is Op.ADD:
            # d(a+b)/da = d(a+b)/db = 1
            lhs, rhs = self.children
            lhs.grad += self.grad
            rhs.grad += self.grad
        elif self.op is Op.MULTIPLY:
            # Product rule. For square(a) lhs and rhs are the same node and
            # both contributions land on it, giving 2a.
            lhs, rhs = self.children
            lhs.grad += rhs.value * self.grad
            rhs.grad += lhs.value * self.grad
        elif self.op is Op.TANH:
            # d(tanh x)/dx = 1 - tanh(x)^2, reusing the forward value
            (operand,) = self.children
            operand.grad += (1.0 - self.value ** 2) * self.grad

    def backward(self) -> None:
        """
        Seed this node with gradient 1.0 and backpropagate.

        Shorthand for ``node.set_grad(1.0); backward_pass(node)``.
        Calling it twice on the same graph accumulates into every node
        below the root.
        """
        self.set_grad(1.0)
        backward_pass(self)


# =============================================================================
# Graph Construction
# =============================================================================

def _lift(x: Union[Node, Numeric]) -> Node:
    return x if isinstance(x, Node) else constant(x)


def constant(value: Numeric, label: str = '') -> Node:
    """
    Create a new Leaf node.

    Args:
        value: The scalar to store.
        label: Optional name for debugging.

    Raises:
        TypeError: If value is not numeric.
        NonFiniteError: If value is NaN or infinite.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
        raise TypeError(
            f"Node value must be numeric, got {type(value).__name__}"
        )
    value = float(value)
    if not math.isfinite(value):
        raise NonFiniteError(f"Node value must be finite, got {value}")
    return Node(value, label=label)


def add(a: Node, b: Node) -> Node:
    """Sum node: value = a.value + b.value, children = (a, b)."""
    return Node(a.value + b.value, (a, b), Op.ADD)


def multiply(a: Node, b: Node) -> Node:
    """Product node: value = a.value * b.value, children = (a, b)."""
    return Node(a.value * b.value, (a, b), Op.MULTIPLY)


def subtract(a: Node, b: Node) -> Node:
    """a - b, built as add(a, multiply(b, constant(-1)))."""
    return add(a, multiply(b, constant(-1.0)))


def square(a: Node) -> Node:
    """a * a with both children referencing the same node."""
    return multiply(a, a)


def hyperbolic_tangent(a: Node) -> Node:
    """Tanh node: value = tanh(a.value), children = (a,)."""
    return Node(math.tanh(a.value), (a,), Op.TANH)


# =============================================================================
# Backward Traversal
# =============================================================================

TOPOLOGICAL = 'topological'
RECURSIVE = 'recursive'


def topological_sort(root: Node) -> List[Node]:
    """
    Order the graph under `root` so that every node comes after its children.

    Each distinct node appears exactly once, however many parents refer
    to it. The DFS is iterative so long chains do not hit Python's
    recursion limit.

    Args:
        root: The root node of the computation graph.

    Returns:
        List of Nodes, leaves first, root last.

    Example:
        >>> a = constant(1.0)
        >>> b = constant(2.0)
        >>> c = add(a, b)
        >>> d = multiply(c, a)
        >>> [n is d for n in topological_sort(d)][-1]
        True
    """
    topo: List[Node] = []
    visited: Set[int] = set()
    stack: List[Tuple[Node, bool]] = [(root, False)]

    while stack:
        node, expanded = stack.pop()
        if expanded:
            topo.append(node)
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))
        stack.append((node, True))
        for child in reversed(node.children):
            if id(child) not in visited:
                stack.append((child, False))

    return topo


def _recursive_pass(node: Node) -> None:
    node._apply_local_rule()
    for child in node.children:
        _recursive_pass(child)


def backward_pass(root: Node, strategy: str = TOPOLOGICAL) -> None:
    """
    Distribute root.grad to every node below it.

    The root must already be seeded (``root.set_grad(1.0)``); this function
    never touches root.grad itself.

    Strategies:
        'topological' (default): each node's local rule runs exactly once,
            in reverse topological order, after every parent has added its
            contribution. Correct for any DAG, including shared subexpressions.
        'recursive': apply the local rule, then recurse into every child
            once per incoming edge. Matches the textbook recursion and is
            only correct for tree-shaped graphs; a shared internal node
            re-propagates its (already accumulated) grad on every visit, so
            its descendants are over-counted.

    Args:
        root: Seeded root of the graph.
        strategy: 'topological' or 'recursive'.

    Raises:
        ValueError: If strategy is unknown.

    Example:
        >>> x = constant(3.0)
        >>> y = square(add(x, constant(1.0)))
        >>> y.set_grad(1.0)
        >>> backward_pass(y)
        >>> x.grad  # d/dx (x+1)^2 = 2(x+1)
        8.0
    """
    if strategy == TOPOLOGICAL:
        for node in reversed(topological_sort(root)):
            node._apply_local_rule()
    elif strategy == RECURSIVE:
        _recursive_pass(root)
    else:
        raise ValueError(
            f"Unknown backward strategy {strategy!r}; "
            f"expected {TOPOLOGICAL!r} or {RECURSIVE!r}"
        )


# =============================================================================
# Graph Rendering
# =============================================================================

def draw_graph(root: Node, format: str = 'text') -> str:
    """
    Render the graph under `root` for debugging.

    Args:
        root: Root node of the graph to visualize.
        format: 'text' for one line per node, 'dot' for Graphviz DOT.

    Returns:
        String representation of the graph.
    """
    nodes = topological_sort(root)
    node_ids: Dict[int, int] = {id(n): i for i, n in enumerate(nodes)}

    def name(n: Node) -> str:
        return n.label or f'v{node_ids[id(n)]}'

    if format == 'dot':
        lines = ['digraph G {', '  rankdir=LR;']
        for node in nodes:
            nid = node_ids[id(node)]
            lines.append(
                f'  n{nid} [label="{name(node)}\\n'
                f'value={node.value:.4f}\\n'
                f'grad={node.grad:.4f}", shape=box];'
            )
            if not node.is_leaf:
                op_id = f'op{nid}'
                lines.append(f'  {op_id} [label="{node.op.symbol}", shape=circle];')
                lines.append(f'  {op_id} -> n{nid};')
                for child in node.children:
                    lines.append(f'  n{node_ids[id(child)]} -> {op_id};')
        lines.append('}')
        return '\n'.join(lines)

    if format != 'text':
        raise ValueError(f"Unknown graph format {format!r}")

    lines = ['Computation Graph:', '=' * 50]
    for node in reversed(nodes):
        op_str = ''
        if not node.is_leaf:
            operands = ', '.join(name(c) for c in node.children)
            op_str = f' = {node.op.symbol}({operands})'
        lines.append(
            f'{name(node):>10}: value={node.value:>10.4f}, '
            f'grad={node.grad:>10.4f}{op_str}'
        )
    return '\n'.join(lines)
