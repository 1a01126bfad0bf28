"""
scalargrad: A Scalar-Value Autograd Engine
==========================================

Reverse-mode automatic differentiation over dynamically built scalar graphs.

Every arithmetic operation on a :class:`Value` creates a new node that
remembers its parents and a tagged backward rule (see :mod:`scalargrad.ops`).
Calling :meth:`Value.backward` on the final node orders the graph
topologically and replays those rules from the output back to the leaves,
accumulating d(output)/d(node) into every node's ``grad``.
"""

from __future__ import annotations

import numpy as np
from typing import TYPE_CHECKING, List, Optional, Set, Tuple, Union

if TYPE_CHECKING:
    from .ops import BackwardRule


# Type alias for numeric inputs
Numeric = Union[int, float, np.floating]


class Value:
    """
    A scalar node in a computation graph.

    Every Value knows:
    1. Its data (the number computed in the forward pass)
    2. Its gradient (derivative of the backward root with respect to it)
    3. Its backward rule, which names the operation, the parent nodes and
       the saved operand values (``None`` for leaves)

    Gradients stay at 0.0 until backward() is called, and are only ever
    accumulated, never overwritten, so a node consumed several times receives
    the sum of every consumer's contribution.

    Attributes:
        data: The scalar stored in this node (also available as ``value``).
        grad: The accumulated gradient.
        label: Optional name for debugging and visualization.

    Example:
        >>> a = Value(2.0, label='a')
        >>> b = Value(3.0, label='b')
        >>> c = a * b + a
        >>> c.backward()
        >>> print(a.grad)  # dc/da = b + 1 = 4.0
        4.0
        >>> print(b.grad)  # dc/db = a = 2.0
        2.0
    """

    __slots__ = ('data', 'grad', '_rule', '_error', 'label')

    def __init__(self, data: Numeric, label: str = '') -> None:
        """
        Initialize a leaf node.

        Args:
            data: The scalar value to store.
            label: Optional name for debugging.

        Raises:
            TypeError: If data is not a numeric type.
        """
        if not isinstance(data, (int, float, np.floating, np.integer)):
            raise TypeError(
                f"Value data must be numeric, got {type(data).__name__}"
            )

        self.data: float = float(data)
        self.grad: float = 0.0
        self._rule: Optional[BackwardRule] = None
        self._error: bool = False
        self.label: str = label

    @classmethod
    def error_marker(cls) -> Value:
        """A zero-valued leaf flagged as an error (see cross_entropy_loss)."""
        out = cls(0.0, label='error')
        out._error = True
        return out

    @property
    def value(self) -> float:
        """Alias of ``data``."""
        return self.data

    @value.setter
    def value(self, v: float) -> None:
        self.data = float(v)

    @property
    def is_error(self) -> bool:
        return self._error

    @property
    def _prev(self) -> Tuple[Value, ...]:
        return self._rule.parents if self._rule is not None else ()

    @property
    def _op(self) -> str:
        if self._error:
            return 'error'
        return self._rule.op.value if self._rule is not None else ''

    def __repr__(self) -> str:
        """String representation showing data and gradient."""
        if self.label:
            return f"Value({self.label}={self.data:.4f}, grad={self.grad:.4f})"
        return f"Value(data={self.data:.4f}, grad={self.grad:.4f})"

    # =========================================================================
    # Arithmetic Operations (see scalargrad.ops for the rules)
    # =========================================================================

    def __add__(self, other: Union[Value, Numeric]) -> Value:
        from .ops import add
        return add(self, other)

    def __radd__(self, other: Numeric) -> Value:
        from .ops import add
        return add(other, self)

    def __neg__(self) -> Value:
        """Negation: -self, as a multiplication by the constant -1."""
        return self * -1

    def __sub__(self, other: Union[Value, Numeric]) -> Value:
        from .ops import sub
        return sub(self, other)

    def __rsub__(self, other: Numeric) -> Value:
        from .ops import sub
        return sub(other, self)

    def __mul__(self, other: Union[Value, Numeric]) -> Value:
        from .ops import mul
        return mul(self, other)

    def __rmul__(self, other: Numeric) -> Value:
        from .ops import mul
        return mul(other, self)

    def __truediv__(self, other: Union[Value, Numeric]) -> Value:
        from .ops import div
        return div(self, other)

    def __rtruediv__(self, other: Numeric) -> Value:
        from .ops import div
        return div(other, self)

    def __pow__(self, n: Numeric) -> Value:
        from .ops import pow
        return pow(self, n)

    # =========================================================================
    # Elementary Functions
    # =========================================================================

    def exp(self) -> Value:
        from .ops import exp
        return exp(self)

    def log(self) -> Value:
        from .ops import log
        return log(self)

    def tanh(self) -> Value:
        from .ops import tanh
        return tanh(self)

    def relu(self) -> Value:
        from .ops import relu
        return relu(self)

    # =========================================================================
    # Backpropagation
    # =========================================================================

    def backward(self) -> None:
        """
        Compute gradients for all nodes in the computation graph.

        The algorithm:
        1. Seed this node's gradient with 1.0 (d(self)/d(self) = 1)
        2. Build a topological ordering of every reachable node
        3. Walk that ordering in reverse, applying each node's rule once

        In the reversed order a node comes after every node that consumes
        it, so its gradient is complete before it is pushed to its parents.

        Note: Leaf gradients ACCUMULATE across calls. Zero them first (see
        Module.zero_grad) unless accumulation is intended.

        Example:
            >>> x = Value(2.0)
            >>> y = x ** 2 + 3 * x
            >>> y.backward()
            >>> print(x.grad)  # dy/dx = 2x + 3 = 7.0
            7.0
        """
        from .ops import apply_rule

        topo = topological_sort(self)
        self.grad = 1.0
        for node in reversed(topo):
            if node._rule is not None:
                apply_rule(node._rule, node.grad)

    def zero_grad(self) -> None:
        """Reset gradient to zero."""
        self.grad = 0.0

    def item(self) -> float:
        """Return the scalar value (PyTorch compatibility)."""
        return self.data


def topological_sort(root: Value) -> List[Value]:
    """
    Compute topological ordering of computation graph rooted at `root`.

    Depth-first post-order: a node is appended only after all of its parents
    have been appended, so every node appears after the nodes it depends on
    and the root comes last. Each node appears once even when it is reachable
    along several paths. The walk uses an explicit stack, so graph depth is
    not bounded by the interpreter's recursion limit.

    Args:
        root: The root node of the computation graph.

    Returns:
        List of Values in topological order (root is last).

    Example:
        >>> a = Value(1.0)
        >>> b = Value(2.0)
        >>> c = a + b
        >>> d = c * a
        >>> topological_sort(d) == [a, b, c, d]
        True
    """
    topo: List[Value] = []
    visited: Set[int] = {id(root)}
    # (node, index of the next parent to explore)
    stack: List[Tuple[Value, int]] = [(root, 0)]

    while stack:
        node, i = stack[-1]
        parents = node._prev
        if i < len(parents):
            stack[-1] = (node, i + 1)
            parent = parents[i]
            if id(parent) not in visited:
                visited.add(id(parent))
                stack.append((parent, 0))
        else:
            stack.pop()
            topo.append(node)

    return topo


def draw_graph(root: Value, format: str = 'text') -> str:
    """
    Generate a visualization of the computation graph.

    Args:
        root: Root node of the graph to visualize.
        format: 'text' for a listing, 'dot' for Graphviz DOT format.

    Returns:
        String representation of the graph.
    """
    nodes = topological_sort(root)
    node_ids = {id(n): i for i, n in enumerate(nodes)}

    def name(n: Value) -> str:
        return n.label or f'v{node_ids[id(n)]}'

    if format == 'dot':
        lines = ['digraph G {', '  rankdir=LR;']
        for node in nodes:
            nid = node_ids[id(node)]
            lines.append(
                f'  n{nid} [label="{name(node)}\\n'
                f'data={node.data:.4f}\\n'
                f'grad={node.grad:.4f}", shape=box];'
            )
            if node._prev:
                op_id = f'op{nid}'
                lines.append(f'  {op_id} [label="{node._op}", shape=circle];')
                lines.append(f'  {op_id} -> n{nid};')
                for parent in node._prev:
                    lines.append(f'  n{node_ids[id(parent)]} -> {op_id};')
        lines.append('}')
        return '\n'.join(lines)

    if format != 'text':
        raise ValueError(f"Unknown graph format: {format!r}")

    lines = ['Computation Graph:', '=' * 50]
    for node in reversed(nodes):
        op_str = ''
        if node._prev:
            op_str = f' = {node._op}(' + ', '.join(name(p) for p in node._prev) + ')'
        lines.append(
            f'{name(node):>10}: data={node.data:>10.4f}, '
            f'grad={node.grad:>10.4f}{op_str}'
        )
    return '\n'.join(lines)
