"""
Operators and Backward Rules
============================

Every differentiable operation in scalargrad is one of a fixed set of tagged
operations (:class:`Op`). An operator call computes the forward value and
attaches a :class:`BackwardRule` to the output node: the operation tag, the
parent nodes, and the numbers the local derivative needs, captured at forward
time.

A single evaluator, :func:`local_partials`, turns a rule into the partial
derivatives d(out)/d(parent). :func:`apply_rule` scales them by the output
gradient and accumulates them into the parents. Because the rule holds
snapshots rather than live references to operand values, a parameter mutated
after the forward pass cannot change the gradient of that pass.

Arithmetic domain errors never raise. Division by zero, the logarithm of a
non-positive number and powers without a real result produce a NaN node whose
rule is severed: it contributes nothing to its parents. Any node that saves a
NaN operand is severed the same way, so a poisoned value never turns into a
NaN gradient on another branch.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple, Union

from .config import Config
from .engine import Numeric, Value

logger = logging.getLogger(__name__)

Operand = Union[Value, Numeric]


class Op(enum.Enum):
    """Tag of the operation that produced a node."""

    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = '**'
    EXP = 'exp'
    LOG = 'log'
    TANH = 'tanh'
    RELU = 'relu'


@dataclass(frozen=True)
class BackwardRule:
    """
    Local derivative rule of one graph node.

    Attributes:
        op: The operation that produced the node.
        parents: Operand nodes, in operand order (duplicates allowed).
        saved: Operand values (or the output value, for exp and tanh)
            recorded during the forward pass.
        constant: The exponent of a power node.
        severed: True when the forward pass hit a domain error; the rule
            then propagates nothing.
    """

    op: Op
    parents: Tuple[Any, ...]
    saved: Tuple[float, ...] = ()
    constant: Optional[float] = None
    severed: bool = False


def _real_pow(base: float, exponent: float) -> float:
    """base ** exponent over the reals, NaN where that is undefined."""
    try:
        return math.pow(base, exponent)
    except ValueError:
        return math.nan


def local_partials(rule: BackwardRule) -> Tuple[float, ...]:
    """
    Evaluate d(out)/d(parent) for every parent of a rule.

    Args:
        rule: The rule to evaluate.

    Returns:
        One partial derivative per entry of ``rule.parents``. A severed rule
        yields zeros. A power with exponent 0 has partial 0 everywhere, and
        a power of zero with exponent in (0, 1) has an infinite partial.
    """
    op = rule.op
    if rule.severed:
        return (0.0,) * len(rule.parents)

    if op is Op.ADD:
        return (1.0, 1.0)
    if op is Op.SUB:
        return (1.0, -1.0)
    if op is Op.MUL:
        a, b = rule.saved
        return (b, a)
    if op is Op.DIV:
        a, b = rule.saved
        return (1.0 / b, -a / (b * b))
    if op is Op.POW:
        (a,) = rule.saved
        p = rule.constant
        if p == 0:
            return (0.0,)
        if a == 0 and p < 1:
            # infinite slope at the origin, e.g. sqrt
            return (math.inf,)
        return (p * _real_pow(a, p - 1),)
    if op is Op.EXP:
        (out,) = rule.saved
        return (out,)
    if op is Op.LOG:
        (a,) = rule.saved
        return (1.0 / a,)
    if op is Op.TANH:
        (out,) = rule.saved
        return (1.0 - out * out,)
    if op is Op.RELU:
        (a,) = rule.saved
        return (1.0 if a > 0 else 0.0,)
    raise ValueError(f"Unknown operation: {op!r}")


def apply_rule(rule: BackwardRule, out_grad: float) -> None:
    """Accumulate ``out_grad * partial`` into each parent's gradient."""
    if rule.severed or out_grad == 0:
        return
    for parent, partial in zip(rule.parents, local_partials(rule)):
        parent.grad += out_grad * partial


# =============================================================================
# Node construction
# =============================================================================

def _as_value(x: Operand) -> Value:
    return x if isinstance(x, Value) else Value(x)


def _make(data: float, rule: BackwardRule) -> Value:
    out = Value(data)
    if Config.enable_backprop:
        if not rule.severed and any(math.isnan(v) for v in rule.saved):
            rule = replace(rule, severed=True)
        out._rule = rule
    return out


def _poisoned(rule: BackwardRule, reason: str) -> Value:
    logger.debug("%s: severing gradient flow (%s)", rule.op.value, reason)
    return _make(math.nan, replace(rule, severed=True))


# =============================================================================
# Operators
# =============================================================================

def add(a: Operand, b: Operand) -> Value:
    """out = a + b"""
    a, b = _as_value(a), _as_value(b)
    return _make(a.data + b.data, BackwardRule(Op.ADD, (a, b)))


def sub(a: Operand, b: Operand) -> Value:
    """out = a - b"""
    a, b = _as_value(a), _as_value(b)
    return _make(a.data - b.data, BackwardRule(Op.SUB, (a, b)))


def mul(a: Operand, b: Operand) -> Value:
    """out = a * b"""
    a, b = _as_value(a), _as_value(b)
    rule = BackwardRule(Op.MUL, (a, b), (a.data, b.data))
    return _make(a.data * b.data, rule)


def div(a: Operand, b: Operand) -> Value:
    """
    out = a / b

    Division by zero yields a NaN node with a severed rule.
    """
    a, b = _as_value(a), _as_value(b)
    rule = BackwardRule(Op.DIV, (a, b), (a.data, b.data))
    if b.data == 0:
        return _poisoned(rule, "division by zero")
    return _make(a.data / b.data, rule)


def pow(a: Operand, p: Numeric) -> Value:
    """
    out = a ** p for a constant exponent p.

    Zero raised to a negative power and a negative base raised to a
    fractional power have no real result; both yield a severed NaN node.

    Raises:
        TypeError: If p is a Value.
    """
    if isinstance(p, Value):
        raise TypeError(
            "Power with Value exponent not supported. "
            "Use exp(p * log(a)) instead."
        )
    a = _as_value(a)
    p = float(p)
    rule = BackwardRule(Op.POW, (a,), (a.data,), constant=p)
    data = _real_pow(a.data, p)
    if math.isnan(data) and not math.isnan(a.data):
        return _poisoned(rule, "no real result")
    return _make(data, rule)


def exp(a: Operand) -> Value:
    """out = e ** a"""
    a = _as_value(a)
    e = math.exp(a.data)
    return _make(e, BackwardRule(Op.EXP, (a,), (e,)))


def log(a: Operand) -> Value:
    """
    out = ln(a)

    A non-positive argument yields a NaN node with a severed rule.
    """
    a = _as_value(a)
    rule = BackwardRule(Op.LOG, (a,), (a.data,))
    if a.data <= 0:
        return _poisoned(rule, "logarithm of non-positive value")
    return _make(math.log(a.data), rule)


def tanh(a: Operand) -> Value:
    """out = (e^(2a) - 1) / (e^(2a) + 1)"""
    a = _as_value(a)
    t = math.tanh(a.data)
    return _make(t, BackwardRule(Op.TANH, (a,), (t,)))


def relu(a: Operand) -> Value:
    """out = max(0, a); NaN passes through unchanged."""
    a = _as_value(a)
    x = a.data
    data = x if x > 0 or math.isnan(x) else 0.0
    return _make(data, BackwardRule(Op.RELU, (a,), (x,)))
