"""
Loss Functions
==============

Losses composed only from the primitive operators, so their gradients come
from the ordinary backward pass with no fused rules.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Union

from .engine import Value
from .ops import div, exp, log, mul, sub

logger = logging.getLogger(__name__)

Target = Union[Value, float]


def mse(prediction: Value, target: Target) -> Value:
    """
    Squared error of a single prediction: (y - y_hat)^2.

    Built as a subtraction followed by the difference times itself.
    """
    diff = sub(target, prediction)
    return mul(diff, diff)


def mse_loss(predictions: Sequence[Value], targets: Sequence[Target]) -> Value:
    """
    Mean Squared Error over paired predictions and targets.

    MSE = (1/n) * sum((target_i - pred_i)^2)

    Raises:
        ValueError: If the sequences are empty or differ in length.
    """
    if len(predictions) != len(targets) or not predictions:
        raise ValueError(
            f"Expected equal, non-zero lengths, got {len(predictions)} "
            f"predictions and {len(targets)} targets"
        )
    total = sum((mse(p, t) for p, t in zip(predictions, targets)), Value(0.0))
    return div(total, len(predictions))


def softmax(logits: Sequence[Value]) -> List[Value]:
    """
    Softmax over a vector of logit nodes.

    The largest logit is subtracted first as a plain constant. The shift
    cancels in the ratio, so it needs no gradient, and it keeps every
    exponent <= 0.

    Args:
        logits: Raw scores.

    Returns:
        One probability node per logit, each connected to every logit.

    Raises:
        ValueError: If logits is empty.
    """
    if not logits:
        raise ValueError("softmax of an empty vector")
    shift = max(v.data for v in logits)
    exps = [exp(sub(v, shift)) for v in logits]
    total = exps[0]
    for e in exps[1:]:
        total = total + e
    return [div(e, total) for e in exps]


def cross_entropy_loss(probs: Sequence[Value], target: int) -> Value:
    """
    Negative log-likelihood of the target class: -1 * log(probs[target]).

    The probability is not clamped. A zero probability therefore gives a NaN
    loss with no gradient (see ops.log).

    If ``target`` is not a valid index into ``probs`` (negative indices
    included) this returns ``Value.error_marker()``, a zero-valued leaf with
    ``is_error`` set. Backpropagating it yields no gradient, so the sample is
    effectively skipped; callers should check ``is_error`` so a bad label is
    not mistaken for a perfect prediction.
    """
    if not 0 <= target < len(probs):
        logger.warning(
            "cross-entropy target %r outside [0, %d); returning error marker",
            target, len(probs)
        )
        return Value.error_marker()
    return mul(Value(-1.0), log(probs[target]))


def softmax_cross_entropy(logits: Sequence[Value], target: int) -> Value:
    """cross_entropy_loss(softmax(logits), target)"""
    return cross_entropy_loss(softmax(logits), target)
