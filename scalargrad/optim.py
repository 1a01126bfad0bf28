"""
Optimizers
==========

Parameter update rules applied after backward().
"""

from __future__ import annotations

from typing import List

from .engine import Value


class SGD:
    """
    Stochastic Gradient Descent optimizer.

    Updates parameters: p = p - lr * p.grad

    Attributes:
        params: List of parameters to optimize.
        lr: Current learning rate.
        lr_decay: Factor applied to lr by each decay() call.
    """

    def __init__(
        self,
        params: List[Value],
        lr: float = 0.01,
        lr_decay: float = 1.0
    ) -> None:
        """
        Initialize SGD optimizer.

        Args:
            params: Parameters to optimize.
            lr: Learning rate (step size).
            lr_decay: Multiplicative decay, usually applied once per epoch.
        """
        self.params = params
        self.lr = lr
        self.lr_decay = lr_decay

    def step(self) -> None:
        """
        Perform one optimization step.

        Call this after backward() and before the next forward pass.
        """
        for p in self.params:
            p.data -= self.lr * p.grad

    def zero_grad(self) -> None:
        """Reset all gradients to zero."""
        for p in self.params:
            p.grad = 0.0

    def decay(self) -> float:
        """Scale the learning rate by lr_decay and return the new value."""
        self.lr *= self.lr_decay
        return self.lr
