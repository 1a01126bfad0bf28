"""scalargrad: A scalar-value autograd engine with a small neural network library."""

from .config import Config, no_grad, using_config
from .engine import Value, topological_sort, draw_graph
from .ops import Op, BackwardRule, local_partials, apply_rule
from .nn import Module, Neuron, Layer, MLP
from .losses import mse, mse_loss, softmax, cross_entropy_loss, softmax_cross_entropy
from .optim import SGD

__all__ = [
    "Config",
    "no_grad",
    "using_config",
    "Value",
    "topological_sort",
    "draw_graph",
    "Op",
    "BackwardRule",
    "local_partials",
    "apply_rule",
    "Module",
    "Neuron",
    "Layer",
    "MLP",
    "mse",
    "mse_loss",
    "softmax",
    "cross_entropy_loss",
    "softmax_cross_entropy",
    "SGD",
]
