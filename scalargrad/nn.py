"""
Neural Network Module
=====================

Neural network building blocks composed from the scalar operators.

This module provides:
- Module: The capability interface shared by every component
- Neuron: A single neuron with weights, bias, and optional activation
- Layer: A collection of neurons reading the same input (fully connected)
- MLP: Multi-layer perceptron (stack of layers)

The API mirrors PyTorch's nn.Module:
- model.forward_pass(x) (or just model(x)) builds a fresh graph
- model.parameters() returns all trainable leaf nodes
- model.zero_grad() resets all gradients
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Union

import numpy as np

from .engine import Value

Input = Union[Value, float]

ACTIVATIONS = ('relu', 'tanh')


class Module:
    """
    Base class for all neural network modules.

    Subclasses implement forward_pass() and parameters(); zero_grad() and
    __call__ come for free.
    """

    def forward_pass(self, x: Sequence[Input]):
        raise NotImplementedError()

    def __call__(self, x: Sequence[Input]):
        return self.forward_pass(x)

    def parameters(self) -> List[Value]:
        """
        Return all trainable parameters in this module.

        Returns:
            List of leaf Values, in a stable order.
        """
        return []

    def zero_grad(self) -> None:
        """
        Reset gradients of all parameters to zero.

        Call this before each backward pass to prevent gradient accumulation.
        """
        for p in self.parameters():
            p.grad = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Neuron(Module):
    """
    A single artificial neuron.

    Computes: output = activation(sum(w_i * x_i) + b)

    Weights use Xavier/Glorot uniform initialization on [-limit, limit] with
    limit = sqrt(6 / (nin + 1)); the bias starts at 0. Passing a seeded
    numpy Generator makes the initialization reproducible.

    Attributes:
        w: List of weight Values
        b: Bias Value
        nonlin: Whether to apply the activation
        activation: Which activation function to use

    Example:
        >>> n = Neuron(3, rng=np.random.default_rng(0))
        >>> x = [Value(1.0), Value(2.0), Value(3.0)]
        >>> out = n(x)  # Forward pass
    """

    def __init__(
        self,
        nin: int,
        nonlin: bool = True,
        activation: str = 'relu',
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Initialize a neuron.

        Args:
            nin: Number of inputs to this neuron.
            nonlin: Whether to apply the activation.
            activation: Activation function ('relu' or 'tanh').
            rng: Random source for the weights.

        Raises:
            ValueError: If activation is unknown.
        """
        if activation not in ACTIVATIONS:
            raise ValueError(
                f"Unknown activation {activation!r}, expected one of {ACTIVATIONS}"
            )
        if rng is None:
            rng = np.random.default_rng()

        limit = math.sqrt(6.0 / (nin + 1.0))
        self.w: List[Value] = [
            Value(float(wi), label=f'w{i}')
            for i, wi in enumerate(rng.uniform(-limit, limit, size=nin))
        ]
        self.b: Value = Value(0.0, label='b')
        self.nonlin: bool = nonlin
        self.activation: str = activation

    def forward_pass(self, x: Sequence[Input]) -> Value:
        """
        Forward pass: compute neuron output.

        Args:
            x: List of inputs (Values or floats).

        Returns:
            Single Value representing neuron output.

        Raises:
            ValueError: If input length doesn't match weight count.
        """
        if len(x) != len(self.w):
            raise ValueError(
                f"Expected {len(self.w)} inputs, got {len(x)}"
            )

        # Weighted sum: sum(w_i * x_i) + b
        act = sum((wi * xi for wi, xi in zip(self.w, x)), Value(0.0))
        act = act + self.b

        if not self.nonlin:
            return act
        if self.activation == 'tanh':
            return act.tanh()
        return act.relu()

    def parameters(self) -> List[Value]:
        """Return weights and bias."""
        return self.w + [self.b]

    def __repr__(self) -> str:
        act = self.activation if self.nonlin else 'Linear'
        return f"Neuron({len(self.w)}, {act})"


class Layer(Module):
    """
    A fully connected layer of neurons.

    Every neuron receives the same input, so a layer with `nout` neurons
    maps an input of size `nin` to an output of size `nout`.

    Example:
        >>> layer = Layer(3, 4)  # 3 inputs, 4 outputs
        >>> x = [Value(1.0), Value(2.0), Value(3.0)]
        >>> out = layer(x)  # Returns list of 4 Values
    """

    def __init__(
        self,
        nin: int,
        nout: int,
        nonlin: bool = True,
        activation: str = 'relu',
        rng: Optional[np.random.Generator] = None
    ) -> None:
        if rng is None:
            rng = np.random.default_rng()
        self.nin = nin
        self.neurons: List[Neuron] = [
            Neuron(nin, nonlin=nonlin, activation=activation, rng=rng)
            for _ in range(nout)
        ]

    def forward_pass(self, x: Sequence[Input]) -> List[Value]:
        """Apply every neuron to the same input, one output per neuron."""
        return [n.forward_pass(x) for n in self.neurons]

    def parameters(self) -> List[Value]:
        """Return all parameters from all neurons."""
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self) -> str:
        return f"Layer({self.nin} -> {len(self.neurons)})"


class MLP(Module):
    """
    Multi-Layer Perceptron: a stack of fully connected layers.

    Architecture:
        Input -> Hidden1 -> ... -> HiddenN -> Output

    Hidden layers use the given activation. The output layer is linear, so
    its outputs can be fed straight into softmax as classification logits.

    Example:
        >>> # 784 inputs -> 32 hidden -> 10 logits
        >>> model = MLP(784, [32, 10], rng=np.random.default_rng(0))
        >>> len(model.parameters())
        25450
    """

    def __init__(
        self,
        nin: int,
        nouts: Sequence[int],
        activation: str = 'relu',
        rng: Optional[np.random.Generator] = None
    ) -> None:
        """
        Initialize an MLP.

        Args:
            nin: Number of input features.
            nouts: Layer widths. The last element is the output size.
            activation: Activation function for hidden layers.
            rng: Random source shared by every layer.

        Example:
            MLP(3, [4, 4, 1]) creates:
            - Layer 1: 3 -> 4 (with activation)
            - Layer 2: 4 -> 4 (with activation)
            - Layer 3: 4 -> 1 (linear output)
        """
        if rng is None:
            rng = np.random.default_rng()
        sizes = [nin] + list(nouts)
        self.layers: List[Layer] = [
            Layer(
                sizes[i],
                sizes[i + 1],
                nonlin=(i != len(nouts) - 1),
                activation=activation,
                rng=rng
            )
            for i in range(len(nouts))
        ]

    def forward_pass(self, x: Sequence[Input]) -> List[Value]:
        """Thread the input through every layer and return the last outputs."""
        out = list(x)
        for layer in self.layers:
            out = layer.forward_pass(out)
        return out

    def parameters(self) -> List[Value]:
        """Return all parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self) -> str:
        return f"MLP([{', '.join(str(layer) for layer in self.layers)}])"
