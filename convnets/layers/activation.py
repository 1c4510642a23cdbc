"""Element-wise activation functions and their derivatives."""

from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

from ..core import limits
from ..core.container import Dimensions
from ..core.errors import ConfigurationError
from ..core.limits import DEFAULT_TYPE, ElementType
from ..core.types import ActivationFunction, Array, LayerKind
from .base import BaseLayer

LEAKY_SLOPE = 0.01


def sigmoid(x: Array) -> Array:
    return 1.0 / (1.0 + np.exp(-x))


def sigmoid_backward(out: Array, grad: Array) -> Array:
    return out * (1.0 - out) * grad


def tanh(x: Array) -> Array:
    return 2.0 / (1.0 + np.exp(-2.0 * x)) - 1.0


def tanh_backward(out: Array, grad: Array) -> Array:
    return (1.0 - out * out) * grad


def relu(x: Array) -> Array:
    return np.maximum(x, 0.0)


def relu_backward(out: Array, grad: Array) -> Array:
    return np.where(out > 0.0, grad, 0.0)


def leaky_relu(x: Array) -> Array:
    return np.where(x >= 0.0, x, LEAKY_SLOPE * x)


def leaky_relu_backward(out: Array, grad: Array) -> Array:
    return np.where(out >= 0.0, grad, LEAKY_SLOPE * grad)


def softmax(x: Array) -> Array:
    exp = np.exp(x - np.max(x))
    return exp / np.sum(exp)


def softmax_backward(out: Array, grad: Array) -> Array:
    """Apply the full softmax Jacobian ``diag(out) - out out^T`` to ``grad``."""

    jacobian = np.diag(out) - np.outer(out, out)
    return jacobian @ grad


FUNCTIONS: Dict[ActivationFunction, Tuple[Callable[[Array], Array], Callable[[Array, Array], Array]]] = {
    ActivationFunction.SIGMOID: (sigmoid, sigmoid_backward),
    ActivationFunction.TANH: (tanh, tanh_backward),
    ActivationFunction.RELU: (relu, relu_backward),
    ActivationFunction.LEAKY_RELU: (leaky_relu, leaky_relu_backward),
    ActivationFunction.SOFTMAX: (softmax, softmax_backward),
}


class ActivationLayer(BaseLayer):
    """Shape preserving layer applying ``function`` to every element."""

    kind = LayerKind.ACTIVATION

    def __init__(
        self,
        size: Dimensions,
        function: ActivationFunction,
        *,
        forward_type: ElementType = DEFAULT_TYPE,
    ) -> None:
        if function not in FUNCTIONS:
            raise ConfigurationError(f"{function!r} cannot be used as an activation layer")
        super().__init__(size, size, forward_type)
        self.function = function
        self._forward_fn, self._backward_fn = FUNCTIONS[function]

    def _forward(self, values: Array) -> None:
        self._store_output(self._forward_fn(limits.to_float(values)))

    def _backward(self, previous: Array, gradient: Array) -> None:
        self._store_gradient(self._backward_fn(limits.to_float(self.output.data), gradient))

    def __repr__(self) -> str:
        return f"ActivationLayer({self.function.value}, size={self.input_size})"


def SigmoidLayer(size: Dimensions, **kwargs) -> ActivationLayer:
    return ActivationLayer(size, ActivationFunction.SIGMOID, **kwargs)


def TanhLayer(size: Dimensions, **kwargs) -> ActivationLayer:
    return ActivationLayer(size, ActivationFunction.TANH, **kwargs)


def ReluLayer(size: Dimensions, **kwargs) -> ActivationLayer:
    return ActivationLayer(size, ActivationFunction.RELU, **kwargs)


def LeakyReluLayer(size: Dimensions, **kwargs) -> ActivationLayer:
    return ActivationLayer(size, ActivationFunction.LEAKY_RELU, **kwargs)


def SoftmaxLayer(size: Dimensions, **kwargs) -> ActivationLayer:
    return ActivationLayer(size, ActivationFunction.SOFTMAX, **kwargs)


def activation_layer(function: ActivationFunction, size: Dimensions, **kwargs) -> ActivationLayer:
    """Build the activation layer for ``function`` (``NONE`` is rejected)."""

    return ActivationLayer(size, function, **kwargs)


__all__ = [
    "ActivationLayer",
    "FUNCTIONS",
    "LEAKY_SLOPE",
    "LeakyReluLayer",
    "ReluLayer",
    "SigmoidLayer",
    "SoftmaxLayer",
    "TanhLayer",
    "activation_layer",
    "leaky_relu",
    "relu",
    "sigmoid",
    "softmax",
    "tanh",
]
