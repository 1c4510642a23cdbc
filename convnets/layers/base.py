"""Shared behaviour of every layer variant."""

from __future__ import annotations

from typing import ClassVar, Optional

import numpy as np

from ..core import limits
from ..core.container import Dimensions, NumericContainer
from ..core.errors import ConfigurationError, InputImageDoesNotHaveCorrectDimensions
from ..core.limits import BACKWARD_TYPE, DEFAULT_TYPE, ElementType
from ..core.optimizers import Optimizer
from ..core.types import Array, LayerKind


class BaseLayer:
    """Layer owning its output buffer and the gradient it hands backwards.

    ``forward`` fills :attr:`output` (stored in ``forward_type``) and
    ``backward`` fills :attr:`output_gradient` (stored in the backward type)
    with the loss gradient with respect to this layer's input. Inputs are
    expected in ``input_type``, which only a conversion layer sets apart from
    ``forward_type``.
    """

    kind: ClassVar[LayerKind]
    training_only: ClassVar[bool] = False
    trainable: ClassVar[bool] = False

    def __init__(
        self,
        input_size: Dimensions,
        output_size: Dimensions,
        forward_type: ElementType = DEFAULT_TYPE,
    ) -> None:
        self.input_size = input_size
        self.output_size = output_size
        self.forward_type = forward_type
        self.input_type = forward_type
        self.output = NumericContainer(output_size, forward_type)
        self.output_gradient = NumericContainer(input_size, BACKWARD_TYPE)
        self.batch_size = 1
        self.optimizer: Optional[Optimizer] = None

    # ------------------------------------------------------------------
    # Propagation

    def forward(self, inputs: NumericContainer) -> NumericContainer:
        if inputs.dimensions != self.input_size:
            raise InputImageDoesNotHaveCorrectDimensions(
                f"{type(self).__name__} expects input {self.input_size}, got {inputs.dimensions}"
            )
        self._forward(self._input_values(inputs))
        return self.output

    def backward(self, previous_output: NumericContainer, gradient: NumericContainer) -> NumericContainer:
        """Propagate ``gradient`` (w.r.t. :attr:`output`) back to the layer input."""

        self._backward(limits.to_float(previous_output.data), limits.to_float(gradient.data))
        return self.output_gradient

    def _input_values(self, inputs: NumericContainer) -> Array:
        if limits.same_type(inputs.element_type, self.forward_type):
            return inputs.data
        return limits.cast(inputs.data, self.forward_type)

    def _store_output(self, values: Array) -> None:
        self.output.data = limits.cast(values, self.forward_type)

    def _store_gradient(self, values: Array) -> None:
        self.output_gradient.data = np.asarray(values, dtype=np.float64).ravel()

    def _forward(self, values: Array) -> None:
        raise NotImplementedError

    def _backward(self, previous: Array, gradient: Array) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Training hooks

    def set_batch_size(self, batch_size: int) -> None:
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = int(batch_size)

    def set_optimizer(self, optimizer: Optimizer) -> None:
        """Layers without parameters ignore the optimizer."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(input={self.input_size}, output={self.output_size})"


class TrainableLayer(BaseLayer):
    """Layer with parameters updated every ``batch_size`` backward passes."""

    trainable: ClassVar[bool] = True

    def __init__(
        self,
        input_size: Dimensions,
        output_size: Dimensions,
        forward_type: ElementType = DEFAULT_TYPE,
        weight_type: Optional[ElementType] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(input_size, output_size, forward_type)
        self.weight_type = forward_type if weight_type is None else weight_type
        self.rng = rng if rng is not None else np.random.default_rng()
        self.examples = 0

    def set_optimizer(self, optimizer: Optimizer) -> None:
        self.optimizer = optimizer
        self.examples = 0
        self._initialize_optimizer(optimizer)

    def _initialize_optimizer(self, optimizer: Optimizer) -> None:
        raise NotImplementedError

    def _weight_multiplier(self, base: float) -> int:
        """Smallest integer factor keeping ``base / 1.25`` above the weight epsilon."""

        eps = float(limits.get_epsilon_value(self.weight_type))
        multiplier = 1
        while base / 1.25 * multiplier < eps:
            multiplier += 1
        return multiplier

    def _forward_parameters(self, values: Array) -> Array:
        """Quantize float parameters to the weight type, then to the forward type."""

        if limits.same_type(self.weight_type, BACKWARD_TYPE) and limits.same_type(self.forward_type, BACKWARD_TYPE):
            return values
        return limits.cast(limits.cast(values, self.weight_type), self.forward_type)

    def _sample_done(self) -> None:
        self.examples += 1
        if self.examples == self.batch_size:
            if self.optimizer is None:
                raise ConfigurationError(f"{type(self).__name__} has no optimizer; call set_optimizer() first")
            self._apply_updates(self.optimizer)
            self.optimizer.step()
            self.examples = 0

    def _apply_updates(self, optimizer: Optimizer) -> None:
        raise NotImplementedError


def check_positive(value: int, name: str, error: type[ConfigurationError]) -> int:
    if value is None or int(value) <= 0:
        raise error(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def window_output(size: int, extent: int, stride: int, padding: int, name: str, error: type[ConfigurationError]) -> int:
    """Output length of a sliding window; the window must tile the input exactly."""

    span = size - extent + 2 * padding
    if span < 0:
        raise error(f"Input {name} {size} (padding {padding}) is smaller than the extent {extent}")
    if span % stride != 0:
        raise error(
            f"Extent {extent} and stride {stride} do not tile input {name} {size} (padding {padding})"
        )
    return span // stride + 1


__all__ = ["BaseLayer", "TrainableLayer", "check_positive", "window_output"]
