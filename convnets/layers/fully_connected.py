"""Fully-connected layer with the bias stored as an extra input weight."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..core.container import Dimensions, NumericContainer
from ..core.errors import CorruptedStateError, FullyConnectedLayerException
from ..core.limits import BACKWARD_TYPE, DEFAULT_TYPE, ElementType
from ..core.optimizers import Optimizer
from ..core.types import Array, LayerKind
from .base import TrainableLayer, check_positive

logger = logging.getLogger(__name__)


class FullyConnectedLayer(TrainableLayer):
    """Dense layer; neuron ``n`` owns ``weights[n*(in+1) : (n+1)*(in+1)]``.

    The last weight of each neuron multiplies the bias value, which is ``1``
    when ``use_bias`` is set and ``0`` otherwise.
    """

    kind = LayerKind.FULLY_CONNECTED

    def __init__(
        self,
        input_size: Dimensions,
        output_size: int,
        use_bias: bool = True,
        *,
        forward_type: ElementType = DEFAULT_TYPE,
        weight_type: Optional[ElementType] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        neurons = check_positive(output_size, "output size", FullyConnectedLayerException)
        if input_size.size == 0:
            raise FullyConnectedLayerException("Input size must not be empty")
        super().__init__(input_size, Dimensions(neurons, 1, 1), forward_type, weight_type, rng)
        self.use_bias = bool(use_bias)
        self.bias = 1.0 if self.use_bias else 0.0
        self.weights_size = Dimensions(input_size.size + 1, neurons, 1)

        base = 1.0 / np.sqrt(input_size.size)
        multiplier = self._weight_multiplier(base)
        self.weights = NumericContainer(
            self.weights_size,
            BACKWARD_TYPE,
            data=multiplier * self.rng.uniform(-1.0, 1.0, self.weights_size.size) * base,
        )
        self.weight_deltas = NumericContainer(self.weights_size, BACKWARD_TYPE)
        logger.debug("Fully connected layer %s -> %d neuron(s)", input_size, neurons)

    @property
    def neurons(self) -> int:
        return self.output_size.width

    @property
    def uses_bias(self) -> bool:
        return self.use_bias

    def _matrix(self, data: Array) -> Array:
        return data.reshape(self.neurons, self.input_size.size + 1)

    # ------------------------------------------------------------------
    # Parameters

    def get_weights(self) -> NumericContainer:
        return self.weights.copy()

    def set_weights(self, weights: NumericContainer) -> None:
        if weights.dimensions != self.weights_size:
            raise FullyConnectedLayerException(
                f"Weights have dimensions {weights.dimensions}, expected {self.weights_size}"
            )
        self.weights = weights.astype(BACKWARD_TYPE)

    def get_neuron_weights(self, neuron: int) -> Array:
        if not 0 <= neuron < self.neurons:
            raise FullyConnectedLayerException(f"Neuron {neuron} out of range 0..{self.neurons - 1}")
        return self._matrix(self.weights.data)[neuron].copy()

    def set_neuron_weights(self, neuron: int, weights: Sequence[float]) -> None:
        values = np.array([float(w) for w in weights], dtype=np.float64)
        if not 0 <= neuron < self.neurons:
            raise FullyConnectedLayerException(f"Neuron {neuron} out of range 0..{self.neurons - 1}")
        if values.size != self.input_size.size + 1:
            raise FullyConnectedLayerException(
                f"Neuron {neuron} needs {self.input_size.size + 1} weights, got {values.size}"
            )
        self._matrix(self.weights.data)[neuron] = values

    # ------------------------------------------------------------------
    # Propagation

    def _forward(self, values: Array) -> None:
        weights = self._matrix(self._forward_parameters(self.weights.data))
        bias = self._forward_parameters(np.array([self.bias], dtype=np.float64))
        extended = np.concatenate([values, bias])
        self._store_output((weights * extended[None, :]).sum(axis=1))

    def _backward(self, previous: Array, gradient: Array) -> None:
        if gradient.size != self.neurons:
            raise CorruptedStateError(f"Gradient of size {gradient.size} for {self.neurons} neuron(s)")
        extended = np.concatenate([previous, [self.bias]])
        self._matrix(self.weight_deltas.data)[...] += np.outer(gradient, extended)
        weights = self._matrix(self.weights.data)[:, :-1]
        self._store_gradient(gradient @ weights)
        self._sample_done()

    # ------------------------------------------------------------------
    # Optimizer wiring

    def _initialize_optimizer(self, optimizer: Optimizer) -> None:
        optimizer.initialize(0, 0, self.weights_size.size, 1)

    def _apply_updates(self, optimizer: Optimizer) -> None:
        optimizer.update_matrix(self.weights, self.weight_deltas, self.batch_size)


__all__ = ["FullyConnectedLayer"]
