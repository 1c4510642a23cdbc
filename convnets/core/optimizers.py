"""Gradient-descent optimizers applying accumulated deltas to layer parameters.

Every optimizer exposes three update forms that share one per-element rule:

* ``update_matrix`` for a single weight container (fully-connected weights),
* ``update_matrices`` for a list of containers (convolution filters),
* ``update_vector`` for a flat parameter array (biases).

Deltas hold the gradient *summed* over ``batch_size`` samples and are zeroed
once consumed. Stateful optimizers keep one state row per parameter slot;
:meth:`Optimizer.initialize` sizes those rows and :meth:`Optimizer.clone`
returns an uninitialized copy so every layer owns independent state.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Sequence

import numpy as np

from .container import NumericContainer
from .errors import ConfigurationError, CorruptedStateError
from .types import Array, OptimizerType

logger = logging.getLogger(__name__)


class Optimizer:
    """Base class holding the learning rate, weight decay and slot state."""

    kind: OptimizerType
    #: Number of state arrays kept per parameter slot.
    state_slots: int = 0

    def __init__(self, learning_rate: float = 0.01, weight_decay: float = 0.0) -> None:
        if learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {learning_rate}")
        if weight_decay < 0:
            raise ConfigurationError(f"weight_decay must be non-negative, got {weight_decay}")
        self.learning_rate = float(learning_rate)
        self.weight_decay = float(weight_decay)
        self._matrix_state: List[Array] = []
        self._vector_state: List[Array] = []

    # ------------------------------------------------------------------
    # State management

    def initialize(self, vector_size: int, vectors_num: int, matrix_size: int, matrices_num: int) -> None:
        """Allocate zeroed state for ``matrices_num`` matrices and ``vectors_num`` vectors."""

        self._matrix_state = [
            np.zeros((matrices_num, matrix_size), dtype=np.float64) for _ in range(self.state_slots)
        ]
        self._vector_state = [
            np.zeros((vectors_num, vector_size), dtype=np.float64) for _ in range(self.state_slots)
        ]
        logger.debug(
            "%s initialized: %d vector(s) of %d, %d matrix(es) of %d",
            type(self).__name__,
            vectors_num,
            vector_size,
            matrices_num,
            matrix_size,
        )

    def clone(self) -> "Optimizer":
        """Return an uninitialized copy sharing the hyperparameters."""

        out = copy.copy(self)
        out._matrix_state = []
        out._vector_state = []
        out._reset()
        return out

    def _reset(self) -> None:
        """Hook for optimizers with scalar state beyond the slot arrays."""

    def step(self) -> None:
        """Mark the end of one batch update for a layer."""

    # ------------------------------------------------------------------
    # Update forms

    def update_matrix(self, weights: NumericContainer, deltas: NumericContainer, batch_size: int) -> None:
        self._apply(weights.data, deltas.data, batch_size, self._slot(self._matrix_state, 0, weights.data.size))

    def update_matrices(
        self,
        weights: Sequence[NumericContainer],
        deltas: Sequence[NumericContainer],
        batch_size: int,
    ) -> None:
        if len(weights) != len(deltas):
            raise CorruptedStateError(f"{len(weights)} weight containers but {len(deltas)} delta containers")
        for index, (weight, delta) in enumerate(zip(weights, deltas)):
            self._apply(weight.data, delta.data, batch_size, self._slot(self._matrix_state, index, weight.data.size))

    def update_vector(self, weights: Array, deltas: Array, batch_size: int) -> None:
        self._apply(weights, deltas, batch_size, self._slot(self._vector_state, 0, weights.size))

    def _slot(self, state: List[Array], index: int, size: int) -> List[Array]:
        if not self.state_slots:
            return []
        if not state or index >= state[0].shape[0] or state[0].shape[1] != size:
            raise CorruptedStateError(
                f"{type(self).__name__} state does not cover slot {index} of size {size}; "
                "call initialize() first"
            )
        return [rows[index] for rows in state]

    def _apply(self, weights: Array, deltas: Array, batch_size: int, state: List[Array]) -> None:
        if weights.shape != deltas.shape:
            raise CorruptedStateError(f"Weights {weights.shape} and deltas {deltas.shape} differ")
        decay = self.learning_rate * self.weight_decay * weights
        weights -= self._rule(deltas / batch_size, state) + decay
        deltas[...] = 0

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        """Return the step subtracted from the weights for ``gradient = d / n``."""

        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(learning_rate={self.learning_rate}, weight_decay={self.weight_decay})"


class Sgd(Optimizer):
    kind = OptimizerType.SGD

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        return self.learning_rate * gradient


class SgdWithMomentum(Optimizer):
    kind = OptimizerType.SGD_WITH_MOMENTUM
    state_slots = 1

    def __init__(self, learning_rate: float = 0.01, momentum: float = 0.9, weight_decay: float = 0.0) -> None:
        super().__init__(learning_rate, weight_decay)
        self.momentum = float(momentum)

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        (velocity,) = state
        velocity *= self.momentum
        velocity += self.learning_rate * gradient
        return velocity.copy()


class SgdWithNesterovMomentum(Optimizer):
    kind = OptimizerType.SGD_WITH_NESTEROV_MOMENTUM
    state_slots = 1

    def __init__(self, learning_rate: float = 0.01, momentum: float = 0.9, weight_decay: float = 0.0) -> None:
        super().__init__(learning_rate, weight_decay)
        self.momentum = float(momentum)

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        (velocity,) = state
        updated = self.momentum * velocity + self.learning_rate * gradient
        step = -self.momentum * velocity + (1.0 + self.momentum) * updated
        velocity[...] = updated
        return step


class Adagrad(Optimizer):
    kind = OptimizerType.ADAGRAD
    state_slots = 1

    def __init__(self, learning_rate: float = 0.01, eps: float = 1e-8, weight_decay: float = 0.0) -> None:
        super().__init__(learning_rate, weight_decay)
        self.eps = float(eps)

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        (accumulated,) = state
        accumulated += gradient**2
        return self.learning_rate * gradient / np.sqrt(accumulated + self.eps)


class Adam(Optimizer):
    """Adam with bias correction advanced once per batch by :meth:`step`."""

    kind = OptimizerType.ADAM
    state_slots = 2

    def __init__(
        self,
        learning_rate: float = 0.001,
        eps: float = 1e-8,
        b1: float = 0.9,
        b2: float = 0.999,
        weight_decay: float = 0.0,
    ) -> None:
        super().__init__(learning_rate, weight_decay)
        if not (0.0 <= b1 < 1.0 and 0.0 <= b2 < 1.0):
            raise ConfigurationError(f"Adam betas must lie in [0, 1), got b1={b1}, b2={b2}")
        self.eps = float(eps)
        self.b1 = float(b1)
        self.b2 = float(b2)
        self._reset()

    def _reset(self) -> None:
        self.b1t = self.b1
        self.b2t = self.b2

    def step(self) -> None:
        self.b1t *= self.b1
        self.b2t *= self.b2

    def _rule(self, gradient: Array, state: List[Array]) -> Array:
        first, second = state
        first *= self.b1
        first += (1.0 - self.b1) * gradient
        second *= self.b2
        second += (1.0 - self.b2) * gradient**2
        corrected = first / (1.0 - self.b1t)
        return self.learning_rate / (np.sqrt(second / (1.0 - self.b2t)) + self.eps) * corrected


OptimizerFactory = Callable[..., Optimizer]


@dataclass(frozen=True)
class OptimizerSpec:
    name: str
    factory: OptimizerFactory


class OptimizerRegistry:
    """Named optimizer factories, mirroring the loss registry."""

    def __init__(self) -> None:
        self._registry: Dict[str, OptimizerSpec] = {}

    def register(self, name: str, factory: OptimizerFactory) -> None:
        self._registry[name] = OptimizerSpec(name, factory)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str) -> OptimizerSpec:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown optimizer {name!r}. Available optimizers: {available}")
        return self._registry[name]

    def create(self, name: str, **params: float) -> Optimizer:
        return self.get(name).factory(**params)


REGISTRY = OptimizerRegistry()
REGISTRY.register(OptimizerType.SGD.value, Sgd)
REGISTRY.register(OptimizerType.SGD_WITH_MOMENTUM.value, SgdWithMomentum)
REGISTRY.register(OptimizerType.SGD_WITH_NESTEROV_MOMENTUM.value, SgdWithNesterovMomentum)
REGISTRY.register(OptimizerType.ADAGRAD.value, Adagrad)
REGISTRY.register(OptimizerType.ADAM.value, Adam)


__all__ = [
    "Adagrad",
    "Adam",
    "Optimizer",
    "OptimizerRegistry",
    "OptimizerSpec",
    "REGISTRY",
    "Sgd",
    "SgdWithMomentum",
    "SgdWithNesterovMomentum",
]
