"""Loss registry used by the network orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core import limits
from ..core.limits import BACKWARD_TYPE
from ..core.types import Array, LossFunctionType

LossFn = Callable[[Array, Array], tuple[float, Array]]

EPSILON = float(limits.get_epsilon_value(BACKWARD_TYPE))


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and dL/dy."""

    name: str
    fn: LossFn

    def __call__(self, actual: Array, expected: Array) -> tuple[float, Array]:
        return self.fn(actual, expected)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str | LossFunctionType) -> Loss:
        key = name.value if isinstance(name, LossFunctionType) else name
        if key not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {key!r}. Available losses: {available}")
        return self._registry[key]


REGISTRY = LossRegistry()


def _mse(actual: Array, expected: Array) -> tuple[float, Array]:
    diff = actual - expected
    count = diff.size
    return float(np.sum(diff * diff) / count), 2.0 * diff / count


def _cross_entropy(actual: Array, expected: Array) -> tuple[float, Array]:
    loss = float(np.sum(-expected * np.log(actual + EPSILON)))
    return loss, -expected / (actual + EPSILON)


def _binary_cross_entropy(actual: Array, expected: Array) -> tuple[float, Array]:
    loss = float(
        np.sum(-expected * np.log(actual + EPSILON) - (1.0 - expected) * np.log(1.0 - actual + EPSILON))
    )
    return loss, (actual - expected) / (actual * (1.0 - actual) + EPSILON)


REGISTRY.register(LossFunctionType.MEAN_SQUARED_ERROR.value, _mse)
REGISTRY.register(LossFunctionType.CROSS_ENTROPY.value, _cross_entropy)
REGISTRY.register(LossFunctionType.BINARY_CROSS_ENTROPY.value, _binary_cross_entropy)

__all__ = ["EPSILON", "Loss", "LossRegistry", "REGISTRY"]
