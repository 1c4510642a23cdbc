"""Dropout layer, active only while training."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..core import limits
from ..core.container import Dimensions
from ..core.errors import DropoutLayerException
from ..core.limits import DEFAULT_TYPE, ElementType
from ..core.types import Array, LayerKind
from .base import BaseLayer

DEFAULT_PROBABILITY = 0.01


class DropoutLayer(BaseLayer):
    """Zeroes each element with ``probability`` and remembers which ones it dropped."""

    kind = LayerKind.DROPOUT
    training_only = True

    def __init__(
        self,
        size: Dimensions,
        probability: float = DEFAULT_PROBABILITY,
        *,
        forward_type: ElementType = DEFAULT_TYPE,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if not 0.0 <= probability <= 1.0:
            raise DropoutLayerException(f"Dropout probability must lie in [0, 1], got {probability}")
        super().__init__(size, size, forward_type)
        self.probability = float(probability)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.history = np.zeros(size.size, dtype=bool)

    def _forward(self, values: Array) -> None:
        self.history = self.rng.uniform(size=values.size) < self.probability
        out = values.copy()
        out[self.history] = limits.zero(self.forward_type)
        self._store_output(out)

    def _backward(self, previous: Array, gradient: Array) -> None:
        out = gradient.copy()
        out[self.history] = 0.0
        self._store_gradient(out)


__all__ = ["DEFAULT_PROBABILITY", "DropoutLayer"]
