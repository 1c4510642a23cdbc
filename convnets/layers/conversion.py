"""Layer converting activations between element types."""

from __future__ import annotations

from ..core import limits
from ..core.container import Dimensions
from ..core.limits import DEFAULT_TYPE, ElementType
from ..core.types import Array, LayerKind
from .base import BaseLayer


class ConversionLayer(BaseLayer):
    """Casts ``input_type`` activations to ``output_type``; gradients pass unchanged."""

    kind = LayerKind.CONVERSION

    def __init__(self, size: Dimensions, output_type: ElementType, input_type: ElementType = DEFAULT_TYPE) -> None:
        super().__init__(size, size, output_type)
        self.input_type = input_type

    @property
    def output_type(self) -> ElementType:
        return self.forward_type

    def _forward(self, values: Array) -> None:
        self._store_output(limits.to_float(values))

    def _backward(self, previous: Array, gradient: Array) -> None:
        self._store_gradient(gradient.copy())

    def __repr__(self) -> str:
        return (
            f"ConversionLayer({limits.type_name(self.input_type)} -> "
            f"{limits.type_name(self.output_type)}, size={self.input_size})"
        )


__all__ = ["ConversionLayer"]
