"""Max and average pooling over square windows."""

from __future__ import annotations

import logging

import numpy as np

from ..core import limits
from ..core.container import Dimensions
from ..core.errors import PoolingLayerException
from ..core.limits import DEFAULT_TYPE, ElementType
from ..core.types import Array, LayerKind, PoolingOperation
from .base import BaseLayer, check_positive, window_output

logger = logging.getLogger(__name__)


class PoolingLayer(BaseLayer):
    """Shared window bookkeeping; ``edges[p]`` lists the input indices of output ``p``."""

    operation: PoolingOperation

    def __init__(
        self,
        input_size: Dimensions,
        extent: int,
        stride: int,
        *,
        forward_type: ElementType = DEFAULT_TYPE,
    ) -> None:
        extent = check_positive(extent, "extent", PoolingLayerException)
        stride = check_positive(stride, "stride", PoolingLayerException)
        out_w = window_output(input_size.width, extent, stride, 0, "width", PoolingLayerException)
        out_h = window_output(input_size.height, extent, stride, 0, "height", PoolingLayerException)
        super().__init__(input_size, Dimensions(out_w, out_h, input_size.depth), forward_type)
        self.extent = extent
        self.stride = stride
        self.edges = self._build_edges()
        logger.debug(
            "%s pooling %s -> %s (extent %d, stride %d)",
            self.operation.value,
            self.input_size,
            self.output_size,
            extent,
            stride,
        )

    def _build_edges(self) -> Array:
        width, height, depth = self.input_size.as_tuple()
        out_w, out_h = self.output_size.width, self.output_size.height
        ext = self.extent
        zs = np.arange(depth)[:, None, None, None, None]
        ys = (np.arange(out_h) * self.stride)[None, :, None, None, None] + np.arange(ext)[None, None, None, :, None]
        xs = (np.arange(out_w) * self.stride)[None, None, :, None, None] + np.arange(ext)[None, None, None, None, :]
        flat = zs * height * width + ys * width + xs
        return flat.reshape(depth * out_h * out_w, ext * ext).astype(np.intp)

    @property
    def window(self) -> int:
        return self.extent * self.extent


class MaxPoolingLayer(PoolingLayer):
    kind = LayerKind.MAX_POOLING
    operation = PoolingOperation.MAX

    def _forward(self, values: Array) -> None:
        self._store_output(values[self.edges].max(axis=1))

    def _backward(self, previous: Array, gradient: Array) -> None:
        # every tied maximum receives the full gradient
        candidates = limits.to_float(limits.cast(previous, self.forward_type))
        winners = candidates[self.edges] == limits.to_float(self.output.data)[:, None]
        buffer = np.zeros(self.input_size.size, dtype=np.float64)
        np.add.at(buffer, self.edges, winners * gradient[:, None])
        self._store_gradient(buffer)


class AveragePoolingLayer(PoolingLayer):
    kind = LayerKind.AVG_POOLING
    operation = PoolingOperation.AVERAGE

    def _forward(self, values: Array) -> None:
        self._store_output(limits.to_float(values)[self.edges].sum(axis=1) / self.window)

    def _backward(self, previous: Array, gradient: Array) -> None:
        buffer = np.zeros(self.input_size.size, dtype=np.float64)
        share = np.broadcast_to((gradient / self.window)[:, None], self.edges.shape)
        np.add.at(buffer, self.edges, share)
        self._store_gradient(buffer)


def pooling_layer(
    operation: PoolingOperation,
    input_size: Dimensions,
    extent: int,
    stride: int,
    *,
    forward_type: ElementType = DEFAULT_TYPE,
) -> PoolingLayer:
    """Build the pooling layer implementing ``operation``."""

    if operation is PoolingOperation.MAX:
        return MaxPoolingLayer(input_size, extent, stride, forward_type=forward_type)
    if operation is PoolingOperation.AVERAGE:
        return AveragePoolingLayer(input_size, extent, stride, forward_type=forward_type)
    raise PoolingLayerException(f"Unknown pooling operation: {operation!r}")  # pragma: no cover - guardrail


__all__ = ["AveragePoolingLayer", "MaxPoolingLayer", "PoolingLayer", "pooling_layer"]
