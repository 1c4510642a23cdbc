"""Convolutional layer driven by index tables built at construction."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..core import limits
from ..core.container import Dimensions, NumericContainer
from ..core.errors import ConvolutionalLayerException, CorruptedStateError
from ..core.limits import BACKWARD_TYPE, DEFAULT_TYPE, ElementType
from ..core.optimizers import Optimizer
from ..core.types import Array, LayerKind
from .base import TrainableLayer, check_positive, window_output

logger = logging.getLogger(__name__)

PADDING = -1


class ConvolutionalLayer(TrainableLayer):
    """Square filters of ``extent x extent x depth`` slid with ``stride``.

    ``input_edges[p, k]`` holds the flat input index read by receptive-field
    element ``k`` of output position ``p`` (or ``-1`` inside the zero padding)
    and ``filter_edges[p, k]`` the matching flat filter index.
    """

    kind = LayerKind.CONVOLUTIONAL

    def __init__(
        self,
        input_size: Dimensions,
        stride: int,
        filters: int,
        extent: int,
        zero_padding: int = 0,
        use_bias: bool = True,
        *,
        forward_type: ElementType = DEFAULT_TYPE,
        weight_type: Optional[ElementType] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        stride = check_positive(stride, "stride", ConvolutionalLayerException)
        filters = check_positive(filters, "filter count", ConvolutionalLayerException)
        extent = check_positive(extent, "filter extent", ConvolutionalLayerException)
        if zero_padding < 0:
            raise ConvolutionalLayerException(f"zero padding must be non-negative, got {zero_padding}")
        out_w = window_output(input_size.width, extent, stride, zero_padding, "width", ConvolutionalLayerException)
        out_h = window_output(input_size.height, extent, stride, zero_padding, "height", ConvolutionalLayerException)
        super().__init__(input_size, Dimensions(out_w, out_h, filters), forward_type, weight_type, rng)

        self.stride = stride
        self.extent = extent
        self.filter_count = filters
        self.zero_padding = int(zero_padding)
        self.use_bias = bool(use_bias)
        self.filter_size = Dimensions(extent, extent, input_size.depth)

        base = 1.0 / (extent * extent * input_size.depth)
        multiplier = self._weight_multiplier(base)
        window = self.filter_size.size
        self.filters: List[NumericContainer] = [
            NumericContainer(
                self.filter_size,
                BACKWARD_TYPE,
                data=multiplier * self.rng.uniform(-1.0, 1.0, window) * base,
            )
            for _ in range(filters)
        ]
        self.biases: Array = multiplier * self.rng.uniform(-1.0, 1.0, filters) * base
        self.filter_deltas = [NumericContainer(self.filter_size, BACKWARD_TYPE) for _ in range(filters)]
        self.bias_deltas: Array = np.zeros(filters, dtype=np.float64)

        self.input_edges, self.filter_edges = self._build_edges()
        logger.debug(
            "Convolutional layer %s -> %s (extent %d, stride %d, padding %d, multiplier %d)",
            self.input_size,
            self.output_size,
            extent,
            stride,
            self.zero_padding,
            multiplier,
        )

    def _build_edges(self) -> tuple[Array, Array]:
        width, height, depth = self.input_size.as_tuple()
        out_w, out_h = self.output_size.width, self.output_size.height
        ext = self.extent
        ys = (np.arange(out_h) * self.stride - self.zero_padding)[:, None, None, None, None] + np.arange(ext)[
            None, None, None, :, None
        ]
        xs = (np.arange(out_w) * self.stride - self.zero_padding)[None, :, None, None, None] + np.arange(ext)[
            None, None, None, None, :
        ]
        zs = np.arange(depth)[None, None, :, None, None]
        valid = (ys >= 0) & (ys < height) & (xs >= 0) & (xs < width)
        flat = zs * height * width + ys * width + xs
        window = self.filter_size.size
        input_edges = np.where(valid, flat, PADDING).reshape(out_w * out_h, window)
        filter_edges = np.broadcast_to(np.arange(window), input_edges.shape).copy()
        return input_edges.astype(np.intp), filter_edges.astype(np.intp)

    # ------------------------------------------------------------------
    # Parameters

    @property
    def uses_bias(self) -> bool:
        return self.use_bias

    def get_filters(self) -> List[NumericContainer]:
        return [f.copy() for f in self.filters]

    def get_biases(self) -> Array:
        return self.biases.copy()

    def load_filters(self, filters: Sequence[NumericContainer], biases: Optional[Sequence[float]] = None) -> None:
        if len(filters) != self.filter_count:
            raise ConvolutionalLayerException(f"Expected {self.filter_count} filters, got {len(filters)}")
        for index, candidate in enumerate(filters):
            if candidate.dimensions != self.filter_size:
                raise ConvolutionalLayerException(
                    f"Filter {index} has dimensions {candidate.dimensions}, expected {self.filter_size}"
                )
        self.filters = [f.astype(BACKWARD_TYPE) for f in filters]
        if biases is not None:
            values = np.array([float(b) for b in biases], dtype=np.float64)
            if values.size != self.filter_count:
                raise ConvolutionalLayerException(f"Expected {self.filter_count} biases, got {values.size}")
            self.biases = values.copy()

    def _filter_stack(self) -> Array:
        return np.stack([f.data for f in self.filters])

    # ------------------------------------------------------------------
    # Propagation

    def _forward(self, values: Array) -> None:
        padded = np.concatenate([values, limits.zeros(1, self.forward_type)])
        gathered = padded[self.input_edges]
        weights = self._forward_parameters(self._filter_stack())[:, self.filter_edges]
        out = (gathered[None, :, :] * weights).sum(axis=2)
        if self.use_bias:
            out = out + self._forward_parameters(self.biases)[:, None]
        self._store_output(out.ravel())

    def _backward(self, previous: Array, gradient: Array) -> None:
        positions = self.input_edges.shape[0]
        if gradient.size != self.filter_count * positions:
            raise CorruptedStateError(
                f"Gradient of size {gradient.size} does not match output {self.output_size}"
            )
        g = gradient.reshape(self.filter_count, positions)
        self.bias_deltas += g.sum(axis=1)

        padded = np.concatenate([previous, [0.0]])
        inputs = padded[self.input_edges]
        deltas = np.zeros((self.filter_count, self.filter_size.size), dtype=np.float64)
        np.add.at(
            deltas,
            (np.arange(self.filter_count)[:, None, None], self.filter_edges[None, :, :]),
            g[:, :, None] * inputs[None, :, :],
        )
        for delta, row in zip(self.filter_deltas, deltas):
            delta.data += row

        stack = self._filter_stack()
        contributions = (stack[:, self.filter_edges] * g[:, :, None]).sum(axis=0)
        buffer = np.zeros(self.input_size.size + 1, dtype=np.float64)
        np.add.at(buffer, self.input_edges, contributions)
        self._store_gradient(buffer[:-1])
        self._sample_done()

    # ------------------------------------------------------------------
    # Optimizer wiring

    def _initialize_optimizer(self, optimizer: Optimizer) -> None:
        optimizer.initialize(self.filter_count, 1, self.filter_size.size, self.filter_count)

    def _apply_updates(self, optimizer: Optimizer) -> None:
        optimizer.update_matrices(self.filters, self.filter_deltas, self.batch_size)
        optimizer.update_vector(self.biases, self.bias_deltas, self.batch_size)


__all__ = ["ConvolutionalLayer", "PADDING"]
