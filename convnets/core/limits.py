"""Numeric limits and element-type casting shared by floats and fixed point."""

from __future__ import annotations

from typing import Any, Iterable, Union

import numpy as np

from .fixed_point import FixedPoint, is_fixed_point
from .types import Array

ElementType = Union[type, np.dtype]

#: Element type used for containers when none is requested.
DEFAULT_TYPE: ElementType = np.float64
#: Type used for gradients, parameter storage and deltas.
BACKWARD_TYPE: ElementType = np.float64


def storage_dtype(kind: ElementType) -> np.dtype:
    """Return the numpy dtype used to store elements of ``kind``."""

    if is_fixed_point(kind):
        return np.dtype(object)
    dtype = np.dtype(kind)
    if dtype.kind not in "fiu":
        raise TypeError(f"Unsupported element type: {kind!r}")
    return dtype


def same_type(left: ElementType, right: ElementType) -> bool:
    if is_fixed_point(left) or is_fixed_point(right):
        return left is right
    return np.dtype(left) == np.dtype(right)


def type_name(kind: ElementType) -> str:
    if is_fixed_point(kind):
        return kind.__name__
    return np.dtype(kind).name


def get_maximum_value(kind: ElementType) -> Any:
    if is_fixed_point(kind):
        return kind.get_maximum_value()
    dtype = storage_dtype(kind)
    info = np.finfo(dtype) if dtype.kind == "f" else np.iinfo(dtype)
    return dtype.type(info.max)


def get_minimum_value(kind: ElementType) -> Any:
    """Lowest representable value (the most negative one for signed types)."""

    if is_fixed_point(kind):
        return kind.get_minimum_value()
    dtype = storage_dtype(kind)
    info = np.finfo(dtype) if dtype.kind == "f" else np.iinfo(dtype)
    return dtype.type(info.min)


def get_epsilon_value(kind: ElementType) -> Any:
    """Smallest distinguishable increment (machine epsilon for floats)."""

    if is_fixed_point(kind):
        return kind.get_epsilon_value()
    dtype = storage_dtype(kind)
    if dtype.kind == "f":
        return dtype.type(np.finfo(dtype).eps)
    return dtype.type(1)


def zero(kind: ElementType) -> Any:
    if is_fixed_point(kind):
        return kind(0.0)
    return storage_dtype(kind).type(0)


def zeros(count: int, kind: ElementType) -> Array:
    """Return a flat buffer of ``count`` zero elements of ``kind``."""

    if is_fixed_point(kind):
        out = np.empty(count, dtype=object)
        out[:] = [kind.from_raw(0) for _ in range(count)]
        return out
    return np.zeros(count, dtype=storage_dtype(kind))


def to_float(values: Iterable[Any] | Array) -> Array:
    """Convert a flat buffer of any supported element type to ``float64``."""

    arr = np.asarray(values)
    if arr.dtype == object:
        return np.fromiter((float(v) for v in arr.ravel()), dtype=np.float64, count=arr.size).reshape(arr.shape)
    return arr.astype(np.float64)


def cast(values: Iterable[Any] | Array, kind: ElementType) -> Array:
    """Cast ``values`` to ``kind``, going through ``float`` like a static cast."""

    arr = np.asarray(values)
    if is_fixed_point(kind):
        if arr.dtype == object and arr.size and all(type(v) is kind for v in arr.ravel()):
            return arr.copy()
        floats = to_float(arr)
        out = np.empty(floats.shape, dtype=object)
        out.ravel()[:] = [kind(v) for v in floats.ravel().tolist()]
        return out
    dtype = storage_dtype(kind)
    if arr.dtype == object:
        arr = to_float(arr)
    if dtype.kind in "iu":
        return np.trunc(arr).astype(dtype)
    return arr.astype(dtype)


def cast_scalar(value: Any, kind: ElementType) -> Any:
    if is_fixed_point(kind):
        return value if type(value) is kind else kind(float(value))
    return storage_dtype(kind).type(float(value))


__all__ = [
    "BACKWARD_TYPE",
    "DEFAULT_TYPE",
    "ElementType",
    "FixedPoint",
    "cast",
    "cast_scalar",
    "get_epsilon_value",
    "get_maximum_value",
    "get_minimum_value",
    "same_type",
    "storage_dtype",
    "to_float",
    "type_name",
    "zero",
    "zeros",
]
