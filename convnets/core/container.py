"""Three dimensional numeric container used for images, filters and gradients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from . import limits
from .limits import DEFAULT_TYPE, ElementType
from .types import Array

Index = Union[int, Tuple[int, int], Tuple[int, int, int]]


@dataclass(frozen=True)
class Dimensions:
    """Width, height and depth of a container."""

    width: int = 0
    height: int = 0
    depth: int = 0

    def __post_init__(self) -> None:
        for name in ("width", "height", "depth"):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(f"Dimension {name} must be a non-negative integer, got {value!r}")
            object.__setattr__(self, name, int(value))

    @property
    def size(self) -> int:
        return self.width * self.height * self.depth

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.width, self.height, self.depth)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}x{self.depth}"


class NumericContainer:
    """Owned flat buffer addressed as ``(x, y, z)``.

    Elements are laid out depth-outermost, row-major: ``z*H*W + y*W + x``.
    Floating point element types are stored in a matching numpy dtype while
    fixed-point types live in an ``object`` array of FixedPoint instances.
    """

    __slots__ = ("_dimensions", "_element_type", "data")

    __hash__ = None  # type: ignore[assignment]

    def __init__(
        self,
        dimensions: Optional[Dimensions] = None,
        element_type: ElementType = DEFAULT_TYPE,
        *,
        data: Optional[Iterable[Any] | Array] = None,
    ) -> None:
        dims = dimensions if dimensions is not None else Dimensions()
        self._dimensions = dims
        self._element_type = element_type
        if data is None:
            self.data = limits.zeros(dims.size, element_type)
        else:
            buffer = limits.cast(np.asarray(list(data) if not isinstance(data, np.ndarray) else data).ravel(), element_type)
            if buffer.size != dims.size:
                raise ValueError(
                    f"Data of size {buffer.size} does not fit dimensions {dims} (size {dims.size})"
                )
            self.data = buffer

    # ------------------------------------------------------------------
    # Alternative constructors

    @classmethod
    def from_nested(
        cls, nested: Sequence[Sequence[Sequence[Any]]], element_type: ElementType = DEFAULT_TYPE
    ) -> "NumericContainer":
        """Build from ``nested[z][row][col]``."""

        depth = len(nested)
        height = len(nested[0]) if depth else 0
        width = len(nested[0][0]) if height else 0
        for z, plane in enumerate(nested):
            if len(plane) != height or any(len(row) != width for row in plane):
                raise ValueError(f"Plane {z} is not {width}x{height}")
        flat = [value for plane in nested for row in plane for value in row]
        return cls(Dimensions(width, height, depth), element_type, data=flat)

    @classmethod
    def from_flat(cls, values: Iterable[Any], element_type: ElementType = DEFAULT_TYPE) -> "NumericContainer":
        """Build a ``N x 1 x 1`` container from a flat sequence."""

        flat = list(values)
        return cls(Dimensions(len(flat), 1, 1), element_type, data=flat)

    @classmethod
    def from_array(cls, array: Array, element_type: Optional[ElementType] = None) -> "NumericContainer":
        """Build from an ndarray shaped ``(depth, height, width)`` (or 2D/1D)."""

        arr = np.asarray(array)
        if arr.ndim == 1:
            arr = arr.reshape(1, 1, -1)
        elif arr.ndim == 2:
            arr = arr.reshape(1, *arr.shape)
        elif arr.ndim != 3:
            raise ValueError(f"Expected at most 3 dimensions, got shape {arr.shape}")
        if element_type is None:
            element_type = arr.dtype.type if arr.dtype.kind == "f" else DEFAULT_TYPE
        depth, height, width = arr.shape
        return cls(Dimensions(width, height, depth), element_type, data=arr.ravel())

    # ------------------------------------------------------------------
    # Properties

    @property
    def dimensions(self) -> Dimensions:
        return self._dimensions

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def width(self) -> int:
        return self._dimensions.width

    @property
    def height(self) -> int:
        return self._dimensions.height

    @property
    def depth(self) -> int:
        return self._dimensions.depth

    @property
    def flattened_size(self) -> int:
        return self._dimensions.size

    def __len__(self) -> int:
        return self._dimensions.size

    # ------------------------------------------------------------------
    # Element access

    def _offset(self, index: Index) -> int:
        if isinstance(index, tuple):
            if len(index) == 2:
                x, y = index
                z = 0
            elif len(index) == 3:
                x, y, z = index
            else:
                raise IndexError(f"Expected (x, y) or (x, y, z), got {index!r}")
            return (z * self.height + y) * self.width + x
        return int(index)

    def __getitem__(self, index: Index) -> Any:
        return self.data[self._offset(index)]

    def __setitem__(self, index: Index, value: Any) -> None:
        self.data[self._offset(index)] = limits.cast_scalar(value, self._element_type)

    def __iter__(self):
        return iter(self.data)

    # ------------------------------------------------------------------
    # Whole-buffer operations

    def clear(self) -> None:
        self.data = limits.zeros(self._dimensions.size, self._element_type)

    def copy(self) -> "NumericContainer":
        out = NumericContainer.__new__(NumericContainer)
        out._dimensions = self._dimensions
        out._element_type = self._element_type
        out.data = self.data.copy()
        return out

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "NumericContainer":
        return self.copy()

    def astype(self, element_type: ElementType) -> "NumericContainer":
        """Return a converted copy, casting every element through ``float``."""

        out = NumericContainer.__new__(NumericContainer)
        out._dimensions = self._dimensions
        out._element_type = element_type
        out.data = limits.cast(self.data, element_type)
        return out

    def to_list(self) -> list:
        return self.data.tolist()

    def as_array(self) -> Array:
        """Float64 view of the buffer shaped ``(depth, height, width)``."""

        return limits.to_float(self.data).reshape(self.depth, self.height, self.width)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NumericContainer):
            return NotImplemented
        if self._dimensions != other._dimensions:
            return False
        return bool(np.array_equal(self.data, other.data))

    def __repr__(self) -> str:
        return (
            f"NumericContainer(dimensions={self._dimensions!s}, "
            f"element_type={limits.type_name(self._element_type)})"
        )


__all__ = ["Dimensions", "Index", "NumericContainer"]
