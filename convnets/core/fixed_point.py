"""Saturating fixed-point numbers usable as container element types."""

from __future__ import annotations

import functools
import math
from numbers import Real
from typing import ClassVar, Type


class FixedPoint:
    """Signed fixed-point number with ``INTEGER_BITS``/``FRACTION_BITS`` layout.

    Concrete types are produced by :func:`fixed_point` and :func:`fixed_point64`;
    the base class itself carries no bit layout and cannot be instantiated.

    The raw value ``m`` is the scaled integer ``value * 2**FRACTION_BITS``.
    Construction truncates toward zero and every operation saturates to
    ``[NEG_MASK, MASK]`` instead of wrapping around. Division goes through
    floating point and is therefore an approximation. Instances compare equal
    to any float that truncates to the same raw value and are not hashable.
    """

    __slots__ = ("m",)

    # equality truncates floats into the format, so no hash can agree with it
    __hash__ = None  # type: ignore[assignment]

    INTEGER_BITS: ClassVar[int] = 0
    FRACTION_BITS: ClassVar[int] = 0
    BACKING_BITS: ClassVar[int] = 32
    MASK: ClassVar[int] = 0
    NEG_MASK: ClassVar[int] = 0
    FACTOR: ClassVar[int] = 1

    def __init__(self, value: object = 0.0) -> None:
        if type(self).MASK == 0 and type(self).NEG_MASK == 0:
            raise TypeError("Use fixed_point() to create a concrete FixedPoint type")
        if isinstance(value, FixedPoint):
            value = value.to_float()
        scaled = float(value) * self.FACTOR
        if math.isnan(scaled):
            raise ValueError("Cannot represent NaN as a fixed-point number")
        if scaled >= self.MASK:
            self.m = self.MASK
        elif scaled <= self.NEG_MASK:
            self.m = self.NEG_MASK
        else:
            self.m = int(scaled)

    # ------------------------------------------------------------------
    # Construction helpers

    @classmethod
    def from_raw(cls, raw: int) -> "FixedPoint":
        """Return an instance holding the raw scaled integer ``raw`` (saturated)."""

        out = cls.__new__(cls)
        out.m = cls._saturate(int(raw))
        return out

    @classmethod
    def get_minimum_value(cls) -> "FixedPoint":
        return cls.from_raw(cls.NEG_MASK)

    @classmethod
    def get_maximum_value(cls) -> "FixedPoint":
        return cls.from_raw(cls.MASK)

    @classmethod
    def get_epsilon_value(cls) -> "FixedPoint":
        """Smallest positive representable increment."""

        return cls.from_raw(1)

    @classmethod
    def _saturate(cls, raw: int) -> int:
        if raw > cls.MASK:
            return cls.MASK
        if raw < cls.NEG_MASK:
            return cls.NEG_MASK
        return raw

    def _coerce(self, other: object) -> "FixedPoint | None":
        if isinstance(other, type(self)):
            return other
        if isinstance(other, (FixedPoint, Real)):
            return type(self)(other)
        return None

    # ------------------------------------------------------------------
    # Conversions

    def to_float(self) -> float:
        return self.m / self.FACTOR

    def __float__(self) -> float:
        return self.to_float()

    def __int__(self) -> int:
        return int(self.to_float())

    def __bool__(self) -> bool:
        return self.m != 0

    def bit_string(self) -> str:
        """Two's complement representation over the backing width."""

        return format(self.m & ((1 << self.BACKING_BITS) - 1), f"0{self.BACKING_BITS}b")

    # ------------------------------------------------------------------
    # Arithmetic

    def __add__(self, other: object) -> "FixedPoint":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self.from_raw(self.m + rhs.m)

    __radd__ = __add__

    def __sub__(self, other: object) -> "FixedPoint":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self.from_raw(self.m - rhs.m)

    def __rsub__(self, other: object) -> "FixedPoint":
        lhs = self._coerce(other)
        if lhs is None:
            return NotImplemented
        return self.from_raw(lhs.m - self.m)

    def __mul__(self, other: object) -> "FixedPoint":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self.from_raw((self.m * rhs.m) >> self.FRACTION_BITS)

    __rmul__ = __mul__

    def __truediv__(self, other: object) -> "FixedPoint":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self._divide(self, rhs)

    def __rtruediv__(self, other: object) -> "FixedPoint":
        lhs = self._coerce(other)
        if lhs is None:
            return NotImplemented
        return self._divide(lhs, self)

    @classmethod
    def _divide(cls, lhs: "FixedPoint", rhs: "FixedPoint") -> "FixedPoint":
        if rhs.m == 0:
            raise ZeroDivisionError("fixed-point division by zero")
        quotient = float(lhs.m) / rhs.m * cls.FACTOR
        return cls(quotient / cls.FACTOR)

    def __neg__(self) -> "FixedPoint":
        return self.from_raw(-self.m)

    def __pos__(self) -> "FixedPoint":
        return self

    def __abs__(self) -> "FixedPoint":
        return self.from_raw(abs(self.m))

    # ------------------------------------------------------------------
    # Comparison

    def _compare_raw(self, other: object) -> "int | None":
        rhs = self._coerce(other)
        return None if rhs is None else rhs.m

    def __eq__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m == raw

    def __ne__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m != raw

    def __lt__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m < raw

    def __le__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m <= raw

    def __gt__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m > raw

    def __ge__(self, other: object) -> bool:
        raw = self._compare_raw(other)
        if raw is None:
            return NotImplemented
        return self.m >= raw

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_float()!r})"

    def __str__(self) -> str:
        return str(self.to_float())

    def __reduce__(self):
        return (_restore, (self.INTEGER_BITS, self.FRACTION_BITS, self.BACKING_BITS, self.m))


def _make_type(integer_bits: int, fraction_bits: int, backing_bits: int) -> Type[FixedPoint]:
    total = integer_bits + fraction_bits
    if integer_bits < 0 or fraction_bits < 0 or total < 1 or total > backing_bits:
        raise ValueError(
            f"Invalid fixed-point layout <{integer_bits},{fraction_bits}> "
            f"for a {backing_bits}-bit backing integer"
        )
    suffix = "64" if backing_bits == 64 else ""
    name = f"FixedPoint{suffix}_{integer_bits}_{fraction_bits}"
    namespace = {
        "__slots__": (),
        "INTEGER_BITS": integer_bits,
        "FRACTION_BITS": fraction_bits,
        "BACKING_BITS": backing_bits,
        "MASK": (1 << (total - 1)) - 1,
        "NEG_MASK": -(1 << (total - 1)),
        "FACTOR": 1 << fraction_bits,
        "__module__": __name__,
    }
    return type(name, (FixedPoint,), namespace)


@functools.lru_cache(maxsize=None)
def fixed_point(integer_bits: int, fraction_bits: int) -> Type[FixedPoint]:
    """Return the 32-bit fixed-point type ``<integer_bits, fraction_bits>``."""

    return _make_type(integer_bits, fraction_bits, 32)


@functools.lru_cache(maxsize=None)
def fixed_point64(integer_bits: int, fraction_bits: int) -> Type[FixedPoint]:
    """Return the 64-bit fixed-point type ``<integer_bits, fraction_bits>``."""

    return _make_type(integer_bits, fraction_bits, 64)


def _restore(integer_bits: int, fraction_bits: int, backing_bits: int, raw: int) -> FixedPoint:
    factory = fixed_point64 if backing_bits == 64 else fixed_point
    return factory(integer_bits, fraction_bits).from_raw(raw)


def is_fixed_point(kind: object) -> bool:
    return isinstance(kind, type) and issubclass(kind, FixedPoint)


__all__ = ["FixedPoint", "fixed_point", "fixed_point64", "is_fixed_point"]
