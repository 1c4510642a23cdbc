import pickle

import pytest

from convnets.core.fixed_point import FixedPoint, fixed_point, fixed_point64, is_fixed_point


@pytest.mark.parametrize(
    "layout, value, expected",
    [
        ((1, 1), 10.0, 0.5),
        ((1, 1), -10.0, -1.0),
        ((2, 0), 10.0, 1.0),
        ((2, 0), -10.0, -2.0),
        ((2, 2), 0.75, 0.75),
        ((2, 2), 0.875, 0.75),
        ((2, 2), 4.0, 1.75),
        ((2, 2), -4.0, -2.0),
        ((4, 0), 4.999999, 4.0),
        ((4, 0), -4.999999, -4.0),
        ((4, 0), 16.54654, 7.0),
        ((4, 0), -1548.4848, -8.0),
        ((1, 3), 1.0, 0.875),
        ((1, 3), 0.3769895, 0.375),
        ((1, 3), 0.25989, 0.25),
        ((1, 3), -0.875, -0.875),
        ((1, 3), -1.5, -1.0),
        ((4, 4), 16.0, 7.9375),
        ((4, 4), -16.0, -8.0),
        ((4, 4), 7.9375, 7.9375),
        ((4, 4), -8.9375, -8.0),
        ((16, 16), 100.9999847412109375, 100.9999847412109375),
        ((16, 16), -100.9999847412109375, -100.9999847412109375),
    ],
)
def test_conversion_truncates_and_saturates(layout, value, expected):
    kind = fixed_point(*layout)
    assert kind(value).to_float() == expected


def test_limits_of_small_layout():
    kind = fixed_point(2, 2)
    assert kind.get_maximum_value().to_float() == 1.75
    assert kind.get_minimum_value().to_float() == -2.0
    assert kind.get_epsilon_value().to_float() == 0.25


def test_arithmetic_saturates_instead_of_wrapping():
    kind = fixed_point(2, 2)
    assert (kind(1.5) + kind(1.5)).to_float() == 1.75
    assert (kind(-1.5) - kind(1.5)).to_float() == -2.0
    assert (kind(0.5) * kind(1.5)).to_float() == 0.75
    assert (kind(1.5) * kind(1.5)).to_float() == 1.75
    assert (-kind(-2.0)).to_float() == 1.75


def test_mixed_operands_and_comparisons():
    kind = fixed_point(8, 8)
    value = kind(2.5)
    assert (value + 1).to_float() == 3.5
    assert (1 - value).to_float() == -1.5
    assert (value * 2).to_float() == 5.0
    assert (value / 2).to_float() == 1.25
    assert value > 2
    assert value <= 2.5
    assert value == 2.5
    assert kind(0.0) != value
    assert not kind(0.0)


def test_float_equality_truncates_so_values_are_unhashable():
    value = fixed_point(8, 8)(0.5)
    assert value == 0.5001
    with pytest.raises(TypeError):
        hash(value)
    with pytest.raises(TypeError):
        {value: "half"}


def test_division_by_zero_raises():
    kind = fixed_point(4, 4)
    with pytest.raises(ZeroDivisionError):
        kind(1.0) / kind(0.0)


def test_nan_is_rejected():
    with pytest.raises(ValueError):
        fixed_point(4, 4)(float("nan"))


def test_types_are_cached_and_distinct():
    assert fixed_point(4, 4) is fixed_point(4, 4)
    assert fixed_point(4, 4) is not fixed_point64(4, 4)
    assert fixed_point(4, 4).__name__ == "FixedPoint_4_4"
    assert is_fixed_point(fixed_point64(20, 20))
    assert not is_fixed_point(float)


def test_invalid_layout_and_bare_base_class():
    with pytest.raises(ValueError):
        fixed_point(30, 10)
    fixed_point64(30, 10)
    with pytest.raises(TypeError):
        FixedPoint(1.0)


def test_bit_string_uses_twos_complement():
    kind = fixed_point(2, 2)
    assert kind(-0.25).bit_string() == "1" * 32
    assert kind(0.25).bit_string() == "0" * 31 + "1"


def test_pickle_roundtrip_keeps_type():
    value = fixed_point(6, 10)(3.140625)
    restored = pickle.loads(pickle.dumps(value))
    assert type(restored) is type(value)
    assert restored == value
