import copy

import numpy as np
import pytest

from convnets.core import limits
from convnets.core.container import Dimensions, NumericContainer
from convnets.core.fixed_point import fixed_point


def test_dimensions_size_and_validation():
    dims = Dimensions(2, 3, 4)
    assert dims.size == 24
    assert dims.as_tuple() == (2, 3, 4)
    assert str(dims) == "2x3x4"
    assert Dimensions() == Dimensions(0, 0, 0)
    with pytest.raises(ValueError):
        Dimensions(-1, 1, 1)


def test_layout_is_depth_then_row_major():
    image = NumericContainer.from_nested([[[1, 2, 3], [4, 5, 6]], [[7, 8, 9], [10, 11, 12]]])
    assert image.dimensions == Dimensions(3, 2, 2)
    assert image[(2, 0)] == 3
    assert image[(0, 1, 1)] == 10
    assert image[5] == 6
    assert image.as_array().shape == (2, 2, 3)


def test_new_container_is_zeroed_and_clear_resets():
    image = NumericContainer(Dimensions(2, 2, 1))
    assert image.to_list() == [0.0] * 4
    image[(1, 1)] = 3.0
    assert image[3] == 3.0
    image.clear()
    assert image.to_list() == [0.0] * 4


def test_copies_are_independent():
    image = NumericContainer.from_flat([1.0, 2.0])
    duplicate = copy.deepcopy(image)
    duplicate[0] = 5.0
    assert image[0] == 1.0
    assert image != duplicate
    assert image == NumericContainer.from_flat([1.0, 2.0])


def test_equality_requires_same_dimensions():
    row = NumericContainer(Dimensions(2, 1, 1), data=[1.0, 2.0])
    column = NumericContainer(Dimensions(1, 2, 1), data=[1.0, 2.0])
    assert row != column


def test_data_must_fit_dimensions():
    with pytest.raises(ValueError):
        NumericContainer(Dimensions(2, 2, 1), data=[1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        NumericContainer.from_nested([[[1, 2], [3]]])


def test_fixed_point_elements_are_cast_on_write():
    kind = fixed_point(2, 2)
    image = NumericContainer(Dimensions(2, 1, 1), kind)
    image[0] = 10.0
    image[1] = 0.3
    assert image.data.dtype == object
    assert [float(v) for v in image] == [1.75, 0.25]
    assert image.astype(np.float64).to_list() == [1.75, 0.25]


def test_from_array_accepts_lower_rank_input():
    image = NumericContainer.from_array(np.arange(6, dtype=np.float32).reshape(2, 3))
    assert image.dimensions == Dimensions(3, 2, 1)
    assert image.element_type is np.float32


def test_limits_for_float_types():
    assert limits.get_minimum_value(np.float64) == -np.finfo(np.float64).max
    assert limits.get_maximum_value(np.float32) == np.finfo(np.float32).max
    assert limits.get_epsilon_value(np.float64) == np.finfo(np.float64).eps
    assert np.array_equal(limits.cast([1.9, -1.9], np.int32), [1, -1])
