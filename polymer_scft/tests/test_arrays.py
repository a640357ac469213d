# tests/test_arrays.py
import numpy as np
import pytest

from polymer_scft.core.arrays import FLOAT, as_field, to_numpy, xp
from polymer_scft.errors import InvalidArgument


def test_as_field_converts_lists():
    field = as_field([1, 2, 3], 3)
    assert field.dtype == FLOAT
    assert field.flags["C_CONTIGUOUS"]
    np.testing.assert_array_equal(field, [1.0, 2.0, 3.0])


def test_as_field_makes_strided_input_contiguous():
    values = xp.arange(10.0)[::2]
    field = as_field(values, 5)
    assert field.flags["C_CONTIGUOUS"]
    np.testing.assert_array_equal(field, [0.0, 2.0, 4.0, 6.0, 8.0])


@pytest.mark.parametrize("values, n", [
    (np.ones((2, 3)), None),
    (5.0, None),
    (np.ones(4), 5),
])
def test_as_field_rejects_bad_shapes(values, n):
    with pytest.raises(InvalidArgument):
        as_field(values, n, "w")


def test_to_numpy():
    field = xp.linspace(0.0, 1.0, 5)
    out = to_numpy(field)
    assert isinstance(out, np.ndarray)
    np.testing.assert_array_equal(out, [0.0, 0.25, 0.5, 0.75, 1.0])
    np.testing.assert_array_equal(to_numpy([1.0, 2.0]), [1.0, 2.0])
