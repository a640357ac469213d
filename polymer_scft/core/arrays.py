# core/arrays.py
import numpy as np

from polymer_scft.errors import InvalidArgument

xp = np  # Array namespace used throughout the package

FLOAT = np.float64


def as_field(values, n=None, name="field"):
    """
    Return values as a contiguous float64 1D array.
    Raises InvalidArgument if the array is not 1D or has the wrong length.
    """
    field = xp.ascontiguousarray(values, dtype=FLOAT)
    if field.ndim != 1:
        raise InvalidArgument(f"{name} must be one-dimensional, got shape {field.shape}")
    if n is not None and field.shape[0] != n:
        raise InvalidArgument(f"{name} has {field.shape[0]} points, expected {n}")
    return field


def to_numpy(array):
    """Convert a backend array to a plain numpy array, e.g. for plotting or saving."""
    return np.asarray(array)
