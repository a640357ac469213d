# polymer_scft/errors.py
# Exceptions raised by the propagator engine
import numpy as np


class PolymerSCFTError(Exception):
    """Base class for all errors raised by polymer_scft."""


class InvalidArgument(PolymerSCFTError, ValueError):
    """
    A configuration value is out of range, or an object is used before it
    has been set up (e.g. a block stepped before setup_solver).
    """


class SingularMatrix(PolymerSCFTError, np.linalg.LinAlgError):
    """
    Tridiagonal factorization broke down on a (near) zero pivot.

    row: index of the failing pivot (None for the cyclic correction)
    pivot: value of the failing pivot
    """

    def __init__(self, message, row=None, pivot=None):
        super().__init__(message)
        self.row = row
        self.pivot = pivot
