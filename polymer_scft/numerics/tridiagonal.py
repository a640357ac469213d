# numerics/tridiagonal.py
import logging

import numpy as np
from numba import jit

from polymer_scft.errors import InvalidArgument, SingularMatrix

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-13


def check_vector(array, n, name):
    """
    Return array as a float64 vector of length n.
    Raises InvalidArgument on any other shape; the kernels do not bounds-check.
    """
    vector = np.asarray(array, dtype=np.float64)
    if vector.shape != (n,):
        raise InvalidArgument(f"{name} must have shape ({n},), got {vector.shape}")
    return vector


def check_output(array, n, name):
    """Validate a caller supplied output buffer, which is written in place."""
    if not isinstance(array, np.ndarray) or array.dtype != np.float64:
        raise InvalidArgument(f"{name} must be a float64 numpy array")
    if array.shape != (n,):
        raise InvalidArgument(f"{name} must have shape ({n},), got {array.shape}")
    return array


@jit(nopython=True, nogil=True)
def _factor(diag, upper, lower, pivots, multipliers, threshold):
    """
    LU factorization without pivoting.
    Fills pivots (length n) and multipliers (length n-1) in place.
    Returns the index of the first vanishing pivot, or -1.
    """
    n = diag.shape[0]
    pivots[0] = diag[0]
    if abs(pivots[0]) <= threshold:
        return 0
    for i in range(1, n):
        multipliers[i - 1] = lower[i - 1] / pivots[i - 1]
        pivots[i] = diag[i] - multipliers[i - 1] * upper[i - 1]
        if abs(pivots[i]) <= threshold:
            return i
    return -1


@jit(nopython=True, nogil=True)
def _substitute(pivots, multipliers, upper, rhs, out):
    # Forward elimination, then back substitution, both in out
    n = pivots.shape[0]
    out[0] = rhs[0]
    for i in range(1, n):
        out[i] = rhs[i] - multipliers[i - 1] * out[i - 1]
    out[n - 1] = out[n - 1] / pivots[n - 1]
    for i in range(n - 2, -1, -1):
        out[i] = (out[i] - upper[i] * out[i + 1]) / pivots[i]


@jit(nopython=True, nogil=True)
def tridiagonal_multiply(diag, upper, lower, x, out, upper_corner=0.0, lower_corner=0.0):
    """
    out = M x for the tridiagonal (or cyclic tridiagonal) matrix M.
    out must not share memory with x.
    """
    n = diag.shape[0]
    if n == 1:
        out[0] = diag[0] * x[0]
        return
    out[0] = diag[0] * x[0] + upper[0] * x[1] + upper_corner * x[n - 1]
    for i in range(1, n - 1):
        out[i] = lower[i - 1] * x[i - 1] + diag[i] * x[i] + upper[i] * x[i + 1]
    out[n - 1] = lower[n - 2] * x[n - 2] + diag[n - 1] * x[n - 1] + lower_corner * x[0]


class TridiagonalSolver:
    """
    Solver for tridiagonal linear systems M x = b.

    The matrix is given by its main diagonal (length n) and its upper and
    lower bands (length n-1). A cyclic matrix, as produced by periodic
    boundaries, also sets upper_corner = M[0, n-1] and lower_corner = M[n-1, 0];
    it is solved with a Sherman-Morrison correction of the tridiagonal part.

    Call compute_lu() whenever the matrix changes, then solve() for any
    number of right hand sides. solve() keeps all temporaries in its output
    array, so a factored solver may be shared by concurrent callers that
    supply their own output buffers.
    """

    def __init__(self, tolerance=DEFAULT_TOLERANCE):
        self.tolerance = tolerance
        self._n = 0
        self._factored = False

    @property
    def n(self):
        return self._n

    @property
    def is_factored(self):
        return self._factored

    def compute_lu(self, diag, upper, lower=None, upper_corner=0.0, lower_corner=0.0):
        """
        Factor the matrix. If lower is None the matrix is symmetric.
        Raises SingularMatrix on a (near) zero pivot.
        """
        diag = np.array(diag, dtype=np.float64)
        upper = np.array(upper, dtype=np.float64)
        lower = upper.copy() if lower is None else np.array(lower, dtype=np.float64)
        n = diag.shape[0]
        if diag.ndim != 1 or n == 0:
            raise InvalidArgument("Diagonal must be a non-empty 1D array")
        if upper.shape != (n - 1,) or lower.shape != (n - 1,):
            raise InvalidArgument(
                f"Off-diagonal bands must have length {n - 1}, got {upper.shape} and {lower.shape}"
            )
        upper_corner = float(upper_corner)
        lower_corner = float(lower_corner)
        cyclic = upper_corner != 0.0 or lower_corner != 0.0
        if cyclic and n < 3:
            raise InvalidArgument(f"Cyclic tridiagonal system needs n >= 3, got {n}")

        self._factored = False
        self._n = n
        self._diag, self._upper, self._lower = diag, upper, lower
        self._upper_corner, self._lower_corner = upper_corner, lower_corner

        # Largest absolute row sum sets the scale of a vanishing pivot
        row_sums = np.abs(diag)
        row_sums[:-1] += np.abs(upper)
        row_sums[1:] += np.abs(lower)
        row_sums[0] += abs(upper_corner)
        row_sums[-1] += abs(lower_corner)
        scale = float(row_sums.max())
        threshold = self.tolerance * scale

        factored_diag = diag
        if cyclic:
            gamma = -diag[0] if diag[0] != 0.0 else -scale
            factored_diag = diag.copy()
            factored_diag[0] -= gamma
            factored_diag[-1] -= lower_corner * upper_corner / gamma

        self._pivots = np.empty(n)
        self._multipliers = np.empty(max(n - 1, 0))
        row = _factor(factored_diag, upper, lower, self._pivots, self._multipliers, threshold)
        if row >= 0:
            raise SingularMatrix(
                f"Zero pivot {self._pivots[row]:.3e} in row {row} of tridiagonal matrix",
                row=row, pivot=float(self._pivots[row]),
            )

        self._correction = None
        if cyclic:
            u = np.zeros(n)
            u[0] = gamma
            u[-1] = lower_corner
            z = np.empty(n)
            _substitute(self._pivots, self._multipliers, upper, u, z)
            v_last = upper_corner / gamma
            denominator = 1.0 + z[0] + v_last * z[-1]
            # Dimensionless; compared against the size of the terms it cancels
            magnitude = 1.0 + abs(z[0]) + abs(v_last * z[-1])
            if abs(denominator) <= self.tolerance * magnitude:
                raise SingularMatrix(
                    f"Cyclic correction denominator {denominator:.3e} vanishes",
                    pivot=float(denominator),
                )
            self._correction = (z, v_last, denominator)

        self._factored = True
        logger.debug("Factored %s tridiagonal matrix of size %d", "cyclic" if cyclic else "plain", n)

    def solve(self, rhs, out=None):
        """Solve M x = rhs, writing x into out (allocated if None)."""
        self._require_factored()
        rhs = check_vector(rhs, self._n, "Right hand side")
        if out is None:
            out = np.empty(self._n)
        else:
            check_output(out, self._n, "Output buffer")
        _substitute(self._pivots, self._multipliers, self._upper, rhs, out)
        if self._correction is not None:
            z, v_last, denominator = self._correction
            factor = (out[0] + v_last * out[-1]) / denominator
            out -= factor * z
        return out

    def multiply(self, x, out=None):
        """Compute M x with the matrix last passed to compute_lu()."""
        self._require_factored()
        x = check_vector(x, self._n, "x")
        if out is None:
            out = np.empty(self._n)
        else:
            check_output(out, self._n, "Output buffer")
        if np.shares_memory(x, out):
            raise InvalidArgument("multiply() output must not share memory with x")
        tridiagonal_multiply(self._diag, self._upper, self._lower, x, out,
                             self._upper_corner, self._lower_corner)
        return out

    def _require_factored(self):
        if not self._factored:
            raise InvalidArgument("TridiagonalSolver.compute_lu() must be called before use")
