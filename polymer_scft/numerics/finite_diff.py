# numerics/finite_diff.py
from collections import namedtuple

from scipy.sparse import diags

from polymer_scft.core.arrays import xp
from polymer_scft.errors import InvalidArgument
from polymer_scft.numerics.tridiagonal import check_output, check_vector, tridiagonal_multiply

# Bands of a (cyclic) tridiagonal matrix M:
#   diag[i] = M[i, i], upper[i] = M[i, i+1], lower[i] = M[i+1, i],
#   upper_corner = M[0, n-1], lower_corner = M[n-1, 0]
Bands = namedtuple("Bands", ["diag", "upper", "lower", "upper_corner", "lower_corner"])


def laplacian_bands(domain):
    """
    Finite-volume Laplacian on a 1D domain.

    Point i owns the control volume V_i = domain.cell_volumes[i]. The flux
    through the face between i and i+1 is area * (q[i+1] - q[i]) / dx, with
    area = r**k at the face radius, so

        (L q)_i = sum over faces of area * (q_j - q_i) / (dx * V_i)

    Reflecting walls carry no flux. Every row sums to zero and the volume
    weighted sum of L q vanishes, which conserves mass.
    Planar interior rows reduce to (1, -2, 1) / dx**2.
    """
    n = domain.nx
    volumes = domain.cell_volumes
    coupling = domain.face_areas() / domain.dx

    upper = xp.zeros(n - 1)
    lower = xp.zeros(n - 1)
    upper_corner = 0.0
    lower_corner = 0.0
    # Face i joins point i to its right neighbour, if any
    for i in range(n):
        j = domain.neighbor(i, 1)
        if j is None:
            continue
        if j == i + 1:
            upper[i] = coupling[i] / volumes[i]
            lower[i] = coupling[i] / volumes[j]
        else:
            # Periodic wrap from the last point back to the first
            lower_corner = float(coupling[i] / volumes[i])
            upper_corner = float(coupling[i] / volumes[j])

    diag = xp.zeros(n)
    diag[:-1] -= upper
    diag[1:] -= lower
    diag[0] -= upper_corner
    diag[-1] -= lower_corner
    return Bands(diag, upper, lower, upper_corner, lower_corner)


def crank_nicolson_bands(laplacian, w, ds, diffusivity=1.0):
    """
    Matrices of one Crank-Nicolson step of dq/ds = D lap(q) - w q.

    laplacian: Bands of the discrete Laplacian
    w: chemical potential field (1D array)
    ds: contour step
    Returns (A, B) with A = I - ds/2 D L + ds/2 W and B = I + ds/2 D L - ds/2 W,
    so that one step solves A q(s+ds) = B q(s).
    """
    if ds <= 0.0:
        raise InvalidArgument(f"Contour step must be positive, got {ds}")
    half_ds = 0.5 * ds
    c = half_ds * diffusivity

    a = Bands(
        1.0 - c * laplacian.diag + half_ds * w,
        -c * laplacian.upper,
        -c * laplacian.lower,
        -c * laplacian.upper_corner,
        -c * laplacian.lower_corner,
    )
    b = Bands(
        1.0 + c * laplacian.diag - half_ds * w,
        c * laplacian.upper,
        c * laplacian.lower,
        c * laplacian.upper_corner,
        c * laplacian.lower_corner,
    )
    return a, b


def multiply_bands(bands, x, out):
    """out = M x, out must be distinct from x."""
    n = bands.diag.shape[0]
    x = check_vector(x, n, "x")
    check_output(out, n, "Output buffer")
    if xp.shares_memory(x, out):
        raise InvalidArgument("Banded product output must not share memory with x")
    tridiagonal_multiply(bands.diag, bands.upper, bands.lower, x, out,
                         bands.upper_corner, bands.lower_corner)
    return out


def tridiagonal_matrix(bands):
    """Build a sparse CSR matrix from a set of bands."""
    n = bands.diag.shape[0]
    mat = diags([bands.lower, bands.diag, bands.upper], offsets=[-1, 0, 1], shape=(n, n)).tolil()
    if bands.upper_corner != 0.0:
        mat[0, n - 1] = bands.upper_corner
    if bands.lower_corner != 0.0:
        mat[n - 1, 0] = bands.lower_corner
    return mat.tocsr()


def crank_nicolson_step(q_curr, b_bands, solver, work, out):
    """
    Compute one Crank-Nicolson step in s-direction.
    q_curr: propagator at current s
    b_bands: Bands of the explicit matrix B
    solver: TridiagonalSolver factored with the implicit matrix A
    work: scratch vector, receives B q_curr
    out: propagator at s + ds (may be q_curr itself)
    """
    multiply_bands(b_bands, q_curr, work)
    return solver.solve(work, out)


def simpson_weights(ns):
    """
    Quadrature weights, in units of ds, for ns equal contour intervals.

    ns even: composite Simpson's rule.
    ns odd, ns >= 3: Simpson's rule on the first ns - 3 intervals and
        Simpson's 3/8 rule on the last three.
    ns == 1: trapezoidal rule.
    The weights always sum to ns.
    """
    ns = int(ns)
    if ns < 1:
        raise InvalidArgument(f"Number of contour steps must be >= 1, got {ns}")
    weights = xp.zeros(ns + 1)
    if ns == 1:
        weights[:] = 0.5
        return weights

    m = ns if ns % 2 == 0 else ns - 3
    if m > 0:
        weights[0] += 1.0 / 3.0
        weights[1:m:2] += 4.0 / 3.0
        weights[2:m:2] += 2.0 / 3.0
        weights[m] += 1.0 / 3.0
    if m < ns:
        weights[m:m + 4] += xp.array([3.0, 9.0, 9.0, 3.0]) / 8.0
    return weights
