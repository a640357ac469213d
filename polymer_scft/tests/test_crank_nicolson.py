# tests/test_crank_nicolson.py
import numpy as np
import pytest

from polymer_scft.core.domain import Domain
from polymer_scft.errors import InvalidArgument
from polymer_scft.numerics.finite_diff import (
    Bands,
    crank_nicolson_bands,
    crank_nicolson_step,
    laplacian_bands,
    multiply_bands,
    simpson_weights,
    tridiagonal_matrix,
)
from polymer_scft.numerics.tridiagonal import TridiagonalSolver


@pytest.fixture
def setup_grid():
    domain = Domain(x_min=0.0, x_max=10.0, nx=256)
    ds = 0.01
    potential = np.zeros(domain.nx)
    return domain, ds, potential


def delta_graft(domain, x_graft):
    # Discretized delta function: unit mass in the closest bin to the graft point
    idx = int(np.argmin(np.abs(domain.x - x_graft)))
    delta = np.zeros(domain.nx)
    delta[idx] = 1.0 / domain.cell_volumes[idx]
    return delta


def test_propagator_normalization(setup_grid):
    domain, ds, potential = setup_grid
    a, b = crank_nicolson_bands(laplacian_bands(domain), potential, ds, diffusivity=1.0 / 6.0)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower)
    work = np.zeros(domain.nx)

    q = delta_graft(domain, 1.0)
    for _ in range(50):
        q = crank_nicolson_step(q, b, solver, work, np.empty(domain.nx))
        total = domain.spatial_integral(q)
        assert abs(total - 1.0) < 1e-10


def test_hand_computed_three_point_step():
    # A = tridiag(-1, 2, -1) with inverse [[3,2,1],[2,4,2],[1,2,3]] / 4
    a = Bands(np.array([2.0, 2.0, 2.0]), np.array([-1.0, -1.0]), np.array([-1.0, -1.0]), 0.0, 0.0)
    b = Bands(np.zeros(3), np.array([1.0, 1.0]), np.array([1.0, 1.0]), 0.0, 0.0)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower)

    q = np.array([1.0, 2.0, 3.0])
    work = np.zeros(3)
    q_new = crank_nicolson_step(q, b, solver, work, np.empty(3))

    np.testing.assert_allclose(work, [2.0, 4.0, 2.0], rtol=0, atol=1e-15)
    np.testing.assert_allclose(q_new, [4.0, 6.0, 4.0], rtol=1e-14)


def test_step_in_place():
    domain = Domain(0.0, 1.0, 11)
    a, b = crank_nicolson_bands(laplacian_bands(domain), np.linspace(0.0, 1.0, 11), 0.01)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower)
    q = np.cos(np.pi * domain.x)
    expected = crank_nicolson_step(q, b, solver, np.zeros(11), np.empty(11))
    crank_nicolson_step(q, b, solver, np.zeros(11), q)
    np.testing.assert_array_equal(q, expected)


@pytest.mark.parametrize("work_size, out_size", [(10, 11), (12, 11), (11, 5)])
def test_step_buffer_sizes_checked(work_size, out_size):
    domain = Domain(0.0, 1.0, 11)
    a, b = crank_nicolson_bands(laplacian_bands(domain), np.zeros(11), 0.01)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower)
    with pytest.raises(InvalidArgument):
        crank_nicolson_step(np.ones(11), b, solver, np.zeros(work_size), np.empty(out_size))


def test_multiply_bands_checks_inputs():
    b = Bands(np.ones(3), np.ones(2), np.ones(2), 0.0, 0.0)
    np.testing.assert_allclose(multiply_bands(b, np.ones(3), np.empty(3)), [2.0, 3.0, 2.0])
    with pytest.raises(InvalidArgument):
        multiply_bands(b, np.ones(2), np.empty(3))
    x = np.ones(3)
    with pytest.raises(InvalidArgument):
        multiply_bands(b, x, x)


def test_planar_laplacian_stencil():
    domain = Domain(0.0, 1.0, 11)
    lap = laplacian_bands(domain)
    dx2 = domain.dx ** 2
    np.testing.assert_allclose(lap.diag * dx2, -2.0)
    np.testing.assert_allclose(lap.upper[1:] * dx2, 1.0)
    np.testing.assert_allclose(lap.lower[:-1] * dx2, 1.0)
    # Reflecting walls: 2 (q1 - q0) / dx**2
    assert lap.upper[0] * dx2 == pytest.approx(2.0)
    assert lap.lower[-1] * dx2 == pytest.approx(2.0)


@pytest.mark.parametrize("mode, axis_coefficient", [("cylindrical", 4.0), ("spherical", 6.0)])
def test_radial_axis_stencil(mode, axis_coefficient):
    domain = Domain(0.0, 2.0, 21, mode=mode)
    lap = laplacian_bands(domain)
    dx2 = domain.dx ** 2
    assert lap.upper[0] * dx2 == pytest.approx(axis_coefficient)
    assert lap.diag[0] * dx2 == pytest.approx(-axis_coefficient)


@pytest.mark.parametrize("mode, x_min", [
    ("planar", 0.0), ("cylindrical", 0.0), ("spherical", 0.0),
    ("cylindrical", 1.0), ("spherical", 0.5),
])
def test_laplacian_conserves_mass(mode, x_min):
    domain = Domain(x_min, x_min + 3.0, 31, mode=mode)
    lap = laplacian_bands(domain)
    mat = tridiagonal_matrix(lap).toarray()

    # Rows sum to zero: constants are in the null space
    np.testing.assert_allclose(mat.sum(axis=1), 0.0, atol=1e-9)
    # Volume weighted columns sum to zero: no net flux
    np.testing.assert_allclose(domain.cell_volumes @ mat, 0.0, atol=1e-9)
    # Volume weighted operator is symmetric
    weighted = domain.cell_volumes[:, None] * mat
    np.testing.assert_allclose(weighted, weighted.T, atol=1e-9)


def test_periodic_laplacian_has_corners():
    domain = Domain(0.0, 1.0, 10, boundary="periodic")
    lap = laplacian_bands(domain)
    mat = tridiagonal_matrix(lap).toarray()
    dx2 = domain.dx ** 2
    assert mat[0, -1] * dx2 == pytest.approx(1.0)
    assert mat[-1, 0] * dx2 == pytest.approx(1.0)
    np.testing.assert_allclose(np.diag(mat) * dx2, -2.0)


def test_periodic_cosine_mode_decay():
    # cos(2 pi x / L) is an eigenvector of the periodic stencil; each step
    # multiplies it by (1 - c lam) / (1 + c lam) with c = ds / 2
    domain = Domain(0.0, 1.0, 32, boundary="periodic")
    ds = 0.01
    a, b = crank_nicolson_bands(laplacian_bands(domain), np.zeros(domain.nx), ds)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower, a.upper_corner, a.lower_corner)

    k = 2.0 * np.pi
    q0 = np.cos(k * domain.x)
    q = q0.copy()
    work = np.zeros(domain.nx)
    ns = 10
    for _ in range(ns):
        crank_nicolson_step(q, b, solver, work, q)

    lam = (2.0 - 2.0 * np.cos(k * domain.dx)) / domain.dx ** 2
    g = (1.0 - 0.5 * ds * lam) / (1.0 + 0.5 * ds * lam)
    np.testing.assert_allclose(q, g ** ns * q0, atol=1e-12)
    # Close to the continuum decay exp(-k^2 s)
    np.testing.assert_allclose(q, np.exp(-k * k * ns * ds) * q0, atol=5e-3)


@pytest.mark.parametrize("ns", [1, 2, 3, 4, 5, 7, 10, 11])
def test_simpson_weights_sum(ns):
    assert simpson_weights(ns).sum() == pytest.approx(ns)


@pytest.mark.parametrize("ns", [2, 3, 4, 5, 6, 9])
def test_simpson_weights_exact_for_cubics(ns):
    s = np.linspace(0.0, 1.0, ns + 1)
    ds = 1.0 / ns
    f = 4.0 * s ** 3 - 3.0 * s ** 2 + 2.0 * s + 1.0
    assert ds * simpson_weights(ns) @ f == pytest.approx(1.0 - 1.0 + 1.0 + 1.0)


def test_simpson_weights_odd_uses_three_eighths_on_last_intervals():
    w = simpson_weights(5)
    expected = np.array([1.0 / 3.0, 4.0 / 3.0, 1.0 / 3.0 + 3.0 / 8.0, 9.0 / 8.0, 9.0 / 8.0, 3.0 / 8.0])
    np.testing.assert_allclose(w, expected)
    np.testing.assert_allclose(simpson_weights(1), [0.5, 0.5])


@pytest.mark.parametrize("do_plot", [False])  # Toggle to True manually if desired
def test_visual_propagation(setup_grid, do_plot):
    if not do_plot:
        pytest.skip("Skipping plot test (toggle do_plot to enable)")

    import matplotlib.pyplot as plt
    domain, ds, potential = setup_grid
    a, b = crank_nicolson_bands(laplacian_bands(domain), potential, ds, diffusivity=1.0 / 6.0)
    solver = TridiagonalSolver()
    solver.compute_lu(a.diag, a.upper, a.lower)
    work = np.zeros(domain.nx)

    q = delta_graft(domain, 1.0)
    q_all = [q]
    for _ in range(50):
        q = crank_nicolson_step(q, b, solver, work, np.empty(domain.nx))
        q_all.append(q)

    for i, qi in enumerate(q_all[::10]):
        plt.plot(domain.x, qi, label=f"s={i * 10 * ds:.2f}")
    plt.xlabel("x")
    plt.ylabel("q(x, s)")
    plt.title("Crank-Nicolson Propagation (Visual)")
    plt.legend()
    plt.tight_layout()
    plt.show()
