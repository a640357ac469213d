# core/block.py
import logging

from polymer_scft.core.arrays import xp, as_field
from polymer_scft.core.propagator import Propagator, FORWARD, REVERSE
from polymer_scft.errors import InvalidArgument
from polymer_scft.numerics.finite_diff import (
    crank_nicolson_bands,
    crank_nicolson_step,
    laplacian_bands,
    simpson_weights,
    tridiagonal_matrix,
)
from polymer_scft.numerics.tridiagonal import TridiagonalSolver, check_output, check_vector

logger = logging.getLogger(__name__)


class Block:
    """
    Block within a branched polymer, solved by finite differences.

    Owns the contour discretization, the Crank-Nicolson matrices
    A q(i+1) = B q(i) and two propagators (forward and reverse).

    The Domain passed to set_discretization is borrowed, not copied: it
    must stay alive and unchanged for as long as the block uses it.
    """

    def __init__(self, length, monomer_id=0, block_id=0, diffusivity=1.0):
        self.monomer_id = monomer_id
        self.block_id = block_id
        self.diffusivity = float(diffusivity)
        if self.diffusivity <= 0.0:
            raise InvalidArgument(f"Diffusivity must be positive, got {diffusivity}")
        self._length = self._checked_length(length)

        self._domain = None
        self._ns = 0
        self._ds = 0.0
        self._laplacian = None
        self._a = None
        self._b = None
        self._work = None
        self._solver = TridiagonalSolver()
        self.c_field = None

        forward = Propagator(self, FORWARD)
        reverse = Propagator(self, REVERSE)
        forward.set_partner(reverse)
        reverse.set_partner(forward)
        self._propagators = (forward, reverse)

    @staticmethod
    def _checked_length(length):
        length = float(length)
        if not length > 0.0:
            raise InvalidArgument(f"Block length must be positive, got {length}")
        return length

    # Accessors

    @property
    def length(self):
        return self._length

    @property
    def ns(self):
        """Number of contour steps (contour grid points minus one)."""
        return self._ns

    @property
    def ds(self):
        return self._ds

    @property
    def domain(self):
        if self._domain is None:
            raise InvalidArgument("Block has no domain; call set_discretization first")
        return self._domain

    @property
    def propagators(self):
        return self._propagators

    def propagator(self, direction):
        return self._propagators[direction]

    # Discretization

    def set_discretization(self, domain, ds, even=False):
        """
        Choose the contour step and allocate all arrays.

        domain: associated Domain, with grid info
        ds: desired contour step; the actual step is length / ns
        even: if True, round ns up to an even number
        """
        ds = float(ds)
        if not ds > 0.0:
            raise InvalidArgument(f"Contour step must be positive, got {ds}")

        ns = max(1, int(round(self._length / ds)))
        if even and ns % 2 == 1:
            ns += 1

        nx = domain.nx
        self._domain = domain
        self._ns = ns
        self._ds = self._length / ns
        self._laplacian = laplacian_bands(domain)
        self._a = None
        self._b = None
        self._work = xp.zeros(nx)
        self.c_field = xp.zeros(nx)
        for propagator in self._propagators:
            propagator.allocate(ns, nx)
        logger.debug("Block %d: length=%g ns=%d ds=%g nx=%d",
                     self.block_id, self._length, ns, self._ds, nx)

    def set_length(self, length):
        """Set length and readjust ds, keeping ns fixed."""
        self._length = self._checked_length(length)
        if self._ns > 0:
            self._ds = self._length / self._ns
            # Matrices depend on ds and must be rebuilt
            self._a = None
            self._b = None
        for propagator in self._propagators:
            propagator.invalidate()

    # Solver

    def setup_solver(self, w):
        """
        Build the Crank-Nicolson matrices for potential w and factor A.
        Raises SingularMatrix if A cannot be factored.
        """
        domain = self.domain
        w = as_field(w, domain.nx, "w")
        a, b = crank_nicolson_bands(self._laplacian, w, self._ds, self.diffusivity)
        self._a = None
        self._b = None
        for propagator in self._propagators:
            propagator.invalidate()
        self._solver.compute_lu(a.diag, a.upper, a.lower, a.upper_corner, a.lower_corner)
        self._a = a
        self._b = b

    def step(self, q, q_new, work=None):
        """
        Compute one step of integration, from i to i+1.

        q: field at step i (input)
        q_new: field at step i + 1 (output)
        work: scratch vector; the block's own vector is used if None.
              Concurrent callers must pass distinct work vectors.
        """
        if self._b is None:
            raise InvalidArgument("Block.setup_solver must be called before step")
        nx = self._domain.nx
        q = check_vector(q, nx, "q")
        check_output(q_new, nx, "q_new")
        if work is None:
            work = self._work
        else:
            check_output(work, nx, "work")
        return crank_nicolson_step(q, self._b, self._solver, work, q_new)

    def matrices(self):
        """Sparse matrices (A, B) of the current Crank-Nicolson step."""
        if self._a is None:
            raise InvalidArgument("Block.setup_solver must be called before matrices")
        return tridiagonal_matrix(self._a), tridiagonal_matrix(self._b)

    def solve(self, head=None, tail_head=None, executor=None):
        """
        Solve both propagators of this block.

        head: initial field of the forward propagator (sources or ones if None)
        tail_head: initial field of the reverse propagator
        executor: optional concurrent.futures executor; both directions then
                  run concurrently
        """
        forward, reverse = self._propagators
        if executor is None:
            forward.solve(head)
            reverse.solve(tail_head)
        else:
            futures = [executor.submit(forward.solve, head),
                       executor.submit(reverse.solve, tail_head)]
            for future in futures:
                future.result()
        return forward, reverse

    def compute_concentration(self, prefactor):
        """
        Compute the unnormalized concentration of this block.

        On return c_field[r] = prefactor * int_0^length q(r,s) q*(r,length-s) ds,
        where q is propagator 0 and q* is propagator 1.
        """
        forward, reverse = self._propagators
        if not (forward.is_solved and reverse.is_solved):
            raise InvalidArgument("Both propagators must be solved before computing concentration")

        weights = simpson_weights(self._ns)
        products = forward.history * reverse.history[::-1]
        self.c_field[:] = (prefactor * self._ds) * (weights @ products)
        return self.c_field

    def __repr__(self):
        return (f"Block(length={self._length}, monomer_id={self.monomer_id}, "
                f"block_id={self.block_id}, ns={self._ns})")
