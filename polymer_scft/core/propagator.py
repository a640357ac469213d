# core/propagator.py
import logging
from concurrent.futures import ThreadPoolExecutor

from polymer_scft.core.arrays import xp, as_field
from polymer_scft.errors import InvalidArgument

logger = logging.getLogger(__name__)

FORWARD = 0
REVERSE = 1


class Propagator:
    """
    Contour history q(r, s) of one block for one direction of traversal.

    Holds ns + 1 fields, q(0) at the head of the block and q(ns) at its
    tail. Direction 0 runs s = 0 -> length, direction 1 runs s = length -> 0.
    Sources are the propagators of connected blocks whose tails meet at
    this propagator's head; their order of evaluation is decided by the
    caller.
    """

    def __init__(self, block, direction):
        if direction not in (FORWARD, REVERSE):
            raise InvalidArgument(f"Propagator direction must be 0 or 1, got {direction}")
        self.block = block
        self.direction = direction
        self._sources = []
        self._partner = None
        self._q = None
        self._work = None
        self.is_solved = False

    # Topology

    @property
    def partner(self):
        return self._partner

    def set_partner(self, partner):
        self._partner = partner

    @property
    def sources(self):
        return tuple(self._sources)

    def add_source(self, source):
        if source is self:
            raise InvalidArgument("A propagator cannot be its own source")
        self._sources.append(source)

    @property
    def is_ready(self):
        """True when every source has been solved."""
        return all(source.is_solved for source in self._sources)

    # Storage

    def allocate(self, ns, nx):
        self._q = xp.zeros((ns + 1, nx))
        self._work = xp.zeros(nx)
        self.is_solved = False

    def invalidate(self):
        self.is_solved = False

    @property
    def ns(self):
        self._require_allocated()
        return self._q.shape[0] - 1

    @property
    def history(self):
        """All fields as an array of shape (ns + 1, nx)."""
        self._require_allocated()
        return self._q

    def q(self, i):
        self._require_allocated()
        return self._q[i]

    @property
    def head(self):
        return self.q(0)

    @property
    def tail(self):
        return self.q(-1)

    # Solution

    def compute_head(self):
        """
        Junction condition: product of the tails of all sources, or a
        field of ones at a free chain end.
        """
        self._require_allocated()
        head = xp.ones(self._q.shape[1])
        for source in self._sources:
            if not source.is_solved:
                raise InvalidArgument("Cannot compute head: a source propagator is not solved")
            head *= source.tail
        return head

    def solve(self, head=None):
        """
        Integrate the modified diffusion equation over the whole block.
        head: initial field q(0); computed from the sources if None
        """
        self._require_allocated()
        if head is None:
            head = self.compute_head()
        else:
            head = as_field(head, self._q.shape[1], "head")

        q = self._q
        q[0] = head
        for i in range(q.shape[0] - 1):
            self.block.step(q[i], q[i + 1], self._work)
        self.is_solved = True
        logger.debug("Solved propagator %d of block %d (%d steps)",
                     self.direction, self.block.block_id, q.shape[0] - 1)
        return q

    def compute_q(self, average=False):
        """
        Single chain partition function from this propagator.

        Spatial integral of tail * partner head, i.e. the integral of the
        final field for a free partner end. With average=True the integral
        is divided by the domain volume.
        """
        if not self.is_solved:
            raise InvalidArgument("Propagator must be solved before computing Q")
        domain = self.block.domain
        if self._partner is not None and self._partner.is_solved:
            value = domain.inner_product(self.tail, self._partner.head)
        else:
            value = domain.spatial_integral(self.tail)
        if average:
            value /= domain.volume
        return value

    def _require_allocated(self):
        if self._q is None:
            raise InvalidArgument("Propagator is not allocated; call Block.set_discretization first")


def solve_independent(propagators, max_workers=None, heads=None):
    """
    Solve mutually independent propagators concurrently in threads.

    propagators: propagators with no source inside the same collection
    heads: optional mapping {propagator: head field}
    Each propagator integrates with its own work vector, so propagators
    of the same block may run side by side.
    """
    propagators = list(propagators)
    heads = heads or {}
    ids = {id(p) for p in propagators}
    for p in propagators:
        if any(id(source) in ids for source in p.sources):
            raise InvalidArgument("Propagators passed to solve_independent depend on each other")
        if p not in heads and not p.is_ready:
            raise InvalidArgument("A propagator has unsolved sources and no explicit head")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(p.solve, heads.get(p)) for p in propagators]
        for future in futures:
            future.result()
    return propagators
