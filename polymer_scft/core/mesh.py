# core/mesh.py
from collections import namedtuple

from polymer_scft.errors import InvalidArgument

MAX_DIM = 3

# Dimensions, row-major strides and total size, always replaced together
_Layout = namedtuple("_Layout", ["dimensions", "offsets", "size"])


class Mesh:
    """
    Regular lattice of D = 1, 2 or 3 dimensions.

    Maps integer positions (i_0, ..., i_{D-1}) to a linear rank in
    [0, size) with the last axis varying fastest, and provides the
    periodic wrap used for neighbour lookups.
    """

    def __init__(self, dimensions=None):
        self._layout = None
        if dimensions is not None:
            self.set_dimensions(dimensions)

    def set_dimensions(self, dimensions):
        dims = tuple(int(n) for n in dimensions)
        if not 1 <= len(dims) <= MAX_DIM:
            raise InvalidArgument(f"Mesh dimension count must be 1..{MAX_DIM}, got {len(dims)}")
        for i, n in enumerate(dims):
            if n <= 0:
                raise InvalidArgument(f"Mesh dimension {i} must be positive, got {n}")

        offsets = [1] * len(dims)
        for i in range(len(dims) - 2, -1, -1):
            offsets[i] = offsets[i + 1] * dims[i + 1]
        self._layout = _Layout(dims, tuple(offsets), offsets[0] * dims[0])

    @property
    def _checked_layout(self):
        if self._layout is None:
            raise InvalidArgument("Mesh dimensions have not been set")
        return self._layout

    @property
    def dim(self):
        return len(self._checked_layout.dimensions)

    @property
    def dimensions(self):
        return self._checked_layout.dimensions

    @property
    def offsets(self):
        return self._checked_layout.offsets

    @property
    def size(self):
        return self._checked_layout.size

    def dimension(self, i):
        return self._checked_layout.dimensions[i]

    def offset(self, i):
        return self._checked_layout.offsets[i]

    def rank(self, position):
        """Linear index of an in-mesh position."""
        layout = self._checked_layout
        position = self._as_position(position, layout)
        if not self._contains(position, layout):
            raise InvalidArgument(f"Position {position} is outside mesh {layout.dimensions}")
        return sum(p * o for p, o in zip(position, layout.offsets))

    def position(self, rank):
        """Inverse of rank()."""
        layout = self._checked_layout
        rank = int(rank)
        if not 0 <= rank < layout.size:
            raise InvalidArgument(f"Rank {rank} is outside [0, {layout.size})")
        position = []
        for offset in layout.offsets:
            i, rank = divmod(rank, offset)
            position.append(i)
        return tuple(position)

    def is_in_mesh(self, position):
        """True if position is a sequence of in-range coordinates, one per axis."""
        layout = self._checked_layout
        try:
            if len(position) != len(layout.dimensions):
                return False
            return self._contains(position, layout)
        except TypeError:
            # Scalars and non-numeric coordinates are never in the mesh
            return False

    def shift(self, coordinate, axis):
        """
        Wrap one coordinate into [0, dimension(axis)).

        Returns (wrapped, shift) with coordinate == wrapped + shift * n.
        """
        n = self._checked_layout.dimensions[axis]
        shift, wrapped = divmod(int(coordinate), n)
        return wrapped, shift

    def shift_position(self, position):
        """Wrap every coordinate; returns (wrapped_position, shifts)."""
        layout = self._checked_layout
        position = self._as_position(position, layout)
        wrapped = []
        shifts = []
        for axis, coordinate in enumerate(position):
            c, s = self.shift(coordinate, axis)
            wrapped.append(c)
            shifts.append(s)
        return tuple(wrapped), tuple(shifts)

    @staticmethod
    def _as_position(position, layout):
        position = tuple(int(p) for p in position)
        if len(position) != len(layout.dimensions):
            raise InvalidArgument(
                f"Position {position} has {len(position)} coordinates, mesh has {len(layout.dimensions)}"
            )
        return position

    @staticmethod
    def _contains(position, layout):
        return all(0 <= p < n for p, n in zip(position, layout.dimensions))

    def __eq__(self, other):
        if not isinstance(other, Mesh):
            return NotImplemented
        return self._layout == other._layout

    def __repr__(self):
        if self._layout is None:
            return "Mesh()"
        return f"Mesh(dimensions={self._layout.dimensions})"
