# core/domain.py
import enum
import logging

from polymer_scft.core.arrays import xp, as_field
from polymer_scft.core.mesh import Mesh
from polymer_scft.errors import InvalidArgument

logger = logging.getLogger(__name__)


class GeometryMode(enum.Enum):
    PLANAR = "planar"
    CYLINDRICAL = "cylindrical"
    SPHERICAL = "spherical"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidArgument(f"Unknown geometry mode: {value!r}") from None

    @property
    def exponent(self):
        """Power k of the radial area element r**k."""
        return {GeometryMode.PLANAR: 0, GeometryMode.CYLINDRICAL: 1, GeometryMode.SPHERICAL: 2}[self]


class BoundaryCondition(enum.Enum):
    REFLECTING = "reflecting"
    PERIODIC = "periodic"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidArgument(f"Unknown boundary condition: {value!r}") from None


class Domain:
    """
    One-dimensional spatial domain for the finite-difference solver.

    The coordinate x is a cartesian distance (planar) or a radius
    (cylindrical, spherical). Reflecting domains include both end points,
    periodic domains omit the image of x_min at x_max.

    Volumes are generalized volumes int r**k dr, without the angular
    factor 2*pi (cylinder) or 4*pi (sphere).
    """

    def __init__(self, x_min=0.0, x_max=1.0, nx=2, mode=GeometryMode.PLANAR,
                 boundary=BoundaryCondition.REFLECTING):
        x_min = float(x_min)
        x_max = float(x_max)
        nx = int(nx)
        mode = GeometryMode.parse(mode)
        boundary = BoundaryCondition.parse(boundary)

        if nx < 2:
            raise InvalidArgument(f"Domain needs at least 2 grid points, got nx = {nx}")
        if boundary is BoundaryCondition.PERIODIC and nx < 3:
            raise InvalidArgument(f"Periodic domain needs at least 3 grid points, got nx = {nx}")
        if not x_max > x_min:
            raise InvalidArgument(f"Domain requires x_max > x_min, got [{x_min}, {x_max}]")
        if mode is not GeometryMode.PLANAR:
            if x_min < 0.0:
                raise InvalidArgument(f"Radial domain requires x_min >= 0, got {x_min}")
            if boundary is BoundaryCondition.PERIODIC:
                raise InvalidArgument(f"Periodic boundaries require planar geometry, got {mode.value}")

        self.x_min = x_min
        self.x_max = x_max
        self.mode = mode
        self.boundary = boundary
        self.mesh = Mesh([nx])

        if boundary is BoundaryCondition.PERIODIC:
            self.dx = (x_max - x_min) / nx
        else:
            self.dx = (x_max - x_min) / (nx - 1)
        self.x = x_min + self.dx * xp.arange(nx)

        self.cell_volumes = self._compute_cell_volumes()
        self.volume = float(xp.sum(self.cell_volumes))
        logger.debug("Domain %s: nx=%d dx=%.6g volume=%.6g", mode.value, nx, self.dx, self.volume)

    @property
    def nx(self):
        return self.mesh.size

    @property
    def is_periodic(self):
        return self.boundary is BoundaryCondition.PERIODIC

    @property
    def is_shell(self):
        """True for a radial domain with an inner wall at x_min > 0."""
        return self.mode is not GeometryMode.PLANAR and self.x_min > 0.0

    def _compute_cell_volumes(self):
        if self.is_periodic:
            return xp.full(self.nx, self.dx)

        # Control volume of point i spans [x_i - dx/2, x_i + dx/2] clipped to the domain
        k = self.mode.exponent
        lo = self.x - 0.5 * self.dx
        hi = self.x + 0.5 * self.dx
        lo[0] = self.x_min
        hi[-1] = self.x_max
        return (hi ** (k + 1) - lo ** (k + 1)) / (k + 1)

    def face_areas(self):
        """
        Generalized area of the faces between neighbouring points.

        Entry i is the face between points i and i+1 at radius x_i + dx/2.
        Periodic domains have one extra face, between nx-1 and 0.
        """
        if self.is_periodic:
            return xp.ones(self.nx)
        k = self.mode.exponent
        faces = self.x[:-1] + 0.5 * self.dx
        return faces ** k

    def neighbor(self, i, offset):
        """
        Rank of the point offset steps away from point i.

        Wraps around in a periodic domain; None beyond a reflecting wall.
        """
        j = int(i) + int(offset)
        if self.is_periodic:
            wrapped, _ = self.mesh.shift(j, 0)
            return wrapped
        if self.mesh.is_in_mesh((j,)):
            return j
        return None

    def spatial_integral(self, f):
        f = as_field(f, self.nx, "f")
        return float(xp.dot(self.cell_volumes, f))

    def spatial_average(self, f):
        return self.spatial_integral(f) / self.volume

    def inner_product(self, f, g):
        f = as_field(f, self.nx, "f")
        g = as_field(g, self.nx, "g")
        return float(xp.sum(self.cell_volumes * f * g))

    def __repr__(self):
        return (f"Domain(x_min={self.x_min}, x_max={self.x_max}, nx={self.nx}, "
                f"mode={self.mode.value!r}, boundary={self.boundary.value!r})")
