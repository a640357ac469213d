# polymer_scft/__init__.py
# Finite-difference propagators for polymer self-consistent field theory
from polymer_scft.core.block import Block
from polymer_scft.core.domain import Domain, GeometryMode, BoundaryCondition
from polymer_scft.core.mesh import Mesh
from polymer_scft.core.propagator import Propagator, solve_independent
from polymer_scft.errors import PolymerSCFTError, InvalidArgument, SingularMatrix
from polymer_scft.numerics.tridiagonal import TridiagonalSolver

__version__ = "0.1.0"
