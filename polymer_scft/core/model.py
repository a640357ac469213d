# core/model.py
from polymer_scft.core.arrays import xp
from polymer_scft.errors import InvalidArgument


def brush_height(c_field, domain):
    """First moment of a concentration profile about x_min."""
    total = domain.spatial_integral(c_field)
    moment = domain.spatial_integral(c_field * (domain.x - domain.x_min))
    return moment / total


def wall_potential(x, amplitude=10.0, decay_length=0.2, x_wall=0.0):
    """
    Repulsive field w(x) = amplitude * exp(-(x - x_wall) / decay_length).

    x_wall is the position of the wall; pass domain.x_min so that the
    potential and brush_height share the same origin. Points behind the
    wall (x < x_wall) see more than amplitude.
    """
    if not decay_length > 0.0:
        raise InvalidArgument(f"Wall decay length must be positive, got {decay_length}")
    return amplitude * xp.exp(-(xp.asarray(x, dtype=float) - x_wall) / decay_length)
