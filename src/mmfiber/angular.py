"""Direction sampling inside the fiber's numerical-aperture cone.

Two angles are drawn uniformly in the x-z and y-z planes and converted to
direction cosines through their tangents.  This is a simplified source
model: rays are uniform in ``(theta_x, theta_y)``, not in solid angle, and
the far-field footprint is a square in tangent space rather than a disc.
"""

import math

from .datatypes import SourceParameters


def half_cone_angle(fiber_na: float) -> float:
    """Maximum ray angle from the optical axis, ``arcsin(NA)``, in radians."""
    return math.asin(fiber_na)


def direction_cosines(theta_x: float, theta_y: float):
    """Convert plane angles to normalised direction cosines ``(l, m, n)``.

    ``theta_x`` is the angle of the ray's projection on the x-z plane and
    ``theta_y`` on the y-z plane, so ``l / n = tan(theta_x)`` and
    ``m / n = tan(theta_y)``.  ``n`` is always positive.
    """
    tx = math.tan(theta_x)
    ty = math.tan(theta_y)
    n = 1.0 / math.sqrt(1.0 + tx * tx + ty * ty)
    return n * tx, n * ty, n


def sample_direction(stream, params: SourceParameters):
    """Draw ``theta_x`` then ``theta_y`` from *stream* and return ``(l, m, n)``."""
    limit = half_cone_angle(params.fiber_na)
    theta_x = stream.uniform(-limit, limit)
    theta_y = stream.uniform(-limit, limit)
    return direction_cosines(theta_x, theta_y)
