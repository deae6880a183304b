"""Rejection sampling of launch positions from the BGGD near-field profile.

The Bivariate Generalized Gaussian Distribution used here is

    f(x, y) = exp(-2 * ((x^2 + y^2) / omega^2) ** alpha)

which peaks at 1 on the axis, so it can serve directly as the acceptance
envelope without a normalising constant.
"""

import logging
import math

from .datatypes import DEFAULT_MAX_ITERATIONS, SourceParameters, spatial_half_width
from .errors import SamplingExhaustedError

logger = logging.getLogger(__name__)


def bggd(xx: float, yy: float, omega2: float, alpha: float) -> float:
    """Unnormalised BGGD value at ``(xx, yy)``; *omega2* is omega squared."""
    return math.exp(-2.0 * ((xx * xx + yy * yy) / omega2) ** alpha)


def accepts(xx: float, yy: float, uu: float, params: SourceParameters) -> bool:
    """True when the auxiliary draw *uu* falls under the BGGD at ``(xx, yy)``."""
    return uu <= bggd(xx, yy, params.omega * params.omega, params.alpha)


def sample_position(stream, params: SourceParameters, max_iterations: int = DEFAULT_MAX_ITERATIONS):
    """Draw one launch offset ``(xx, yy)`` distributed as the BGGD.

    Each iteration consumes three draws from *stream*, in order: ``xx`` and
    ``yy`` uniform on ``[-R*omega, R*omega]`` (``R`` being the rejection
    factor) and ``uu`` uniform on ``[0, 1]``.  The first candidate with
    ``uu <= f(xx, yy)`` is returned.

    Raises
    ------
    SamplingExhaustedError
        If *max_iterations* candidates are all rejected.
    ValueError
        If *max_iterations* is less than 1.
    """
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")

    half_width = spatial_half_width(params)
    omega2 = params.omega * params.omega
    alpha = params.alpha

    for _ in range(max_iterations):
        xx = stream.uniform(-half_width, half_width)
        yy = stream.uniform(-half_width, half_width)
        uu = stream.uniform(0.0, 1.0)
        if uu <= bggd(xx, yy, omega2, alpha):
            return xx, yy

    logger.warning(
        "Rejection sampling gave up after %d iterations (omega=%g, alpha=%g, "
        "rejection_factor=%g, estimated acceptance %.3g)",
        max_iterations, params.omega, params.alpha, params.rejection_factor,
        acceptance_probability(params),
    )
    raise SamplingExhaustedError(max_iterations, params)


def acceptance_probability(params: SourceParameters) -> float:
    """Estimated chance that a single rejection iteration accepts.

    Ratio of the BGGD volume, ``pi * omega^2 * Gamma(1 + 1/alpha) / 2^(1/alpha)``,
    to the volume of the unit-height box of side ``2 * R * omega``.  The
    BGGD volume is taken over the whole plane, so this slightly overestimates
    the truncated case; the result is clipped to 1.
    """
    alpha = params.alpha
    r = params.rejection_factor
    volume = math.pi * math.gamma(1.0 + 1.0 / alpha) * 2.0 ** (-1.0 / alpha)
    return min(1.0, volume / (4.0 * r * r))
