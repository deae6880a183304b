"""Core data structures for the multimode fiber source model.

Every ray request builds a fresh ``SourceParameters`` from caller input and
returns a ``RaySample`` that the caller owns afterwards.  Nothing here holds
state between calls.
"""

import math
from typing import NamedTuple, Optional


# ---------------------------------------------------------------------------
# Source parameters
# ---------------------------------------------------------------------------

class SourceParameters(NamedTuple):
    """Shape parameters of the fiber source, all guaranteed valid.

    Build instances with ``parameters.resolve_parameters`` rather than
    directly, so out-of-range values are replaced by the defaults below.
    """
    omega: float             # spatial scale of the BGGD
    alpha: float             # shape exponent (1 = Gaussian, >1 = flat top)
    rejection_factor: float  # half-width of the sampling box in units of omega
    fiber_na: float          # numerical aperture, sin(half-cone angle)


DEFAULT_OMEGA = 0.1
DEFAULT_ALPHA = 1.0
DEFAULT_REJECTION_FACTOR = 2.0
DEFAULT_FIBER_NA = 0.39

DEFAULT_PARAMETERS = SourceParameters(
    omega=DEFAULT_OMEGA,
    alpha=DEFAULT_ALPHA,
    rejection_factor=DEFAULT_REJECTION_FACTOR,
    fiber_na=DEFAULT_FIBER_NA,
)


# ---------------------------------------------------------------------------
# Ray sample
# ---------------------------------------------------------------------------

class RaySample(NamedTuple):
    """One emitted ray: launch point on the source plane and direction cosines.

    ``z`` is always 0 and ``relative_intensity`` is always 1.0.  Intensity
    variation across the fiber face is carried by the density of samples,
    not by per-ray weights.
    """
    x: float
    y: float
    z: float
    l: float
    m: float
    n: float
    relative_intensity: float

    @property
    def position(self):
        return (self.x, self.y, self.z)

    @property
    def direction(self):
        return (self.l, self.m, self.n)


# ---------------------------------------------------------------------------
# Sampler mechanics (not part of the optical model)
# ---------------------------------------------------------------------------

DEFAULT_MAX_ITERATIONS = 100_000


class SamplerConfig(NamedTuple):
    """Settings for the sampling machinery, separate from the source shape."""
    max_iterations: int = DEFAULT_MAX_ITERATIONS  # rejection attempts per ray
    seed: Optional[int] = None                    # None -> one-time entropy draw


# ---------------------------------------------------------------------------
# Host buffer layout
# ---------------------------------------------------------------------------
# The host passes one flat array of doubles in and reads the ray back out of
# the same array.  Slot indices are defined here so every module agrees.

SLOT_COUNT = 0           # total number of values in the buffer
SLOT_X = 1
SLOT_Y = 2
SLOT_Z = 3
SLOT_L = 4
SLOT_M = 5
SLOT_N = 6
SLOT_INTENSITY = 7
SLOT_OBJECT_INDEX = 8    # host-owned, never written
SLOT_WAVELENGTH = 20     # micrometres
SLOT_UNIT_SCALE = 21     # millimetres per lens unit
SLOT_SEED = 22
SLOT_FIRST_PARAM = 30    # user parameter 1 lives here, 2 at 31, ...

NUM_SOURCE_PARAMS = 4
OUTPUT_SLOTS = (SLOT_X, SLOT_Y, SLOT_Z, SLOT_L, SLOT_M, SLOT_N, SLOT_INTENSITY)


# ---------------------------------------------------------------------------
# Derived sampling bounds
# ---------------------------------------------------------------------------

def spatial_half_width(params: SourceParameters) -> float:
    """Half-width of the square rejection box on each spatial axis."""
    return params.rejection_factor * params.omega


def sampling_bounds(params: SourceParameters):
    """Return ``((x_min, x_max), (theta_min, theta_max))``.

    Both spatial axes share the first interval and both angular axes share
    the second, where the angular limit is ``arcsin(fiber_na)``.
    """
    half_width = spatial_half_width(params)
    half_angle = math.asin(params.fiber_na)
    return (-half_width, half_width), (-half_angle, half_angle)
