"""Validation and defaulting of the four user-supplied source parameters.

Out-of-range values are replaced by documented defaults without raising.
The substitution is silent towards the caller but is logged at DEBUG and can
be inspected with ``substituted_fields``.
"""

import logging
import math

from .datatypes import (
    DEFAULT_ALPHA,
    DEFAULT_FIBER_NA,
    DEFAULT_OMEGA,
    DEFAULT_REJECTION_FACTOR,
    SourceParameters,
)

logger = logging.getLogger(__name__)


def _valid_omega(value):
    return value > 0.0


def _valid_alpha(value):
    return value >= 1.0


def _valid_rejection_factor(value):
    return value > 0.0


def _valid_fiber_na(value):
    # NA >= 1 has no real half-cone angle to sample within.
    return 0.0 < value < 1.0


# field name -> (validity check, default)
_RULES = {
    "omega": (_valid_omega, DEFAULT_OMEGA),
    "alpha": (_valid_alpha, DEFAULT_ALPHA),
    "rejection_factor": (_valid_rejection_factor, DEFAULT_REJECTION_FACTOR),
    "fiber_na": (_valid_fiber_na, DEFAULT_FIBER_NA),
}


def _coerce(value):
    """Turn a raw value into a float, or None when it is absent or unusable."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _checked(name, raw):
    """Return the usable float value of *raw*, or None if it must be replaced."""
    check, _default = _RULES[name]
    value = _coerce(raw)
    if value is None or not check(value):
        return None
    return value


def resolve_parameters(omega=None, alpha=None, rejection_factor=None, fiber_na=None):
    """Build a ``SourceParameters`` in which every field is valid.

    Each argument is checked on its own:

    - ``omega <= 0``            -> 0.1
    - ``alpha < 1``             -> 1.0
    - ``rejection_factor <= 0`` -> 2.0
    - ``fiber_na <= 0`` or ``fiber_na >= 1`` -> 0.39

    ``None``, NaN, infinities and values that cannot be converted to float
    are treated as out of range.
    """
    raw = {
        "omega": omega,
        "alpha": alpha,
        "rejection_factor": rejection_factor,
        "fiber_na": fiber_na,
    }
    resolved = {}
    for name, value in raw.items():
        checked = _checked(name, value)
        if checked is None:
            checked = _RULES[name][1]
            logger.debug("%s=%r out of range, using default %r", name, value, checked)
        resolved[name] = checked
    return SourceParameters(**resolved)


def resolve_sequence(values):
    """Resolve parameters given positionally, as they arrive from the host.

    Missing trailing values count as absent.
    """
    values = list(values)[:4]
    values += [None] * (4 - len(values))
    return resolve_parameters(*values)


def substituted_fields(omega=None, alpha=None, rejection_factor=None, fiber_na=None):
    """Names of the fields ``resolve_parameters`` would replace by a default."""
    raw = {
        "omega": omega,
        "alpha": alpha,
        "rejection_factor": rejection_factor,
        "fiber_na": fiber_na,
    }
    return [name for name, value in raw.items() if _checked(name, value) is None]
