"""Display names of the user parameters, as shown by the host's source dialog."""

import numbers

# Index 1 is the first user parameter.
PARAMETER_NAMES = (
    "Omega",
    "Alpha",
    "Rejection grid factor",
    "Fiber NA",
)


def parameter_name(index: int) -> str:
    """Return the name of parameter *index* (1-based), or ``""`` if unknown."""
    if isinstance(index, bool) or not isinstance(index, numbers.Integral):
        return ""
    if 1 <= index <= len(PARAMETER_NAMES):
        return PARAMETER_NAMES[index - 1]
    return ""
