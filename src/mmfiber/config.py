"""Sampler configuration read from environment variables.

``MMFIBER_MAX_ITERATIONS``
    Rejection-loop iteration cap per ray (positive integer).
``MMFIBER_SEED``
    Seed for the stream pool (non-negative integer).  Unset means a one-time
    entropy draw.
"""

import os

from .datatypes import DEFAULT_MAX_ITERATIONS, SamplerConfig

ENV_MAX_ITERATIONS = "MMFIBER_MAX_ITERATIONS"
ENV_SEED = "MMFIBER_SEED"


def _read_int(environ, name):
    raw = environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_config(environ=None) -> SamplerConfig:
    """Build a ``SamplerConfig`` from *environ* (defaults to ``os.environ``)."""
    if environ is None:
        environ = os.environ

    max_iterations = _read_int(environ, ENV_MAX_ITERATIONS)
    if max_iterations is None:
        max_iterations = DEFAULT_MAX_ITERATIONS
    elif max_iterations < 1:
        raise ValueError(f"{ENV_MAX_ITERATIONS} must be positive, got {max_iterations}")

    seed = _read_int(environ, ENV_SEED)
    if seed is not None and seed < 0:
        raise ValueError(f"{ENV_SEED} must be non-negative, got {seed}")

    return SamplerConfig(max_iterations=max_iterations, seed=seed)
