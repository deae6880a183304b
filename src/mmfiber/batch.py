"""Vectorised ray generation with ``jax.random``.

Produces many rays per call for analysis and for hosts that accept ray
batches.  Follows the same model as the per-call sampler in ``source``:
rejection sampling against the BGGD for positions and tangent-space angle
sampling for directions.  Keys are split explicitly, so a given key always
yields the same batch.

Importing this module turns on JAX 64-bit mode (``jax_enable_x64``) for the
whole process, so arrays created afterwards default to float64 everywhere,
not only here.  Import it early, before other JAX arrays are built, and
expect callers sharing the process to see double precision as well.
"""

import logging
import math

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp
from jax import random

from .datatypes import SourceParameters, spatial_half_width
from .errors import SamplingExhaustedError
from .spatial import acceptance_probability

logger = logging.getLogger(__name__)

# Bounds on the number of candidates drawn per rejection round.
MIN_ROUND_SIZE = 256
MAX_ROUND_SIZE = 1 << 22


def bggd_density(x, y, omega, alpha):
    """Array form of ``spatial.bggd``: ``exp(-2 ((x^2 + y^2) / omega^2) ** alpha)``."""
    r2 = (x ** 2 + y ** 2) / omega ** 2
    return jnp.exp(-2.0 * r2 ** alpha)


def direction_cosines(theta_x, theta_y):
    """Array form of ``angular.direction_cosines``; returns an (..., 3) array."""
    tx = jnp.tan(theta_x)
    ty = jnp.tan(theta_y)
    n = 1.0 / jnp.sqrt(1.0 + tx ** 2 + ty ** 2)
    return jnp.stack([n * tx, n * ty, n], axis=-1)


def round_size(params: SourceParameters, num_rays: int) -> int:
    """Candidates to draw per round so one round usually suffices."""
    p = max(acceptance_probability(params), 1e-9)
    size = math.ceil(1.25 * num_rays / p)
    return int(min(max(size, MIN_ROUND_SIZE), MAX_ROUND_SIZE))


def _candidates(key, params: SourceParameters, size: int):
    kx, ky, ku = random.split(key, 3)
    half_width = spatial_half_width(params)
    x = random.uniform(kx, (size,), minval=-half_width, maxval=half_width)
    y = random.uniform(ky, (size,), minval=-half_width, maxval=half_width)
    u = random.uniform(ku, (size,))
    accepted = u <= bggd_density(x, y, params.omega, params.alpha)
    return x, y, accepted


def sample_positions(key, params: SourceParameters, num_rays: int, max_rounds: int = 100):
    """Draw *num_rays* launch offsets from the BGGD.

    Returns
    -------
    x, y : (num_rays,) arrays

    Raises
    ------
    SamplingExhaustedError
        If *max_rounds* rounds of candidates do not yield enough accepted
        points.
    """
    if max_rounds < 1:
        raise ValueError(f"max_rounds must be at least 1, got {max_rounds}")

    size = round_size(params, num_rays)
    xs, ys = [], []
    collected = 0
    for round_index in range(max_rounds):
        key, subkey = random.split(key)
        x, y, accepted = _candidates(subkey, params, size)
        # Boolean masking gives data-dependent shapes, so this stays outside jit.
        xs.append(x[accepted])
        ys.append(y[accepted])
        collected += int(accepted.sum())
        if collected >= num_rays:
            logger.debug(
                "Collected %d positions in %d round(s) of %d candidates",
                collected, round_index + 1, size,
            )
            return jnp.concatenate(xs)[:num_rays], jnp.concatenate(ys)[:num_rays]

    logger.warning(
        "Batch rejection sampling collected %d of %d positions in %d rounds",
        collected, num_rays, max_rounds,
    )
    raise SamplingExhaustedError(max_rounds * size, params)


def sample_directions(key, params: SourceParameters, num_rays: int):
    """Draw *num_rays* direction-cosine triples inside the NA cone."""
    limit = math.asin(params.fiber_na)
    kx, ky = random.split(key)
    theta_x = random.uniform(kx, (num_rays,), minval=-limit, maxval=limit)
    theta_y = random.uniform(ky, (num_rays,), minval=-limit, maxval=limit)
    return direction_cosines(theta_x, theta_y)


def generate_rays(key, params: SourceParameters, num_rays: int, max_rounds: int = 100):
    """Generate a batch of fiber-source rays.

    Parameters
    ----------
    key : jax.random key
    params : SourceParameters
        Resolved source parameters.
    num_rays : int
        Number of rays to return.
    max_rounds : int
        Cap on rejection rounds for the launch positions.

    Returns
    -------
    origins : (N, 3) array
        Launch points on the ``z = 0`` plane.
    directions : (N, 3) array
        Unit direction cosines ``(l, m, n)`` with ``n > 0``.
    intensities : (N,) array
        All ones.
    """
    key_pos, key_dir = random.split(key)
    x, y = sample_positions(key_pos, params, num_rays, max_rounds)
    directions = sample_directions(key_dir, params, num_rays)
    origins = jnp.stack([x, y, jnp.zeros_like(x)], axis=-1)
    intensities = jnp.ones(num_rays)
    return origins, directions, intensities
