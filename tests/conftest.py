"""Shared fixtures for the test suite."""

import jax.numpy as jnp
import pytest


def _ks_statistic(samples, cdf):
    """Two-sided Kolmogorov-Smirnov statistic of *samples* against *cdf*."""
    xs = jnp.sort(jnp.asarray(samples))
    n = xs.shape[0]
    values = cdf(xs)
    upper = jnp.arange(1, n + 1) / n - values
    lower = values - jnp.arange(n) / n
    return float(jnp.maximum(upper.max(), lower.max()))


@pytest.fixture(scope="session")
def ks_statistic():
    return _ks_statistic
