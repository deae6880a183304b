"""Per-call ray generation: resolve parameters, sample, assemble.

Composes the spatial and angular samplers into the single-ray operation the
host calls once per ray.  The random stream is passed in explicitly; see
``random_stream`` for how to obtain one per execution context.
"""

from .angular import sample_direction
from .datatypes import DEFAULT_MAX_ITERATIONS, RaySample, SourceParameters
from .parameters import resolve_parameters
from .spatial import sample_position


def assemble_ray(xx, yy, l, m, n) -> RaySample:
    """Pack a launch offset and direction into a ``RaySample`` on ``z = 0``."""
    return RaySample(
        x=xx,
        y=yy,
        z=0.0,
        l=l,
        m=m,
        n=n,
        relative_intensity=1.0,
    )


def sample_ray(stream, params: SourceParameters, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> RaySample:
    """Emit one random ray from the fiber face.

    Parameters
    ----------
    stream : RandomStream
        Source of uniform draws.  Position draws are consumed first, then
        the two angle draws.
    params : SourceParameters
        Resolved source parameters.
    max_iterations : int
        Cap on rejection-sampling iterations for the launch position.

    Raises
    ------
    SamplingExhaustedError
        If no launch position is accepted within *max_iterations*.
    """
    xx, yy = sample_position(stream, params, max_iterations)
    l, m, n = sample_direction(stream, params)
    return assemble_ray(xx, yy, l, m, n)


def sample_ray_from_raw(stream, omega=None, alpha=None, rejection_factor=None,
                        fiber_na=None, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> RaySample:
    """Like ``sample_ray`` but starting from unvalidated parameter values."""
    params = resolve_parameters(omega, alpha, rejection_factor, fiber_na)
    return sample_ray(stream, params, max_iterations)


def sample_rays(stream, params: SourceParameters, num_rays: int,
                max_iterations: int = DEFAULT_MAX_ITERATIONS):
    """Emit *num_rays* rays in sequence from the same stream."""
    return [sample_ray(stream, params, max_iterations) for _ in range(num_rays)]
