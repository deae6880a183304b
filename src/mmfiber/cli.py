"""Command line tool: generate fiber-source rays and summarise them.

Example::

    mmfiber-sample --n-rays 10000 --omega 0.05 --alpha 3 --fiber-na 0.22 \\
        --seed 7 --output rays.npz
"""

import argparse
import logging
import sys

import numpy as np

from .config import load_config
from .datatypes import RaySample
from .errors import SamplingExhaustedError
from .parameters import resolve_parameters, substituted_fields
from .random_stream import NumpyStream
from .source import sample_rays
from .spatial import acceptance_probability

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mmfiber-sample",
        description="Sample rays from a multimode fiber source model",
    )
    parser.add_argument("--n-rays", type=int, default=1000, help="Number of rays to generate")
    parser.add_argument("--omega", type=float, default=0.1, help="Spatial scale of the BGGD")
    parser.add_argument("--alpha", type=float, default=1.0, help="BGGD shape exponent (>= 1)")
    parser.add_argument("--rejection-factor", type=float, default=2.0,
                        help="Half-width of the sampling box in units of omega")
    parser.add_argument("--fiber-na", type=float, default=0.39, help="Fiber numerical aperture")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed (defaults to MMFIBER_SEED, else fresh entropy)")
    parser.add_argument("--max-iterations", type=int, default=None,
                        help="Rejection iterations per ray (per-call sampler) "
                             "or rounds (--batch)")
    parser.add_argument("--batch", action="store_true", default=False,
                        help="Use the vectorised JAX generator")
    parser.add_argument("--output", type=str, default=None,
                        help="Write origins, directions and intensities to this .npz file")
    parser.add_argument("--verbose", action="store_true", default=False,
                        help="Enable debug logging")
    return parser


def _generate_per_call(params, n_rays, seed, max_iterations):
    stream = NumpyStream(seed)
    rays = sample_rays(stream, params, n_rays, max_iterations)
    table = np.array(rays, dtype=float).reshape(-1, len(RaySample._fields))
    return table[:, 0:3], table[:, 3:6], table[:, 6]


def _generate_batch(params, n_rays, seed, max_rounds):
    # Imported here so the per-call path does not pay for JAX start-up.
    from jax import random

    from .batch import generate_rays

    if seed is None:
        seed = int(np.random.SeedSequence().generate_state(1)[0])
    origins, directions, intensities = generate_rays(
        random.PRNGKey(seed), params, n_rays, max_rounds
    )
    return np.asarray(origins), np.asarray(directions), np.asarray(intensities)


def summarise(origins, directions):
    """RMS launch radius and RMS angle (radians) from the optical axis."""
    if len(origins) == 0:
        return 0.0, 0.0
    r2 = origins[:, 0] ** 2 + origins[:, 1] ** 2
    angles = np.arccos(np.clip(directions[:, 2], -1.0, 1.0))
    return float(np.sqrt(r2.mean())), float(np.sqrt((angles ** 2).mean()))


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.n_rays < 0:
        parser.error("--n-rays must not be negative")
    if args.max_iterations is not None and args.max_iterations < 1:
        parser.error("--max-iterations must be at least 1")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config()
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    seed = args.seed if args.seed is not None else config.seed

    raw = dict(
        omega=args.omega,
        alpha=args.alpha,
        rejection_factor=args.rejection_factor,
        fiber_na=args.fiber_na,
    )
    for name in substituted_fields(**raw):
        logger.info("%s=%r is out of range, the default is used instead", name, raw[name])
    params = resolve_parameters(**raw)

    print(f"omega            = {params.omega:g}")
    print(f"alpha            = {params.alpha:g}")
    print(f"rejection factor = {params.rejection_factor:g}")
    print(f"fiber NA         = {params.fiber_na:g}")
    print(f"acceptance (est) = {acceptance_probability(params):.4f}")

    try:
        if args.batch:
            max_rounds = args.max_iterations if args.max_iterations is not None else 100
            origins, directions, intensities = _generate_batch(params, args.n_rays, seed, max_rounds)
        else:
            max_iterations = (
                args.max_iterations if args.max_iterations is not None else config.max_iterations
            )
            origins, directions, intensities = _generate_per_call(
                params, args.n_rays, seed, max_iterations
            )
    except SamplingExhaustedError as exc:
        logger.error("%s", exc)
        return 1

    rms_radius, rms_angle = summarise(origins, directions)
    print(f"rays             = {len(origins)}")
    print(f"RMS radius       = {rms_radius:.6g}")
    print(f"RMS angle (rad)  = {rms_angle:.6g}")

    if args.output:
        np.savez(args.output, origins=origins, directions=directions, intensities=intensities)
        logger.info("Wrote %d rays to %s", len(origins), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
