"""Adapter between the host's flat numeric buffer and the sampling core.

The host hands over one array of doubles per ray (layout in ``datatypes``)
and reads seven output slots back from it.  Everything here is translation:
the sampling code never sees raw buffer offsets.

Return codes follow the host convention: ``0`` on success, ``-1`` when no
ray could be produced.
"""

import logging
import math
import threading
from typing import NamedTuple, Optional, Tuple

from .config import load_config
from .datatypes import (
    NUM_SOURCE_PARAMS,
    OUTPUT_SLOTS,
    SLOT_COUNT,
    SLOT_FIRST_PARAM,
    SLOT_INTENSITY,
    SLOT_OBJECT_INDEX,
    SLOT_SEED,
    SLOT_UNIT_SCALE,
    SLOT_WAVELENGTH,
    RaySample,
    SamplerConfig,
    SourceParameters,
)
from .errors import SamplingExhaustedError
from .names import parameter_name
from .parameters import resolve_sequence
from .random_stream import StreamPool
from .source import sample_ray

logger = logging.getLogger(__name__)

SUCCESS = 0
FAILURE = -1


# ---------------------------------------------------------------------------
# Request / response translation
# ---------------------------------------------------------------------------

class SourceRequest(NamedTuple):
    """The fields of a host buffer that the sampler cares about."""
    wavelength: float                          # micrometres
    unit_scale: float                          # millimetres per lens unit
    seed: float
    object_index: float
    raw_params: Tuple[Optional[float], ...]    # None where the slot is absent

    @classmethod
    def from_buffer(cls, data):
        """Read a request out of *data*.

        Slots past the end of *data*, or at or past ``int(data[0])`` when
        that count is positive and finite, are treated as absent.
        """
        limit = len(data)
        if limit > SLOT_COUNT and math.isfinite(data[SLOT_COUNT]):
            count = int(data[SLOT_COUNT])
            if count > 0:
                limit = min(limit, count)

        def read(slot):
            return float(data[slot]) if slot < limit else None

        raw_params = tuple(
            read(SLOT_FIRST_PARAM + i) for i in range(NUM_SOURCE_PARAMS)
        )
        return cls(
            wavelength=read(SLOT_WAVELENGTH) or 0.0,
            unit_scale=read(SLOT_UNIT_SCALE) or 0.0,
            seed=read(SLOT_SEED) or 0.0,
            object_index=read(SLOT_OBJECT_INDEX) or 0.0,
            raw_params=raw_params,
        )

    def parameters(self) -> SourceParameters:
        return resolve_sequence(self.raw_params)

    @property
    def seed_value(self) -> Optional[int]:
        """The integer seed carried by the request, or None if it has none."""
        if not math.isfinite(self.seed):
            return None
        seed = int(self.seed)
        return seed if seed > 0 else None


def write_ray(data, ray: RaySample):
    """Overwrite output slots 1..7 of *data* with *ray*."""
    if len(data) <= SLOT_INTENSITY:
        raise ValueError(
            f"buffer holds {len(data)} values, need at least {SLOT_INTENSITY + 1}"
        )
    for slot, value in zip(OUTPUT_SLOTS, ray):
        data[slot] = value


# ---------------------------------------------------------------------------
# Plugin state
# ---------------------------------------------------------------------------

class FiberSourcePlugin:
    """Serves ray requests from a host, one long-lived stream per thread.

    The stream pool is created on the first request.  Its seed is, in order
    of preference, ``config.seed``, the seed slot of that first request, or a
    one-time entropy draw.  Later requests reuse the pool and each thread
    keeps drawing from its own stream.
    """

    def __init__(self, config: Optional[SamplerConfig] = None):
        self.config = config if config is not None else SamplerConfig()
        self._pool = None
        self._pool_lock = threading.Lock()

    @property
    def pool(self) -> Optional[StreamPool]:
        return self._pool

    def _pool_for(self, request: SourceRequest) -> StreamPool:
        if self._pool is None:
            with self._pool_lock:
                if self._pool is None:
                    seed = self.config.seed
                    origin = "config"
                    if seed is None:
                        seed = request.seed_value
                        origin = "request"
                    if seed is None:
                        origin = "entropy"
                    self._pool = StreamPool(seed)
                    logger.debug(
                        "Created stream pool from %s (entropy=%d)",
                        origin, self._pool.entropy,
                    )
        return self._pool

    def source_definition(self, data) -> int:
        """Fill output slots 1..7 of *data* with one ray and return a status code."""
        if len(data) <= SLOT_INTENSITY:
            raise ValueError(
                f"buffer holds {len(data)} values, need at least {SLOT_INTENSITY + 1}"
            )
        request = SourceRequest.from_buffer(data)
        params = request.parameters()
        stream = self._pool_for(request).for_current_thread()
        try:
            ray = sample_ray(stream, params, self.config.max_iterations)
        except SamplingExhaustedError as exc:
            logger.warning("Ray request failed: %s", exc)
            return FAILURE
        write_ray(data, ray)
        return SUCCESS


def param_names(buffer) -> int:
    """Write the name of parameter ``buffer[0]`` into *buffer*, NUL-terminated.

    The name is truncated to fit the buffer's capacity.  Unknown indices
    produce an empty string.  Always returns ``0``.
    """
    capacity = len(buffer)
    if capacity == 0:
        return SUCCESS
    name = parameter_name(int(buffer[0])).encode("ascii")
    text = name[:capacity - 1] + b"\0"
    buffer[:len(text)] = text
    return SUCCESS


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------

_default_plugin = None
_default_lock = threading.Lock()


def default_plugin() -> FiberSourcePlugin:
    """The shared plugin used by the module-level entry points."""
    global _default_plugin
    if _default_plugin is None:
        with _default_lock:
            if _default_plugin is None:
                _default_plugin = FiberSourcePlugin(load_config())
    return _default_plugin


def user_source_definition(data) -> int:
    return default_plugin().source_definition(data)


def user_param_names(buffer) -> int:
    return param_names(buffer)
