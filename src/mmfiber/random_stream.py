"""Sources of uniform random draws for the samplers.

A stream is any object with ``uniform(low, high) -> float``.  Streams are
long-lived: create one per execution context and keep drawing from it.
``StreamPool`` hands out statistically independent streams, one per thread,
all derived from a single seed so that a run can be reproduced.
"""

import threading
from typing import Protocol, Sequence

import numpy as np

from .errors import FiberSourceError


class RandomStream(Protocol):
    def uniform(self, low: float, high: float) -> float:
        ...


class NumpyStream:
    """Uniform draws from a PCG64 ``numpy.random.Generator``.

    Parameters
    ----------
    seed : None, int or numpy.random.SeedSequence
        ``None`` draws fresh entropy once, at construction.
    """

    def __init__(self, seed=None):
        if not isinstance(seed, np.random.SeedSequence):
            seed = np.random.SeedSequence(seed)
        self.seed_sequence = seed
        self._rng = np.random.Generator(np.random.PCG64(seed))

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * float(self._rng.random())


class SequenceStream:
    """Replays a fixed list of unit draws in ``[0, 1)``.

    Each call maps the next recorded draw ``u`` to ``low + (high - low) * u``,
    the same mapping ``NumpyStream`` uses, so accept/reject decisions can be
    reproduced exactly from a recorded sequence.
    """

    def __init__(self, draws: Sequence[float]):
        self._draws = [float(u) for u in draws]
        self.consumed = 0

    @property
    def remaining(self) -> int:
        return len(self._draws) - self.consumed

    def uniform(self, low: float, high: float) -> float:
        if self.consumed >= len(self._draws):
            raise FiberSourceError(
                f"sequence stream exhausted after {self.consumed} draws"
            )
        u = self._draws[self.consumed]
        self.consumed += 1
        return low + (high - low) * u


class StreamPool:
    """Hands out independent ``NumpyStream`` objects derived from one seed.

    ``spawn`` always returns a new child stream.  ``for_current_thread``
    returns the calling thread's stream, creating it on first use and reusing
    it on every later call from that thread.
    """

    def __init__(self, seed=None):
        self._seed = seed
        self._root = np.random.SeedSequence(seed)
        self._lock = threading.Lock()
        self._local = threading.local()

    @property
    def seed(self):
        """The seed the pool was built from (None if it drew entropy)."""
        return self._seed

    @property
    def entropy(self):
        """Entropy actually used; pass it back as ``seed`` to reproduce a run."""
        return self._root.entropy

    @property
    def spawned(self) -> int:
        return self._root.n_children_spawned

    def spawn(self) -> NumpyStream:
        # SeedSequence.spawn mutates its child counter.
        with self._lock:
            (child,) = self._root.spawn(1)
        return NumpyStream(child)

    def for_current_thread(self) -> NumpyStream:
        stream = getattr(self._local, "stream", None)
        if stream is None:
            stream = self.spawn()
            self._local.stream = stream
        return stream
