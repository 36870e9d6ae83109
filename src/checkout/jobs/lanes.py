"""Priority lanes and retry timing for the job queue."""

import threading
import time
from enum import Enum


class Lane(Enum):
    CRITICAL = "critical"
    DEFAULT = "default"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Pickup order; lower ranks are served first."""
        return LANES_BY_PRIORITY.index(self)


LANES_BY_PRIORITY = (Lane.CRITICAL, Lane.DEFAULT, Lane.LOW)


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Seconds to wait before retrying after the ``attempt``-th failure."""
    if attempt < 1:
        return 0.0
    return min(base * 2 ** (attempt - 1), cap)


_sequence_lock = threading.Lock()
_last_sequence = 0


def next_sequence() -> int:
    """A strictly increasing number that orders jobs within a lane.

    Based on wall-clock nanoseconds so that order survives a restart against
    a persistent store.
    """
    global _last_sequence
    with _sequence_lock:
        candidate = time.time_ns()
        if candidate <= _last_sequence:
            candidate = _last_sequence + 1
        _last_sequence = candidate
        return candidate
