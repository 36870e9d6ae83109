"""Runtime settings for the fulfillment workers.

Values come from the environment so the same image can run a single
synchronous worker in tests and a pool of threads in production.
"""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class PipelineSettings:
    """Worker pool and retry tuning."""

    workers: int = 4
    poll_interval: float = 0.5
    backoff_base: float = 1.0
    backoff_cap: float = 60.0
    stall_timeout: float = 300.0

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            workers=_env_int("CHECKOUT_WORKERS", cls.workers),
            poll_interval=_env_float("CHECKOUT_POLL_INTERVAL", cls.poll_interval),
            backoff_base=_env_float("CHECKOUT_BACKOFF_BASE", cls.backoff_base),
            backoff_cap=_env_float("CHECKOUT_BACKOFF_CAP", cls.backoff_cap),
            stall_timeout=_env_float("CHECKOUT_STALL_TIMEOUT", cls.stall_timeout),
        )
