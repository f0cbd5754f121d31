"""
Clock collaborators.

The engines never call ``time.time()`` directly; they read ``now()``
from an injected clock so every time-based decision is reproducible.
"""

from __future__ import annotations

import time


class SystemClock:
    """Wall-clock Unix seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Deterministic clock for tests and simulations.

    Time only moves forward: ``set()`` to an earlier timestamp or a
    negative ``advance()`` raises ``ValueError``.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("start must be non-negative")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(
                f"clock cannot move backwards ({timestamp} < {self._now})"
            )
        self._now = int(timestamp)
        return self._now
