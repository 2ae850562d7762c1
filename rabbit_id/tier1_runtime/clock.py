"""
rabbit_id.tier1_runtime.clock
──────────────────────────────
Mockable millisecond time source. Generators read time only through a Clock,
which makes same-millisecond bursts, sequence exhaustion and clock
regressions reproducible in tests.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable


def _system_ms() -> int:
    return time.time_ns() // 1_000_000


# ── Clock implementation ───────────────────────────────────────────────────

class Clock:
    """Wall clock in Unix milliseconds. Override ms_fn to control time in tests."""

    def __init__(self, ms_fn: Callable[[], int] | None = None) -> None:
        self._ms_fn = ms_fn or _system_ms

    def timestamp_ms(self) -> int:
        """Return the current Unix timestamp in milliseconds."""
        return self._ms_fn()

    def timestamp(self) -> float:
        """Return the current Unix timestamp (float seconds)."""
        return self.timestamp_ms() / 1000

    def now(self) -> datetime:
        """Return the current UTC datetime."""
        return datetime.fromtimestamp(self.timestamp(), tz=timezone.utc)

    def pause(self) -> None:
        """Give up the CPU between polls while waiting for the next millisecond."""
        time.sleep(0)

    def freeze(self, ms: int) -> "Clock":
        """Return a new Clock frozen at the given Unix millisecond."""
        return Clock(ms_fn=lambda: ms)


class ManualClock(Clock):
    """
    Clock that only moves when told to. With ``advance_on_pause`` every wait
    poll moves it forward one millisecond, so exhaustion waits terminate.
    """

    def __init__(self, start_ms: int, *, advance_on_pause: bool = False) -> None:
        self._ms = start_ms
        self._advance_on_pause = advance_on_pause
        super().__init__(ms_fn=lambda: self._ms)

    def set(self, ms: int) -> None:
        self._ms = ms

    def advance(self, ms: int = 1) -> None:
        self._ms += ms

    def pause(self) -> None:
        if self._advance_on_pause:
            self._ms += 1


# ── Module-level singleton ─────────────────────────────────────────────────

_clock = Clock()


def get_clock() -> Clock:
    """Return the global clock instance."""
    return _clock


def set_clock(clock: Clock) -> None:
    """Replace the global clock (use in tests)."""
    global _clock
    _clock = clock


def timestamp_ms() -> int:
    """Return the current Unix timestamp in milliseconds."""
    return _clock.timestamp_ms()


__all__ = ["Clock", "ManualClock", "get_clock", "set_clock", "timestamp_ms"]
