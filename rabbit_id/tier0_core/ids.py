"""
rabbit_id.tier0_core.ids
─────────────────────────
Snowflake id generation. A SnowflakeGenerator owns its (datacenter_id,
worker_id) pair and the last-millisecond/sequence state; ``next_id()`` runs
the whole read-compare-update-pack step under one per-instance lock.

Usage:
    gen = SnowflakeGenerator(datacenter_id=1, worker_id=1)
    gen.next_id()            # 64-bit int, time ordered

    gen = SnowflakeGenerator()   # ids derived from MAC address + pid
    new_id()                     # module-level default generator
"""
from __future__ import annotations

import threading
from typing import get_args

from rabbit_id.tier0_core import metrics
from rabbit_id.tier0_core.config import ClockBackwardsPolicy, RabbitIdConfig, get_config
from rabbit_id.tier0_core.errors import (
    ClockMovedBackwardsError,
    ConfigurationError,
    TimestampOutOfRangeError,
)
from rabbit_id.tier0_core.layout import (
    BASE_EPOCH_MS,
    MAX_DATACENTER_ID,
    MAX_SEQUENCE,
    MAX_TIMESTAMP_DELTA,
    MAX_WORKER_ID,
    SnowflakeParts,
    pack,
    unpack,
)
from rabbit_id.tier0_core.logging import get_logger
from rabbit_id.tier1_runtime.clock import Clock, get_clock
from rabbit_id.tier1_runtime.machine import derive_datacenter_id, derive_worker_id
from rabbit_id.tier3_platform.discovery import AddressResolver

log = get_logger(__name__)

_POLICIES = frozenset(get_args(ClockBackwardsPolicy))


def _check_id(name: str, value: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ConfigurationError(
            f"{name} must be an int between 0 and {maximum}, got {value!r}",
            field=name,
        )
    return value


class SnowflakeGenerator:
    """
    Thread-safe snowflake id generator.

    Args:
        datacenter_id:    0-31. Derived from the local MAC address when None.
        worker_id:        0-31. Derived from datacenter_id and the pid when None.
        clock:            time source, defaults to the global clock.
        epoch_ms:         Unix ms subtracted from the timestamp field.
        clock_backwards:  "raise" | "wait" | "reset", see _handle_backwards().
        max_backwards_ms: largest regression the "wait" policy sits out.
        resolver:         address resolver used only for derivation.
    """

    def __init__(
        self,
        datacenter_id: int | None = None,
        worker_id: int | None = None,
        *,
        clock: Clock | None = None,
        epoch_ms: int | None = None,
        clock_backwards: ClockBackwardsPolicy | None = None,
        max_backwards_ms: int | None = None,
        resolver: AddressResolver | None = None,
    ) -> None:
        derived = datacenter_id is None or worker_id is None
        if datacenter_id is None:
            datacenter_id = derive_datacenter_id(resolver)
        if worker_id is None:
            worker_id = derive_worker_id(datacenter_id)

        self._datacenter_id = _check_id("datacenter_id", datacenter_id, MAX_DATACENTER_ID)
        self._worker_id = _check_id("worker_id", worker_id, MAX_WORKER_ID)
        self._epoch_ms = BASE_EPOCH_MS if epoch_ms is None else epoch_ms
        self._policy = clock_backwards or "raise"
        self._max_backwards_ms = 5 if max_backwards_ms is None else max_backwards_ms
        if self._policy not in _POLICIES:
            raise ConfigurationError(
                f"clock_backwards must be one of {sorted(_POLICIES)}, got {self._policy!r}",
                field="clock_backwards",
            )
        if self._epoch_ms < 0 or self._max_backwards_ms < 0:
            raise ConfigurationError("epoch_ms and max_backwards_ms must be non-negative")

        self._clock = clock or get_clock()
        self._lock = threading.Lock()
        self._last_timestamp = -1
        self._sequence = 0

        labels = {"datacenter_id": str(self._datacenter_id), "worker_id": str(self._worker_id)}
        self._ids_generated = metrics.ids_generated(**labels)
        self._sequence_exhausted = metrics.sequence_exhausted(**labels)
        self._clock_regressions = metrics.clock_regressions(policy=self._policy, **labels)

        log.info(
            "generator.created",
            datacenter_id=self._datacenter_id,
            worker_id=self._worker_id,
            derived=derived,
            epoch_ms=self._epoch_ms,
            clock_backwards=self._policy,
        )

    # ── Alternate constructors ─────────────────────────────────────────────

    @classmethod
    def from_environment(
        cls, resolver: AddressResolver | None = None, **kwargs
    ) -> "SnowflakeGenerator":
        """Build a generator whose ids are derived from this host and process."""
        return cls(None, None, resolver=resolver, **kwargs)

    @classmethod
    def from_config(
        cls, config: RabbitIdConfig | None = None, **kwargs
    ) -> "SnowflakeGenerator":
        """Build a generator from RABBIT_* settings, deriving any id left unset."""
        config = config or get_config()
        kwargs.setdefault("epoch_ms", config.epoch_ms)
        kwargs.setdefault("clock_backwards", config.clock_backwards)
        kwargs.setdefault("max_backwards_ms", config.max_backwards_ms)
        return cls(config.datacenter_id, config.worker_id, **kwargs)

    # ── Properties ─────────────────────────────────────────────────────────

    @property
    def datacenter_id(self) -> int:
        return self._datacenter_id

    @property
    def worker_id(self) -> int:
        return self._worker_id

    @property
    def epoch_ms(self) -> int:
        return self._epoch_ms

    # ── Generation ─────────────────────────────────────────────────────────

    def next_id(self) -> int:
        """Return the next id. Blocks for up to ~1 ms when a millisecond is used up."""
        with self._lock:
            return self._next_id_locked()

    def next_ids(self, count: int) -> list[int]:
        """Return *count* consecutive ids issued under a single lock acquisition."""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        with self._lock:
            return [self._next_id_locked() for _ in range(count)]

    def parse(self, snowflake_id: int) -> SnowflakeParts:
        """Decode an id produced with this generator's epoch."""
        return unpack(snowflake_id, self._epoch_ms)

    def _next_id_locked(self) -> int:
        last = self._last_timestamp
        now = self._clock.timestamp_ms()

        if now < last:
            now = self._handle_backwards(last, now)

        if now == last:
            sequence = (self._sequence + 1) & MAX_SEQUENCE
            if sequence == 0:
                self._sequence_exhausted.inc()
                log.debug("sequence.exhausted", timestamp_ms=last)
                now = self._wait_next_millis(last)
        else:
            sequence = 0

        delta = now - self._epoch_ms
        if not 0 <= delta <= MAX_TIMESTAMP_DELTA:
            raise TimestampOutOfRangeError(
                f"Timestamp {now} is outside the 41-bit range of epoch {self._epoch_ms}",
                timestamp_ms=now,
                epoch_ms=self._epoch_ms,
            )

        self._last_timestamp = now
        self._sequence = sequence
        self._ids_generated.inc()
        return pack(now, self._datacenter_id, self._worker_id, sequence, self._epoch_ms)

    def _wait_next_millis(self, last: int) -> int:
        now = self._clock.timestamp_ms()
        while now <= last:
            self._clock.pause()
            now = self._clock.timestamp_ms()
        return now

    def _handle_backwards(self, last: int, now: int) -> int:
        """
        React to a clock that reads earlier than the last millisecond used.

        raise: refuse, leaving state untouched.
        wait:  sit out regressions up to max_backwards_ms, refuse larger ones.
        reset: accept the earlier time (ids may repeat or go out of order).
        """
        drift = last - now
        self._clock_regressions.inc()
        log.warning(
            "clock.moved_backwards",
            drift_ms=drift,
            last_timestamp_ms=last,
            policy=self._policy,
        )
        if self._policy == "reset":
            return now
        if self._policy == "wait" and drift <= self._max_backwards_ms:
            return self._wait_next_millis(last)
        raise ClockMovedBackwardsError(last, now)

    def __repr__(self) -> str:
        return (
            f"SnowflakeGenerator(datacenter_id={self._datacenter_id}, "
            f"worker_id={self._worker_id}, epoch_ms={self._epoch_ms})"
        )


# ── Module-level default generator ─────────────────────────────────────────

_default: SnowflakeGenerator | None = None
_default_lock = threading.Lock()


def get_default_generator() -> SnowflakeGenerator:
    """Return the process-wide generator, building it from config on first use."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = SnowflakeGenerator.from_config()
    return _default


def set_default_generator(generator: SnowflakeGenerator | None) -> None:
    """Replace the process-wide generator (use in tests). None rebuilds lazily."""
    global _default
    _default = generator


def new_id() -> int:
    """Issue an id from the process-wide generator."""
    return get_default_generator().next_id()


__all__ = [
    "SnowflakeGenerator",
    "get_default_generator",
    "set_default_generator",
    "new_id",
]
