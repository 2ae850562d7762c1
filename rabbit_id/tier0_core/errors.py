"""
rabbit_id.tier0_core.errors
────────────────────────────
Error taxonomy for id generation. The hot path raises only when the clock
misbehaves (ClockMovedBackwardsError under the "raise"/"wait" policies,
TimestampOutOfRangeError for a clock before the epoch); everything else
surfaces at construction or decode time.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class RabbitIdError(Exception):
    """
    Base class for all rabbit_id errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - message: short human-readable summary
    - detail: internal context, defaults to message
    """

    code: str = "rabbit_id_error"

    def __init__(
        self,
        message: str = "Id generation failed.",
        detail: str | None = None,
        *,
        code: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.message = message
        self.detail = detail or message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.metadata:
            d["error"]["metadata"] = dict(self.metadata)
        return d


# ── Typed error classes ───────────────────────────────────────────────────────

class ConfigurationError(RabbitIdError):
    """Invalid generator configuration (ids out of range, bad policy, ...)."""
    code = "configuration_error"


class ClockMovedBackwardsError(RabbitIdError):
    """The wall clock reads earlier than the last millisecond used."""
    code = "clock_moved_backwards"

    def __init__(self, last_timestamp_ms: int, current_timestamp_ms: int) -> None:
        self.last_timestamp_ms = last_timestamp_ms
        self.current_timestamp_ms = current_timestamp_ms
        self.drift_ms = last_timestamp_ms - current_timestamp_ms
        super().__init__(
            "Clock moved backwards.",
            f"Clock moved backwards by {self.drift_ms} ms; refusing to generate "
            f"ids until {last_timestamp_ms}",
            last_timestamp_ms=last_timestamp_ms,
            current_timestamp_ms=current_timestamp_ms,
            drift_ms=self.drift_ms,
        )


class TimestampOutOfRangeError(RabbitIdError):
    """Current time is before the epoch or past the 41-bit timestamp range."""
    code = "timestamp_out_of_range"


class AddressResolutionError(RabbitIdError):
    """Local network interfaces could not be enumerated at all."""
    code = "address_resolution_error"


class InvalidIdError(RabbitIdError):
    """Value cannot be decoded as a 63-bit snowflake id."""
    code = "invalid_id"


__all__ = [
    "RabbitIdError",
    "ConfigurationError",
    "ClockMovedBackwardsError",
    "TimestampOutOfRangeError",
    "AddressResolutionError",
    "InvalidIdError",
]
