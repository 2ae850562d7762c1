"""
rabbit_id.tier0_core.layout
────────────────────────────
Bit layout of a 64-bit snowflake id, high bit to low bit:

    0 | 41-bit timestamp delta | 5-bit datacenter | 5-bit worker | 12-bit sequence

The timestamp delta counts milliseconds since ``BASE_EPOCH_MS``; 41 bits last
about 69 years. The sign bit is always 0, so ids fit a signed BIGINT.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from rabbit_id.tier0_core.errors import InvalidIdError

# 2022-06-19T04:36:09.856Z. Never change this once ids have been issued.
BASE_EPOCH_MS = 1655613369856

TIMESTAMP_BITS = 41
DATACENTER_ID_BITS = 5
WORKER_ID_BITS = 5
SEQUENCE_BITS = 12

MAX_DATACENTER_ID = (1 << DATACENTER_ID_BITS) - 1  # 31
MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1          # 31
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1            # 4095
MAX_TIMESTAMP_DELTA = (1 << TIMESTAMP_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS

_ID_BITS = TIMESTAMP_SHIFT + TIMESTAMP_BITS  # 63


@dataclass(frozen=True)
class SnowflakeParts:
    """Decoded fields of a snowflake id. ``timestamp_ms`` is absolute Unix ms."""
    id: int
    timestamp_ms: int
    datacenter_id: int
    worker_id: int
    sequence: int

    @property
    def generated_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)


def pack(
    timestamp_ms: int,
    datacenter_id: int,
    worker_id: int,
    sequence: int,
    epoch_ms: int = BASE_EPOCH_MS,
) -> int:
    """
    Pack the four fields into one id. No range checks: callers guarantee
    datacenter_id/worker_id in [0, 31], sequence in [0, 4095] and
    timestamp_ms >= epoch_ms.
    """
    return (
        ((timestamp_ms - epoch_ms) << TIMESTAMP_SHIFT)
        | (datacenter_id << DATACENTER_ID_SHIFT)
        | (worker_id << WORKER_ID_SHIFT)
        | sequence
    )


def unpack(snowflake_id: int, epoch_ms: int = BASE_EPOCH_MS) -> SnowflakeParts:
    """Split an id back into its fields. Raises InvalidIdError for non-63-bit values."""
    if isinstance(snowflake_id, bool) or not isinstance(snowflake_id, int):
        raise InvalidIdError(f"Snowflake id must be an int, got {type(snowflake_id).__name__}")
    if snowflake_id < 0 or snowflake_id >> _ID_BITS:
        raise InvalidIdError(f"Not a 63-bit snowflake id: {snowflake_id}")
    return SnowflakeParts(
        id=snowflake_id,
        timestamp_ms=(snowflake_id >> TIMESTAMP_SHIFT) + epoch_ms,
        datacenter_id=(snowflake_id >> DATACENTER_ID_SHIFT) & MAX_DATACENTER_ID,
        worker_id=(snowflake_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
        sequence=snowflake_id & MAX_SEQUENCE,
    )


__all__ = [
    "BASE_EPOCH_MS",
    "TIMESTAMP_BITS", "DATACENTER_ID_BITS", "WORKER_ID_BITS", "SEQUENCE_BITS",
    "MAX_DATACENTER_ID", "MAX_WORKER_ID", "MAX_SEQUENCE", "MAX_TIMESTAMP_DELTA",
    "WORKER_ID_SHIFT", "DATACENTER_ID_SHIFT", "TIMESTAMP_SHIFT",
    "SnowflakeParts", "pack", "unpack",
]
