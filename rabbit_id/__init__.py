"""
rabbit_id
─────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from rabbit_id.tier0_core.ids import (
    SnowflakeGenerator,
    get_default_generator,
    set_default_generator,
    new_id,
)
from rabbit_id.tier0_core.layout import (
    BASE_EPOCH_MS,
    MAX_DATACENTER_ID,
    MAX_WORKER_ID,
    MAX_SEQUENCE,
    SnowflakeParts,
    pack,
    unpack,
)
from rabbit_id.tier0_core.errors import (
    RabbitIdError,
    ConfigurationError,
    ClockMovedBackwardsError,
    TimestampOutOfRangeError,
    AddressResolutionError,
    InvalidIdError,
)
from rabbit_id.tier0_core.config import get_config, RabbitIdConfig
from rabbit_id.tier0_core.logging import get_logger
from rabbit_id.tier0_core.metrics import start_metrics_server

from rabbit_id.tier1_runtime.clock import Clock, ManualClock, get_clock, set_clock
from rabbit_id.tier1_runtime.machine import derive_datacenter_id, derive_worker_id

from rabbit_id.tier3_platform.discovery import (
    AddressResolver,
    SystemAddressResolver,
    is_valid_address,
)

__version__ = "0.1.0"
__all__ = [
    # generator
    "SnowflakeGenerator", "get_default_generator", "set_default_generator", "new_id",
    # layout
    "BASE_EPOCH_MS", "MAX_DATACENTER_ID", "MAX_WORKER_ID", "MAX_SEQUENCE",
    "SnowflakeParts", "pack", "unpack",
    # errors
    "RabbitIdError", "ConfigurationError", "ClockMovedBackwardsError",
    "TimestampOutOfRangeError", "AddressResolutionError", "InvalidIdError",
    # config
    "get_config", "RabbitIdConfig",
    # logging
    "get_logger",
    # metrics
    "start_metrics_server",
    # clock
    "Clock", "ManualClock", "get_clock", "set_clock",
    # machine identity
    "derive_datacenter_id", "derive_worker_id",
    # discovery
    "AddressResolver", "SystemAddressResolver", "is_valid_address",
]
