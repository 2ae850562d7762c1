"""
rabbit_id test configuration.

Generators in tests run on ManualClock and fake resolvers wherever the
outcome depends on time or on the host's network setup.
"""
from __future__ import annotations

import os
import socket
from dataclasses import dataclass

import pytest

# ── Environment ────────────────────────────────────────────────────────────
# These must be set before any rabbit_id modules are imported.

os.environ.setdefault("RABBIT_LOG_LEVEL", "WARNING")
os.environ.setdefault("RABBIT_LOG_FORMAT", "console")

# A fixed millisecond comfortably inside the 41-bit range of the default epoch.
T0 = 1_700_000_000_000


# ── Fakes ──────────────────────────────────────────────────────────────────

class FakeResolver:
    """AddressResolver with canned answers."""

    def __init__(self, address: str | None = None, mac: bytes | None = None) -> None:
        self.address = address
        self.mac = mac
        self.resolve_calls = 0

    def resolve(self) -> str | None:
        self.resolve_calls += 1
        return self.address

    def hardware_address(self, address: str) -> bytes | None:
        return self.mac if address == self.address else None


class FailingResolver:
    def resolve(self) -> str | None:
        from rabbit_id.tier0_core.errors import AddressResolutionError
        raise AddressResolutionError("Cannot enumerate network interfaces.")

    def hardware_address(self, address: str) -> bytes | None:
        return None


@dataclass
class FakeAddr:
    """Shape of psutil's snicaddr entries."""
    family: int
    address: str
    netmask: str | None = None
    broadcast: str | None = None
    ptp: str | None = None


def fake_interfaces() -> dict[str, list[FakeAddr]]:
    import psutil
    return {
        "lo": [
            FakeAddr(socket.AF_INET, "127.0.0.1"),
            FakeAddr(psutil.AF_LINK, "00:00:00:00:00:00"),
        ],
        "eth0": [
            FakeAddr(psutil.AF_LINK, "02:42:ac:11:00:02"),
            FakeAddr(socket.AF_INET6, "fe80::42:acff:fe11:2"),
            FakeAddr(socket.AF_INET, "10.1.2.3"),
        ],
    }


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_module_singletons():
    """
    Reset cached singletons between tests so no clock, resolver, config or
    default generator leaks from one test into the next.
    """
    import rabbit_id.tier0_core.ids as _ids
    import rabbit_id.tier1_runtime.clock as _clock
    import rabbit_id.tier3_platform.discovery as _discovery
    from rabbit_id.tier0_core.config import _reset_config

    orig_clock = _clock._clock
    orig_resolver = _discovery._resolver
    orig_default = _ids._default
    _reset_config()

    yield

    _clock._clock = orig_clock
    _discovery._resolver = orig_resolver
    _ids._default = orig_default
    _reset_config()


@pytest.fixture
def manual_clock():
    """A clock frozen at T0 that ticks forward only while a generator waits."""
    from rabbit_id.tier1_runtime.clock import ManualClock
    return ManualClock(T0, advance_on_pause=True)


@pytest.fixture
def fake_resolver():
    """Resolver for a host at 10.0.0.5 with MAC 00:1a:2b:3c:4d:5e."""
    return FakeResolver("10.0.0.5", bytes.fromhex("001a2b3c4d5e"))
