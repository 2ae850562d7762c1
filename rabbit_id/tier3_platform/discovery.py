"""
rabbit_id.tier3_platform.discovery
───────────────────────────────────
Local address discovery. Finds the best non-loopback IPv4 address of this
host and the hardware (MAC) address of the interface that owns it. Only
automatic machine-id derivation uses this; the id hot path never does.

Resolution order:
  - the address the host name resolves to
  - the first valid IPv4 address found by enumerating interfaces (psutil)

Minimal stack: psutil
"""
from __future__ import annotations

import ipaddress
import re
import socket
from typing import Protocol, runtime_checkable

import psutil

from rabbit_id.tier0_core.errors import AddressResolutionError
from rabbit_id.tier0_core.logging import get_logger

log = get_logger(__name__)

_IP_PATTERN = re.compile(r"\d{1,3}(\.\d{1,3}){3,5}")
_ANY_ADDRESS = "0.0.0.0"
_LOCALHOST = "127.0.0.1"


def is_valid_address(address: str | None) -> bool:
    """True for a dotted-decimal IPv4 address that is neither loopback nor 0.0.0.0."""
    if not address or address in (_ANY_ADDRESS, _LOCALHOST):
        return False
    if not _IP_PATTERN.fullmatch(address):
        return False
    try:
        return not ipaddress.ip_address(address).is_loopback
    except ValueError:
        return False


def _parse_mac(mac: str) -> bytes | None:
    digits = re.sub(r"[^0-9a-fA-F]", "", mac)
    if not digits or len(digits) % 2:
        return None
    raw = bytes.fromhex(digits)
    return raw if any(raw) else None


@runtime_checkable
class AddressResolver(Protocol):
    def resolve(self) -> str | None: ...

    def hardware_address(self, address: str) -> bytes | None: ...


class SystemAddressResolver:
    """
    Resolve addresses from the running host. The first non-None result is
    memoised for the lifetime of the resolver; concurrent first calls may
    both probe, which is harmless since they find the same address.
    """

    def __init__(self) -> None:
        self._address: str | None = None

    def resolve(self) -> str | None:
        if self._address is not None:
            return self._address
        address = self._probe()
        if address is not None:
            self._address = address
        return address

    def hardware_address(self, address: str) -> bytes | None:
        for name, addrs in self._interfaces().items():
            if not any(a.family == socket.AF_INET and a.address == address for a in addrs):
                continue
            for a in addrs:
                if a.family == psutil.AF_LINK:
                    return _parse_mac(a.address)
            log.debug("discovery.no_hardware_address", interface=name, address=address)
            return None
        return None

    def _probe(self) -> str | None:
        default = self._default_address()
        if is_valid_address(default):
            log.debug("discovery.address_resolved", address=default, source="hostname")
            return default

        for name, addrs in self._interfaces().items():
            for a in addrs:
                if a.family == socket.AF_INET and is_valid_address(a.address):
                    log.debug(
                        "discovery.address_resolved",
                        address=a.address,
                        source="interface",
                        interface=name,
                    )
                    return a.address
        return default

    @staticmethod
    def _default_address() -> str | None:
        try:
            return socket.gethostbyname(socket.gethostname())
        except OSError:
            return None

    @staticmethod
    def _interfaces() -> dict:
        try:
            return psutil.net_if_addrs()
        except (OSError, psutil.Error) as exc:
            raise AddressResolutionError(
                "Cannot enumerate network interfaces.", str(exc)
            ) from exc


_resolver: AddressResolver | None = None


def get_resolver() -> AddressResolver:
    global _resolver
    if _resolver is None:
        _resolver = SystemAddressResolver()
    return _resolver


def set_resolver(resolver: AddressResolver | None) -> None:
    """Replace the process-wide resolver (use in tests). None restores the default."""
    global _resolver
    _resolver = resolver


def resolve() -> str | None:
    """Return the best local IPv4 address, or None."""
    return get_resolver().resolve()


__all__ = [
    "AddressResolver",
    "SystemAddressResolver",
    "is_valid_address",
    "get_resolver",
    "set_resolver",
    "resolve",
]
