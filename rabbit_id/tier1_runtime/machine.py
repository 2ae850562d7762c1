"""
rabbit_id.tier1_runtime.machine
────────────────────────────────
Best-effort machine identity for generators built without explicit ids.

  datacenter_id: low 16 bits of the MAC of the interface that owns the local
                 address, modulo 32; 1 when there is no usable MAC.
  worker_id:     low 16 bits of SHA-1("<datacenter_id><pid>"), modulo 32.

Neither value is collision-free across hosts or processes. Deployments that
need a guarantee must configure ids explicitly.
"""
from __future__ import annotations

import hashlib
import os

from rabbit_id.tier0_core.layout import MAX_DATACENTER_ID, MAX_WORKER_ID
from rabbit_id.tier0_core.logging import get_logger
from rabbit_id.tier3_platform.discovery import AddressResolver, get_resolver

log = get_logger(__name__)

DEFAULT_DATACENTER_ID = 1


def derive_datacenter_id(resolver: AddressResolver | None = None) -> int:
    """
    Derive a datacenter id from the local hardware address.
    AddressResolutionError from the resolver propagates.
    """
    resolver = resolver or get_resolver()
    address = resolver.resolve()
    if address is None:
        log.info("discovery.fallback_datacenter", reason="no_address")
        return DEFAULT_DATACENTER_ID

    mac = resolver.hardware_address(address)
    if not mac or len(mac) < 2:
        log.info("discovery.fallback_datacenter", reason="no_hardware_address", address=address)
        return DEFAULT_DATACENTER_ID

    low16 = mac[-2] | (mac[-1] << 8)
    return low16 % (MAX_DATACENTER_ID + 1)


def derive_worker_id(datacenter_id: int, pid: int | None = None) -> int:
    """Derive a worker id from the datacenter id and the process id."""
    pid = os.getpid() if pid is None else pid
    digest = hashlib.sha1(f"{datacenter_id}{pid}".encode("utf-8")).digest()
    low16 = int.from_bytes(digest[-2:], "big")
    return low16 % (MAX_WORKER_ID + 1)


def derive_machine_ids(resolver: AddressResolver | None = None) -> tuple[int, int]:
    """Return (datacenter_id, worker_id) for this process."""
    datacenter_id = derive_datacenter_id(resolver)
    return datacenter_id, derive_worker_id(datacenter_id)


__all__ = [
    "DEFAULT_DATACENTER_ID",
    "derive_datacenter_id",
    "derive_worker_id",
    "derive_machine_ids",
]
