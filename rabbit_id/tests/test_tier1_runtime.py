"""Tests for tier1_runtime modules."""
from __future__ import annotations

import hashlib

from conftest import T0, FakeResolver
from rabbit_id.tier1_runtime.clock import Clock, ManualClock, get_clock, set_clock, timestamp_ms
from rabbit_id.tier1_runtime.machine import (
    DEFAULT_DATACENTER_ID,
    derive_datacenter_id,
    derive_machine_ids,
    derive_worker_id,
)


# ── clock ──────────────────────────────────────────────────────────────────

class TestClock:
    def test_timestamp_ms_is_int(self):
        ms = timestamp_ms()
        assert isinstance(ms, int)
        assert ms > T0

    def test_now_returns_utc_datetime(self):
        assert Clock().now().tzinfo is not None

    def test_frozen_clock(self):
        clock = Clock().freeze(T0)
        assert clock.timestamp_ms() == T0
        assert clock.timestamp_ms() == T0

    def test_frozen_clock_set_global(self):
        frozen = Clock().freeze(T0)
        set_clock(frozen)
        assert get_clock() is frozen
        assert timestamp_ms() == T0

    def test_manual_clock_moves_only_when_told(self):
        clock = ManualClock(T0)
        clock.pause()
        assert clock.timestamp_ms() == T0
        clock.advance(5)
        assert clock.timestamp_ms() == T0 + 5
        clock.set(T0 - 1)
        assert clock.timestamp_ms() == T0 - 1

    def test_manual_clock_advances_on_pause(self):
        clock = ManualClock(T0, advance_on_pause=True)
        clock.pause()
        clock.pause()
        assert clock.timestamp_ms() == T0 + 2


# ── machine ────────────────────────────────────────────────────────────────

class TestMachine:
    def test_datacenter_id_from_last_two_mac_bytes(self):
        resolver = FakeResolver("192.168.1.10", bytes([0x02, 0x42, 0xAC, 0x11, 0x00, 0x21]))
        # 0x00 | 0x21 << 8 == 8448, 8448 % 32 == 0
        assert derive_datacenter_id(resolver) == 0

    def test_datacenter_id_in_range(self, fake_resolver):
        assert 0 <= derive_datacenter_id(fake_resolver) <= 31

    def test_datacenter_id_fallbacks(self):
        assert derive_datacenter_id(FakeResolver(None)) == DEFAULT_DATACENTER_ID
        assert derive_datacenter_id(FakeResolver("10.0.0.5", None)) == DEFAULT_DATACENTER_ID
        assert derive_datacenter_id(FakeResolver("10.0.0.5", b"\x01")) == DEFAULT_DATACENTER_ID

    def test_worker_id_from_datacenter_and_pid(self):
        digest = hashlib.sha1(b"71234").digest()
        expected = int.from_bytes(digest[-2:], "big") % 32
        assert derive_worker_id(7, pid=1234) == expected

    def test_worker_id_is_deterministic(self):
        assert derive_worker_id(3, pid=42) == derive_worker_id(3, pid=42)
        assert all(0 <= derive_worker_id(1, pid=p) <= 31 for p in range(200))

    def test_worker_id_defaults_to_current_pid(self):
        import os
        assert derive_worker_id(1) == derive_worker_id(1, pid=os.getpid())

    def test_machine_ids_pair(self, fake_resolver):
        datacenter_id, worker_id = derive_machine_ids(fake_resolver)
        assert datacenter_id == 13
        assert worker_id == derive_worker_id(13)
