"""Unit tests for kernel clocks."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mp_transactions.kernel.time import FrozenClock, SystemClock, utc_now
from mp_transactions.testing.fakes import FakeClock


def test_system_clock_is_aware() -> None:
    assert SystemClock().now().tzinfo is not None


def test_utc_now_is_utc() -> None:
    assert utc_now().utcoffset() == timedelta(0)


def test_frozen_clock_advance() -> None:
    clock = FrozenClock(datetime(2026, 1, 1, tzinfo=UTC))
    clock.advance(hours=25)
    assert clock.now() == datetime(2026, 1, 2, 1, tzinfo=UTC)


def test_fake_clock_is_pinned() -> None:
    assert FakeClock().now() == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
