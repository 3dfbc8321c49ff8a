"""Unit tests for TimeoutPolicy and Deadline."""

from __future__ import annotations

import asyncio
import time

import pytest

from mp_transactions.kernel.errors import TimeoutError as AppTimeoutError
from mp_transactions.resilience.timeouts import Deadline, TimeoutPolicy


class TestTimeoutPolicy:
    def test_returns_result_within_limit(self) -> None:
        async def fast() -> int:
            return 7

        assert asyncio.run(TimeoutPolicy(1.0).execute(fast)) == 7

    def test_none_disables_limit(self) -> None:
        async def fast() -> str:
            await asyncio.sleep(0)
            return "ok"

        assert asyncio.run(TimeoutPolicy(None).execute(fast)) == "ok"

    def test_expiry_raises_app_timeout(self) -> None:
        async def slow() -> None:
            await asyncio.sleep(5)

        with pytest.raises(AppTimeoutError):
            asyncio.run(TimeoutPolicy(0.01).execute(slow))

    def test_custom_error_factory(self) -> None:
        async def slow() -> None:
            await asyncio.sleep(5)

        with pytest.raises(LookupError, match="0.01"):
            asyncio.run(TimeoutPolicy(0.01).execute(slow, on_timeout=lambda s: LookupError(f"after {s}")))

    def test_own_timeout_error_propagates_unchanged(self) -> None:
        async def read() -> None:
            raise TimeoutError("socket read timed out")

        def translate(seconds: float) -> Exception:
            return LookupError("translated")

        with pytest.raises(TimeoutError, match="socket read timed out") as exc_info:
            asyncio.run(TimeoutPolicy(10.0).execute(read, on_timeout=translate))
        assert not isinstance(exc_info.value, AppTimeoutError)


class TestDeadline:
    def test_remaining_and_expiry(self) -> None:
        deadline = Deadline.after(10)
        assert deadline.budget == 10
        assert 9 < deadline.remaining_seconds <= 10
        assert not deadline.is_expired

    def test_expired(self) -> None:
        deadline = Deadline(expires_at=time.monotonic() - 1, budget=1)
        assert deadline.is_expired
        assert deadline.remaining_seconds == 0.0
        with pytest.raises(AppTimeoutError):
            deadline.raise_if_expired()

    def test_cap(self) -> None:
        deadline = Deadline.after(10)
        assert deadline.cap(1) == 1
        assert deadline.cap(None) <= 10
        assert deadline.cap(60) <= 10
