"""Unit tests for Redis adapters: no running Redis required."""
from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mp_transactions.adapters.redis import RedisInbox, RedisSagaLease
from mp_transactions.application.saga import SagaOrchestrator, SagaStatus, saga, step


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeRedis:
    """Tiny in-memory stand-in for the ``redis.asyncio`` commands we use."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.set_calls: list[dict[str, Any]] = []

    async def set(self, key: str, value: Any, nx: bool = False, ex: int | None = None, px: int | None = None) -> bool | None:
        self.set_calls.append({"key": key, "value": value, "nx": nx, "ex": ex, "px": px})
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0

    async def eval(self, script: str, numkeys: int, key: str, owner: str, *args: Any) -> int:
        if self.data.get(key) != owner:
            return 0
        if "DEL" in script:
            del self.data[key]
        return 1


# ---------------------------------------------------------------------------
# RedisInbox
# ---------------------------------------------------------------------------


class TestRedisInbox:
    def test_seen_uses_set_nx_with_expiry(self) -> None:
        client = FakeRedis()
        inbox = RedisInbox(client, retention_seconds=60)

        async def _run() -> list[bool]:
            return [await inbox.seen("e-1"), await inbox.seen("e-1")]

        assert asyncio.run(_run()) == [False, True]
        assert client.set_calls[0] == {"key": "inbox:e-1", "value": b"1", "nx": True, "ex": 60, "px": None}

    def test_forget_deletes_key(self) -> None:
        client = FakeRedis()
        inbox = RedisInbox(client, prefix="svc:inbox:")

        async def _run() -> bool:
            await inbox.seen("e-1")
            await inbox.forget("e-1")
            return await inbox.seen("e-1")

        assert asyncio.run(_run()) is False

    def test_from_url(self) -> None:
        import mp_transactions.adapters.redis.client as client_mod

        mock_aioredis = MagicMock()
        mock_aioredis.from_url = MagicMock(return_value=MagicMock())
        with patch.object(client_mod, "_require_redis", return_value=mock_aioredis):
            RedisInbox.from_url("redis://localhost:6379/0")
        mock_aioredis.from_url.assert_called_once_with("redis://localhost:6379/0")


# ---------------------------------------------------------------------------
# RedisSagaLease
# ---------------------------------------------------------------------------


class TestRedisSagaLease:
    def test_claim_is_exclusive(self) -> None:
        client = FakeRedis()
        lease = RedisSagaLease(client, ttl_ms=5_000)

        async def _run() -> list[bool]:
            return [
                await lease.claim("i-1", "w-1"),
                await lease.claim("i-1", "w-2"),
                await lease.claim("i-1", "w-1"),
            ]

        assert asyncio.run(_run()) == [True, False, True]
        assert client.set_calls[0]["px"] == 5_000
        assert client.set_calls[0]["key"] == "saga-lease:i-1"

    def test_release_only_by_owner(self) -> None:
        client = FakeRedis()
        lease = RedisSagaLease(client)

        async def _run() -> tuple[bool, bool]:
            await lease.claim("i-1", "w-1")
            await lease.release("i-1", "w-2")
            still_held = not await lease.claim("i-1", "w-2")
            await lease.release("i-1", "w-1")
            return still_held, await lease.claim("i-1", "w-2")

        assert asyncio.run(_run()) == (True, True)

    def test_renew_passes_ttl(self) -> None:
        client = MagicMock()
        client.eval = AsyncMock(return_value=1)
        lease = RedisSagaLease(client, ttl_ms=1234)
        assert asyncio.run(lease.renew("i-1", "w-1")) is True
        args = client.eval.call_args.args
        assert args[1:] == (1, "saga-lease:i-1", "w-1", 1234)

    def test_orchestrator_uses_lease(self) -> None:
        client = FakeRedis()

        async def ok(ctx: Any) -> None:
            return None

        async def _run() -> Any:
            orchestrator = SagaOrchestrator(lease=RedisSagaLease(client), worker_id="w-1")
            orchestrator.register_saga(saga("s").step(step("a", ok)).step(step("b", ok)).build())
            return await orchestrator.run_saga("s")

        instance = asyncio.run(_run())
        assert instance.status is SagaStatus.COMPLETED
        assert client.data == {}


@pytest.mark.parametrize("factory", [RedisInbox, RedisSagaLease])
def test_from_url_requires_redis_package(factory: Any) -> None:
    import mp_transactions.adapters.redis.client as client_mod

    with patch.object(client_mod, "_require_redis", side_effect=ImportError("no redis")):
        with pytest.raises(ImportError):
            factory.from_url("redis://localhost")
