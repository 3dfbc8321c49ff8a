"""Redis adapter – RedisInbox."""
from __future__ import annotations

from typing import Any

from mp_transactions.adapters.redis.client import redis_from_url
from mp_transactions.kernel.messaging.inbox import Inbox


class RedisInbox(Inbox):
    """Inbox on Redis ``SET NX``: one key per processed event id.

    Keys expire after *retention_seconds*; a redelivery arriving later than
    that is processed again.
    """

    def __init__(
        self,
        client: Any,
        retention_seconds: int = 7 * 24 * 3600,
        prefix: str = "inbox:",
    ) -> None:
        self._client = client
        self._ttl = retention_seconds
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisInbox":
        return cls(redis_from_url(url), **kwargs)

    def _key(self, event_id: str) -> str:
        return f"{self._prefix}{event_id}"

    async def seen(self, event_id: str) -> bool:
        created = await self._client.set(self._key(event_id), b"1", nx=True, ex=self._ttl)
        return not created

    async def forget(self, event_id: str) -> None:
        await self._client.delete(self._key(event_id))


__all__ = ["RedisInbox"]
