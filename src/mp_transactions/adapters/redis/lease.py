"""Redis adapter – RedisSagaLease."""
from __future__ import annotations

from typing import Any

from mp_transactions.adapters.redis.client import redis_from_url
from mp_transactions.application.saga.lease import SagaLease

_RENEW_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("PEXPIRE", KEYS[1], ARGV[2])
else
    return 0
end
"""

_RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
else
    return 0
end
"""


class RedisSagaLease(SagaLease):
    """Saga instance lease using Redis ``SET NX PX``.

    The key holds the owner token; renew and release run as Lua scripts
    that compare the token first, so a worker can never extend or drop a
    lease that expired and was taken over by another worker.
    """

    def __init__(self, client: Any, ttl_ms: int = 30_000, prefix: str = "saga-lease:") -> None:
        self._client = client
        self._ttl_ms = ttl_ms
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisSagaLease":
        return cls(redis_from_url(url), **kwargs)

    def _key(self, instance_id: str) -> str:
        return f"{self._prefix}{instance_id}"

    async def claim(self, instance_id: str, owner: str) -> bool:
        key = self._key(instance_id)
        if await self._client.set(key, owner, nx=True, px=self._ttl_ms):
            return True
        # Re-claiming a lease we already hold just extends it.
        return await self.renew(instance_id, owner)

    async def renew(self, instance_id: str, owner: str) -> bool:
        result = await self._client.eval(_RENEW_SCRIPT, 1, self._key(instance_id), owner, self._ttl_ms)
        return bool(result)

    async def release(self, instance_id: str, owner: str) -> None:
        await self._client.eval(_RELEASE_SCRIPT, 1, self._key(instance_id), owner)


__all__ = ["RedisSagaLease"]
