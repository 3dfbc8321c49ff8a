"""Application saga – SagaLease port and InMemorySagaLease.

When several orchestrator processes share an instance store, a lease makes
sure only one of them drives a given instance id at a time.
"""

from __future__ import annotations

import abc
import asyncio
import time


class SagaLease(abc.ABC):
    """Port: exclusive, expiring claim on a saga instance id."""

    @abc.abstractmethod
    async def claim(self, instance_id: str, owner: str) -> bool:
        """Claim *instance_id* for *owner*; ``False`` if someone else holds it."""

    @abc.abstractmethod
    async def renew(self, instance_id: str, owner: str) -> bool:
        """Extend the claim; ``False`` if *owner* no longer holds it."""

    @abc.abstractmethod
    async def release(self, instance_id: str, owner: str) -> None:
        """Drop the claim if *owner* still holds it."""


class InMemorySagaLease(SagaLease):
    """Process-local :class:`SagaLease` with TTL-based expiry."""

    def __init__(self, ttl_seconds: float = 30.0) -> None:
        self._ttl = ttl_seconds
        # instance_id → (owner, expires_at on the monotonic clock)
        self._claims: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def claim(self, instance_id: str, owner: str) -> bool:
        async with self._lock:
            now = time.monotonic()
            held = self._claims.get(instance_id)
            if held is not None and held[0] != owner and held[1] > now:
                return False
            self._claims[instance_id] = (owner, now + self._ttl)
            return True

    async def renew(self, instance_id: str, owner: str) -> bool:
        async with self._lock:
            held = self._claims.get(instance_id)
            if held is None or held[0] != owner:
                return False
            self._claims[instance_id] = (owner, time.monotonic() + self._ttl)
            return True

    async def release(self, instance_id: str, owner: str) -> None:
        async with self._lock:
            held = self._claims.get(instance_id)
            if held is not None and held[0] == owner:
                del self._claims[instance_id]

    def holder(self, instance_id: str) -> str | None:
        held = self._claims.get(instance_id)
        if held is None or held[1] <= time.monotonic():
            return None
        return held[0]


__all__ = ["InMemorySagaLease", "SagaLease"]
