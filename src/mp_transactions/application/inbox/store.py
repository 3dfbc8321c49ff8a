"""Application inbox – InMemoryInbox."""
from __future__ import annotations

import asyncio

from mp_transactions.kernel.messaging.inbox import Inbox


class InMemoryInbox(Inbox):
    """In-memory :class:`Inbox` backed by a set of event ids."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = asyncio.Lock()

    async def seen(self, event_id: str) -> bool:
        async with self._lock:
            if event_id in self._seen:
                return True
            self._seen.add(event_id)
            return False

    async def forget(self, event_id: str) -> None:
        async with self._lock:
            self._seen.discard(event_id)

    def __len__(self) -> int:
        return len(self._seen)


__all__ = ["InMemoryInbox"]
