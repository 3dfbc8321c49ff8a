"""Application outbox – InMemoryOutbox."""
from __future__ import annotations

import asyncio
from collections import deque

from mp_transactions.kernel.ddd.domain_event import DomainEvent
from mp_transactions.kernel.messaging.outbox import Outbox, OutboxEntry


class InMemoryOutbox(Outbox):
    """In-memory FIFO :class:`Outbox` for tests and single-process use.

    All mutations run under one :class:`asyncio.Lock`, so ``drain`` pops a
    batch atomically with respect to concurrent ``enqueue`` calls.
    """

    def __init__(self) -> None:
        self._queue: deque[OutboxEntry] = deque()
        self._dead: list[OutboxEntry] = []
        self._lock = asyncio.Lock()

    async def enqueue(self, event: DomainEvent) -> OutboxEntry:
        entry = OutboxEntry.from_event(event)
        async with self._lock:
            self._queue.append(entry)
        return entry

    async def drain(self, batch: int) -> list[OutboxEntry]:
        if batch < 1:
            raise ValueError("batch must be >= 1")
        async with self._lock:
            count = min(batch, len(self._queue))
            return [self._queue.popleft() for _ in range(count)]

    async def pending(self, limit: int) -> list[OutboxEntry]:
        async with self._lock:
            return list(self._queue)[:limit]

    async def acknowledge(self, entry_ids: list[str]) -> None:
        ids = set(entry_ids)
        async with self._lock:
            self._queue = deque(e for e in self._queue if e.id not in ids)

    async def mark_failed(self, entry_id: str, error: str, max_attempts: int | None = None) -> bool:
        async with self._lock:
            for entry in self._queue:
                if entry.id != entry_id:
                    continue
                entry.attempts += 1
                entry.last_error = error
                if max_attempts is not None and entry.attempts >= max_attempts:
                    self._queue.remove(entry)
                    self._dead.append(entry)
                    return True
                return False
        return False

    async def dead_letters(self) -> list[OutboxEntry]:
        return list(self._dead)

    async def size(self) -> int:
        return len(self._queue)


__all__ = ["InMemoryOutbox"]
