"""Kernel messaging – outbox pattern ports."""
from __future__ import annotations

import abc
import dataclasses
from datetime import UTC, datetime
from typing import Any

from mp_transactions.kernel.ddd.domain_event import DomainEvent


@dataclasses.dataclass
class OutboxEntry:
    """Outgoing event queued alongside the business state change.

    ``payload`` holds the full event envelope so the relay can rebuild the
    :class:`DomainEvent` without a second lookup.
    """

    id: str
    type: str
    payload: dict[str, Any]
    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0
    last_error: str | None = None

    @classmethod
    def from_event(cls, event: DomainEvent) -> "OutboxEntry":
        return cls(id=event.id, type=event.type, payload=event.to_envelope())

    def to_event(self) -> DomainEvent:
        return DomainEvent.from_envelope(self.payload)

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape ``{id, type, payload, createdAt}``."""
        return {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "createdAt": self.created_at.isoformat(),
        }


class Outbox(abc.ABC):
    """Port: durable FIFO of outgoing events.

    ``drain`` is the atomic pop used by simple forwarders.  The relay path
    uses ``pending`` + ``acknowledge`` so an entry is only removed after the
    downstream publish succeeded.
    """

    @abc.abstractmethod
    async def enqueue(self, event: DomainEvent) -> OutboxEntry:
        """Append *event* to the tail of the queue."""

    async def enqueue_many(self, events: list[DomainEvent]) -> list[OutboxEntry]:
        return [await self.enqueue(event) for event in events]

    @abc.abstractmethod
    async def drain(self, batch: int) -> list[OutboxEntry]:
        """Atomically remove and return up to *batch* entries, oldest first."""

    @abc.abstractmethod
    async def pending(self, limit: int) -> list[OutboxEntry]:
        """Return up to *limit* entries, oldest first, without removing them."""

    @abc.abstractmethod
    async def acknowledge(self, entry_ids: list[str]) -> None:
        """Remove entries that were published successfully."""

    @abc.abstractmethod
    async def mark_failed(self, entry_id: str, error: str, max_attempts: int | None = None) -> bool:
        """Record a failed publish attempt.

        Returns ``True`` when the entry was moved to the dead-letter list
        because it reached *max_attempts*.
        """

    @abc.abstractmethod
    async def dead_letters(self) -> list[OutboxEntry]:
        """Entries that exhausted their publish attempts."""

    @abc.abstractmethod
    async def size(self) -> int:
        """Number of entries still waiting to be published."""


__all__ = ["Outbox", "OutboxEntry"]
