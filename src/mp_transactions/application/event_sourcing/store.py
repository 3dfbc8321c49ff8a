"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Sequence

from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventType, event_type_name
from mp_transactions.kernel.errors import ConcurrencyError


class EventStore(abc.ABC):
    """Port: durable append-only event store.

    Optimistic concurrency is expressed through the events themselves: an
    event is accepted only when its ``version`` is exactly one greater than
    the last stored version of its ``aggregate_id``.  Conflicts raise
    :class:`~mp_transactions.kernel.errors.ConcurrencyError` and are never
    retried by the store; callers reload the aggregate and retry the command.
    """

    async def append(self, event: DomainEvent) -> None:
        """Append a single event."""
        await self.append_batch([event])

    @abc.abstractmethod
    async def append_batch(self, events: Sequence[DomainEvent]) -> None:
        """Append *events* atomically: either all are stored or none are."""

    @abc.abstractmethod
    async def get_events(self, aggregate_id: str, from_version: int = 0) -> list[DomainEvent]:
        """Events of *aggregate_id* with ``version >= from_version``, ascending."""

    @abc.abstractmethod
    async def get_events_by_type(
        self, event_type: EventType | str, limit: int = 100
    ) -> list[DomainEvent]:
        """Up to *limit* events of *event_type*, in append order."""

    @abc.abstractmethod
    async def get_events_by_correlation(self, correlation_id: str) -> list[DomainEvent]:
        """All events sharing *correlation_id*, in append order."""

    @abc.abstractmethod
    async def get_version(self, aggregate_id: str) -> int:
        """Last stored version of *aggregate_id* (0 when it has no events)."""


def check_versions(
    events: Sequence[DomainEvent], current: dict[str, int]
) -> dict[str, int]:
    """Validate that *events* continue each aggregate's stream without gaps.

    *current* maps aggregate id to its stored version.  Returns the versions
    the streams would have after the batch.  Raises :class:`ConcurrencyError`
    on the first event that does not follow its predecessor.
    """
    versions = dict(current)
    for event in events:
        expected = versions.get(event.aggregate_id, 0) + 1
        if event.version != expected:
            raise ConcurrencyError(event.aggregate_id, expected=expected, actual=event.version)
        versions[event.aggregate_id] = event.version
    return versions


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and single-process use."""

    def __init__(self) -> None:
        # aggregate_id → ordered list of events
        self._streams: dict[str, list[DomainEvent]] = {}
        self._log: list[DomainEvent] = []
        self._lock = asyncio.Lock()

    async def append_batch(self, events: Sequence[DomainEvent]) -> None:
        if not events:
            return
        async with self._lock:
            current = {
                event.aggregate_id: len(self._streams.get(event.aggregate_id, []))
                for event in events
            }
            check_versions(events, current)
            for event in events:
                self._streams.setdefault(event.aggregate_id, []).append(event)
                self._log.append(event)

    async def get_events(self, aggregate_id: str, from_version: int = 0) -> list[DomainEvent]:
        return [e for e in self._streams.get(aggregate_id, []) if e.version >= from_version]

    async def get_events_by_type(
        self, event_type: EventType | str, limit: int = 100
    ) -> list[DomainEvent]:
        name = event_type_name(event_type)
        return [e for e in self._log if e.type == name][:limit]

    async def get_events_by_correlation(self, correlation_id: str) -> list[DomainEvent]:
        return [e for e in self._log if e.correlation_id == correlation_id]

    async def get_version(self, aggregate_id: str) -> int:
        return len(self._streams.get(aggregate_id, []))

    def all_events(self) -> list[DomainEvent]:
        """Return every stored event in append order."""
        return list(self._log)


__all__ = ["EventStore", "InMemoryEventStore", "check_versions"]
