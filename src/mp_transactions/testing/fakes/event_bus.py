"""Testing fakes – RecordingEventBus."""
from __future__ import annotations

from mp_transactions.application.events import InMemoryEventBus
from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventType, event_type_name
from mp_transactions.kernel.errors import BrokerUnavailableError


class RecordingEventBus(InMemoryEventBus):
    """In-memory event bus that records every published event.

    ``fail_next(n)`` makes the next *n* publishes raise
    :class:`BrokerUnavailableError`, to simulate a broker outage.
    """

    def __init__(self) -> None:
        super().__init__()
        self._published: list[DomainEvent] = []
        self._failures = 0

    def fail_next(self, count: int = 1) -> None:
        self._failures = count

    async def publish(self, event: DomainEvent) -> None:
        if self._failures > 0:
            self._failures -= 1
            raise BrokerUnavailableError("fake", "simulated broker outage")
        self._published.append(event)
        await super().publish(event)

    @property
    def published(self) -> list[DomainEvent]:
        return list(self._published)

    def of_type(self, event_type: EventType | str) -> list[DomainEvent]:
        name = event_type_name(event_type)
        return [e for e in self._published if e.type == name]

    def types(self) -> list[str]:
        return [e.type for e in self._published]

    def clear(self) -> None:
        self._published.clear()


__all__ = ["RecordingEventBus"]
