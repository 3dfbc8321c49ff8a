"""EventBus port: publish/subscribe dispatch of domain events."""

from __future__ import annotations

import abc
from typing import Any, Callable, Coroutine

from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventType

#: Type alias for an async event handler function.
Handler = Callable[[DomainEvent], Coroutine[Any, Any, None]]


class EventBus(abc.ABC):
    """Port: domain event bus.

    Handlers are registered per event type, or for every type with the
    wildcard key ``"*"``.  Delivery is best-effort fan-out: a failing handler
    is logged and never prevents delivery to the others.

    Example::

        bus = InMemoryEventBus()
        bus.subscribe(EventType.ORDER_CREATED, send_confirmation_email)
        await bus.publish(event)
    """

    @abc.abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Dispatch *event* to its type handlers plus wildcard handlers."""

    async def publish_batch(self, events: list[DomainEvent]) -> None:
        """Publish *events* sequentially, preserving order."""
        for event in events:
            await self.publish(event)

    @abc.abstractmethod
    def subscribe(self, event_type: EventType | str, handler: Handler) -> None:
        """Register *handler* for *event_type* (``"*"`` for all)."""

    @abc.abstractmethod
    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        """Remove a previously registered *handler*; unknown pairs are ignored."""


__all__ = ["EventBus", "Handler"]
