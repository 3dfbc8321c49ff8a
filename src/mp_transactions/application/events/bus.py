"""Application events – InMemoryEventBus."""

from __future__ import annotations

import asyncio

from mp_transactions.kernel.ddd.domain_event import WILDCARD, DomainEvent, EventType, event_type_name
from mp_transactions.kernel.ddd.event_bus import EventBus, Handler
from mp_transactions.observability.logging import get_logger

logger = get_logger(__name__)


class InMemoryEventBus(EventBus):
    """In-process event bus with best-effort fan-out via :func:`asyncio.gather`.

    Type handlers and wildcard handlers for a published event all run
    concurrently.  A handler that raises is logged; the exception never
    reaches the publisher and never prevents delivery to the other handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event_type: EventType | str, handler: Handler) -> None:
        self._handlers.setdefault(event_type_name(event_type), []).append(handler)

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        key = event_type_name(event_type)
        handlers = self._handlers.get(key)
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[key]

    def handlers_for(self, event_type: EventType | str) -> list[Handler]:
        """Handlers that would receive an event of *event_type*."""
        key = event_type_name(event_type)
        handlers = list(self._handlers.get(key, []))
        if key != WILDCARD:
            handlers.extend(self._handlers.get(WILDCARD, []))
        return handlers

    def subscribed_types(self) -> list[str]:
        """Explicitly subscribed event types (the wildcard key excluded)."""
        return [key for key in self._handlers if key != WILDCARD]

    def has_wildcard(self) -> bool:
        return WILDCARD in self._handlers

    async def publish(self, event: DomainEvent) -> None:
        handlers = self.handlers_for(event.type)
        if not handlers:
            logger.debug("event_bus.no_handlers", event_type=event.type, event_id=event.id)
            return
        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )
        for handler, result in zip(handlers, results):
            if isinstance(result, BaseException):
                logger.error(
                    "event_bus.handler_failed",
                    event_type=event.type,
                    event_id=event.id,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=repr(result),
                )


__all__ = ["InMemoryEventBus"]
