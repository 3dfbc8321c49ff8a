from __future__ import annotations

from mp_transactions.kernel.ddd.domain_event import DomainEvent
from mp_transactions.kernel.ddd.event_bus import Handler
from mp_transactions.kernel.messaging.inbox import Inbox
from mp_transactions.observability.correlation import CorrelationContext, RequestContext
from mp_transactions.observability.logging import get_logger

__all__ = ["IdempotentHandler"]

logger = get_logger(__name__)


class IdempotentHandler:
    """Wrap an event handler so each event id is processed at most once.

    The inbox marks the id before the handler runs.  If the handler raises,
    the id is forgotten again and the error propagates, so a redelivery of
    the same event gets another chance.  The handler runs inside a
    correlation scope caused by the event, so anything it emits carries the
    event's correlation id and names it as the cause.

    Instances are plain async callables and can be passed straight to
    :meth:`EventBus.subscribe`.
    """

    def __init__(self, inbox: Inbox, handler: Handler) -> None:
        self._inbox = inbox
        self._handler = handler

    async def __call__(self, event: DomainEvent) -> None:
        if await self._inbox.seen(event.id):
            logger.info("inbox.duplicate_skipped", event_id=event.id, event_type=event.type)
            return
        try:
            with CorrelationContext.scope(RequestContext.caused_by(event)):
                await self._handler(event)
        except Exception:
            await self._inbox.forget(event.id)
            raise

    def __repr__(self) -> str:
        return f"IdempotentHandler({self._handler!r})"
