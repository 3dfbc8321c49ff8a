"""Unit tests for InMemoryInbox and IdempotentHandler."""

from __future__ import annotations

import asyncio

import pytest

from mp_transactions.application.inbox import IdempotentHandler, InMemoryInbox
from mp_transactions.kernel.ddd import DomainEvent
from mp_transactions.observability.correlation import CorrelationContext, RequestContext


def _event() -> DomainEvent:
    return DomainEvent(type="payment.created", aggregate_id="p-1", aggregate_type="payment", correlation_id="c-1")


class TestInMemoryInbox:
    def test_test_and_set(self) -> None:
        async def _run() -> list[bool]:
            inbox = InMemoryInbox()
            return [await inbox.seen("e-1"), await inbox.seen("e-1"), await inbox.seen("e-2")]

        assert asyncio.run(_run()) == [False, True, False]

    def test_forget(self) -> None:
        async def _run() -> bool:
            inbox = InMemoryInbox()
            await inbox.seen("e-1")
            await inbox.forget("e-1")
            return await inbox.seen("e-1")

        assert asyncio.run(_run()) is False

    def test_concurrent_seen_admits_one(self) -> None:
        async def _run() -> list[bool]:
            inbox = InMemoryInbox()
            return list(await asyncio.gather(*(inbox.seen("e-1") for _ in range(10))))

        results = asyncio.run(_run())
        assert results.count(False) == 1


class TestIdempotentHandler:
    def test_duplicate_delivery_processed_once(self) -> None:
        calls: list[str] = []

        async def handler(event: DomainEvent) -> None:
            calls.append(event.id)

        async def _run() -> DomainEvent:
            wrapped = IdempotentHandler(InMemoryInbox(), handler)
            event = _event()
            await wrapped(event)
            await wrapped(event)
            return event

        event = asyncio.run(_run())
        assert calls == [event.id]

    def test_failed_handler_allows_redelivery(self) -> None:
        attempts: list[int] = []

        async def flaky(event: DomainEvent) -> None:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("transient")

        async def _run() -> None:
            wrapped = IdempotentHandler(InMemoryInbox(), flaky)
            event = _event()
            with pytest.raises(RuntimeError):
                await wrapped(event)
            await wrapped(event)
            await wrapped(event)

        asyncio.run(_run())
        assert len(attempts) == 2

    def test_handler_runs_in_event_correlation_scope(self) -> None:
        captured: list[RequestContext | None] = []

        async def handler(event: DomainEvent) -> None:
            captured.append(CorrelationContext.get())

        async def _run() -> DomainEvent:
            event = _event()
            await IdempotentHandler(InMemoryInbox(), handler)(event)
            return event

        event = asyncio.run(_run())
        ctx = captured[0]
        assert ctx is not None
        assert ctx.correlation_id == "c-1"
        assert ctx.causation_id == event.id
