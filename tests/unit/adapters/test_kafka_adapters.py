"""Unit tests for the Kafka adapter: no running broker required."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from mp_transactions.adapters.kafka import EventEnvelopeSerializer, KafkaEventBus
from mp_transactions.application.inbox import InMemoryInbox
from mp_transactions.config.settings import KafkaSettings
from mp_transactions.kernel.ddd import WILDCARD, DomainEvent, EventType
from mp_transactions.kernel.errors import BrokerUnavailableError, SerializationError
from mp_transactions.observability.correlation import CorrelationContext


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event(**kwargs: Any) -> DomainEvent:
    defaults: dict[str, Any] = {
        "type": EventType.ORDER_CREATED,
        "aggregate_id": "o-1",
        "aggregate_type": "order",
        "payload": {"total": 10},
        "correlation_id": "c-1",
    }
    defaults.update(kwargs)
    return DomainEvent(**defaults)


def _make_producer() -> MagicMock:
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.send_and_wait = AsyncMock()
    return producer


class FakeConsumer:
    """Async-iterable stand-in for ``AIOKafkaConsumer``."""

    def __init__(self, records: list[Any]) -> None:
        self._records = records
        self.subscribe = MagicMock()
        self.start = AsyncMock()
        self.stop = AsyncMock()
        self.commit = AsyncMock()

    def __aiter__(self) -> "FakeConsumer":
        return self

    async def __anext__(self) -> Any:
        if not self._records:
            raise StopAsyncIteration
        return self._records.pop(0)


def _record(event: DomainEvent, topic: str = "order.created", offset: int = 0) -> SimpleNamespace:
    return SimpleNamespace(topic=topic, value=EventEnvelopeSerializer("upstream").serialize(event), offset=offset)


# ---------------------------------------------------------------------------
# EventEnvelopeSerializer
# ---------------------------------------------------------------------------


class TestEventEnvelopeSerializer:
    def test_adds_publisher_fields(self) -> None:
        data = json.loads(EventEnvelopeSerializer("orders").serialize(_event()))
        assert data["publishedBy"] == "orders"
        assert "publishedAt" in data
        assert data["correlationId"] == "c-1"
        assert data["causationId"] is None

    def test_deserialize_restores_event(self) -> None:
        event = _event(causation_id="e-0")
        serializer = EventEnvelopeSerializer("orders")
        assert serializer.deserialize(serializer.serialize(event)) == event

    @pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b'{"id": "x"}'])
    def test_malformed_raises(self, raw: bytes) -> None:
        with pytest.raises(SerializationError):
            EventEnvelopeSerializer("orders").deserialize(raw)


# ---------------------------------------------------------------------------
# KafkaEventBus: publishing
# ---------------------------------------------------------------------------


class TestKafkaPublish:
    def test_publish_sends_to_namespaced_topic(self) -> None:
        producer = _make_producer()
        bus = KafkaEventBus(service_name="orders", topic_namespace="flashmart", producer=producer)
        event = _event(causation_id="e-0")
        asyncio.run(bus.publish(event))

        producer.start.assert_awaited_once()
        args, kwargs = producer.send_and_wait.call_args
        assert args[0] == "flashmart.order.created"
        assert kwargs["key"] == b"o-1"
        headers = dict(kwargs["headers"])
        assert headers["event-type"] == b"order.created"
        assert headers["correlation-id"] == b"c-1"
        assert headers["causation-id"] == b"e-0"
        body = json.loads(kwargs["value"])
        assert body["id"] == event.id
        assert body["publishedBy"] == "orders"

    def test_root_event_has_no_causation_header(self) -> None:
        producer = _make_producer()
        asyncio.run(KafkaEventBus(producer=producer).publish(_event()))
        headers = dict(producer.send_and_wait.call_args.kwargs["headers"])
        assert "causation-id" not in headers

    def test_send_failure_raises_broker_unavailable(self) -> None:
        producer = _make_producer()
        producer.send_and_wait.side_effect = ConnectionError("no leader")
        with pytest.raises(BrokerUnavailableError) as exc_info:
            asyncio.run(KafkaEventBus(producer=producer).publish(_event()))
        assert isinstance(exc_info.value.cause, ConnectionError)

    def test_start_failure_raises_broker_unavailable(self) -> None:
        producer = _make_producer()
        producer.start.side_effect = OSError("refused")
        with pytest.raises(BrokerUnavailableError):
            asyncio.run(KafkaEventBus(producer=producer).start())

    def test_context_manager_starts_and_stops(self) -> None:
        producer = _make_producer()

        async def _run() -> None:
            async with KafkaEventBus(producer=producer):
                pass

        asyncio.run(_run())
        producer.start.assert_awaited_once()
        producer.stop.assert_awaited_once()

    def test_from_settings(self) -> None:
        settings = KafkaSettings(bootstrap_servers="k:9092", topic_namespace="ns", service_name="payments")
        bus = KafkaEventBus.from_settings(settings)
        assert bus.group_id == "payments.consumers"
        assert bus.mapper.to_topic("payment.created") == "ns.payment.created"


# ---------------------------------------------------------------------------
# KafkaEventBus: consuming
# ---------------------------------------------------------------------------


class TestKafkaConsume:
    def test_subscribes_to_topics_of_handled_types(self) -> None:
        async def handler(event: DomainEvent) -> None:
            pass

        consumer = FakeConsumer([])
        bus = KafkaEventBus(topic_namespace="flashmart", consumer=consumer)
        bus.subscribe(EventType.PAYMENT_CREATED, handler)
        bus.subscribe(EventType.ORDER_CREATED, handler)
        asyncio.run(bus.consume())
        consumer.subscribe.assert_called_once_with(
            topics=["flashmart.order.created", "flashmart.payment.created"]
        )
        consumer.start.assert_awaited_once()

    def test_wildcard_subscribes_to_namespace_pattern(self) -> None:
        async def handler(event: DomainEvent) -> None:
            pass

        consumer = FakeConsumer([])
        bus = KafkaEventBus(topic_namespace="flashmart", consumer=consumer)
        bus.subscribe(WILDCARD, handler)
        asyncio.run(bus.consume())
        consumer.subscribe.assert_called_once_with(pattern="^flashmart\\..+")

    def test_dispatches_and_commits(self) -> None:
        received: list[tuple[str, str | None]] = []

        async def handler(event: DomainEvent) -> None:
            ctx = CorrelationContext.get()
            received.append((event.id, ctx.causation_id if ctx else None))

        first, second = _event(), _event(aggregate_id="o-2")
        consumer = FakeConsumer([_record(first), _record(second, offset=1)])
        bus = KafkaEventBus(consumer=consumer)
        bus.subscribe(EventType.ORDER_CREATED, handler)
        count = asyncio.run(bus.consume())

        assert count == 2
        assert received == [(first.id, first.id), (second.id, second.id)]
        assert consumer.commit.await_count == 2

    def test_inbox_skips_redelivered_events(self) -> None:
        calls: list[str] = []

        async def handler(event: DomainEvent) -> None:
            calls.append(event.id)

        event = _event()
        consumer = FakeConsumer([_record(event), _record(event, offset=1)])
        bus = KafkaEventBus(consumer=consumer, inbox=InMemoryInbox())
        bus.subscribe(EventType.ORDER_CREATED, handler)
        assert asyncio.run(bus.consume()) == 2
        assert calls == [event.id]

    def test_malformed_record_is_committed_past(self) -> None:
        calls: list[str] = []

        async def handler(event: DomainEvent) -> None:
            calls.append(event.id)

        event = _event()
        bad = SimpleNamespace(topic="order.created", value=b"garbage", offset=0)
        consumer = FakeConsumer([bad, _record(event, offset=1)])
        bus = KafkaEventBus(consumer=consumer)
        bus.subscribe(EventType.ORDER_CREATED, handler)
        assert asyncio.run(bus.consume()) == 2
        assert calls == [event.id]
        assert consumer.commit.await_count == 2

    def test_max_records(self) -> None:
        consumer = FakeConsumer([_record(_event()), _record(_event()), _record(_event())])
        bus = KafkaEventBus(consumer=consumer)
        assert asyncio.run(bus.consume(max_records=2)) == 2

    def test_failing_handler_does_not_stop_consumption(self) -> None:
        async def broken(event: DomainEvent) -> None:
            raise RuntimeError("boom")

        consumer = FakeConsumer([_record(_event()), _record(_event())])
        bus = KafkaEventBus(consumer=consumer)
        bus.subscribe(EventType.ORDER_CREATED, broken)
        assert asyncio.run(bus.consume()) == 2

    def test_unsubscribe(self) -> None:
        async def handler(event: DomainEvent) -> None:
            pass

        bus = KafkaEventBus()
        bus.subscribe("a", handler)
        bus.unsubscribe("a", handler)
        assert bus.consumer_topics() == []
