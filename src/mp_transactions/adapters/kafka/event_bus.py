"""Kafka adapter – KafkaEventBus."""
from __future__ import annotations

import re
from typing import Any

from mp_transactions.adapters.kafka.serializer import EventEnvelopeSerializer
from mp_transactions.application.events import InMemoryEventBus
from mp_transactions.config.settings import KafkaSettings
from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventType
from mp_transactions.kernel.ddd.event_bus import EventBus, Handler
from mp_transactions.kernel.errors import BrokerUnavailableError, SerializationError
from mp_transactions.kernel.messaging import Inbox, TopicMapper
from mp_transactions.observability.correlation import CorrelationContext, RequestContext
from mp_transactions.observability.logging import get_logger

logger = get_logger(__name__)


def _require_aiokafka() -> Any:
    try:
        import aiokafka  # type: ignore[import-untyped]
        return aiokafka
    except ImportError as exc:
        raise ImportError("Install 'mp-transactions[kafka]' to use the Kafka adapter") from exc


class KafkaEventBus(EventBus):
    """aiokafka-backed :class:`EventBus`.

    Publishing maps the event type to a topic through :class:`TopicMapper`,
    keys the record by aggregate id (so one aggregate's events share a
    partition) and carries type, correlation and causation ids as headers.
    A failed send raises :class:`BrokerUnavailableError`; events that went
    through the outbox stay queued there and are retried by the relay.

    Consuming joins the consumer group ``group_id`` (``<service>.consumers``
    by default), subscribes to the topics of every subscribed type (or the
    whole namespace when a wildcard handler exists), and dispatches each
    record to the same handlers through best-effort fan-out.  When *inbox*
    is given, redelivered event ids are skipped.  Offsets are committed
    after dispatch.

    ``producer`` and ``consumer`` may be injected (e.g. mocks in tests);
    otherwise aiokafka clients are created on first use.
    """

    def __init__(
        self,
        bootstrap_servers: str = "localhost:9092",
        service_name: str = "mp-transactions",
        topic_namespace: str = "",
        group_id: str | None = None,
        inbox: Inbox | None = None,
        producer: Any | None = None,
        consumer: Any | None = None,
        **client_kwargs: Any,
    ) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._service_name = service_name
        self._mapper = TopicMapper(topic_namespace)
        self._serializer = EventEnvelopeSerializer(service_name)
        self._group_id = group_id or f"{service_name}.consumers"
        self._inbox = inbox
        self._producer = producer
        self._consumer = consumer
        self._client_kwargs = client_kwargs
        self._handlers = InMemoryEventBus()
        self._started = False
        self._consuming = False

    @classmethod
    def from_settings(cls, settings: KafkaSettings, **kwargs: Any) -> "KafkaEventBus":
        return cls(
            bootstrap_servers=settings.bootstrap_servers,
            service_name=settings.service_name,
            topic_namespace=settings.topic_namespace,
            group_id=settings.group_id,
            **kwargs,
        )

    @property
    def mapper(self) -> TopicMapper:
        return self._mapper

    @property
    def group_id(self) -> str:
        return self._group_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._producer is None:
            aiokafka = _require_aiokafka()
            self._producer = aiokafka.AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers, **self._client_kwargs
            )
        try:
            await self._producer.start()
        except Exception as exc:
            raise BrokerUnavailableError("kafka", cause=exc) from exc
        self._started = True

    async def stop(self) -> None:
        if self._started and self._producer is not None:
            await self._producer.stop()
        if self._consuming and self._consumer is not None:
            await self._consumer.stop()
        self._started = False
        self._consuming = False

    async def __aenter__(self) -> "KafkaEventBus":
        await self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        if not self._started:
            await self.start()
        topic = self._mapper.to_topic(event.type)
        headers = [
            ("event-type", event.type.encode()),
            ("correlation-id", event.correlation_id.encode()),
        ]
        if event.causation_id:
            headers.append(("causation-id", event.causation_id.encode()))
        try:
            await self._producer.send_and_wait(
                topic,
                value=self._serializer.serialize(event),
                key=event.aggregate_id.encode(),
                headers=headers,
            )
        except Exception as exc:
            logger.error("kafka.publish_failed", topic=topic, event_id=event.id, error=repr(exc))
            raise BrokerUnavailableError(
                "kafka",
                f"Failed to publish '{event.type}' to topic '{topic}'",
                cause=exc,
            ) from exc
        logger.debug("kafka.published", topic=topic, event_id=event.id)

    # ------------------------------------------------------------------
    # Subscriptions and consuming
    # ------------------------------------------------------------------

    def subscribe(self, event_type: EventType | str, handler: Handler) -> None:
        self._handlers.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        self._handlers.unsubscribe(event_type, handler)

    def consumer_topics(self) -> list[str]:
        """Topics for every explicitly subscribed event type."""
        return sorted(self._mapper.to_topic(t) for t in self._handlers.subscribed_types())

    async def _ensure_consumer(self) -> Any:
        if self._consuming:
            return self._consumer
        if self._consumer is None:
            aiokafka = _require_aiokafka()
            self._consumer = aiokafka.AIOKafkaConsumer(
                bootstrap_servers=self._bootstrap_servers,
                group_id=self._group_id,
                enable_auto_commit=False,
                **self._client_kwargs,
            )
        if self._handlers.has_wildcard():
            namespace = self._mapper.namespace
            pattern = f"^{re.escape(namespace)}\\..+" if namespace else ".*"
            self._consumer.subscribe(pattern=pattern)
        else:
            self._consumer.subscribe(topics=self.consumer_topics())
        await self._consumer.start()
        self._consuming = True
        return self._consumer

    async def handle_record(self, record: Any) -> bool:
        """Dispatch one consumed record; returns ``False`` if it was skipped."""
        event = self._serializer.deserialize(record.value)
        if self._inbox is not None and await self._inbox.seen(event.id):
            logger.info("kafka.duplicate_skipped", event_id=event.id, topic=record.topic)
            return False
        with CorrelationContext.scope(RequestContext.caused_by(event)):
            await self._handlers.publish(event)
        return True

    async def consume(self, max_records: int | None = None) -> int:
        """Consume and dispatch records until the consumer stops.

        Returns the number of records read.  Malformed records are logged
        and committed past, so they cannot block the partition.
        """
        consumer = await self._ensure_consumer()
        count = 0
        async for record in consumer:
            try:
                await self.handle_record(record)
            except SerializationError as exc:
                logger.error(
                    "kafka.malformed_record",
                    topic=record.topic,
                    offset=getattr(record, "offset", None),
                    error=exc.message,
                )
            await consumer.commit()
            count += 1
            if max_records is not None and count >= max_records:
                break
        return count


__all__ = ["KafkaEventBus"]
