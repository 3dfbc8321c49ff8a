"""Kafka adapter – broker-backed event bus and envelope serializer."""
from mp_transactions.adapters.kafka.event_bus import KafkaEventBus
from mp_transactions.adapters.kafka.serializer import EventEnvelopeSerializer

__all__ = ["EventEnvelopeSerializer", "KafkaEventBus"]
