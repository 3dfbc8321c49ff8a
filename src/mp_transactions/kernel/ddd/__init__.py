"""DDD building blocks: public re-export surface."""

from mp_transactions.kernel.ddd.aggregate import AggregateRoot
from mp_transactions.kernel.ddd.domain_event import (
    WILDCARD,
    DomainEvent,
    EventMetadata,
    EventType,
    event_type_name,
)
from mp_transactions.kernel.ddd.event_bus import EventBus, Handler
from mp_transactions.kernel.ddd.repository import Repository

__all__ = [
    "WILDCARD",
    "AggregateRoot",
    "DomainEvent",
    "EventBus",
    "EventMetadata",
    "EventType",
    "Handler",
    "Repository",
    "event_type_name",
]
