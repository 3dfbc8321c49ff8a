"""Domain events, their metadata and the wire/persisted envelope."""

from __future__ import annotations

import dataclasses
import enum
from datetime import UTC, datetime
from typing import Any, Mapping
from uuid import uuid4

from mp_transactions.kernel.errors import SerializationError

#: Subscription key matching every event type.
WILDCARD = "*"


class EventType(str, enum.Enum):
    """Closed set of event kinds known to the transaction core.

    Members compare equal to their string value, so handler registries keyed
    by ``str`` accept both.  Any other string is still a valid event type.
    """

    SAGA_STARTED = "saga.started"
    SAGA_STEP_COMPLETED = "saga.step.completed"
    SAGA_COMPLETED = "saga.completed"
    SAGA_FAILED = "saga.failed"
    SAGA_TIMEOUT = "saga.timeout"
    SAGA_COMPENSATED = "saga.compensated"
    ORDER_CREATED = "order.created"
    ORDER_CONFIRMED = "order.confirmed"
    ORDER_CANCELLED = "order.cancelled"
    INVENTORY_RESERVED = "inventory.reserved"
    INVENTORY_RELEASED = "inventory.released"
    PAYMENT_CREATED = "payment.created"
    PAYMENT_CANCELLED = "payment.cancelled"

    def __str__(self) -> str:
        return self.value


def event_type_name(event_type: EventType | str) -> str:
    """Normalise an :class:`EventType` or free-form string to its string key."""
    if isinstance(event_type, EventType):
        return event_type.value
    return str(event_type)


@dataclasses.dataclass(frozen=True)
class EventMetadata:
    """Optional descriptive metadata carried with an event."""

    user_id: str | None = None
    tenant_id: str | None = None
    source: str | None = None
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.user_id is not None:
            data["userId"] = self.user_id
        if self.tenant_id is not None:
            data["tenantId"] = self.tenant_id
        if self.source is not None:
            data["source"] = self.source
        if self.tags:
            data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EventMetadata":
        return cls(
            user_id=data.get("userId"),
            tenant_id=data.get("tenantId"),
            source=data.get("source"),
            tags=tuple(data.get("tags", ())),
        )


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """Immutable record of a state change on one aggregate.

    ``version`` is 1-based and gap-free per ``aggregate_id``.  ``causation_id``
    is ``None`` for root events (those not produced in reaction to another
    event).

    Example::

        event = DomainEvent(
            type=EventType.ORDER_CREATED,
            aggregate_id="order-1",
            aggregate_type="order",
            payload={"total": 120},
            version=1,
            correlation_id="checkout-42",
        )
    """

    type: str
    aggregate_id: str
    aggregate_type: str
    payload: dict[str, Any] = dataclasses.field(default_factory=dict)
    version: int = 1
    correlation_id: str = ""
    causation_id: str | None = None
    metadata: EventMetadata | None = None
    id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if isinstance(self.type, EventType):
            object.__setattr__(self, "type", self.type.value)
        if self.version < 1:
            raise ValueError(f"Event version must be >= 1, got {self.version}")
        if not self.correlation_id:
            object.__setattr__(self, "correlation_id", self.id)

    @property
    def kind(self) -> EventType | None:
        """Return the known :class:`EventType` for this event, if any."""
        try:
            return EventType(self.type)
        except ValueError:
            return None

    def to_envelope(self) -> dict[str, Any]:
        """Serialise to the stable envelope shared by store and bus."""
        envelope: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "aggregateId": self.aggregate_id,
            "aggregateType": self.aggregate_type,
            "payload": self.payload,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "correlationId": self.correlation_id,
            "causationId": self.causation_id,
        }
        if self.metadata is not None:
            envelope["metadata"] = self.metadata.to_dict()
        return envelope

    @classmethod
    def from_envelope(cls, envelope: Mapping[str, Any]) -> "DomainEvent":
        """Inverse of :meth:`to_envelope`; unknown keys are ignored."""
        try:
            raw_meta = envelope.get("metadata")
            return cls(
                id=envelope["id"],
                type=envelope["type"],
                aggregate_id=envelope["aggregateId"],
                aggregate_type=envelope["aggregateType"],
                payload=dict(envelope.get("payload") or {}),
                version=int(envelope["version"]),
                timestamp=datetime.fromisoformat(envelope["timestamp"]),
                correlation_id=envelope.get("correlationId") or "",
                causation_id=envelope.get("causationId"),
                metadata=EventMetadata.from_dict(raw_meta) if raw_meta else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(
                f"Malformed event envelope: {exc}",
                payload_type="DomainEvent",
                cause=exc,
            ) from exc


__all__ = [
    "WILDCARD",
    "DomainEvent",
    "EventMetadata",
    "EventType",
    "event_type_name",
]
