"""Kafka adapter – EventEnvelopeSerializer."""
from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from mp_transactions.kernel.ddd.domain_event import DomainEvent
from mp_transactions.kernel.errors import SerializationError


class EventEnvelopeSerializer:
    """JSON (de)serialiser for domain event envelopes on the wire.

    The envelope is written as-is, including ``correlationId`` and
    ``causationId``, plus ``publishedBy`` and ``publishedAt`` describing the
    publishing service.  Values JSON cannot encode are written via ``str``.
    """

    def __init__(self, service_name: str) -> None:
        self._service_name = service_name

    def envelope(self, event: DomainEvent) -> dict[str, Any]:
        data = event.to_envelope()
        data["publishedBy"] = self._service_name
        data["publishedAt"] = datetime.now(UTC).isoformat()
        return data

    def serialize(self, event: DomainEvent) -> bytes:
        return json.dumps(self.envelope(event), default=str).encode()

    def deserialize(self, data: bytes) -> DomainEvent:
        try:
            parsed = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Invalid event envelope JSON: {exc}",
                payload_type="DomainEvent",
                cause=exc,
            ) from exc
        if not isinstance(parsed, dict):
            raise SerializationError("Event envelope must be a JSON object", payload_type="DomainEvent")
        return DomainEvent.from_envelope(parsed)


__all__ = ["EventEnvelopeSerializer"]
