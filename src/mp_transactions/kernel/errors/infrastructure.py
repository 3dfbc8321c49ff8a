"""Infrastructure errors: I/O failures, broker and storage integrations."""

from __future__ import annotations

from typing import Any

from mp_transactions.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class BrokerUnavailableError(InfrastructureError):
    """The message broker could not be reached or rejected a publish."""

    default_code = "broker_unavailable"

    def __init__(
        self,
        broker: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Broker '{broker}' is unavailable", **kwargs)
        self.broker = broker


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize a payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


__all__ = [
    "BrokerUnavailableError",
    "InfrastructureError",
    "SerializationError",
]
