"""Kernel – framework-agnostic building blocks."""

from mp_transactions.kernel.errors import (
    ApplicationError,
    BaseError,
    BrokerUnavailableError,
    ConcurrencyError,
    ConflictError,
    DomainError,
    InfrastructureError,
    InvariantViolationError,
    NotFoundError,
    SerializationError,
    TimeoutError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "BrokerUnavailableError",
    "ConcurrencyError",
    "ConflictError",
    "DomainError",
    "InfrastructureError",
    "InvariantViolationError",
    "NotFoundError",
    "SerializationError",
    "TimeoutError",
]
