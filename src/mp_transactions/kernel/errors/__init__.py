"""Kernel error hierarchy: public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError          (domain.py)
    │   ├── InvariantViolationError
    │   ├── NotFoundError
    │   └── ConflictError
    │       └── ConcurrencyError
    ├── ApplicationError     (application.py)
    │   └── TimeoutError
    └── InfrastructureError  (infrastructure.py)
        ├── BrokerUnavailableError
        └── SerializationError

Saga-specific errors live in :mod:`mp_transactions.application.saga.errors`
and extend this hierarchy.
"""

from mp_transactions.kernel.errors.application import ApplicationError, TimeoutError
from mp_transactions.kernel.errors.base import BaseError
from mp_transactions.kernel.errors.domain import (
    ConcurrencyError,
    ConflictError,
    DomainError,
    InvariantViolationError,
    NotFoundError,
)
from mp_transactions.kernel.errors.infrastructure import (
    BrokerUnavailableError,
    InfrastructureError,
    SerializationError,
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
