"""Domain errors: business rule, lookup and concurrency violations."""

from __future__ import annotations

from typing import Any

from mp_transactions.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"


class InvariantViolationError(DomainError):
    """An aggregate invariant was violated."""

    default_code = "invariant_violation"


class NotFoundError(DomainError):
    """The requested resource does not exist."""

    default_code = "not_found"

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        **kwargs: Any,
    ) -> None:
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} '{identifier}' not found"
        super().__init__(msg, **kwargs)
        self.resource = resource
        self.identifier = identifier


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


class ConcurrencyError(ConflictError):
    """Optimistic concurrency violation on an aggregate's event stream.

    Raised by event stores when an appended event's version is not exactly
    one greater than the last stored version.  Callers are expected to
    reload the aggregate and retry the command.
    """

    default_code = "concurrency_conflict"

    def __init__(self, aggregate_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Concurrency conflict on aggregate '{aggregate_id}': "
            f"expected version {expected}, found {actual}",
            detail={"aggregate_id": aggregate_id, "expected": expected, "actual": actual},
        )
        self.aggregate_id = aggregate_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "ConcurrencyError",
    "ConflictError",
    "DomainError",
    "InvariantViolationError",
    "NotFoundError",
]
