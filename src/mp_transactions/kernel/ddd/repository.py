"""Repository port for aggregates."""

from __future__ import annotations

from typing import Protocol, TypeVar

from mp_transactions.kernel.ddd.aggregate import AggregateRoot

T = TypeVar("T", bound=AggregateRoot)


class Repository(Protocol[T]):
    """Port: load and persist aggregates by id."""

    async def load(self, aggregate_id: str) -> T | None:
        """Return the rehydrated aggregate, or ``None`` if it has no history."""
        ...

    async def save(self, aggregate: T) -> None:
        """Persist the aggregate's uncommitted events and clear them."""
        ...


__all__ = ["Repository"]
