"""AggregateRoot: emits domain events and rebuilds itself by replaying them."""

from __future__ import annotations

import abc
from collections.abc import Iterable
from typing import Any

from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventMetadata, EventType
from mp_transactions.observability.correlation import CorrelationContext


class AggregateRoot(abc.ABC):
    """Event-sourced aggregate root.

    Business methods validate invariants and call :meth:`emit`; all state
    changes happen in :meth:`apply_event`, which is used both for freshly
    emitted events and during replay, so in-memory state and emitted history
    never diverge.

    An instance is owned by the single code path handling one command; it is
    not safe to share across concurrent requests.

    Example::

        class Order(AggregateRoot):
            aggregate_type = "order"

            def __init__(self, id: str) -> None:
                super().__init__(id)
                self.status = "NEW"

            def confirm(self) -> None:
                if self.status != "NEW":
                    raise InvariantViolationError("order already confirmed")
                self.emit(EventType.ORDER_CONFIRMED, {"order_id": self.id})

            def apply_event(self, event: DomainEvent) -> None:
                if event.type == EventType.ORDER_CONFIRMED:
                    self.status = "CONFIRMED"
    """

    aggregate_type: str = ""

    def __init__(self, id: str) -> None:  # noqa: A002
        self._id = id
        self._version = 0
        self._uncommitted: list[DomainEvent] = []
        self._correlation_id: str | None = None
        self._causation_id: str | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> str:
        return self.aggregate_type or type(self).__name__

    @property
    def version(self) -> int:
        """Version of the latest applied event (0 for a fresh aggregate)."""
        return self._version

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def apply_event(self, event: DomainEvent) -> None:
        """Mutate state from a single event.  Must not emit new events."""

    def load_from_history(self, events: Iterable[DomainEvent]) -> None:
        """Replay *events* in order, advancing :attr:`version` from each."""
        for event in events:
            self.apply_event(event)
            self._version = event.version

    def set_correlation(self, correlation_id: str, causation_id: str | None = None) -> None:
        """Stamp subsequently emitted events with this correlation context."""
        self._correlation_id = correlation_id
        self._causation_id = causation_id

    def emit(
        self,
        type: EventType | str,  # noqa: A002
        payload: dict[str, Any] | None = None,
        metadata: EventMetadata | None = None,
    ) -> DomainEvent:
        """Record a new event, apply it immediately and return it."""
        correlation_id, causation_id = self._correlation_id, self._causation_id
        if correlation_id is None:
            ambient = CorrelationContext.get()
            if ambient is not None:
                correlation_id = ambient.correlation_id
                causation_id = ambient.causation_id
        event = DomainEvent(
            type=type,
            aggregate_id=self._id,
            aggregate_type=self.type,
            payload=dict(payload or {}),
            version=self._version + 1,
            correlation_id=correlation_id or "",
            causation_id=causation_id,
            metadata=metadata,
        )
        self._version = event.version
        self._uncommitted.append(event)
        self.apply_event(event)
        return event

    # ------------------------------------------------------------------
    # Repository save cycle
    # ------------------------------------------------------------------

    @property
    def uncommitted_events(self) -> list[DomainEvent]:
        return list(self._uncommitted)

    def get_uncommitted_events(self) -> list[DomainEvent]:
        """Events emitted since the last :meth:`clear_events`."""
        return list(self._uncommitted)

    def clear_events(self) -> None:
        self._uncommitted.clear()

    # ------------------------------------------------------------------
    # Snapshot hooks
    # ------------------------------------------------------------------

    def snapshot_state(self) -> dict[str, Any]:
        """Return a JSON-friendly dict of current state for snapshotting."""
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")

    def restore_snapshot(self, state: dict[str, Any], version: int) -> None:
        """Restore state captured by :meth:`snapshot_state` at *version*."""
        raise NotImplementedError(f"{type(self).__name__} does not support snapshots")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, version={self._version})"


__all__ = ["AggregateRoot"]
