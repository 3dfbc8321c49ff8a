"""Application event sourcing – EventSourcedRepository."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from mp_transactions.application.event_sourcing.snapshot import SnapshotStore
from mp_transactions.application.event_sourcing.store import EventStore
from mp_transactions.kernel.ddd.aggregate import AggregateRoot
from mp_transactions.kernel.ddd.domain_event import DomainEvent
from mp_transactions.kernel.errors import ConcurrencyError
from mp_transactions.kernel.messaging.outbox import Outbox
from mp_transactions.observability.logging import get_logger

T = TypeVar("T", bound=AggregateRoot)

logger = get_logger(__name__)


class EventSourcedRepository(Generic[T]):
    """Load aggregates by replaying their events and save uncommitted ones.

    *factory* builds an empty aggregate for a given id.  When *outbox* is
    given, saved events are also queued for relay to the event bus.  When
    *snapshot_store* and *snapshot_every* are given, a snapshot is taken each
    time the aggregate's version crosses a multiple of *snapshot_every*.

    Store and outbox should share one transaction (as the SQLAlchemy adapters
    do through a common session).  When they do not, a failed outbox hand-off
    leaves the events stored but still uncommitted on the aggregate; calling
    :meth:`save` again recognises the stored batch and retries the hand-off.
    Entries queued before the failure may then be queued twice, which the
    inbox on the consuming side absorbs.

    Example::

        repo = EventSourcedRepository(store, Order, outbox=outbox)
        order = await repo.load("order-1") or Order("order-1")
        order.confirm()
        await repo.save(order)
    """

    def __init__(
        self,
        store: EventStore,
        factory: Callable[[str], T],
        outbox: Outbox | None = None,
        snapshot_store: SnapshotStore | None = None,
        snapshot_every: int = 0,
    ) -> None:
        if snapshot_every < 0:
            raise ValueError("snapshot_every must be >= 0")
        self._store = store
        self._factory = factory
        self._outbox = outbox
        self._snapshots = snapshot_store
        self._snapshot_every = snapshot_every

    async def load(self, aggregate_id: str) -> T | None:
        """Rehydrate *aggregate_id*; returns ``None`` if it has no history."""
        aggregate = self._factory(aggregate_id)
        from_version = 0
        if self._snapshots is not None:
            snapshot = await self._snapshots.latest(aggregate_id)
            if snapshot is not None:
                aggregate.restore_snapshot(snapshot.state, snapshot.version)
                from_version = snapshot.version + 1
        events = await self._store.get_events(aggregate_id, from_version=from_version)
        if not events and from_version == 0:
            return None
        aggregate.load_from_history(events)
        return aggregate

    async def save(self, aggregate: T) -> None:
        """Append uncommitted events, queue them in the outbox, then clear them."""
        events = aggregate.get_uncommitted_events()
        if not events:
            return
        try:
            await self._store.append_batch(events)
        except ConcurrencyError:
            if not await self._already_stored(events):
                raise
            logger.warning("aggregate.save.resumed", aggregate_id=aggregate.id, events=len(events))
        if self._outbox is not None:
            await self._outbox.enqueue_many(events)
        aggregate.clear_events()
        logger.debug(
            "aggregate.saved",
            aggregate_id=aggregate.id,
            aggregate_type=aggregate.type,
            version=aggregate.version,
            events=len(events),
        )
        await self._maybe_snapshot(aggregate, previous_version=events[0].version - 1)

    async def _already_stored(self, events: list[DomainEvent]) -> bool:
        stored = await self._store.get_events(events[0].aggregate_id, from_version=events[0].version)
        return [e.id for e in stored[: len(events)]] == [e.id for e in events]

    async def _maybe_snapshot(self, aggregate: T, previous_version: int) -> None:
        if self._snapshots is None or self._snapshot_every == 0:
            return
        every = self._snapshot_every
        if aggregate.version // every > previous_version // every:
            await self._snapshots.take(aggregate.id, aggregate.version, aggregate.snapshot_state())


__all__ = ["EventSourcedRepository"]
