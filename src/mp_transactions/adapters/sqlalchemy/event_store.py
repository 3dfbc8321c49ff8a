"""SQLAlchemy adapter – SQLAlchemyEventStore."""
from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, insert, select  # type: ignore[import-untyped]
from sqlalchemy.exc import IntegrityError  # type: ignore[import-untyped]

from mp_transactions.adapters.sqlalchemy.tables import domain_events
from mp_transactions.application.event_sourcing.store import EventStore, check_versions
from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventType, event_type_name
from mp_transactions.kernel.errors import ConcurrencyError


class SQLAlchemyEventStore(EventStore):
    """Append-only SQLAlchemy event store with optimistic concurrency.

    All events live in the ``domain_events`` table.  Versions are checked
    against the stored maximum before inserting, and the
    ``(aggregate_id, version)`` pair is declared ``UNIQUE`` so the database
    itself rejects a concurrent writer that passed the check at the same
    time; that violation is surfaced as :class:`ConcurrencyError` as well.

    The store writes through the given :class:`~sqlalchemy.ext.asyncio.AsyncSession`
    and leaves the commit to the caller's unit of work, unless *autocommit*
    is set.

    Parameters
    ----------
    session:
        An :class:`~sqlalchemy.ext.asyncio.AsyncSession`.
    autocommit:
        Commit after every successful append.
    """

    def __init__(self, session: Any, autocommit: bool = False) -> None:
        self._session = session
        self._autocommit = autocommit

    async def append_batch(self, events: Sequence[DomainEvent]) -> None:
        if not events:
            return
        aggregate_ids = {e.aggregate_id for e in events}
        stmt = (
            select(domain_events.c.aggregate_id, func.max(domain_events.c.version))
            .where(domain_events.c.aggregate_id.in_(aggregate_ids))
            .group_by(domain_events.c.aggregate_id)
        )
        current = {row[0]: row[1] for row in (await self._session.execute(stmt)).all()}
        check_versions(events, current)

        rows = [
            {
                "id": e.id,
                "aggregate_id": e.aggregate_id,
                "aggregate_type": e.aggregate_type,
                "event_type": e.type,
                "version": e.version,
                "correlation_id": e.correlation_id,
                "envelope": json.dumps(e.to_envelope(), default=str),
            }
            for e in events
        ]
        try:
            await self._session.execute(insert(domain_events), rows)
        except IntegrityError as exc:
            first = events[0]
            raise ConcurrencyError(
                first.aggregate_id, expected=first.version, actual=first.version
            ) from exc
        if self._autocommit:
            await self._session.commit()

    async def get_events(self, aggregate_id: str, from_version: int = 0) -> list[DomainEvent]:
        stmt = (
            select(domain_events.c.envelope)
            .where(domain_events.c.aggregate_id == aggregate_id)
            .where(domain_events.c.version >= from_version)
            .order_by(domain_events.c.version)
        )
        return await self._fetch(stmt)

    async def get_events_by_type(
        self, event_type: EventType | str, limit: int = 100
    ) -> list[DomainEvent]:
        stmt = (
            select(domain_events.c.envelope)
            .where(domain_events.c.event_type == event_type_name(event_type))
            .order_by(domain_events.c.seq)
            .limit(limit)
        )
        return await self._fetch(stmt)

    async def get_events_by_correlation(self, correlation_id: str) -> list[DomainEvent]:
        stmt = (
            select(domain_events.c.envelope)
            .where(domain_events.c.correlation_id == correlation_id)
            .order_by(domain_events.c.seq)
        )
        return await self._fetch(stmt)

    async def get_version(self, aggregate_id: str) -> int:
        stmt = select(func.max(domain_events.c.version)).where(
            domain_events.c.aggregate_id == aggregate_id
        )
        return (await self._session.execute(stmt)).scalar() or 0

    async def _fetch(self, stmt: Any) -> list[DomainEvent]:
        result = await self._session.execute(stmt)
        return [DomainEvent.from_envelope(json.loads(row[0])) for row in result.all()]


__all__ = ["SQLAlchemyEventStore"]
