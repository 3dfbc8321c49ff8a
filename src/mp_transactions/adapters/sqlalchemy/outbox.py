"""SQLAlchemy adapter – SQLAlchemyOutbox."""
from __future__ import annotations

import json
from datetime import UTC
from typing import Any

from sqlalchemy import delete, func, insert, select, update  # type: ignore[import-untyped]

from mp_transactions.adapters.sqlalchemy.tables import outbox_entries
from mp_transactions.kernel.ddd.domain_event import DomainEvent
from mp_transactions.kernel.messaging.outbox import Outbox, OutboxEntry

_COLUMNS = (
    outbox_entries.c.id,
    outbox_entries.c.event_type,
    outbox_entries.c.payload,
    outbox_entries.c.created_at,
    outbox_entries.c.attempts,
    outbox_entries.c.last_error,
)


class SQLAlchemyOutbox(Outbox):
    """SQLAlchemy-backed transactional outbox.

    ``enqueue`` writes through the caller's session, so the entry commits or
    rolls back together with the business change made on the same session.
    ``drain`` selects the oldest entries ``FOR UPDATE SKIP LOCKED`` (where
    the backend supports it) and deletes them in the same transaction, so
    concurrent relays never hand off the same entry twice.

    Set *autocommit* for a relay-owned session that should commit after
    every operation.
    """

    def __init__(self, session: Any, autocommit: bool = False) -> None:
        self._session = session
        self._autocommit = autocommit

    async def _commit(self) -> None:
        if self._autocommit:
            await self._session.commit()

    async def enqueue(self, event: DomainEvent) -> OutboxEntry:
        entry = OutboxEntry.from_event(event)
        await self._session.execute(
            insert(outbox_entries).values(
                id=entry.id,
                event_type=entry.type,
                payload=json.dumps(entry.payload, default=str),
                created_at=entry.created_at,
                attempts=0,
                dead=False,
            )
        )
        await self._commit()
        return entry

    async def drain(self, batch: int) -> list[OutboxEntry]:
        if batch < 1:
            raise ValueError("batch must be >= 1")
        stmt = (
            select(*_COLUMNS)
            .where(outbox_entries.c.dead.is_(False))
            .order_by(outbox_entries.c.seq)
            .limit(batch)
            .with_for_update(skip_locked=True)
        )
        entries = [self._row_to_entry(row) for row in (await self._session.execute(stmt)).all()]
        if entries:
            await self._session.execute(
                delete(outbox_entries).where(outbox_entries.c.id.in_([e.id for e in entries]))
            )
        await self._commit()
        return entries

    async def pending(self, limit: int) -> list[OutboxEntry]:
        stmt = (
            select(*_COLUMNS)
            .where(outbox_entries.c.dead.is_(False))
            .order_by(outbox_entries.c.seq)
            .limit(limit)
        )
        return [self._row_to_entry(row) for row in (await self._session.execute(stmt)).all()]

    async def acknowledge(self, entry_ids: list[str]) -> None:
        if not entry_ids:
            return
        await self._session.execute(
            delete(outbox_entries).where(outbox_entries.c.id.in_(entry_ids))
        )
        await self._commit()

    async def mark_failed(self, entry_id: str, error: str, max_attempts: int | None = None) -> bool:
        attempts = (
            await self._session.execute(
                select(outbox_entries.c.attempts).where(outbox_entries.c.id == entry_id)
            )
        ).scalar()
        if attempts is None:
            return False
        attempts += 1
        dead = max_attempts is not None and attempts >= max_attempts
        await self._session.execute(
            update(outbox_entries)
            .where(outbox_entries.c.id == entry_id)
            .values(attempts=attempts, last_error=error, dead=dead)
        )
        await self._commit()
        return dead

    async def dead_letters(self) -> list[OutboxEntry]:
        stmt = (
            select(*_COLUMNS)
            .where(outbox_entries.c.dead.is_(True))
            .order_by(outbox_entries.c.seq)
        )
        return [self._row_to_entry(row) for row in (await self._session.execute(stmt)).all()]

    async def size(self) -> int:
        stmt = select(func.count()).select_from(outbox_entries).where(outbox_entries.c.dead.is_(False))
        return (await self._session.execute(stmt)).scalar() or 0

    def _row_to_entry(self, row: Any) -> OutboxEntry:
        created_at = row.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return OutboxEntry(
            id=row.id,
            type=row.event_type,
            payload=json.loads(row.payload),
            created_at=created_at,
            attempts=row.attempts,
            last_error=row.last_error,
        )


__all__ = ["SQLAlchemyOutbox"]
