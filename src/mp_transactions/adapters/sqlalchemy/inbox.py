"""SQLAlchemy adapter – SQLAlchemyInbox."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, insert, select  # type: ignore[import-untyped]
from sqlalchemy.dialects import postgresql, sqlite  # type: ignore[import-untyped]

from mp_transactions.adapters.sqlalchemy.tables import processed_events
from mp_transactions.kernel.messaging.inbox import Inbox

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SQLAlchemyInbox(Inbox):
    """Inbox backed by the ``processed_events`` table.

    On PostgreSQL and SQLite ``seen`` is a single
    ``INSERT ... ON CONFLICT DO NOTHING``: the row count tells whether the
    id was new, so the test-and-set is atomic in the database.  Other
    backends fall back to select-then-insert, relying on the primary key to
    reject a concurrent duplicate.
    """

    def __init__(self, session: Any, autocommit: bool = False) -> None:
        self._session = session
        self._autocommit = autocommit

    async def seen(self, event_id: str) -> bool:
        values = {"event_id": event_id, "processed_at": datetime.now(UTC)}
        dialect = self._session.get_bind().dialect.name
        upsert = _UPSERT_DIALECTS.get(dialect)
        if upsert is not None:
            stmt = upsert(processed_events).values(**values).on_conflict_do_nothing(
                index_elements=["event_id"]
            )
            result = await self._session.execute(stmt)
            inserted = result.rowcount == 1
        else:
            existing = await self._session.execute(
                select(processed_events.c.event_id).where(processed_events.c.event_id == event_id)
            )
            inserted = existing.first() is None
            if inserted:
                await self._session.execute(insert(processed_events).values(**values))
        if self._autocommit:
            await self._session.commit()
        return not inserted

    async def forget(self, event_id: str) -> None:
        await self._session.execute(
            delete(processed_events).where(processed_events.c.event_id == event_id)
        )
        if self._autocommit:
            await self._session.commit()


__all__ = ["SQLAlchemyInbox"]
