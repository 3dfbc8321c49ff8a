"""SQLAlchemy adapter – event store, transactional outbox and inbox."""
from mp_transactions.adapters.sqlalchemy.event_store import SQLAlchemyEventStore
from mp_transactions.adapters.sqlalchemy.inbox import SQLAlchemyInbox
from mp_transactions.adapters.sqlalchemy.outbox import SQLAlchemyOutbox
from mp_transactions.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from mp_transactions.adapters.sqlalchemy.tables import metadata

__all__ = [
    "SQLAlchemyEventStore",
    "SQLAlchemyInbox",
    "SQLAlchemyOutbox",
    "SqlAlchemySessionFactory",
    "metadata",
]
