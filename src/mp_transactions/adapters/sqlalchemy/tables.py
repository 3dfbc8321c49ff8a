"""SQLAlchemy adapter – table definitions shared by the stores.

Envelopes and payloads are stored as JSON text so the round trip through
any backend reproduces the original event exactly, timestamps included.
"""
from __future__ import annotations

from sqlalchemy import (  # type: ignore[import-untyped]
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

domain_events = Table(
    "domain_events",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("aggregate_id", String(256), nullable=False, index=True),
    Column("aggregate_type", String(256), nullable=False),
    Column("event_type", String(256), nullable=False, index=True),
    Column("version", Integer, nullable=False),
    Column("correlation_id", String(256), nullable=False, index=True),
    Column("envelope", Text, nullable=False),
    UniqueConstraint("aggregate_id", "version", name="uq_domain_events_aggregate_version"),
)

outbox_entries = Table(
    "outbox_entries",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("event_type", String(256), nullable=False),
    Column("payload", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("attempts", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    Column("dead", Boolean, nullable=False, default=False, index=True),
)

processed_events = Table(
    "processed_events",
    metadata,
    Column("event_id", String(64), primary_key=True),
    Column("processed_at", DateTime(timezone=True), nullable=False),
)


__all__ = ["domain_events", "metadata", "outbox_entries", "processed_events"]
