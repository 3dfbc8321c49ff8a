"""Application event sourcing – store, repository and snapshots."""

from mp_transactions.application.event_sourcing.repository import EventSourcedRepository
from mp_transactions.application.event_sourcing.snapshot import (
    InMemorySnapshotStore,
    SnapshotRecord,
    SnapshotStore,
)
from mp_transactions.application.event_sourcing.store import (
    EventStore,
    InMemoryEventStore,
    check_versions,
)

__all__ = [
    "EventSourcedRepository",
    "EventStore",
    "InMemoryEventStore",
    "InMemorySnapshotStore",
    "SnapshotRecord",
    "SnapshotStore",
    "check_versions",
]
