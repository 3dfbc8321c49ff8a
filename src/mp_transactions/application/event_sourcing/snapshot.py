"""Application event sourcing – SnapshotStore port."""

from __future__ import annotations

import abc
import dataclasses
from datetime import UTC, datetime
from typing import Any


@dataclasses.dataclass
class SnapshotRecord:
    """Aggregate state captured at ``version``."""

    aggregate_id: str
    version: int
    state: dict[str, Any]
    taken_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))


class SnapshotStore(abc.ABC):
    """Port: store and retrieve aggregate state snapshots.

    Snapshots shorten replay for long-lived aggregates; the event log stays
    the source of truth.
    """

    @abc.abstractmethod
    async def take(self, aggregate_id: str, version: int, state: dict[str, Any]) -> None:
        """Persist a snapshot of *aggregate_id* at *version*."""

    @abc.abstractmethod
    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        """Return the most recent snapshot for *aggregate_id*, or ``None``."""


class InMemorySnapshotStore(SnapshotStore):
    """In-memory :class:`SnapshotStore` for tests and local development."""

    def __init__(self) -> None:
        self._snapshots: dict[str, SnapshotRecord] = {}

    async def take(self, aggregate_id: str, version: int, state: dict[str, Any]) -> None:
        self._snapshots[aggregate_id] = SnapshotRecord(
            aggregate_id=aggregate_id,
            version=version,
            state=dict(state),
        )

    async def latest(self, aggregate_id: str) -> SnapshotRecord | None:
        return self._snapshots.get(aggregate_id)


__all__ = ["InMemorySnapshotStore", "SnapshotRecord", "SnapshotStore"]
