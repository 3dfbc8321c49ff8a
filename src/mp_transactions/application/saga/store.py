"""Application saga – SagaInstanceStore port and InMemorySagaInstanceStore."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mp_transactions.application.saga.state import SagaStatus


@dataclass
class SagaRecord:
    """Durable representation of a saga instance's progress."""

    instance_id: str
    definition_id: str
    status: SagaStatus
    step_index: int
    correlation_id: str
    started_at: datetime
    ctx_snapshot: dict[str, Any] = field(default_factory=dict)
    completed_steps: list[str] = field(default_factory=list)
    compensated_steps: list[str] = field(default_factory=list)
    event_version: int = 0

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "SagaRecord":
        """Build a record from :meth:`SagaInstance.to_dict` output."""
        return cls(
            instance_id=data["id"],
            definition_id=data["definitionId"],
            status=SagaStatus(data["status"]),
            step_index=int(data["currentStep"]),
            correlation_id=data["correlationId"],
            started_at=datetime.fromisoformat(data["startedAt"]),
            ctx_snapshot=dict(data.get("context") or {}),
            completed_steps=list(data.get("completedSteps") or []),
            compensated_steps=list(data.get("compensatedSteps") or []),
            event_version=int(data.get("eventVersion") or 0),
        )


class SagaInstanceStore(abc.ABC):
    """Port: persist and retrieve saga instance progress.

    The orchestrator saves a snapshot after every status transition and
    completed step, so an instance interrupted by a crash can be resumed
    by another process.
    """

    @abc.abstractmethod
    async def save(self, snapshot: dict[str, Any]) -> None:
        """Persist (upsert) an instance snapshot keyed by its ``id``."""

    @abc.abstractmethod
    async def load(self, instance_id: str) -> SagaRecord | None:
        """Return the latest record for *instance_id*, or ``None``."""

    @abc.abstractmethod
    async def delete(self, instance_id: str) -> None:
        """Forget *instance_id*; unknown ids are ignored."""


class InMemorySagaInstanceStore(SagaInstanceStore):
    """In-memory :class:`SagaInstanceStore` for tests and local development."""

    def __init__(self) -> None:
        self._snapshots: dict[str, dict[str, Any]] = {}

    async def save(self, snapshot: dict[str, Any]) -> None:
        self._snapshots[snapshot["id"]] = dict(snapshot)

    async def load(self, instance_id: str) -> SagaRecord | None:
        snapshot = self._snapshots.get(instance_id)
        if snapshot is None:
            return None
        return SagaRecord.from_snapshot(snapshot)

    async def delete(self, instance_id: str) -> None:
        self._snapshots.pop(instance_id, None)

    def all_records(self) -> dict[str, SagaRecord]:
        """Return all stored records (useful in tests)."""
        return {k: SagaRecord.from_snapshot(v) for k, v in self._snapshots.items()}


__all__ = ["InMemorySagaInstanceStore", "SagaInstanceStore", "SagaRecord"]
