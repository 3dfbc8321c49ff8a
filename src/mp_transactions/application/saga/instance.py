"""Application saga – SagaInstance run record."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from mp_transactions.application.saga.context import SagaContext
from mp_transactions.application.saga.definition import SagaStep
from mp_transactions.application.saga.errors import CompensationError
from mp_transactions.application.saga.state import SagaStatus


@dataclasses.dataclass(frozen=True)
class SagaErrorInfo:
    """Why an instance failed.

    ``kind`` is ``"step_failed"`` when a step's action was rejected and
    ``"timeout"`` when the saga's overall timeout elapsed.
    """

    step: str | None
    message: str
    kind: str = "step_failed"

    def to_dict(self) -> dict[str, Any]:
        return {"step": self.step, "message": self.message, "kind": self.kind}


@dataclasses.dataclass
class SagaInstance:
    """Mutable record of one saga run.

    Mutated only by the orchestrator task that drives the instance.
    ``compensation_steps`` lists completed steps that carry a compensation,
    in completion order; ``compensated_steps`` lists the names of those whose
    compensation has run successfully.
    """

    id: str
    definition_id: str
    started_at: datetime
    correlation_id: str
    status: SagaStatus = SagaStatus.PENDING
    current_step: int = 0
    context: SagaContext = dataclasses.field(default_factory=SagaContext)
    completed_steps: list[str] = dataclasses.field(default_factory=list)
    compensation_steps: list[SagaStep] = dataclasses.field(default_factory=list)
    compensated_steps: list[str] = dataclasses.field(default_factory=list)
    compensation_errors: list[CompensationError] = dataclasses.field(default_factory=list)
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error: SagaErrorInfo | None = None
    event_version: int = 0

    @property
    def finished_at(self) -> datetime | None:
        return self.completed_at or self.failed_at

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal

    def next_event_version(self) -> int:
        self.event_version += 1
        return self.event_version

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly snapshot used by instance stores and status payloads."""
        return {
            "id": self.id,
            "definitionId": self.definition_id,
            "status": self.status.value,
            "currentStep": self.current_step,
            "context": self.context.snapshot(),
            "completedSteps": list(self.completed_steps),
            "compensationSteps": [s.name for s in self.compensation_steps],
            "compensatedSteps": list(self.compensated_steps),
            "compensationErrors": [e.to_dict() for e in self.compensation_errors],
            "correlationId": self.correlation_id,
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "failedAt": self.failed_at.isoformat() if self.failed_at else None,
            "error": self.error.to_dict() if self.error else None,
            "eventVersion": self.event_version,
        }


__all__ = ["SagaErrorInfo", "SagaInstance"]
