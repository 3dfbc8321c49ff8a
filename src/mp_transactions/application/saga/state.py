"""Application saga – SagaStatus enum."""

from __future__ import annotations

import enum


class SagaStatus(str, enum.Enum):
    """Lifecycle states of a saga instance."""

    PENDING = "PENDING"
    """Instance created; execution has not started yet."""

    RUNNING = "RUNNING"
    """Forward steps are executing."""

    COMPLETED = "COMPLETED"
    """All steps completed successfully."""

    COMPENSATING = "COMPENSATING"
    """Compensations of completed steps are running in reverse order."""

    FAILED = "FAILED"
    """A step failed (or a manual rollback ran); compensation has finished."""

    TIMEOUT = "TIMEOUT"
    """The saga's overall timeout elapsed; compensation has finished."""

    @property
    def is_terminal(self) -> bool:
        return self in (SagaStatus.COMPLETED, SagaStatus.FAILED, SagaStatus.TIMEOUT)

    def __str__(self) -> str:
        return self.value


__all__ = ["SagaStatus"]
