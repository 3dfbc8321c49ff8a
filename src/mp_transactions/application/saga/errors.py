"""Application saga – error types.

Registration and lookup misuse extends the domain hierarchy
(:class:`NotFoundError` / :class:`ConflictError`); execution failures extend
:class:`ApplicationError`.
"""

from __future__ import annotations

from typing import Any

from mp_transactions.kernel.errors import (
    ApplicationError,
    ConflictError,
    NotFoundError,
    TimeoutError as AppTimeoutError,
)


class DuplicateSagaError(ConflictError):
    """A saga definition with the same id is already registered."""

    default_code = "duplicate_saga"

    def __init__(self, saga_id: str) -> None:
        super().__init__(f"Saga '{saga_id}' is already registered", detail={"saga_id": saga_id})
        self.saga_id = saga_id


class UnknownSagaError(NotFoundError):
    """No saga definition is registered under the given id."""

    default_code = "unknown_saga"

    def __init__(self, saga_id: str) -> None:
        super().__init__("Saga", saga_id)
        self.saga_id = saga_id


class UnknownSagaInstanceError(NotFoundError):
    """No saga instance exists with the given id."""

    default_code = "unknown_saga_instance"

    def __init__(self, instance_id: str) -> None:
        super().__init__("Saga instance", instance_id)
        self.instance_id = instance_id


class InvalidSagaStateError(ConflictError):
    """The requested operation is not legal in the instance's current status."""

    default_code = "invalid_saga_state"

    def __init__(self, instance_id: str, status: Any, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} saga instance '{instance_id}' in status {status}",
            detail={"instance_id": instance_id, "status": str(status), "operation": operation},
        )
        self.instance_id = instance_id
        self.status = status


class SagaError(ApplicationError):
    """Base class for failures raised while executing a saga."""

    default_code = "saga_error"

    def __init__(self, message: str, step: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.step = step


class StepExecutionError(SagaError):
    """A step's action failed after its retry policy was exhausted."""

    default_code = "step_execution_failed"

    def __init__(self, step: str, cause: BaseException, attempts: int) -> None:
        reason = getattr(cause, "message", None) or str(cause) or type(cause).__name__
        super().__init__(
            f"Step '{step}' failed after {attempts} attempt(s): {reason}",
            step=step,
            detail={"step": step, "attempts": attempts, "error_type": type(cause).__name__},
            cause=cause,
        )
        self.attempts = attempts
        self.reason = reason


class CompensationError(SagaError):
    """A compensation raised; logged and collected, never aborts the rollback."""

    default_code = "compensation_failed"

    def __init__(self, step: str, cause: BaseException) -> None:
        reason = getattr(cause, "message", None) or str(cause) or type(cause).__name__
        super().__init__(
            f"Compensation of step '{step}' failed: {reason}",
            step=step,
            detail={"step": step, "error_type": type(cause).__name__},
            cause=cause,
        )
        self.reason = reason


class StepTimeoutError(AppTimeoutError):
    """A single attempt of a step exceeded the step's timeout."""

    default_code = "step_timeout"

    def __init__(self, step: str, timeout: float) -> None:
        super().__init__(
            f"Step '{step}' timed out after {timeout}s",
            detail={"step": step, "timeout": timeout},
        )
        self.step = step
        self.timeout = timeout


class SagaTimeoutError(AppTimeoutError):
    """The saga's overall timeout elapsed before all steps completed."""

    default_code = "saga_timeout"

    def __init__(self, saga_id: str, timeout: float, step: str | None = None) -> None:
        super().__init__(
            f"Saga '{saga_id}' timed out after {timeout}s",
            detail={"saga_id": saga_id, "timeout": timeout, "step": step},
        )
        self.saga_id = saga_id
        self.timeout = timeout
        self.step = step


__all__ = [
    "CompensationError",
    "DuplicateSagaError",
    "InvalidSagaStateError",
    "SagaError",
    "SagaTimeoutError",
    "StepExecutionError",
    "StepTimeoutError",
    "UnknownSagaError",
    "UnknownSagaInstanceError",
]
