"""Application: Saga orchestration with reverse-order compensation."""

from mp_transactions.application.saga.context import SagaContext
from mp_transactions.application.saga.definition import (
    Compensation,
    SagaDefinition,
    SagaDefinitionBuilder,
    SagaStep,
    SagaStepBuilder,
    StepAction,
    saga,
    step,
)
from mp_transactions.application.saga.errors import (
    CompensationError,
    DuplicateSagaError,
    InvalidSagaStateError,
    SagaError,
    SagaTimeoutError,
    StepExecutionError,
    StepTimeoutError,
    UnknownSagaError,
    UnknownSagaInstanceError,
)
from mp_transactions.application.saga.instance import SagaErrorInfo, SagaInstance
from mp_transactions.application.saga.lease import InMemorySagaLease, SagaLease
from mp_transactions.application.saga.orchestrator import OrchestratorState, SagaOrchestrator
from mp_transactions.application.saga.state import SagaStatus
from mp_transactions.application.saga.store import (
    InMemorySagaInstanceStore,
    SagaInstanceStore,
    SagaRecord,
)
from mp_transactions.resilience.retry import RetryPolicy

__all__ = [
    "Compensation",
    "CompensationError",
    "DuplicateSagaError",
    "InMemorySagaInstanceStore",
    "InMemorySagaLease",
    "InvalidSagaStateError",
    "OrchestratorState",
    "RetryPolicy",
    "SagaContext",
    "SagaDefinition",
    "SagaDefinitionBuilder",
    "SagaError",
    "SagaErrorInfo",
    "SagaInstance",
    "SagaInstanceStore",
    "SagaLease",
    "SagaOrchestrator",
    "SagaRecord",
    "SagaStatus",
    "SagaStep",
    "SagaStepBuilder",
    "SagaTimeoutError",
    "StepAction",
    "StepExecutionError",
    "StepTimeoutError",
    "UnknownSagaError",
    "UnknownSagaInstanceError",
    "saga",
    "step",
]
