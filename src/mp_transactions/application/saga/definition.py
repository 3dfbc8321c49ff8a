"""Application saga – SagaStep, SagaDefinition and their fluent builders."""

from __future__ import annotations

import dataclasses
from typing import Any, Awaitable, Callable, Mapping

from mp_transactions.application.saga.context import SagaContext
from mp_transactions.resilience.retry import RetryPolicy

#: A step action; a returned mapping is merged into the saga context.
StepAction = Callable[[SagaContext], Awaitable[Mapping[str, Any] | None]]

#: A compensation; semantically undoes its step's action.
Compensation = Callable[[SagaContext], Awaitable[None]]


@dataclasses.dataclass(frozen=True)
class SagaStep:
    """A single unit of work within a saga.

    ``timeout`` bounds each attempt of ``action`` in seconds.  ``action`` is
    expected to be idempotent or self-cleaning: the orchestrator never
    compensates a step whose action did not complete.
    """

    name: str
    action: StepAction
    compensation: Compensation | None = None
    timeout: float | None = None
    retry_policy: RetryPolicy | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("SagaStep requires a name")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Step '{self.name}': timeout must be > 0")

    @property
    def has_compensation(self) -> bool:
        return self.compensation is not None

    def __repr__(self) -> str:
        return f"SagaStep(name={self.name!r})"


@dataclasses.dataclass(frozen=True)
class SagaDefinition:
    """Immutable template of an ordered list of steps.

    ``timeout`` bounds the wall-clock time of the whole forward pass in
    seconds.
    """

    id: str
    name: str
    steps: tuple[SagaStep, ...]
    timeout: float | None = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise ValueError(f"Saga '{self.id}' requires at least one step")
        names = [s.name for s in self.steps]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Saga '{self.id}' has duplicate step names: {duplicates}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Saga '{self.id}': timeout must be > 0")

    def step_named(self, name: str) -> SagaStep:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)

    def index_of(self, name: str) -> int:
        return [s.name for s in self.steps].index(name)


# ---------------------------------------------------------------------------
# Fluent builders
# ---------------------------------------------------------------------------


class SagaStepBuilder:
    """Fluent construction of a :class:`SagaStep`.

    Example::

        reserve = (
            step("reserve-inventory", inventory.reserve)
            .compensation(inventory.release)
            .timeout(30)
            .retry(max_attempts=3, backoff_ms=100, exponential=True)
            .build()
        )
    """

    def __init__(self, name: str, action: StepAction) -> None:
        self._name = name
        self._action = action
        self._compensation: Compensation | None = None
        self._timeout: float | None = None
        self._retry: RetryPolicy | None = None

    def compensation(self, compensation: Compensation) -> "SagaStepBuilder":
        self._compensation = compensation
        return self

    def timeout(self, seconds: float) -> "SagaStepBuilder":
        self._timeout = seconds
        return self

    def retry(
        self,
        policy: RetryPolicy | None = None,
        **kwargs: Any,
    ) -> "SagaStepBuilder":
        """Attach *policy*, or build one from ``RetryPolicy`` keyword arguments."""
        self._retry = policy if policy is not None else RetryPolicy(**kwargs)
        return self

    def build(self) -> SagaStep:
        return SagaStep(
            name=self._name,
            action=self._action,
            compensation=self._compensation,
            timeout=self._timeout,
            retry_policy=self._retry,
        )


class SagaDefinitionBuilder:
    """Fluent construction of a :class:`SagaDefinition`."""

    def __init__(self, saga_id: str, name: str) -> None:
        self._id = saga_id
        self._name = name
        self._steps: list[SagaStep] = []
        self._timeout: float | None = None
        self._description = ""

    def description(self, text: str) -> "SagaDefinitionBuilder":
        self._description = text
        return self

    def step(self, saga_step: SagaStep | SagaStepBuilder) -> "SagaDefinitionBuilder":
        if isinstance(saga_step, SagaStepBuilder):
            saga_step = saga_step.build()
        self._steps.append(saga_step)
        return self

    def timeout(self, seconds: float) -> "SagaDefinitionBuilder":
        self._timeout = seconds
        return self

    def build(self) -> SagaDefinition:
        return SagaDefinition(
            id=self._id,
            name=self._name,
            steps=tuple(self._steps),
            timeout=self._timeout,
            description=self._description,
        )


def saga(saga_id: str, name: str | None = None) -> SagaDefinitionBuilder:
    """Start building a saga definition."""
    return SagaDefinitionBuilder(saga_id, name or saga_id)


def step(name: str, action: StepAction) -> SagaStepBuilder:
    """Start building a saga step."""
    return SagaStepBuilder(name, action)


__all__ = [
    "Compensation",
    "SagaDefinition",
    "SagaDefinitionBuilder",
    "SagaStep",
    "SagaStepBuilder",
    "StepAction",
    "saga",
    "step",
]
