"""Application saga – SagaOrchestrator and OrchestratorState."""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import timedelta
from typing import Any
from uuid import uuid4

import structlog

from mp_transactions.application.saga.context import SagaContext
from mp_transactions.application.saga.definition import SagaDefinition, SagaStep
from mp_transactions.application.saga.errors import (
    CompensationError,
    DuplicateSagaError,
    InvalidSagaStateError,
    SagaTimeoutError,
    StepExecutionError,
    StepTimeoutError,
    UnknownSagaError,
    UnknownSagaInstanceError,
)
from mp_transactions.application.saga.instance import SagaErrorInfo, SagaInstance
from mp_transactions.application.saga.lease import SagaLease
from mp_transactions.application.saga.state import SagaStatus
from mp_transactions.application.saga.store import SagaInstanceStore
from mp_transactions.config.settings import OrchestratorSettings
from mp_transactions.kernel.ddd.domain_event import DomainEvent, EventMetadata, EventType
from mp_transactions.kernel.ddd.event_bus import EventBus
from mp_transactions.kernel.messaging.outbox import Outbox
from mp_transactions.kernel.time import Clock, SystemClock
from mp_transactions.observability.correlation import CorrelationContext, RequestContext
from mp_transactions.observability.logging import get_logger
from mp_transactions.resilience.retry import RetryPolicy, Sleep
from mp_transactions.resilience.timeouts import Deadline, TimeoutPolicy

logger = get_logger(__name__)

_COMPENSABLE = (SagaStatus.COMPLETED, SagaStatus.FAILED)


@dataclasses.dataclass
class OrchestratorState:
    """Definitions, instances and running tasks owned by one orchestrator.

    Constructed once at process start and handed to the orchestrator, so
    there is no module-level registry.  Finished tasks stay in ``tasks``
    until :meth:`SagaOrchestrator.cleanup_completed` removes their instance,
    which lets late callers of :meth:`SagaOrchestrator.wait` observe the
    outcome.
    """

    definitions: dict[str, SagaDefinition] = dataclasses.field(default_factory=dict)
    instances: dict[str, SagaInstance] = dataclasses.field(default_factory=dict)
    tasks: dict[str, asyncio.Task[None]] = dataclasses.field(default_factory=dict)


class SagaOrchestrator:
    """Run saga definitions as concurrently executing instances.

    Each instance executes its steps sequentially in its own asyncio task.
    A step's action is retried per its :class:`RetryPolicy`, each attempt
    bounded by the step timeout; the saga timeout bounds the forward pass.
    When a step is finally rejected (or the saga times out), compensations
    of all completed steps run in strict reverse order.  Compensation is
    best-effort: failures are logged and collected on the instance, and the
    rollback continues with the next step.

    Lifecycle events (``saga.started``, ``saga.step.completed``, ...) are
    queued in *outbox* when given, otherwise published on *event_bus* when
    given.

    Example::

        orchestrator = SagaOrchestrator(outbox=outbox)
        orchestrator.register_saga(order_creation)
        instance_id = await orchestrator.start_saga("order-creation", {"order": order})
        status = orchestrator.get_saga_status(instance_id)
    """

    def __init__(
        self,
        state: OrchestratorState | None = None,
        *,
        event_bus: EventBus | None = None,
        outbox: Outbox | None = None,
        instance_store: SagaInstanceStore | None = None,
        lease: SagaLease | None = None,
        clock: Clock | None = None,
        service_name: str = "saga-orchestrator",
        default_step_timeout: float | None = None,
        retention: timedelta = timedelta(hours=24),
        sleep: Sleep | None = None,
        worker_id: str | None = None,
    ) -> None:
        self._state = state or OrchestratorState()
        self._event_bus = event_bus
        self._outbox = outbox
        self._store = instance_store
        self._lease = lease
        self._clock = clock or SystemClock()
        self._service_name = service_name
        self._default_step_timeout = default_step_timeout
        self._retention = retention
        self._sleep = sleep
        self._worker_id = worker_id or f"{service_name}-{uuid4().hex[:8]}"

    @classmethod
    def from_settings(cls, settings: OrchestratorSettings, **kwargs: Any) -> "SagaOrchestrator":
        return cls(
            service_name=settings.service_name,
            default_step_timeout=settings.default_step_timeout,
            retention=timedelta(hours=settings.retention_hours),
            **kwargs,
        )

    @property
    def state(self) -> OrchestratorState:
        return self._state

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register_saga(self, definition: SagaDefinition) -> None:
        if definition.id in self._state.definitions:
            raise DuplicateSagaError(definition.id)
        self._state.definitions[definition.id] = definition
        logger.info("saga.registered", saga_id=definition.id, steps=len(definition.steps))

    def get_saga_status(self, instance_id: str) -> SagaInstance | None:
        return self._state.instances.get(instance_id)

    def _definition(self, saga_id: str) -> SagaDefinition:
        try:
            return self._state.definitions[saga_id]
        except KeyError:
            raise UnknownSagaError(saga_id) from None

    def _instance(self, instance_id: str) -> SagaInstance:
        instance = self._state.instances.get(instance_id)
        if instance is None:
            raise UnknownSagaInstanceError(instance_id)
        return instance

    # ------------------------------------------------------------------
    # Starting and awaiting runs
    # ------------------------------------------------------------------

    async def start_saga(
        self,
        saga_id: str,
        initial_context: Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> str:
        """Create a PENDING instance, schedule its execution and return its id.

        Execution is not awaited; observe the outcome through
        :meth:`get_saga_status` or :meth:`wait`.
        """
        definition = self._definition(saga_id)
        instance_id = f"{saga_id}-{uuid4()}"
        context = SagaContext(initial_context)
        if correlation_id is None:
            correlation_id = context.get("correlation_id")
        if correlation_id is None:
            ambient = CorrelationContext.get()
            correlation_id = ambient.correlation_id if ambient is not None else instance_id
        instance = SagaInstance(
            id=instance_id,
            definition_id=saga_id,
            started_at=self._clock.now(),
            correlation_id=correlation_id,
            context=context,
        )
        self._state.instances[instance_id] = instance
        await self._persist(instance)
        logger.info("saga.instance_created", saga_id=saga_id, saga_instance_id=instance_id)
        self._schedule(instance, self._execute(instance, definition, start_index=0))
        return instance_id

    async def wait(self, instance_id: str) -> SagaInstance:
        """Await the instance's run; re-raises the error that failed it."""
        instance = self._instance(instance_id)
        task = self._state.tasks.get(instance_id)
        if task is not None:
            await task
        return instance

    async def run_saga(
        self,
        saga_id: str,
        initial_context: Mapping[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> SagaInstance:
        """Start an instance and await its completion."""
        instance_id = await self.start_saga(saga_id, initial_context, correlation_id)
        return await self.wait(instance_id)

    async def resume_saga(self, instance_id: str) -> str:
        """Continue an instance recorded in the instance store.

        A RUNNING or PENDING instance continues with the first step that
        had not completed; a COMPENSATING one finishes its rollback.  The
        saga timeout, if any, starts afresh.
        """
        if self._store is None:
            raise RuntimeError("resume_saga requires an instance store")
        task = self._state.tasks.get(instance_id)
        if task is not None and not task.done():
            raise InvalidSagaStateError(instance_id, "RUNNING", "resume")
        record = await self._store.load(instance_id)
        if record is None:
            raise UnknownSagaInstanceError(instance_id)
        if record.status.is_terminal:
            raise InvalidSagaStateError(instance_id, record.status, "resume")
        definition = self._definition(record.definition_id)
        instance = SagaInstance(
            id=record.instance_id,
            definition_id=record.definition_id,
            started_at=record.started_at,
            correlation_id=record.correlation_id,
            status=record.status,
            current_step=record.step_index,
            context=SagaContext.from_snapshot(record.ctx_snapshot),
            completed_steps=list(record.completed_steps),
            compensation_steps=[
                s for s in definition.steps
                if s.name in record.completed_steps and s.has_compensation
            ],
            compensated_steps=list(record.compensated_steps),
            event_version=record.event_version,
        )
        self._state.instances[instance_id] = instance
        logger.info(
            "saga.resumed",
            saga_instance_id=instance_id,
            status=record.status.value,
            completed=len(record.completed_steps),
        )
        if record.status is SagaStatus.COMPENSATING:
            self._schedule(instance, self._finish_rollback(instance, definition))
        else:
            start = len(instance.completed_steps)
            self._schedule(instance, self._execute(instance, definition, start_index=start))
        return instance_id

    def _schedule(self, instance: SagaInstance, work: Any) -> None:
        task = asyncio.create_task(self._drive(instance, work), name=f"saga:{instance.id}")
        task.add_done_callback(_retrieve_exception)
        self._state.tasks[instance.id] = task

    @contextmanager
    def _bound(self, instance: SagaInstance) -> Iterator[None]:
        with structlog.contextvars.bound_contextvars(
            saga_instance_id=instance.id,
            saga_id=instance.definition_id,
            correlation_id=instance.correlation_id,
        ), CorrelationContext.scope(RequestContext(correlation_id=instance.correlation_id)):
            yield

    async def _drive(self, instance: SagaInstance, work: Any) -> None:
        with self._bound(instance):
            if self._lease is not None and not await self._lease.claim(instance.id, self._worker_id):
                work.close()
                logger.warning("saga.lease_unavailable", worker_id=self._worker_id)
                return
            try:
                await work
            finally:
                if self._lease is not None:
                    await self._lease.release(instance.id, self._worker_id)

    # ------------------------------------------------------------------
    # Forward execution
    # ------------------------------------------------------------------

    async def _execute(self, instance: SagaInstance, definition: SagaDefinition, start_index: int) -> None:
        instance.status = SagaStatus.RUNNING
        if start_index == 0:
            await self._emit(
                instance,
                EventType.SAGA_STARTED,
                {"sagaId": definition.id, "context": instance.context.snapshot()},
            )
        await self._persist(instance)
        logger.info("saga.started", start_index=start_index)

        deadline = Deadline.after(definition.timeout) if definition.timeout is not None else None
        try:
            for index in range(start_index, len(definition.steps)):
                saga_step = definition.steps[index]
                instance.current_step = index
                result = await self._run_step(instance, definition, saga_step, deadline)
                instance.completed_steps.append(saga_step.name)
                if saga_step.has_compensation:
                    instance.compensation_steps.append(saga_step)
                _merge_result(instance.context, saga_step.name, result)
                logger.info("saga.step.completed", step=saga_step.name, step_index=index)
                await self._emit(
                    instance,
                    EventType.SAGA_STEP_COMPLETED,
                    {"sagaId": definition.id, "stepIndex": index, "stepName": saga_step.name},
                )
                await self._persist(instance)
                if not await self._renew_lease(instance):
                    return
        except SagaTimeoutError as exc:
            await self._fail(instance, definition, exc, timed_out=True)
            raise
        except StepExecutionError as exc:
            await self._fail(instance, definition, exc, timed_out=False)
            raise

        instance.status = SagaStatus.COMPLETED
        instance.completed_at = self._clock.now()
        logger.info("saga.completed", steps=len(definition.steps))
        await self._emit(
            instance,
            EventType.SAGA_COMPLETED,
            {"sagaId": definition.id, "finalContext": instance.context.snapshot()},
        )
        await self._persist(instance)

    async def _run_step(
        self,
        instance: SagaInstance,
        definition: SagaDefinition,
        saga_step: SagaStep,
        deadline: Deadline | None,
    ) -> Any:
        policy = saga_step.retry_policy or RetryPolicy.none()
        step_timeout = saga_step.timeout if saga_step.timeout is not None else self._default_step_timeout
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            limit = step_timeout
            bound_by_deadline = False
            if deadline is not None:
                if deadline.is_expired:
                    raise SagaTimeoutError(definition.id, deadline.budget, saga_step.name)
                limit = deadline.cap(step_timeout)
                bound_by_deadline = step_timeout is None or limit < step_timeout

            def on_timeout(seconds: float) -> Exception:
                if bound_by_deadline and deadline is not None:
                    return SagaTimeoutError(definition.id, deadline.budget, saga_step.name)
                return StepTimeoutError(saga_step.name, seconds)

            return await TimeoutPolicy(limit).execute(
                lambda: saga_step.action(instance.context), on_timeout=on_timeout
            )

        def on_retry(attempt_number: int, error: BaseException, delay: float) -> None:
            logger.warning(
                "saga.step.retrying",
                step=saga_step.name,
                attempt=attempt_number,
                delay=delay,
                error=repr(error),
            )

        logger.debug("saga.step.started", step=saga_step.name, step_index=instance.current_step)
        try:
            return await policy.execute_async(
                attempt,
                sleep=self._sleep,
                give_up_on=(SagaTimeoutError,),
                on_retry=on_retry,
            )
        except SagaTimeoutError:
            raise
        except Exception as exc:
            raise StepExecutionError(saga_step.name, exc, attempts) from exc

    async def _fail(
        self,
        instance: SagaInstance,
        definition: SagaDefinition,
        exc: StepExecutionError | SagaTimeoutError,
        timed_out: bool,
    ) -> None:
        if isinstance(exc, StepExecutionError):
            instance.error = SagaErrorInfo(step=exc.step, message=exc.reason, kind="step_failed")
        else:
            instance.error = SagaErrorInfo(step=exc.step, message=exc.message, kind="timeout")
        instance.failed_at = self._clock.now()
        logger.error(
            "saga.step.failed",
            step=instance.error.step,
            step_index=instance.current_step,
            error=instance.error.message,
            timed_out=timed_out,
        )
        instance.status = SagaStatus.COMPENSATING
        await self._persist(instance)
        await self._compensate(instance)
        instance.status = SagaStatus.TIMEOUT if timed_out else SagaStatus.FAILED
        await self._emit(
            instance,
            EventType.SAGA_TIMEOUT if timed_out else EventType.SAGA_FAILED,
            {
                "sagaId": definition.id,
                "failedAtStep": instance.current_step,
                "step": instance.error.step,
                "error": instance.error.message,
                "compensatedSteps": list(instance.compensated_steps),
            },
        )
        await self._persist(instance)
        logger.info("saga.failed", status=instance.status.value)

    # ------------------------------------------------------------------
    # Compensation
    # ------------------------------------------------------------------

    async def _compensate(self, instance: SagaInstance) -> list[CompensationError]:
        """Run pending compensations in reverse completion order, best-effort."""
        errors: list[CompensationError] = []
        for saga_step in reversed(instance.compensation_steps):
            if saga_step.name in instance.compensated_steps or saga_step.compensation is None:
                continue
            compensation = saga_step.compensation
            limit = saga_step.timeout if saga_step.timeout is not None else self._default_step_timeout
            try:
                await TimeoutPolicy(limit).execute(
                    lambda c=compensation: c(instance.context),  # type: ignore[misc]
                    on_timeout=lambda s, n=saga_step.name: StepTimeoutError(n, s),  # type: ignore[misc]
                )
            except Exception as exc:  # noqa: BLE001
                error = CompensationError(saga_step.name, exc)
                errors.append(error)
                instance.compensation_errors.append(error)
                logger.error("saga.compensation.failed", step=saga_step.name, error=error.reason)
                continue
            instance.compensated_steps.append(saga_step.name)
            logger.info("saga.step.compensated", step=saga_step.name)
        await self._persist(instance)
        return errors

    async def _finish_rollback(self, instance: SagaInstance, definition: SagaDefinition) -> None:
        await self._compensate(instance)
        instance.status = SagaStatus.FAILED
        instance.failed_at = instance.failed_at or self._clock.now()
        await self._emit(
            instance,
            EventType.SAGA_COMPENSATED,
            {"sagaId": definition.id, "compensatedSteps": list(instance.compensated_steps)},
        )
        await self._persist(instance)

    async def compensate_saga(self, instance_id: str) -> list[CompensationError]:
        """Undo a COMPLETED or FAILED instance; returns compensation errors.

        Compensations that already ran successfully are not repeated.  The
        instance ends in FAILED to reflect that its business effect is
        undone.
        """
        instance = self._instance(instance_id)
        if instance.status not in _COMPENSABLE:
            raise InvalidSagaStateError(instance_id, instance.status, "compensate")
        definition = self._definition(instance.definition_id)
        with self._bound(instance):
            logger.info("saga.compensation.requested", status=instance.status.value)
            instance.status = SagaStatus.COMPENSATING
            await self._persist(instance)
            errors = await self._compensate(instance)
            instance.status = SagaStatus.FAILED
            instance.failed_at = self._clock.now()
            await self._emit(
                instance,
                EventType.SAGA_COMPENSATED,
                {
                    "sagaId": definition.id,
                    "compensatedSteps": list(instance.compensated_steps),
                    "errors": [e.reason for e in errors],
                },
            )
            await self._persist(instance)
        return errors

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def cleanup_completed(self, max_age: timedelta | None = None) -> int:
        """Forget finished instances older than *max_age*; return how many."""
        cutoff = self._clock.now() - (max_age if max_age is not None else self._retention)
        expired = [
            instance_id
            for instance_id, instance in self._state.instances.items()
            if instance.is_finished
            and instance.finished_at is not None
            and instance.finished_at < cutoff
        ]
        for instance_id in expired:
            del self._state.instances[instance_id]
            self._state.tasks.pop(instance_id, None)
        logger.info("saga.cleanup", removed=len(expired))
        return len(expired)

    async def shutdown(self) -> None:
        """Cancel in-flight instance tasks and wait for them to finish."""
        running = [t for t in self._state.tasks.values() if not t.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        logger.info("saga.orchestrator_stopped", cancelled=len(running))

    # ------------------------------------------------------------------
    # Persistence, events and leases
    # ------------------------------------------------------------------

    async def _persist(self, instance: SagaInstance) -> None:
        if self._store is not None:
            await self._store.save(instance.to_dict())

    async def _emit(self, instance: SagaInstance, event_type: EventType, payload: dict[str, Any]) -> None:
        if self._outbox is None and self._event_bus is None:
            return
        event = DomainEvent(
            type=event_type,
            aggregate_id=instance.id,
            aggregate_type="saga",
            payload=payload,
            version=instance.next_event_version(),
            correlation_id=instance.correlation_id,
            metadata=EventMetadata(source=self._service_name),
        )
        try:
            if self._outbox is not None:
                await self._outbox.enqueue(event)
            else:
                assert self._event_bus is not None
                await self._event_bus.publish(event)
        except Exception as exc:  # noqa: BLE001
            logger.error("saga.event_emit_failed", event_type=event.type, error=repr(exc))

    async def _renew_lease(self, instance: SagaInstance) -> bool:
        if self._lease is None:
            return True
        if await self._lease.renew(instance.id, self._worker_id):
            return True
        logger.warning("saga.lease_lost", worker_id=self._worker_id, step_index=instance.current_step)
        return False


def _merge_result(context: SagaContext, step_name: str, result: Any) -> None:
    if result is None:
        return
    if isinstance(result, Mapping):
        context.merge(result)
    else:
        context.set(step_name, result)


def _retrieve_exception(task: asyncio.Task[None]) -> None:
    # Failures are recorded on the instance; this keeps asyncio from
    # reporting them as never retrieved.
    if not task.cancelled():
        task.exception()


__all__ = ["OrchestratorState", "SagaOrchestrator"]
