"""Resilience – RetryPolicy backed by ``tenacity``.

The policy is declared per saga step and describes how often a failing
attempt is repeated and how long to wait in between::

    RetryPolicy(max_attempts=3, backoff_ms=100, exponential=True)

waits 100 ms after the first failure and 200 ms after the second.
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, Awaitable, Callable, TypeVar

import tenacity

from mp_transactions.observability.logging import get_logger

T = TypeVar("T")

#: Async sleep used between attempts; injectable so tests need not wait.
Sleep = Callable[[float], Awaitable[None]]

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """How a single saga step is retried.

    Parameters
    ----------
    max_attempts:
        Total number of attempts including the first one.
    backoff_ms:
        Delay before the second attempt, in milliseconds.
    exponential:
        When set, the delay before attempt ``n + 1`` is
        ``backoff_ms * backoff_multiplier ** (n - 1)``; otherwise it is the
        constant ``backoff_ms``.
    retry_on:
        Exception types that count as retryable.  Anything else fails the
        step on the first occurrence.
    """

    max_attempts: int = 1
    backoff_ms: int = 0
    exponential: bool = False
    backoff_multiplier: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_ms < 0:
            raise ValueError("backoff_ms must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be > 0")

    @classmethod
    def none(cls) -> "RetryPolicy":
        """Single attempt, no retry."""
        return cls()

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the *attempt*-th failed attempt (1-based)."""
        delay_ms = float(self.backoff_ms)
        if self.exponential:
            delay_ms *= self.backoff_multiplier ** (attempt - 1)
        return delay_ms / 1000.0

    def _wait(self, retry_state: tenacity.RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    async def execute_async(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        sleep: Sleep | None = None,
        give_up_on: tuple[type[BaseException], ...] = (),
        on_retry: Callable[[int, BaseException, float], None] | None = None,
    ) -> T:
        """Await *func* until it succeeds or the policy is exhausted.

        The last exception is re-raised unchanged.  Exceptions listed in
        *give_up_on* are never retried, even when they match ``retry_on``.
        *on_retry* is called with ``(attempt, error, delay)`` before each
        wait.
        """

        def _retryable(exc: BaseException) -> bool:
            if give_up_on and isinstance(exc, give_up_on):
                return False
            return isinstance(exc, self.retry_on)

        def _before_sleep(retry_state: tenacity.RetryCallState) -> None:
            outcome = retry_state.outcome
            exc = outcome.exception() if outcome is not None else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.debug(
                "retry.scheduled",
                attempt=retry_state.attempt_number,
                delay=delay,
                error=repr(exc),
            )
            if on_retry is not None and exc is not None:
                on_retry(retry_state.attempt_number, exc, delay)

        retrying = tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=tenacity.retry_if_exception(_retryable),
            before_sleep=_before_sleep,
            sleep=sleep or asyncio.sleep,
            reraise=True,
        )
        result: Any = None
        async for attempt in retrying:
            with attempt:
                result = await func()
        return result  # type: ignore[no-any-return]


__all__ = ["RetryPolicy", "Sleep"]
