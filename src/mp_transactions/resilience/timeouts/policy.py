"""Resilience – TimeoutPolicy."""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Awaitable, Callable, TypeVar

from mp_transactions.kernel.errors import TimeoutError as AppTimeoutError

T = TypeVar("T")


@dataclasses.dataclass
class TimeoutPolicy:
    """Race an awaitable against a timer.

    ``timeout_seconds=None`` disables the limit.  On expiry the awaitable is
    cancelled and the error built by *on_timeout* (default
    :class:`~mp_transactions.kernel.errors.TimeoutError`) is raised.  A
    ``TimeoutError`` raised by the awaitable itself propagates unchanged.
    """

    timeout_seconds: float | None

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        on_timeout: Callable[[float], Exception] | None = None,
    ) -> T:
        if self.timeout_seconds is None:
            return await func()
        timer = asyncio.timeout(self.timeout_seconds)
        try:
            async with timer:
                return await func()
        except TimeoutError as exc:
            if not timer.expired():
                raise
            if on_timeout is not None:
                raise on_timeout(self.timeout_seconds) from exc
            raise AppTimeoutError(f"Operation timed out after {self.timeout_seconds}s") from exc


__all__ = ["TimeoutPolicy"]
