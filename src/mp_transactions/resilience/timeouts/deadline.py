"""Resilience – Deadline."""
from __future__ import annotations

import dataclasses
import time

from mp_transactions.kernel.errors import TimeoutError as AppTimeoutError


@dataclasses.dataclass(frozen=True)
class Deadline:
    """An absolute point on the monotonic clock derived from a timeout."""

    expires_at: float
    budget: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds, budget=seconds)

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def cap(self, timeout: float | None) -> float:
        """Return *timeout* shortened to the remaining budget."""
        remaining = self.remaining_seconds
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def raise_if_expired(self) -> None:
        if self.is_expired:
            raise AppTimeoutError(f"Deadline of {self.budget}s exceeded")


__all__ = ["Deadline"]
