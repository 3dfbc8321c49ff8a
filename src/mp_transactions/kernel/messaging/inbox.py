"""Kernel messaging – inbox pattern port."""
from __future__ import annotations

import abc


class Inbox(abc.ABC):
    """Port: set of already-processed event ids.

    ``seen`` is an atomic test-and-set: it returns ``False`` the first time
    an id is offered (process it) and ``True`` on every later call (skip).
    """

    @abc.abstractmethod
    async def seen(self, event_id: str) -> bool:
        """Record *event_id* and return whether it was already present."""

    @abc.abstractmethod
    async def forget(self, event_id: str) -> None:
        """Remove *event_id* so a redelivery is processed again."""


__all__ = ["Inbox"]
