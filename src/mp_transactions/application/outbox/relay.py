"""Application outbox – OutboxRelay."""
from __future__ import annotations

import asyncio

from mp_transactions.config.settings import OutboxSettings
from mp_transactions.kernel.ddd.event_bus import EventBus
from mp_transactions.kernel.messaging.outbox import Outbox
from mp_transactions.observability.logging import get_logger

logger = get_logger(__name__)


class OutboxRelay:
    """Forward pending outbox entries to an :class:`EventBus`.

    An entry is acknowledged (removed) only after ``bus.publish`` returned,
    so a crash between reading and publishing re-delivers it on the next
    pass.  On the first failed publish the pass stops, keeping FIFO order;
    the failure is recorded on the entry and after *max_attempts* failures
    the entry is moved to the outbox's dead-letter list.
    """

    def __init__(
        self,
        outbox: Outbox,
        bus: EventBus,
        batch_size: int = 100,
        max_attempts: int = 10,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._outbox = outbox
        self._bus = bus
        self._batch_size = batch_size
        self._max_attempts = max_attempts
        self._stopped = asyncio.Event()

    @classmethod
    def from_settings(cls, outbox: Outbox, bus: EventBus, settings: OutboxSettings) -> "OutboxRelay":
        return cls(outbox, bus, batch_size=settings.batch_size, max_attempts=settings.max_attempts)

    async def relay_once(self) -> int:
        """Publish one batch; return how many entries were delivered."""
        entries = await self._outbox.pending(self._batch_size)
        delivered: list[str] = []
        for entry in entries:
            try:
                await self._bus.publish(entry.to_event())
            except Exception as exc:  # noqa: BLE001
                dead = await self._outbox.mark_failed(entry.id, repr(exc), self._max_attempts)
                logger.error(
                    "outbox.relay_failed",
                    entry_id=entry.id,
                    event_type=entry.type,
                    attempts=entry.attempts + 1,
                    dead_lettered=dead,
                    error=repr(exc),
                )
                break
            delivered.append(entry.id)
        if delivered:
            await self._outbox.acknowledge(delivered)
            logger.debug("outbox.relayed", count=len(delivered))
        return len(delivered)

    async def run(self, poll_interval: float = 1.0) -> None:
        """Relay until :meth:`stop` is called.

        Full batches are followed immediately by the next pass; otherwise the
        loop waits *poll_interval* seconds.
        """
        self._stopped.clear()
        logger.info("outbox.relay_started", batch_size=self._batch_size)
        while not self._stopped.is_set():
            delivered = await self.relay_once()
            if delivered >= self._batch_size:
                continue
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("outbox.relay_stopped")

    def stop(self) -> None:
        self._stopped.set()


__all__ = ["OutboxRelay"]
