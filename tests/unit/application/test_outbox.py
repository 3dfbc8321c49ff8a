"""Unit tests for InMemoryOutbox and OutboxRelay."""

from __future__ import annotations

import asyncio

import pytest

from mp_transactions.application.outbox import InMemoryOutbox, OutboxRelay
from mp_transactions.config.settings import OutboxSettings
from mp_transactions.kernel.ddd import DomainEvent
from mp_transactions.testing.fakes import RecordingEventBus


def _event(n: int) -> DomainEvent:
    return DomainEvent(type="order.created", aggregate_id=f"o-{n}", aggregate_type="order", payload={"n": n})


# ---------------------------------------------------------------------------
# InMemoryOutbox
# ---------------------------------------------------------------------------


class TestInMemoryOutbox:
    def test_drain_in_batches_fifo(self) -> None:
        async def _run() -> tuple[list[int], list[int]]:
            outbox = InMemoryOutbox()
            for i in range(120):
                await outbox.enqueue(_event(i))
            sizes = []
            first_ns = []
            for _ in range(4):
                batch = await outbox.drain(50)
                sizes.append(len(batch))
                if batch:
                    first_ns.append(batch[0].payload["payload"]["n"])
            return sizes, first_ns

        sizes, first_ns = asyncio.run(_run())
        assert sizes == [50, 50, 20, 0]
        assert first_ns == [0, 50, 100]

    def test_drain_rejects_non_positive_batch(self) -> None:
        with pytest.raises(ValueError):
            asyncio.run(InMemoryOutbox().drain(0))

    def test_concurrent_drains_never_share_entries(self) -> None:
        async def _run() -> list[str]:
            outbox = InMemoryOutbox()
            for i in range(30):
                await outbox.enqueue(_event(i))
            batches = await asyncio.gather(*(outbox.drain(7) for _ in range(6)))
            return [e.id for batch in batches for e in batch]

        ids = asyncio.run(_run())
        assert len(ids) == 30
        assert len(set(ids)) == 30

    def test_pending_does_not_remove(self) -> None:
        async def _run() -> tuple[int, int]:
            outbox = InMemoryOutbox()
            await outbox.enqueue_many([_event(1), _event(2)])
            peeked = await outbox.pending(10)
            return len(peeked), await outbox.size()

        assert asyncio.run(_run()) == (2, 2)

    def test_acknowledge_removes(self) -> None:
        async def _run() -> tuple[list[str], str]:
            outbox = InMemoryOutbox()
            a = await outbox.enqueue(_event(1))
            b = await outbox.enqueue(_event(2))
            await outbox.acknowledge([a.id])
            return [e.id for e in await outbox.pending(10)], b.id

        remaining, expected = asyncio.run(_run())
        assert remaining == [expected]

    def test_mark_failed_dead_letters_after_max_attempts(self) -> None:
        async def _run() -> tuple[list[bool], int, int]:
            outbox = InMemoryOutbox()
            entry = await outbox.enqueue(_event(1))
            results = [await outbox.mark_failed(entry.id, "down", max_attempts=3) for _ in range(3)]
            return results, await outbox.size(), len(await outbox.dead_letters())

        results, size, dead = asyncio.run(_run())
        assert results == [False, False, True]
        assert size == 0
        assert dead == 1

    def test_mark_failed_unknown_entry(self) -> None:
        assert asyncio.run(InMemoryOutbox().mark_failed("nope", "x")) is False


# ---------------------------------------------------------------------------
# OutboxRelay
# ---------------------------------------------------------------------------


class TestOutboxRelay:
    def test_relays_and_acknowledges(self) -> None:
        async def _run() -> tuple[int, list[int], int]:
            outbox = InMemoryOutbox()
            bus = RecordingEventBus()
            for i in range(3):
                await outbox.enqueue(_event(i))
            delivered = await OutboxRelay(outbox, bus).relay_once()
            return delivered, [e.payload["n"] for e in bus.published], await outbox.size()

        assert asyncio.run(_run()) == (3, [0, 1, 2], 0)

    def test_failure_stops_batch_and_keeps_order(self) -> None:
        async def _run() -> tuple[int, int, int, list[int]]:
            outbox = InMemoryOutbox()
            bus = RecordingEventBus()
            for i in range(3):
                await outbox.enqueue(_event(i))
            relay = OutboxRelay(outbox, bus)
            bus.fail_next()
            first = await relay.relay_once()
            pending = await outbox.pending(10)
            second = await relay.relay_once()
            return first, pending[0].attempts, second, [e.payload["n"] for e in bus.published]

        first, attempts, second, order = asyncio.run(_run())
        assert first == 0
        assert attempts == 1
        assert second == 3
        assert order == [0, 1, 2]

    def test_dead_letters_after_max_attempts(self) -> None:
        async def _run() -> tuple[int, int]:
            outbox = InMemoryOutbox()
            bus = RecordingEventBus()
            await outbox.enqueue(_event(1))
            relay = OutboxRelay(outbox, bus, max_attempts=2)
            bus.fail_next(2)
            await relay.relay_once()
            await relay.relay_once()
            return await outbox.size(), len(await outbox.dead_letters())

        assert asyncio.run(_run()) == (0, 1)

    def test_run_until_stopped(self) -> None:
        async def _run() -> int:
            outbox = InMemoryOutbox()
            bus = RecordingEventBus()
            relay = OutboxRelay(outbox, bus, batch_size=2)
            task = asyncio.create_task(relay.run(poll_interval=0.01))
            for i in range(5):
                await outbox.enqueue(_event(i))
            for _ in range(100):
                if len(bus.published) == 5:
                    break
                await asyncio.sleep(0.01)
            relay.stop()
            await asyncio.wait_for(task, timeout=1)
            return len(bus.published)

        assert asyncio.run(_run()) == 5

    def test_from_settings(self) -> None:
        relay = OutboxRelay.from_settings(
            InMemoryOutbox(), RecordingEventBus(), OutboxSettings(batch_size=7, max_attempts=3)
        )
        assert relay._batch_size == 7
        assert relay._max_attempts == 3

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            OutboxRelay(InMemoryOutbox(), RecordingEventBus(), batch_size=0)
