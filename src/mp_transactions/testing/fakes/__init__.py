"""Testing fakes – in-memory doubles for kernel ports."""
from mp_transactions.kernel.time import FrozenClock
from mp_transactions.testing.fakes.clock import FakeClock
from mp_transactions.testing.fakes.event_bus import RecordingEventBus

__all__ = ["FakeClock", "FrozenClock", "RecordingEventBus"]
