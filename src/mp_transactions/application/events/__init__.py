"""Application events – in-process event bus."""
from mp_transactions.application.events.bus import InMemoryEventBus

__all__ = ["InMemoryEventBus"]
