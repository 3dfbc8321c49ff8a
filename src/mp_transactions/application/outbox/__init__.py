"""Application Outbox Pattern – in-memory outbox and relay to the event bus."""
from mp_transactions.application.outbox.relay import OutboxRelay
from mp_transactions.application.outbox.store import InMemoryOutbox

__all__ = ["InMemoryOutbox", "OutboxRelay"]
