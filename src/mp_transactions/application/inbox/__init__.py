"""Application Inbox Pattern – idempotent inbound event processing."""
from mp_transactions.application.inbox.processor import IdempotentHandler
from mp_transactions.application.inbox.store import InMemoryInbox

__all__ = ["IdempotentHandler", "InMemoryInbox"]
