"""Kernel messaging – outbox/inbox ports and topic mapping."""
from mp_transactions.kernel.messaging.inbox import Inbox
from mp_transactions.kernel.messaging.outbox import Outbox, OutboxEntry
from mp_transactions.kernel.messaging.topics import TopicMapper

__all__ = ["Inbox", "Outbox", "OutboxEntry", "TopicMapper"]
