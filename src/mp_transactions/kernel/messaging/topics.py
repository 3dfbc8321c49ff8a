"""Kernel messaging – event type <-> broker topic mapping."""
from __future__ import annotations

import dataclasses

from mp_transactions.kernel.ddd.domain_event import EventType, event_type_name


@dataclasses.dataclass(frozen=True)
class TopicMapper:
    """Deterministic, reversible mapping between event types and topics.

    The topic is the event type prefixed with ``namespace`` and a dot, so
    ``order.created`` in namespace ``flashmart`` travels on
    ``flashmart.order.created``.  An empty namespace maps types 1:1.
    """

    namespace: str = ""

    def to_topic(self, event_type: EventType | str) -> str:
        name = event_type_name(event_type)
        if not self.namespace:
            return name
        return f"{self.namespace}.{name}"

    def to_event_type(self, topic: str) -> str:
        if not self.namespace:
            return topic
        prefix = f"{self.namespace}."
        if not topic.startswith(prefix):
            raise ValueError(f"Topic {topic!r} is outside namespace {self.namespace!r}")
        return topic[len(prefix):]


__all__ = ["TopicMapper"]
