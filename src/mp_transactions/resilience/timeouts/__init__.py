"""Resilience – timeout policies and deadlines."""
from mp_transactions.resilience.timeouts.deadline import Deadline
from mp_transactions.resilience.timeouts.policy import TimeoutPolicy

__all__ = ["Deadline", "TimeoutPolicy"]
