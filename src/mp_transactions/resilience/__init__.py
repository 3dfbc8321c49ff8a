"""Resilience – step retry policies, timeouts and deadlines."""
from mp_transactions.resilience.retry import RetryPolicy
from mp_transactions.resilience.timeouts import Deadline, TimeoutPolicy

__all__ = ["Deadline", "RetryPolicy", "TimeoutPolicy"]
