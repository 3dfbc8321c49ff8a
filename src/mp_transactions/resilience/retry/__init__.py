"""Resilience – retry with constant or exponential backoff."""
from mp_transactions.resilience.retry.policy import RetryPolicy, Sleep

__all__ = ["RetryPolicy", "Sleep"]
