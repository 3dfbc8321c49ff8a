"""Observability – correlation context."""
from mp_transactions.observability.correlation.context import CorrelationContext, RequestContext

__all__ = ["CorrelationContext", "RequestContext"]
