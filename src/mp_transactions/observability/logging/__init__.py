"""Observability – structured logging helpers."""
from mp_transactions.observability.logging.factory import JsonLoggerFactory
from mp_transactions.observability.logging.filters import (
    DEFAULT_SENSITIVE_FIELDS,
    SensitiveFieldsFilter,
)
from mp_transactions.observability.logging.processors import CorrelationProcessor, get_logger

__all__ = [
    "DEFAULT_SENSITIVE_FIELDS",
    "CorrelationProcessor",
    "JsonLoggerFactory",
    "SensitiveFieldsFilter",
    "get_logger",
]
