"""Observability – structlog processors and get_logger helper.

``CorrelationProcessor`` injects correlation_id/causation_id into log events.
``get_logger(name)`` returns a bound structlog logger.
"""
from __future__ import annotations

from typing import Any

import structlog

from mp_transactions.observability.correlation import CorrelationContext


class CorrelationProcessor:
    """structlog processor that injects context from :class:`CorrelationContext`.

    Injects the following fields when a :class:`RequestContext` is active:

    * ``correlation_id``
    * ``causation_id`` (only when not ``None``)
    * ``tenant_id`` (only when not ``None``)
    * ``user_id`` (only when not ``None``)

    Explicitly bound values win over the ambient context.
    """

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        ctx = CorrelationContext.get()
        if ctx is not None:
            event_dict.setdefault("correlation_id", ctx.correlation_id)
            if ctx.causation_id is not None:
                event_dict.setdefault("causation_id", ctx.causation_id)
            if ctx.tenant_id is not None:
                event_dict.setdefault("tenant_id", ctx.tenant_id)
            if ctx.user_id is not None:
                event_dict.setdefault("user_id", ctx.user_id)
        return event_dict


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


__all__ = ["CorrelationProcessor", "get_logger"]
