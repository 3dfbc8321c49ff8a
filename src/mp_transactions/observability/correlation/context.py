"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from mp_transactions.kernel.ddd.domain_event import DomainEvent


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single command, saga run or consumed event.

    ``causation_id`` is the id of the event currently being handled, so
    events emitted while handling it can point back at their cause.
    """

    correlation_id: str
    causation_id: str | None = None
    tenant_id: str | None = None
    user_id: str | None = None

    @classmethod
    def new(cls, tenant_id: str | None = None, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=str(uuid4()), tenant_id=tenant_id, user_id=user_id)

    @classmethod
    def caused_by(cls, event: "DomainEvent") -> "RequestContext":
        """Context for handling *event*: same correlation, event as cause."""
        meta = event.metadata
        return cls(
            correlation_id=event.correlation_id,
            causation_id=event.id,
            tenant_id=meta.tenant_id if meta is not None else None,
            user_id=meta.user_id if meta is not None else None,
        )


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_mp_tx_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def require() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            raise RuntimeError("No RequestContext in current context")
        return ctx

    @staticmethod
    def get_or_new() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            ctx = RequestContext.new()
            _CTX_VAR.set(ctx)
        return ctx

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    @contextmanager
    def scope(ctx: RequestContext) -> Iterator[RequestContext]:
        """Install *ctx* for the duration of the ``with`` block."""
        token = _CTX_VAR.set(ctx)
        try:
            yield ctx
        finally:
            _CTX_VAR.reset(token)


__all__ = ["CorrelationContext", "RequestContext"]
