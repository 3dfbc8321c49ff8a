"""Redis adapter – client factory."""
from __future__ import annotations

from typing import Any


def _require_redis() -> Any:
    try:
        import redis.asyncio as aioredis
        return aioredis
    except ImportError as exc:
        raise ImportError("Install 'mp-transactions[redis]' to use the Redis adapter") from exc


def redis_from_url(url: str, **kwargs: Any) -> Any:
    """Return a ``redis.asyncio`` client for *url*."""
    return _require_redis().from_url(url, **kwargs)


__all__ = ["redis_from_url"]
