"""Redis adapter – inbox and saga instance lease."""
from mp_transactions.adapters.redis.client import redis_from_url
from mp_transactions.adapters.redis.inbox import RedisInbox
from mp_transactions.adapters.redis.lease import RedisSagaLease

__all__ = ["RedisInbox", "RedisSagaLease", "redis_from_url"]
