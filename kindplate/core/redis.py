"""Redis clients: cart and offer cache, cart storage, payment locks"""

from typing import Dict, List

from redis import Redis
from redis.asyncio import Redis as AsyncRedis
from redlock import Redlock

from kindplate.core.config import settings

REDIS_URL = settings.redis_url

redis_client = Redis.from_url(REDIS_URL, decode_responses=True)
async_redis = AsyncRedis.from_url(REDIS_URL, decode_responses=True)


def lock_servers(hosts: str = None) -> List[Dict]:
    """Redlock server list from a comma separated host string"""
    hosts = hosts or settings.REDIS_HOSTS or settings.REDIS_HOST
    return [
        {"host": host.strip(), "port": settings.REDIS_PORT, "db": settings.REDIS_DB}
        for host in hosts.split(",")
        if host.strip()
    ]


def create_redlock(hosts: str = None) -> Redlock:
    return Redlock(
        lock_servers(hosts),
        retry_count=settings.LOCK_RETRY_COUNT,
        retry_delay=settings.LOCK_RETRY_DELAY,
    )


redlock = create_redlock()

__all__ = [
    "redis_client",
    "async_redis",
    "redlock",
    "lock_servers",
    "REDIS_URL",
]
