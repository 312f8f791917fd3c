"""
Redis Response Cache

Caching collaborator for analytics results with:
- Namespaced keys ``{prefix}:{domain}:{endpoint}:{params...}``
- Per-domain TTLs from settings
- Pattern and domain invalidation
- Single computation per key for concurrent callers

The Redis client is injected; nothing here holds a process-wide handle.
"""

import asyncio
import json
from typing import Any, Callable, Dict, Optional, Sequence

import structlog
from redis.asyncio import ConnectionPool, Redis

from pos_analytics.config import Settings, get_settings
from pos_analytics.models.results import to_dict

logger = structlog.get_logger(__name__)

# domain -> CacheSettings attribute
DOMAIN_TTLS = {
    "revenue": "revenue_ttl",
    "products": "products_ttl",
    "traffic": "traffic_ttl",
    "customers": "customers_ttl",
    "inventory": "inventory_ttl",
    "long_term": "long_term_ttl",
}


async def create_redis_client(settings: Optional[Settings] = None) -> Redis:
    """Build a pooled Redis client and check the connection."""
    settings = settings or get_settings()

    pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=True,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
    except Exception as e:
        logger.error("Redis connection failed", error=str(e))
        await client.aclose()
        raise

    logger.info("Redis connection established", host=settings.redis.host)
    return client


class AnalyticsCache:
    """
    Response cache for analytics results.

    Example:
        cache = AnalyticsCache(await create_redis_client())
        metrics = await cache.get_or_set(
            "revenue", "metrics", [period.start, period.end, "daily"],
            lambda: engine.revenue.metrics(period),
        )
    """

    def __init__(self, client: Redis, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()
        self._locks: Dict[str, asyncio.Lock] = {}

    def key(self, domain: str, endpoint: str, *params: Any) -> str:
        """Cache key for a call; ``None`` parameters are written as ``all``."""
        parts = [self.settings.cache.key_prefix, domain, endpoint]
        parts.extend("all" if p is None else str(p) for p in params)
        return ":".join(parts)

    def ttl_for(self, domain: str) -> int:
        attribute = DOMAIN_TTLS.get(domain, "long_term_ttl")
        return getattr(self.settings.cache, attribute)

    async def get(self, key: str) -> Optional[Any]:
        value = await self.client.get(key)
        if value is None:
            return None
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self.client.setex(key, ttl, json.dumps(value, default=str))

    async def delete(self, key: str) -> bool:
        return await self.client.delete(key) > 0

    async def invalidate(self, pattern: str) -> int:
        """Delete every key matching ``pattern`` (relative to the prefix)."""
        keys = await self.client.keys(f"{self.settings.cache.key_prefix}:{pattern}")
        if not keys:
            return 0

        deleted = await self.client.delete(*keys)
        logger.info("Cache invalidated", pattern=pattern, keys=deleted)
        return deleted

    async def invalidate_domain(self, domain: str) -> int:
        return await self.invalidate(f"{domain}:*")

    async def get_or_set(
        self,
        domain: str,
        endpoint: str,
        params: Sequence[Any],
        factory: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Cached result of ``factory()`` as JSON-ready data.

        ``factory`` is a plain callable returning an analytics result.
        Concurrent callers for the same key wait for the first computation
        instead of repeating it.
        """
        key = self.key(domain, endpoint, *params)

        cached = await self.get(key)
        if cached is not None:
            logger.debug("Cache hit", key=key)
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                cached = await self.get(key)
                if cached is not None:
                    return cached

                logger.debug("Cache miss", key=key)
                value = to_dict(factory())
                await self.set(key, value, ttl or self.ttl_for(domain))
        except Exception as e:
            logger.error("Cached computation failed", key=key, error=str(e))
            raise
        finally:
            self._locks.pop(key, None)

        return value
