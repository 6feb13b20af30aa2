"""Response cache for product search.

``Cache`` is the contract the service depends on; ``SearchCacheManager``
implements it on Redis. The service performs an explicit get, compute, put
sequence on top of it: concurrent misses for one key are not joined, so each
of them resolves against the backends and the last write wins.
"""

import hashlib
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis.asyncio as redis
import structlog

logger = structlog.get_logger("search_cache")


def generate_cache_key(prefix: str, data: Any) -> str:
    """Stable key for ``data``; dict key order does not matter."""
    if isinstance(data, dict):
        serialized = json.dumps(data, sort_keys=True, default=str)
    else:
        serialized = str(data)

    return f"{prefix}{hashlib.md5(serialized.encode()).hexdigest()}"


class Cache(ABC):
    """Shared key-value cache with per-entry TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached value or ``None`` on a miss."""
        pass

    @abstractmethod
    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Drop every entry owned by this cache; returns the count removed."""
        pass


class SearchCacheManager(Cache):
    """Redis-backed cache for shaped search responses.

    Redis failures are logged and degrade to misses or skipped writes; they
    never fail a search.
    """

    def __init__(self, redis_url: str, prefix: str = "catalog:search:", client: Optional[redis.Redis] = None):
        self.redis_client = client or redis.from_url(redis_url)
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return key if key.startswith(self.prefix) else f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            cached_data = await self.redis_client.get(self._key(key))
            if cached_data is None:
                logger.debug("Search cache miss", key=key)
                return None

            logger.debug("Search cache hit", key=key)
            return json.loads(cached_data)

        except Exception as e:
            logger.warning("Failed to read search cache", key=key, error=str(e))
            return None

    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        try:
            await self.redis_client.setex(
                self._key(key),
                ttl_seconds,
                json.dumps(value, default=str)
            )
            logger.debug("Search response cached", key=key, ttl=ttl_seconds)

        except Exception as e:
            logger.warning("Failed to write search cache", key=key, error=str(e))

    async def clear(self) -> int:
        try:
            keys = await self.redis_client.keys(f"{self.prefix}*")
            deleted = await self.redis_client.delete(*keys) if keys else 0
            logger.info("Search cache cleared", keys_deleted=deleted)
            return deleted

        except Exception as e:
            logger.error("Failed to clear search cache", error=str(e))
            return 0

    async def close(self) -> None:
        """Close Redis connection."""
        try:
            await self.redis_client.close()
            logger.info("Search cache manager closed")
        except Exception as e:
            logger.warning("Failed to close cache manager", error=str(e))
