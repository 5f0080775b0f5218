"""Shared cache tier.

GeoResolver keeps an in-process LRU; this tier sits behind it so that
several API workers can share geocoding results. Callers treat it as
optional: errors are logged and the request carries on without it.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class CacheService(ABC):
    """JSON-value cache shared between processes."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Stored value for ``key``, or None when absent or unreadable."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    async def close(self) -> None:
        pass

    @staticmethod
    def build_geocode_key(name: str) -> str:
        """Cache key for a place name.

        Example:
            >>> CacheService.build_geocode_key("  Lahore ")
            'geocode:lahore'
        """
        return f"geocode:{name.strip().lower()}"


class RedisCacheService(CacheService):
    """Redis tier; values are stored as JSON strings under ``namespace``."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        default_ttl: int = 86400,
        namespace: str = "roadtrip",
        timeout_seconds: float = 5.0,
    ) -> None:
        self._redis_url = redis_url
        self._timeout = timeout_seconds
        self._default_ttl = default_ttl
        self._namespace = namespace
        self._client: Optional[redis.Redis] = None

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _connection(self) -> redis.Redis:
        # from_url connects lazily on the first command
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_timeout=self._timeout,
                socket_connect_timeout=self._timeout,
            )
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._connection().get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.info(f"[CACHE] Dropping non-JSON value under {key}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        await self._connection().set(
            self._key(key),
            json.dumps(value),
            ex=self._default_ttl if ttl_seconds is None else ttl_seconds,
        )

    async def delete(self, key: str) -> bool:
        removed = await self._connection().delete(self._key(key))
        return removed > 0

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
