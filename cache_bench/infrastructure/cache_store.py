"""
Cache adapter: key/value operations with per-key TTL against Redis.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import redis.asyncio as redis

from cache_bench.errors import AdapterUnavailableError
from cache_bench.infrastructure.db_factory import REDIS_CONNECTION_ERRORS
from cache_bench.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class CacheStore(Protocol):
    """Capability consumed by the record access layer and the benchmark driver."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def flush_all(self) -> None: ...

    async def close(self) -> None: ...


class RedisCache:
    """
    CacheStore backed by a `redis.asyncio.Redis` client created with
    `decode_responses=True`, so values come back as `str`.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except REDIS_CONNECTION_ERRORS as exc:
            raise AdapterUnavailableError("Redis unavailable", details={"key": key}) from exc

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("TTL must be positive")
        try:
            await self._client.setex(key, ttl_seconds, value)
        except REDIS_CONNECTION_ERRORS as exc:
            raise AdapterUnavailableError("Redis unavailable", details={"key": key}) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except REDIS_CONNECTION_ERRORS as exc:
            raise AdapterUnavailableError("Redis unavailable", details={"key": key}) from exc

    async def flush_all(self) -> None:
        try:
            await self._client.flushall()
        except REDIS_CONNECTION_ERRORS as exc:
            raise AdapterUnavailableError("Redis unavailable") from exc
        log.info("Redis flushed")

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["CacheStore", "RedisCache"]
