"""
Tier probes for the timed read loops.

Each tier exposes the raw read call that gets timed (`fetch`) separately from
the integrity check applied to its result (`verify`), so the driver can wrap
the clock around the adapter call alone. Both probes talk to the adapters
directly; they bypass `RecordService` so each measurement is
the tier's own latency, not the cache-aside layer's.
"""

from __future__ import annotations

import abc
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from cache_bench.domain.models import Record
from cache_bench.errors import BenchmarkAssertionError
from cache_bench.infrastructure.cache_store import CacheStore
from cache_bench.infrastructure.durable_store import DurableStore
from cache_bench.records import SELECT_USER_SQL, user_key

POSTGRES_TIER = "postgres"
REDIS_TIER = "redis"


@runtime_checkable
class TierProbe(Protocol):
    """
    Common interface of the benchmarked tiers.

    Attributes
    ----------
    name : str
        Machine-friendly tier identifier used in samples and reports.
    """

    name: str

    async def fetch(self, record_id: int) -> Any:
        """Perform the single read being measured."""
        ...

    def verify(self, record_id: int, result: Any) -> None:
        """Raise BenchmarkAssertionError if `result` is not the expected record."""
        ...


class AbstractTierProbe(abc.ABC):
    name: str

    @abc.abstractmethod
    async def fetch(self, record_id: int) -> Any:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def verify(self, record_id: int, result: Any) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class PostgresProbe(AbstractTierProbe):
    """Point select by primary key; exactly one row must come back."""

    name = POSTGRES_TIER

    def __init__(self, store: DurableStore) -> None:
        self.store = store

    async def fetch(self, record_id: int) -> Any:
        return await self.store.execute(SELECT_USER_SQL, record_id)

    def verify(self, record_id: int, result: Any) -> None:
        if len(result.rows) != 1:
            raise BenchmarkAssertionError(
                f"Expected exactly one row for id {record_id}, got {len(result.rows)}",
                details={"tier": self.name, "record_id": record_id, "rows": len(result.rows)},
            )


class RedisProbe(AbstractTierProbe):
    """GET of the per-record key; value must exist and carry the requested id."""

    name = REDIS_TIER

    def __init__(self, cache: CacheStore) -> None:
        self.cache = cache

    async def fetch(self, record_id: int) -> Any:
        return await self.cache.get(user_key(record_id))

    def verify(self, record_id: int, result: Any) -> None:
        if not result:
            raise BenchmarkAssertionError(
                f"Cache miss for warmed id {record_id}",
                details={"tier": self.name, "record_id": record_id},
            )
        try:
            cached_id = Record.from_cache(result).id
        except ValidationError as exc:
            raise BenchmarkAssertionError(
                f"Cache key {user_key(record_id)} holds an undecodable value",
                details={"tier": self.name, "record_id": record_id, "error": str(exc)},
            ) from exc
        if cached_id != record_id:
            raise BenchmarkAssertionError(
                f"Cache key {user_key(record_id)} holds record {cached_id}",
                details={"tier": self.name, "record_id": record_id, "cached_id": cached_id},
            )


__all__ = [
    "POSTGRES_TIER",
    "REDIS_TIER",
    "TierProbe",
    "AbstractTierProbe",
    "PostgresProbe",
    "RedisProbe",
]
