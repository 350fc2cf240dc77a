"""
Cache-aside access layer for user records.

Reads check Redis first and fall back to PostgreSQL, repopulating the cache on
a miss. Writes go to PostgreSQL first and then fix up the cache: `create`
stores the new row under its own key, and both `create` and `delete` evict the
`users:all` aggregate so it is only ever rebuilt lazily by `get_all`.

Adapter errors propagate unchanged; there is no retry at this layer.
"""

from __future__ import annotations

from typing import List, Optional

from cache_bench.domain.models import Record, dump_records, load_records
from cache_bench.infrastructure.cache_store import CacheStore
from cache_bench.infrastructure.durable_store import DurableStore
from cache_bench.utils.logging import get_logger

log = get_logger(__name__)

ALL_USERS_KEY = "users:all"
DEFAULT_CACHE_TTL_SECONDS = 300

INSERT_USER_SQL = "INSERT INTO users (name, email) VALUES ($1, $2) RETURNING *"
SELECT_USER_SQL = "SELECT * FROM users WHERE id = $1"
SELECT_ALL_USERS_SQL = "SELECT * FROM users"
DELETE_USER_SQL = "DELETE FROM users WHERE id = $1"


def user_key(record_id: int) -> str:
    return f"user:{record_id}"


class RecordService:
    """
    Cache-aside read/write operations over a durable store and a cache.

    Parameters
    ----------
    store : DurableStore
        Authoritative row storage.
    cache : CacheStore
        Time-limited copy of rows and of the full collection.
    ttl_seconds : int
        Expiry applied to every cache write made by this service.
    """

    def __init__(
        self,
        store: DurableStore,
        cache: CacheStore,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def create(self, name: str, email: str) -> Record:
        """
        Insert a user, cache it under its id and evict the aggregate entry.

        Raises
        ------
        DuplicateKeyError
            If the email already exists.
        """
        record = await self.insert(name, email)
        await self.cache_created(record)
        return record

    async def insert(self, name: str, email: str) -> Record:
        """Durable half of `create`: the row as the store assigned it."""
        result = await self.store.execute(INSERT_USER_SQL, name, email)
        return Record.from_row(result.rows[0])

    async def cache_created(self, record: Record) -> None:
        """Cache half of `create`: store the row under its key, evict `users:all`."""
        await self.cache.set_with_expiry(user_key(record.id), record.to_cache(), self.ttl_seconds)
        await self.cache.delete(ALL_USERS_KEY)

    async def get_by_id(self, record_id: int) -> Optional[Record]:
        """Return the user or None when no row exists."""
        key = user_key(record_id)
        cached = await self.cache.get(key)
        if cached is not None:
            log.debug("Cache hit", extra={"key": key})
            return Record.from_cache(cached)

        log.debug("Cache miss", extra={"key": key})
        result = await self.store.execute(SELECT_USER_SQL, record_id)
        if not result.rows:
            return None
        record = Record.from_row(result.rows[0])
        await self.cache.set_with_expiry(key, record.to_cache(), self.ttl_seconds)
        return record

    async def get_all(self) -> List[Record]:
        cached = await self.cache.get(ALL_USERS_KEY)
        if cached is not None:
            log.debug("Cache hit", extra={"key": ALL_USERS_KEY})
            return load_records(cached)

        log.debug("Cache miss", extra={"key": ALL_USERS_KEY})
        result = await self.store.execute(SELECT_ALL_USERS_SQL)
        records = [Record.from_row(row) for row in result.rows]
        await self.cache.set_with_expiry(ALL_USERS_KEY, dump_records(records), self.ttl_seconds)
        return records

    async def delete(self, record_id: int) -> bool:
        """
        Delete a user. Returns False, without touching the cache, if no row matched.
        """
        result = await self.store.execute(DELETE_USER_SQL, record_id)
        if result.row_count == 0:
            return False
        await self.cache.delete(user_key(record_id))
        await self.cache.delete(ALL_USERS_KEY)
        return True


__all__ = [
    "ALL_USERS_KEY",
    "RecordService",
    "user_key",
]
