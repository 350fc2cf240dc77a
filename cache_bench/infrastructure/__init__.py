"""
Infrastructure package for the cache benchmark.

Centralizes connectivity concerns (pool/client factories) and the two store
adapters. Keep this layer focused on I/O and error translation, decoupled
from the cache-aside and benchmark logic.
"""

from cache_bench.infrastructure.cache_store import CacheStore, RedisCache
from cache_bench.infrastructure.db_factory import (
    build_dsn,
    create_db_pool,
    create_redis_client,
    ensure_schema,
    get_sync_connection,
)
from cache_bench.infrastructure.durable_store import DurableStore, PostgresStore, QueryResult

__all__ = [
    "CacheStore",
    "RedisCache",
    "DurableStore",
    "PostgresStore",
    "QueryResult",
    "build_dsn",
    "create_db_pool",
    "create_redis_client",
    "ensure_schema",
    "get_sync_connection",
]
