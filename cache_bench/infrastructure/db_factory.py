"""
Connection factory utilities for the cache benchmark.

Builds the PostgreSQL asyncpg pool and the Redis client that the adapters
wrap, plus a plain psycopg connection for the one-off schema bootstrap.
Nothing here is cached at module level: the orchestrator creates each
resource once per run and passes it down explicitly.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import asyncpg
import psycopg
import redis.asyncio as redis
from psycopg import Connection
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cache_bench.config import Settings, get_settings
from cache_bench.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    email VARCHAR(100) UNIQUE NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

PG_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.InterfaceError,
)

REDIS_CONNECTION_ERRORS = (
    OSError,
    RedisConnectionError,
    RedisTimeoutError,
)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings; DATABASE_URL wins when set."""
    settings = settings or get_settings()
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Only used for schema bootstrap; the benchmark itself runs on the async pool.
    """
    return psycopg.connect(dsn or build_dsn())


def ensure_schema(dsn: Optional[str] = None) -> None:
    """
    Create the `users` table if it does not exist (idempotent).
    """
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_DDL)
        conn.commit()
    log.info("Database schema ensured", extra={"table": "users"})


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(PG_CONNECTION_ERRORS),
    reraise=True,
)
async def create_db_pool(
    dsn: Optional[str] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
) -> asyncpg.Pool:
    """
    Create an asyncpg connection pool with automatic retry.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the one built from settings.
    min_size : int, optional
        Minimum number of idle connections to keep.
    max_size : int, optional
        Maximum total connections; this caps the durable store's real concurrency.
    """
    settings = get_settings()
    pool = await asyncpg.create_pool(
        dsn or build_dsn(settings),
        min_size=min_size if min_size is not None else settings.db_pool_min_size,
        max_size=max_size if max_size is not None else settings.db_pool_max_size,
    )
    log.info(
        "PostgreSQL pool created",
        extra={"min_size": pool.get_min_size(), "max_size": pool.get_max_size()},
    )
    return pool


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(REDIS_CONNECTION_ERRORS),
    reraise=True,
)
async def create_redis_client(url: Optional[str] = None) -> redis.Redis:
    """
    Connect to Redis and verify the connection with PING, retrying transient failures.
    """
    client = redis.from_url(url or get_settings().redis_url, decode_responses=True)
    try:
        await client.ping()
    except BaseException:
        await client.aclose()
        raise
    log.info("Redis connected")
    return client


__all__ = [
    "SCHEMA_DDL",
    "PG_CONNECTION_ERRORS",
    "REDIS_CONNECTION_ERRORS",
    "build_dsn",
    "get_sync_connection",
    "ensure_schema",
    "create_db_pool",
    "create_redis_client",
]
