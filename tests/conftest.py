"""
Pytest configuration for the cache benchmark.

Provides fixtures for:
- In-memory stand-ins for the PostgreSQL and Redis adapters (unit tests)
- Database availability check and table cleanup (integration tests)
- Settings override for integration tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import psycopg
import pytest

from cache_bench.config import Settings
from cache_bench.records import RecordService
from tests.fakes import FakeCache, FakeStore


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def service(fake_store: FakeStore, fake_cache: FakeCache) -> RecordService:
    return RecordService(fake_store, fake_cache, ttl_seconds=300)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "user"),
        db_password=os.getenv("DB_PASSWORD", "password"),
        db_name=os.getenv("DB_NAME", "testdb"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return os.getenv("DATABASE_URL") or (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection(test_dsn: str) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    try:
        conn = psycopg.connect(test_dsn, connect_timeout=5)
    except psycopg.OperationalError:
        pytest.skip("Database not available for integration tests")
    try:
        init_sql = (Path(__file__).parent.parent / "db" / "init.sql").read_text()
        with conn.cursor() as cur:
            cur.execute(init_sql)
        conn.commit()
        yield conn
    finally:
        conn.close()


@pytest.fixture
def clean_users_table(db_connection: psycopg.Connection) -> Generator[None, None, None]:
    """
    Empty the users table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE users RESTART IDENTITY;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE users RESTART IDENTITY;")
    db_connection.commit()
