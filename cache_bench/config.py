"""
Configuration settings for the cache benchmark.

Uses Pydantic Settings to load environment variables for the PostgreSQL and
Redis connections, the cache-aside TTL, logging, and benchmark defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("user", alias="DB_USER")
    db_password: str = Field("password", alias="DB_PASSWORD")
    db_name: str = Field("testdb", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(20, alias="DB_POOL_MAX_SIZE")

    # Cache
    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")
    cache_ttl_seconds: int = Field(300, alias="CACHE_TTL_SECONDS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    # Benchmark defaults
    benchmark_records: int = Field(10_000, alias="BENCHMARK_RECORDS")
    benchmark_operations: int = Field(10_000, alias="BENCHMARK_OPERATIONS")
    benchmark_batch_size: int = Field(500, alias="BENCHMARK_BATCH_SIZE")
    benchmark_warm_size: Optional[int] = Field(None, alias="BENCHMARK_WARM_SIZE")
    benchmark_warm_ttl_seconds: int = Field(3600, alias="BENCHMARK_WARM_TTL_SECONDS")
    benchmark_seed: Optional[int] = Field(None, alias="BENCHMARK_SEED")

    # Phase timeouts (seconds)
    benchmark_population_timeout: float = Field(300.0, alias="BENCHMARK_POPULATION_TIMEOUT")
    benchmark_loop_timeout: float = Field(180.0, alias="BENCHMARK_LOOP_TIMEOUT")
    benchmark_cleanup_timeout: float = Field(120.0, alias="BENCHMARK_CLEANUP_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
