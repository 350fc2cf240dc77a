"""
Orchestrator: bootstraps the adapters, runs the benchmark driver, profiles
the run and persists the report.

Usage (example from CLI):
    from cache_bench.orchestrator import run_benchmark

    report = run_benchmark(BenchmarkConfig(records=1_000, operations=1_000))
    print(report.comparison.speed_factor)

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import asyncio
import json
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from cache_bench.benchmark.driver import BenchmarkConfig, BenchmarkDriver
from cache_bench.benchmark.stats import BenchmarkReport
from cache_bench.config import Settings, get_settings
from cache_bench.infrastructure.cache_store import RedisCache
from cache_bench.infrastructure.db_factory import (
    build_dsn,
    create_db_pool,
    create_redis_client,
)
from cache_bench.infrastructure.durable_store import PostgresStore
from cache_bench.records import RecordService
from cache_bench.utils.logging import get_logger
from cache_bench.utils.profiler import profile_block

log = get_logger(__name__)


@asynccontextmanager
async def open_service(settings: Optional[Settings] = None) -> AsyncIterator[RecordService]:
    """
    Create the pool and Redis client, wire them into a RecordService, and
    release both on exit. This is the only place connections are opened.
    """
    settings = settings or get_settings()
    pool = await create_db_pool(
        build_dsn(settings), settings.db_pool_min_size, settings.db_pool_max_size
    )
    store = PostgresStore(pool)
    try:
        client = await create_redis_client(settings.redis_url)
        cache = RedisCache(client)
        try:
            yield RecordService(store, cache, ttl_seconds=settings.cache_ttl_seconds)
        finally:
            await cache.close()
    finally:
        await store.close()


def json_safe(value: Any) -> Any:
    """Replace inf/nan (undefined ratios) with None so the file stays strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [json_safe(item) for item in value]
    return value


def _persist_results(payload: dict, results_dir: Path) -> None:
    payload = json_safe(payload)
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, allow_nan=False)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


async def _execute(config: BenchmarkConfig, settings: Settings) -> BenchmarkReport:
    async with open_service(settings) as service:
        driver = BenchmarkDriver(service, service.store, service.cache, config)
        return await driver.run()


def run_benchmark(
    config: Optional[BenchmarkConfig] = None,
    results_dir: Path | str | None = None,
    persist: bool = True,
) -> BenchmarkReport:
    """
    Run the full benchmark and optionally persist the report.

    Parameters
    ----------
    config : BenchmarkConfig | None
        Run parameters. Defaults to values from settings.
    results_dir : Path | str | None
        Directory to store JSON artifacts. Defaults to settings.results_dir.
    persist : bool
        Whether to write results to disk.

    Raises
    ------
    BenchmarkPhaseError
        If any phase before cleanup aborts.
    """
    settings = get_settings()
    config = config or BenchmarkConfig.from_settings(settings)

    with profile_block("benchmark") as stats:
        report = asyncio.run(_execute(config, settings))
    report.profile = stats.to_dict()

    if persist:
        _persist_results(report.to_dict(), Path(results_dir or settings.results_dir))

    log.info(
        "[ORCHESTRATOR COMPLETE]",
        extra={
            "duration_seconds": round(stats.duration_seconds, 2),
            "speed_factor": report.comparison.speed_factor,
        },
    )
    return report


__all__ = ["json_safe", "open_service", "run_benchmark"]
