"""
Benchmark driver: PostgreSQL point reads vs Redis GETs over the same users.

Phases run strictly in sequence, each under its own timeout:

1. population   create N users through the cache-aside layer, in bounded batches
2. warmup       copy a subset of rows from PostgreSQL into Redis, in bounded batches
3. postgres     M sequential timed point selects on random ids
4. redis        M sequential timed GETs on random warmed ids
5. aggregation  per-tier statistics and the comparison figures
6. cleanup      delete every created user, then FLUSHALL

Cleanup always runs once population has started. Its errors are logged and
recorded on the report (or dropped, if an earlier phase already failed) so they
never mask the primary outcome. Any other phase failure raises
`BenchmarkPhaseError` naming the phase.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from cache_bench.benchmark.batching import run_in_batches
from cache_bench.benchmark.stats import (
    BenchmarkReport,
    BenchmarkSample,
    TierStats,
    compare,
    summarize,
)
from cache_bench.benchmark.tiers import PostgresProbe, RedisProbe, TierProbe
from cache_bench.config import Settings, get_settings
from cache_bench.domain.models import Record
from cache_bench.errors import BenchmarkPhaseError
from cache_bench.infrastructure.cache_store import CacheStore
from cache_bench.infrastructure.durable_store import DurableStore
from cache_bench.records import SELECT_USER_SQL, RecordService, user_key
from cache_bench.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

PHASE_POPULATION = "population"
PHASE_WARMUP = "warmup"
PHASE_POSTGRES = "postgres"
PHASE_REDIS = "redis"
PHASE_AGGREGATION = "aggregation"
PHASE_CLEANUP = "cleanup"


@dataclass(frozen=True)
class BenchmarkConfig:
    """
    Tunables for one benchmark run.

    `batch_size` bounds in-flight setup/cleanup operations and is
    independent of `records`.
    """

    records: int = 10_000
    operations: int = 10_000
    batch_size: int = 500
    warm_size: Optional[int] = None
    warm_ttl_seconds: int = 3600
    seed: Optional[int] = None
    population_timeout: float = 300.0
    timed_loop_timeout: float = 180.0
    cleanup_timeout: float = 120.0

    def __post_init__(self) -> None:
        if self.records <= 0:
            raise ValueError("records must be positive")
        if self.operations <= 0:
            raise ValueError("operations must be positive")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.warm_size is not None and self.warm_size <= 0:
            raise ValueError("warm_size must be positive when set")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "BenchmarkConfig":
        settings = settings or get_settings()
        values = {
            "records": settings.benchmark_records,
            "operations": settings.benchmark_operations,
            "batch_size": settings.benchmark_batch_size,
            "warm_size": settings.benchmark_warm_size,
            "warm_ttl_seconds": settings.benchmark_warm_ttl_seconds,
            "seed": settings.benchmark_seed,
            "population_timeout": settings.benchmark_population_timeout,
            "timed_loop_timeout": settings.benchmark_loop_timeout,
            "cleanup_timeout": settings.benchmark_cleanup_timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def synthetic_user(index: int) -> tuple[str, str]:
    """Deterministic name plus an email made unique by a wall-clock suffix."""
    return f"User {index}", f"user{index}-{time.time_ns()}@test.com"


class BenchmarkDriver:
    """
    Runs the PostgreSQL-vs-Redis read comparison.

    Parameters
    ----------
    service : RecordService
        Cache-aside layer used to create and delete the synthetic users.
    store : DurableStore
        Queried directly for warm-up and for the PostgreSQL loop.
    cache : CacheStore
        Written directly for warm-up and read directly in the Redis loop.
    config : BenchmarkConfig
        Run sizes, batch bound and timeouts.
    """

    def __init__(
        self,
        service: RecordService,
        store: DurableStore,
        cache: CacheStore,
        config: BenchmarkConfig,
    ) -> None:
        self.service = service
        self.store = store
        self.cache = cache
        self.config = config
        self.rng = random.Random(config.seed)
        self.created_ids: List[int] = []
        self.warmed_ids: List[int] = []
        self.cleanup_errors: List[str] = []

    async def run(self) -> BenchmarkReport:
        """
        Execute all phases and return the report.

        Raises
        ------
        BenchmarkPhaseError
            If population, warm-up, a timed loop or aggregation fails.
        """
        log.info(
            "[BENCHMARK START]",
            extra={
                "records": self.config.records,
                "operations": self.config.operations,
                "batch_size": self.config.batch_size,
            },
        )
        try:
            await self._phase(PHASE_POPULATION, self.populate, self.config.population_timeout)
            await self._phase(PHASE_WARMUP, self.warm_cache, self.config.population_timeout)
            postgres = await self._phase(
                PHASE_POSTGRES,
                lambda: self.timed_loop(PostgresProbe(self.store), self.created_ids),
                self.config.timed_loop_timeout,
            )
            redis = await self._phase(
                PHASE_REDIS,
                lambda: self.timed_loop(RedisProbe(self.cache), self.warmed_ids),
                self.config.timed_loop_timeout,
            )
            try:
                report = self.aggregate(postgres, redis)
            except Exception as exc:
                raise BenchmarkPhaseError(PHASE_AGGREGATION, exc) from exc
        finally:
            await self.cleanup()

        report.cleanup_errors = list(self.cleanup_errors)
        log.info(
            "[BENCHMARK COMPLETE]",
            extra={
                "speed_factor": report.comparison.speed_factor,
                "verdict": report.comparison.verdict,
            },
        )
        return report

    async def _phase(self, name: str, body: Callable[[], Awaitable[T]], timeout: float) -> T:
        log.info(f"[PHASE START] {name}", extra={"phase": name})
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(body(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            log.error(f"[PHASE TIMEOUT] {name}", extra={"phase": name, "timeout": timeout})
            raise BenchmarkPhaseError(
                name, TimeoutError(f"exceeded {timeout:.0f}s")
            ) from exc
        except Exception as exc:
            log.exception(f"[PHASE FAILED] {name}", extra={"phase": name})
            raise BenchmarkPhaseError(name, exc) from exc
        log.info(
            f"[PHASE DONE] {name}",
            extra={"phase": name, "seconds": round(time.perf_counter() - start, 3)},
        )
        return result

    async def populate(self) -> List[int]:
        """
        Create the synthetic users through the access layer.

        Each id is recorded as soon as its row exists, before the cache write,
        so a batch cancelled by the phase timeout leaves nothing that cleanup
        does not know about.
        """

        async def create(index: int) -> Record:
            name, email = synthetic_user(index)
            record = await self.service.insert(name, email)
            self.created_ids.append(record.id)
            await self.service.cache_created(record)
            return record

        await run_in_batches(
            range(self.config.records),
            create,
            self.config.batch_size,
            label=PHASE_POPULATION,
        )
        return self.created_ids

    def select_warm_ids(self) -> List[int]:
        size = self.config.warm_size
        if size is None or size >= len(self.created_ids):
            return list(self.created_ids)
        return self.rng.sample(self.created_ids, size)

    async def warm_cache(self) -> List[int]:
        """Copy the selected rows from PostgreSQL into Redis with the warm-up TTL."""
        selected = self.select_warm_ids()

        async def warm(record_id: int) -> int:
            result = await self.store.execute(SELECT_USER_SQL, record_id)
            record = Record.from_row(result.rows[0])
            await self.cache.set_with_expiry(
                user_key(record_id), record.to_cache(), self.config.warm_ttl_seconds
            )
            return record_id

        self.warmed_ids = await run_in_batches(
            selected, warm, self.config.batch_size, label=PHASE_WARMUP
        )
        return self.warmed_ids

    async def timed_loop(self, probe: TierProbe, ids: Sequence[int]) -> TierStats:
        """
        Issue `operations` sequential reads on random ids, timing only the read call.
        """
        if not ids:
            raise ValueError(f"No ids available for tier '{probe.name}'")

        samples: List[BenchmarkSample] = []
        loop_start = time.perf_counter()
        for _ in range(self.config.operations):
            record_id = ids[self.rng.randrange(len(ids))]
            started = time.perf_counter()
            result = await probe.fetch(record_id)
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            samples.append(BenchmarkSample(elapsed_ms, probe.name, record_id))
            probe.verify(record_id, result)
        wall_clock = time.perf_counter() - loop_start

        return summarize(probe.name, [s.duration_ms for s in samples], wall_clock)

    def aggregate(self, postgres: TierStats, redis: TierStats) -> BenchmarkReport:
        return BenchmarkReport(
            postgres=postgres,
            redis=redis,
            comparison=compare(postgres, redis),
            records=len(self.created_ids),
            operations=self.config.operations,
            batch_size=self.config.batch_size,
            warm_size=len(self.warmed_ids),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    async def cleanup(self) -> None:
        """
        Delete every created user and flush Redis. Never raises.
        """
        log.info(f"[PHASE START] {PHASE_CLEANUP}", extra={"ids": len(self.created_ids)})

        async def delete(record_id: int) -> bool:
            try:
                return await self.service.delete(record_id)
            except Exception as exc:  # noqa: BLE001
                self._cleanup_failed(f"delete {record_id}", exc)
                return False

        try:
            await asyncio.wait_for(
                run_in_batches(
                    list(self.created_ids),
                    delete,
                    self.config.batch_size,
                    label=PHASE_CLEANUP,
                ),
                timeout=self.config.cleanup_timeout,
            )
        except Exception as exc:  # noqa: BLE001
            self._cleanup_failed("delete", exc)

        try:
            await asyncio.wait_for(self.cache.flush_all(), timeout=self.config.cleanup_timeout)
        except Exception as exc:  # noqa: BLE001
            self._cleanup_failed("flush", exc)

        log.info(
            f"[PHASE DONE] {PHASE_CLEANUP}",
            extra={"phase": PHASE_CLEANUP, "errors": len(self.cleanup_errors)},
        )

    def _cleanup_failed(self, step: str, exc: BaseException) -> None:
        message = f"{step}: {type(exc).__name__}: {exc}"
        self.cleanup_errors.append(message)
        log.error(f"[CLEANUP FAILED] {step}", extra={"phase": PHASE_CLEANUP, "error": message})


__all__ = [
    "BenchmarkConfig",
    "BenchmarkDriver",
    "synthetic_user",
]
