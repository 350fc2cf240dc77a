from __future__ import annotations

import asyncio
import json
import math
from types import SimpleNamespace
from typing import Optional

import pytest

from cache_bench.benchmark.driver import BenchmarkConfig, BenchmarkDriver, synthetic_user
from cache_bench.benchmark.tiers import PostgresProbe
from cache_bench.errors import (
    AdapterUnavailableError,
    BenchmarkAssertionError,
    BenchmarkPhaseError,
)
from cache_bench.records import INSERT_USER_SQL, SELECT_USER_SQL, RecordService, user_key
from tests.fakes import FakeCache, FakeStore

SMALL_RECORDS = 100
SMALL_OPERATIONS = 100
BATCH_SIZE = 10


def _driver(
    store: FakeStore,
    cache: FakeCache,
    records: int = SMALL_RECORDS,
    operations: int = SMALL_OPERATIONS,
    batch_size: int = BATCH_SIZE,
    warm_size: Optional[int] = None,
    **overrides,
) -> BenchmarkDriver:
    config = BenchmarkConfig(
        records=records,
        operations=operations,
        batch_size=batch_size,
        warm_size=warm_size,
        seed=1234,
        **overrides,
    )
    return BenchmarkDriver(RecordService(store, cache), store, cache, config)


class _CorruptCache(FakeCache):
    async def get(self, key: str) -> Optional[str]:
        value = await super().get(key)
        if value is None or key.endswith(":all"):
            return value
        return json.dumps({"id": -1})


class _GarbageCache(FakeCache):
    def __init__(self, garbage: str) -> None:
        super().__init__()
        self.garbage = garbage

    async def get(self, key: str) -> Optional[str]:
        await super().get(key)
        return self.garbage


class _SlowWriteCache(FakeCache):
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.sleep(0.2)
        await super().set_with_expiry(key, value, ttl_seconds)


@pytest.mark.asyncio
async def test_small_run_produces_sane_statistics() -> None:
    store, cache = FakeStore(), FakeCache()

    report = await _driver(store, cache).run()

    for tier in (report.postgres, report.redis):
        assert tier.operation_count == SMALL_OPERATIONS
        assert len(tier.raw_samples) == SMALL_OPERATIONS
        assert tier.min_ms <= tier.mean_ms <= tier.max_ms
        assert tier.ops_per_second > 0
    assert report.comparison.speed_factor > 0
    assert math.isfinite(report.comparison.speed_factor)
    assert report.records == SMALL_RECORDS
    assert report.warm_size == SMALL_RECORDS
    assert report.cleanup_errors == []


@pytest.mark.asyncio
async def test_timed_loops_issue_exactly_m_reads_per_tier() -> None:
    store, cache = FakeStore(), FakeCache()

    await _driver(store, cache).run()

    warm_selects = SMALL_RECORDS
    assert store.statements(SELECT_USER_SQL) == warm_selects + SMALL_OPERATIONS
    gets = [key for op, key in cache.calls if op == "get"]
    # the cleanup deletes do not read; only the Redis loop issues GETs
    assert len(gets) == SMALL_OPERATIONS


@pytest.mark.asyncio
async def test_cleanup_deletes_every_record_and_flushes_cache() -> None:
    store, cache = FakeStore(), FakeCache()

    await _driver(store, cache).run()

    assert store.rows == {}
    assert cache.data == {}
    assert cache.calls[-1] == ("flushall", None)
    assert cache.closed is False


@pytest.mark.asyncio
async def test_population_never_exceeds_batch_size_in_flight() -> None:
    store, cache = FakeStore(latency=0.001), FakeCache()

    driver = _driver(store, cache, records=55, operations=5)
    await driver.populate()

    assert len(driver.created_ids) == 55
    assert store.max_in_flight == BATCH_SIZE


@pytest.mark.asyncio
async def test_warm_subset_limits_redis_reads_to_warmed_ids() -> None:
    store, cache = FakeStore(), FakeCache()
    warm_size = 7

    driver = _driver(store, cache, warm_size=warm_size)
    report = await driver.run()

    assert report.warm_size == warm_size
    assert len(set(driver.warmed_ids)) == warm_size
    warmed_keys = {user_key(i) for i in driver.warmed_ids}
    gets = {key for op, key in cache.calls if op == "get"}
    assert gets <= warmed_keys


@pytest.mark.asyncio
async def test_warm_writes_use_warm_ttl() -> None:
    store, cache = FakeStore(), FakeCache()
    driver = _driver(store, cache, records=5, operations=5, warm_ttl_seconds=3600)

    await driver.populate()
    cache.ttls.clear()
    await driver.warm_cache()

    assert set(cache.ttls.values()) == {3600}
    assert len(cache.ttls) == 5


@pytest.mark.asyncio
async def test_population_failure_names_phase_and_still_cleans_up() -> None:
    store, cache = FakeStore(), FakeCache()
    store.fail_with[INSERT_USER_SQL] = AdapterUnavailableError("PostgreSQL unavailable")

    with pytest.raises(BenchmarkPhaseError) as excinfo:
        await _driver(store, cache).run()

    assert excinfo.value.phase == "population"
    assert isinstance(excinfo.value.cause, AdapterUnavailableError)
    assert ("flushall", None) in cache.calls


@pytest.mark.asyncio
async def test_corrupted_cache_value_fails_redis_phase() -> None:
    store, cache = FakeStore(), _CorruptCache()

    with pytest.raises(BenchmarkPhaseError) as excinfo:
        await _driver(store, cache).run()

    assert excinfo.value.phase == "redis"
    assert isinstance(excinfo.value.cause, BenchmarkAssertionError)
    assert store.rows == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("garbage", ["not-json", "[1, 2, 3]", '{"id": 1}'])
async def test_undecodable_cache_value_fails_redis_phase_as_assertion(garbage: str) -> None:
    store, cache = FakeStore(), _GarbageCache(garbage)

    with pytest.raises(BenchmarkPhaseError) as excinfo:
        await _driver(store, cache, records=5, operations=5).run()

    assert excinfo.value.phase == "redis"
    cause = excinfo.value.cause
    assert isinstance(cause, BenchmarkAssertionError)
    assert cause.details["tier"] == "redis"
    assert "record_id" in cause.details
    assert store.rows == {}


@pytest.mark.asyncio
async def test_population_timeout_still_cleans_up_inserted_rows() -> None:
    store, cache = FakeStore(), _SlowWriteCache()
    driver = _driver(store, cache, records=10, operations=5, population_timeout=0.05)

    with pytest.raises(BenchmarkPhaseError) as excinfo:
        await driver.run()

    assert excinfo.value.phase == "population"
    assert isinstance(excinfo.value.cause, TimeoutError)
    assert len(driver.created_ids) == 10
    assert store.rows == {}


@pytest.mark.asyncio
async def test_postgres_loop_rejects_missing_row() -> None:
    store, cache = FakeStore(), FakeCache()
    driver = _driver(store, cache, records=3, operations=10)

    with pytest.raises(BenchmarkAssertionError, match="exactly one row"):
        await driver.timed_loop(PostgresProbe(store), [999])


@pytest.mark.asyncio
async def test_cleanup_errors_are_reported_not_raised() -> None:
    store, cache = FakeStore(), FakeCache()
    cache.fail_with["flushall"] = AdapterUnavailableError("Redis unavailable")

    report = await _driver(store, cache).run()

    assert len(report.cleanup_errors) == 1
    assert report.cleanup_errors[0].startswith("flush: AdapterUnavailableError")
    assert store.rows == {}


@pytest.mark.asyncio
async def test_timed_loop_timeout_fails_the_phase() -> None:
    store, cache = FakeStore(latency=0.01), FakeCache()
    driver = _driver(store, cache, records=10, operations=100, timed_loop_timeout=0.05)

    with pytest.raises(BenchmarkPhaseError) as excinfo:
        await driver.run()

    assert excinfo.value.phase == "postgres"
    assert isinstance(excinfo.value.cause, TimeoutError)
    assert store.rows == {}


def test_synthetic_users_have_unique_emails() -> None:
    emails = {synthetic_user(i)[1] for i in range(50)}
    assert len(emails) == 50
    assert synthetic_user(3)[0] == "User 3"


@pytest.mark.parametrize(
    "kwargs",
    [{"records": 0}, {"operations": 0}, {"batch_size": 0}, {"warm_size": 0}],
)
def test_config_rejects_non_positive_values(kwargs) -> None:
    with pytest.raises(ValueError):
        BenchmarkConfig(**kwargs)


def test_config_from_settings_applies_overrides() -> None:
    settings = SimpleNamespace(
        benchmark_records=10,
        benchmark_operations=20,
        benchmark_batch_size=5,
        benchmark_warm_size=None,
        benchmark_warm_ttl_seconds=3600,
        benchmark_seed=None,
        benchmark_population_timeout=1.0,
        benchmark_loop_timeout=2.0,
        benchmark_cleanup_timeout=3.0,
    )

    config = BenchmarkConfig.from_settings(settings, operations=99, warm_size=None)

    assert config.records == 10
    assert config.operations == 99
    assert config.warm_size is None
    assert config.timed_loop_timeout == 2.0
