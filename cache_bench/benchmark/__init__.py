"""
Benchmark package: bounded batching, tier probes, statistics and the driver.
"""

from cache_bench.benchmark.batching import run_in_batches
from cache_bench.benchmark.driver import BenchmarkConfig, BenchmarkDriver
from cache_bench.benchmark.stats import (
    BenchmarkReport,
    BenchmarkSample,
    Comparison,
    TierStats,
    compare,
    summarize,
)
from cache_bench.benchmark.tiers import PostgresProbe, RedisProbe, TierProbe

__all__ = [
    "BenchmarkConfig",
    "BenchmarkDriver",
    "BenchmarkReport",
    "BenchmarkSample",
    "Comparison",
    "TierStats",
    "compare",
    "summarize",
    "run_in_batches",
    "PostgresProbe",
    "RedisProbe",
    "TierProbe",
]
