"""
Cache Bench - cache-aside access layer and PostgreSQL vs Redis read benchmark.

This package provides:

- A cache-aside record service (Redis in front of PostgreSQL) with explicit
  invalidation of the aggregate "all users" entry on every write
- A benchmark driver that populates both tiers in bounded concurrent batches,
  times randomized point reads against each tier, and reports summary
  statistics and comparison figures
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cache_bench.benchmark.driver import BenchmarkConfig, BenchmarkDriver
from cache_bench.benchmark.stats import BenchmarkReport, Comparison, TierStats
from cache_bench.config import Settings, get_settings
from cache_bench.domain.models import Record
from cache_bench.errors import (
    AdapterUnavailableError,
    BenchmarkAssertionError,
    BenchmarkPhaseError,
    CacheBenchError,
    DuplicateKeyError,
)
from cache_bench.orchestrator import open_service, run_benchmark
from cache_bench.records import RecordService
from cache_bench.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Record",
    "RecordService",
    # Benchmark
    "BenchmarkConfig",
    "BenchmarkDriver",
    "BenchmarkReport",
    "Comparison",
    "TierStats",
    "open_service",
    "run_benchmark",
    # Errors
    "CacheBenchError",
    "DuplicateKeyError",
    "AdapterUnavailableError",
    "BenchmarkAssertionError",
    "BenchmarkPhaseError",
    # Logging
    "configure_logging",
    "get_logger",
]
