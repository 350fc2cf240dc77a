"""
Summary statistics for the timed read loops.

Two different totals are reported per tier and they are not expected to
match: `total_ms` is the sum of the per-operation samples, while
`wall_clock_ms` is the elapsed time of the whole loop (sampling, assertion and
scheduling overhead included). `ops_per_second` is derived from the latter.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class BenchmarkSample:
    duration_ms: float
    tier: str
    record_id: int


@dataclass
class TierStats:
    tier: str
    operation_count: int
    mean_ms: float
    min_ms: float
    max_ms: float
    total_ms: float
    wall_clock_ms: float
    ops_per_second: float
    variance_ms: float
    stddev_ms: float
    median_ms: float
    p95_ms: float
    raw_samples: List[float] = field(default_factory=list, repr=False)

    def to_dict(self, include_samples: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if not include_samples:
            data.pop("raw_samples")
        return data


@dataclass
class Comparison:
    speed_factor: float
    time_saved_per_op_ms: float
    total_time_saved_ms: float
    throughput_ratio: float
    verdict: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BenchmarkReport:
    postgres: TierStats
    redis: TierStats
    comparison: Comparison
    records: int
    operations: int
    batch_size: int
    warm_size: int
    timestamp: str
    cleanup_errors: List[str] = field(default_factory=list)
    profile: Optional[Dict[str, Any]] = None

    def to_dict(self, include_samples: bool = True) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "records": self.records,
            "operations": self.operations,
            "batch_size": self.batch_size,
            "warm_size": self.warm_size,
            "postgres": self.postgres.to_dict(include_samples),
            "redis": self.redis.to_dict(include_samples),
            "comparison": self.comparison.to_dict(),
            "cleanup_errors": list(self.cleanup_errors),
            "profile": self.profile,
        }


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, reporting a zero denominator as infinity instead of raising."""
    if denominator == 0:
        return math.inf
    return numerator / denominator


def _p95(values: Sequence[float]) -> float:
    if len(values) < 2:
        return values[0]
    return statistics.quantiles(values, n=20, method="inclusive")[18]


def summarize(tier: str, durations_ms: Sequence[float], wall_clock_seconds: float) -> TierStats:
    """
    Aggregate one tier's per-operation durations.

    Parameters
    ----------
    tier : str
        Tier identifier.
    durations_ms : Sequence[float]
        One entry per timed operation, in milliseconds.
    wall_clock_seconds : float
        Elapsed time of the whole loop.
    """
    if not durations_ms:
        raise ValueError(f"No samples recorded for tier '{tier}'")

    samples = list(durations_ms)
    count = len(samples)
    variance = statistics.pvariance(samples) if count > 1 else 0.0
    return TierStats(
        tier=tier,
        operation_count=count,
        mean_ms=statistics.fmean(samples),
        min_ms=min(samples),
        max_ms=max(samples),
        total_ms=math.fsum(samples),
        wall_clock_ms=wall_clock_seconds * 1000.0,
        ops_per_second=safe_ratio(count, wall_clock_seconds),
        variance_ms=variance,
        stddev_ms=math.sqrt(variance),
        median_ms=statistics.median(samples),
        p95_ms=_p95(samples),
        raw_samples=samples,
    )


def verdict_for(speed_factor: float) -> str:
    if speed_factor > 5:
        return "excellent"
    if speed_factor > 2:
        return "good"
    if speed_factor > 1:
        return "modest"
    return "slower"


def compare(durable: TierStats, cache: TierStats) -> Comparison:
    """Derive the durable-vs-cache comparison figures."""
    speed_factor = safe_ratio(durable.mean_ms, cache.mean_ms)
    return Comparison(
        speed_factor=speed_factor,
        time_saved_per_op_ms=durable.mean_ms - cache.mean_ms,
        total_time_saved_ms=durable.total_ms - cache.total_ms,
        throughput_ratio=safe_ratio(cache.ops_per_second, durable.ops_per_second),
        verdict=verdict_for(speed_factor),
    )


__all__ = [
    "BenchmarkSample",
    "TierStats",
    "Comparison",
    "BenchmarkReport",
    "safe_ratio",
    "summarize",
    "compare",
    "verdict_for",
]
