"""
Error taxonomy for the cache benchmark.

Adapter-level failures are translated into these types at the adapter
boundary and then propagate unchanged through the record access layer.
A missing record is not an error: `RecordService.get_by_id` returns None.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CacheBenchError(Exception):
    """Base exception carrying a machine-friendly code and a details dict."""

    code: str = "CACHE_BENCH_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class DuplicateKeyError(CacheBenchError):
    """Unique constraint violation in the durable store (duplicate email)."""

    code = "DUPLICATE_KEY"


class AdapterUnavailableError(CacheBenchError):
    """Connection-level failure talking to PostgreSQL or Redis."""

    code = "ADAPTER_UNAVAILABLE"


class BenchmarkAssertionError(CacheBenchError):
    """A timed read returned an unexpected shape (row count, missing value, wrong id)."""

    code = "BENCHMARK_ASSERTION"


class BenchmarkPhaseError(CacheBenchError):
    """A benchmark phase aborted; wraps the original cause."""

    code = "BENCHMARK_PHASE_FAILED"

    def __init__(self, phase: str, cause: BaseException) -> None:
        self.phase = phase
        self.cause = cause
        super().__init__(
            f"Phase '{phase}' failed: {type(cause).__name__}: {cause}",
            details={"phase": phase, "error_type": type(cause).__name__, "error": str(cause)},
        )


__all__ = [
    "CacheBenchError",
    "DuplicateKeyError",
    "AdapterUnavailableError",
    "BenchmarkAssertionError",
    "BenchmarkPhaseError",
]
