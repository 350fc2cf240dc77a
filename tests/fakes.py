"""
In-memory stand-ins for the PostgreSQL and Redis adapters used by unit tests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cache_bench.benchmark.stats import BenchmarkReport, compare, summarize
from cache_bench.errors import DuplicateKeyError
from cache_bench.infrastructure.durable_store import QueryResult
from cache_bench.records import (
    DELETE_USER_SQL,
    INSERT_USER_SQL,
    SELECT_ALL_USERS_SQL,
    SELECT_USER_SQL,
)


class FakeStore:
    """
    In-memory `users` table answering the statements RecordService issues.

    Tracks every statement executed and the peak number of concurrent calls.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_with: Dict[str, BaseException] = {}
        self.latency = latency
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 1

    def statements(self, statement: str) -> int:
        return sum(1 for sql, _ in self.calls if sql == statement)

    async def execute(self, statement: str, *parameters: Any) -> QueryResult:
        self.calls.append((statement, parameters))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.latency)
            if statement in self.fail_with:
                raise self.fail_with[statement]
            return self._apply(statement, parameters)
        finally:
            self.in_flight -= 1

    def _apply(self, statement: str, parameters: Tuple[Any, ...]) -> QueryResult:
        if statement == INSERT_USER_SQL:
            name, email = parameters
            if any(row["email"] == email for row in self.rows.values()):
                raise DuplicateKeyError("Unique constraint violated", details={"email": email})
            row = {
                "id": self._next_id,
                "name": name,
                "email": email,
                "created_at": datetime.now(),
            }
            self._next_id += 1
            self.rows[row["id"]] = row
            return QueryResult(rows=[dict(row)], row_count=1)
        if statement == SELECT_USER_SQL:
            (record_id,) = parameters
            row = self.rows.get(record_id)
            rows = [dict(row)] if row else []
            return QueryResult(rows=rows, row_count=len(rows))
        if statement == SELECT_ALL_USERS_SQL:
            rows = [dict(row) for row in self.rows.values()]
            return QueryResult(rows=rows, row_count=len(rows))
        if statement == DELETE_USER_SQL:
            (record_id,) = parameters
            removed = self.rows.pop(record_id, None)
            return QueryResult(rows=[], row_count=1 if removed else 0)
        raise AssertionError(f"unexpected statement: {statement}")


class FakeCache:
    """In-memory key/value store recording every operation and its TTL."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.fail_with: Dict[str, BaseException] = {}
        self.closed = False

    def _record(self, op: str, key: Optional[str] = None) -> None:
        self.calls.append((op, key))
        if op in self.fail_with:
            raise self.fail_with[op]

    async def get(self, key: str) -> Optional[str]:
        self._record("get", key)
        return self.data.get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        self._record("setex", key)
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self._record("delete", key)
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    async def flush_all(self) -> None:
        self._record("flushall")
        self.data.clear()
        self.ttls.clear()

    async def close(self) -> None:
        self.closed = True


def make_report(cleanup_errors: Optional[List[str]] = None) -> BenchmarkReport:
    """A small, fully populated report for rendering and persistence tests."""
    postgres = summarize("postgres", [2.0, 4.0, 6.0, 8.0], wall_clock_seconds=0.5)
    redis = summarize("redis", [0.5, 0.5, 1.0, 2.0], wall_clock_seconds=0.25)
    return BenchmarkReport(
        postgres=postgres,
        redis=redis,
        comparison=compare(postgres, redis),
        records=4,
        operations=4,
        batch_size=2,
        warm_size=4,
        timestamp="2024-05-17T09:30:12+00:00",
        cleanup_errors=list(cleanup_errors or []),
    )
