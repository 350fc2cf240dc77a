"""
Durable store adapter: parameterized statements against PostgreSQL.

Wraps an asyncpg pool behind a single `execute` call returning both the rows
and the affected row count, so callers can run insert-with-returning, point
selects, select-all and deletes through one seam. Driver exceptions are
translated into the package error taxonomy here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, runtime_checkable

import asyncpg

from cache_bench.errors import AdapterUnavailableError, DuplicateKeyError
from cache_bench.infrastructure.db_factory import PG_CONNECTION_ERRORS


@dataclass(frozen=True)
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


@runtime_checkable
class DurableStore(Protocol):
    """Capability consumed by the record access layer and the benchmark driver."""

    async def execute(self, statement: str, *parameters: Any) -> QueryResult: ...


def _row_count(status: str | None, fallback: int) -> int:
    """
    Parse the affected row count from a command tag such as "DELETE 1" or "INSERT 0 1".
    """
    if not status:
        return fallback
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else fallback


class PostgresStore:
    """
    DurableStore backed by an asyncpg pool.

    The pool is owned by the caller (see `cache_bench.orchestrator`); `close`
    is provided for convenience but the adapter never opens connections itself.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def execute(self, statement: str, *parameters: Any) -> QueryResult:
        try:
            async with self._pool.acquire() as conn:
                prepared = await conn.prepare(statement)
                records = await prepared.fetch(*parameters)
                status = prepared.get_statusmsg()
        except asyncpg.exceptions.UniqueViolationError as exc:
            raise DuplicateKeyError(
                "Unique constraint violated",
                details={"constraint": exc.constraint_name, "detail": exc.detail},
            ) from exc
        except PG_CONNECTION_ERRORS as exc:
            raise AdapterUnavailableError(
                "PostgreSQL unavailable", details={"error": str(exc)}
            ) from exc

        rows = [dict(record) for record in records]
        return QueryResult(rows=rows, row_count=_row_count(status, len(rows)))

    async def close(self) -> None:
        await self._pool.close()


__all__ = ["QueryResult", "DurableStore", "PostgresStore"]
