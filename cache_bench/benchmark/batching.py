"""
Bounded fan-out for setup and cleanup work.

Items are split into fixed-size batches. All operations of a batch are
launched together and joined before the next batch starts, so at most
`batch_size` operations are ever in flight. Launching every operation at once
would exhaust the connection pool and hold one pending task per record.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterator, List, Sequence, TypeVar

from cache_bench.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def run_in_batches(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[R]],
    batch_size: int,
    label: str = "batch",
) -> List[R]:
    """
    Apply `operation` to every item, `batch_size` at a time.

    Parameters
    ----------
    items : Sequence
        Inputs, processed in order of batches (completion order within a batch is unspecified).
    operation : callable
        Coroutine function invoked once per item.
    batch_size : int
        Upper bound on concurrently running operations.
    label : str
        Name used in log messages.

    Returns
    -------
    list
        Results in input order.

    Raises
    ------
    Exception
        The first error of the first failing batch, after that whole batch has
        settled. Later batches are not started.
    """
    results: List[R] = []
    total_batches = (len(items) + batch_size - 1) // batch_size if items else 0
    for index, batch in enumerate(chunked(items, batch_size), start=1):
        outcomes = await asyncio.gather(*(operation(item) for item in batch), return_exceptions=True)
        succeeded = [o for o in outcomes if not isinstance(o, BaseException)]
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        results.extend(succeeded)
        if errors:
            log.error(
                f"[{label.upper()}] batch {index}/{total_batches} failed",
                extra={"batch": index, "failed": len(errors), "succeeded": len(succeeded)},
            )
            raise errors[0]
        log.debug(
            f"[{label.upper()}] batch {index}/{total_batches} done",
            extra={"batch": index, "size": len(batch)},
        )
    return results


__all__ = ["chunked", "run_in_batches"]
