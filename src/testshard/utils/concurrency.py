"""Bounded concurrency for blocking, independent I/O work."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_T = TypeVar("_T")
_R = TypeVar("_R")

DEFAULT_MAX_WORKERS = 8


async def gather_bounded(
    func: Callable[[_T], _R],
    items: Iterable[_T],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[_R]:
    """Run *func* over *items* in worker threads, at most *max_workers* at once.

    Results are returned in input order.  The first exception raised by
    *func* propagates once all calls have finished.

    Raises:
        ValueError: If *max_workers* is less than 1.
    """
    if max_workers < 1:
        msg = f"max_workers must be >= 1, got {max_workers}"
        raise ValueError(msg)

    semaphore = asyncio.Semaphore(max_workers)

    async def _run(item: _T) -> _R:
        async with semaphore:
            return await asyncio.to_thread(func, item)

    results = await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results  # type: ignore[return-value]
