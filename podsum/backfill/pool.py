"""Bounded-concurrency worker pool shared by chunk resolution and backfill jobs.

N worker threads pull items from a shared, lock-protected cursor, so no item
is ever claimed twice. An exception raised for one item is captured in that
item's result and never stops the other workers. :func:`run_bounded` returns
only after every item has been attempted, with results in input order.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PoolResult(Generic[R]):
    """Outcome of one work item."""

    index: int  # position of the item in the input sequence
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Cursor:
    def __init__(self, size: int) -> None:
        self._next = 0
        self._size = size
        self._lock = threading.Lock()

    def claim(self) -> int | None:
        with self._lock:
            if self._next >= self._size:
                return None
            index = self._next
            self._next += 1
            return index


def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], R],
    concurrency: int,
    name: str = "worker",
) -> list[PoolResult[R]]:
    """Apply *worker* to every item with at most *concurrency* in flight.

    Args:
        items: Work items; each is processed exactly once.
        worker: Function called with one item.
        concurrency: Maximum number of worker threads (clamped to 1..len(items)).
        name: Thread name prefix, used in log records.

    Returns:
        One :class:`PoolResult` per item, in input order.
    """
    if not items:
        return []

    cursor = _Cursor(len(items))
    results: list[PoolResult[R] | None] = [None] * len(items)
    results_lock = threading.Lock()

    def drain() -> None:
        while (index := cursor.claim()) is not None:
            try:
                result = PoolResult(index=index, value=worker(items[index]))
            except Exception as e:
                logger.debug("Item %d failed: %s", index, e)
                result = PoolResult(index=index, error=e)
            with results_lock:
                results[index] = result

    workers = max(1, min(concurrency, len(items)))
    if workers == 1:
        drain()
    else:
        threads = [
            threading.Thread(target=drain, name=f"{name}-{n}", daemon=True)
            for n in range(workers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    return [
        r if r is not None else PoolResult(index=i, error=RuntimeError("not attempted"))
        for i, r in enumerate(results)
    ]
