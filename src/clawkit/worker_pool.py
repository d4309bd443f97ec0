"""Fixed-width worker pool that processes a backlog group by group.

Each group of ``width`` items runs concurrently; the pool waits until every
item in the group has succeeded, failed or timed out before moving on, then
pauses briefly to keep the request rate down.

A timed-out item is reported as failed but its thread is not interrupted. It
keeps running until the worker returns, and interpreter exit waits for it, so
workers should bound their own blocking calls (the vision client takes the
same timeout). Side effects such a late worker performs are not reflected in
the outcome.
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_WIDTH = 3
DEFAULT_ITEM_TIMEOUT_SEC = 20.0
DEFAULT_GROUP_PAUSE_SEC = 1.0


@dataclass
class ItemOutcome(Generic[T, R]):
    item: T
    ok: bool
    value: Optional[R] = None
    error: Optional[str] = None
    timed_out: bool = False


@dataclass
class GroupResult(Generic[T, R]):
    start: int
    end: int
    total: int
    outcomes: List[ItemOutcome[T, R]]

    @property
    def ok_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)


def _collect(item: T, future: Future, deadline: float, clock: Callable[[], float]) -> ItemOutcome:
    try:
        value = future.result(timeout=max(0.0, deadline - clock()))
    except FutureTimeout:
        future.cancel()
        return ItemOutcome(item=item, ok=False, error="Timeout", timed_out=True)
    except Exception as exc:
        return ItemOutcome(item=item, ok=False, error=str(exc) or exc.__class__.__name__)
    return ItemOutcome(item=item, ok=True, value=value)


def run_in_groups(
    items: Sequence[T],
    worker: Callable[[T], R],
    width: int = DEFAULT_WIDTH,
    item_timeout: float = DEFAULT_ITEM_TIMEOUT_SEC,
    pause: float = DEFAULT_GROUP_PAUSE_SEC,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[GroupResult[T, R]]:
    if width < 1:
        raise ValueError("width must be >= 1")
    total = len(items)
    for start in range(0, total, width):
        group = list(items[start : start + width])
        # A fresh executor per group: a timed-out call keeps its thread until the
        # underlying I/O gives up and must not hold a slot in the next group.
        executor = ThreadPoolExecutor(max_workers=len(group), thread_name_prefix="clawkit-worker")
        try:
            deadline = clock() + item_timeout
            futures = [(item, executor.submit(worker, item)) for item in group]
            outcomes = [_collect(item, future, deadline, clock) for item, future in futures]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        yield GroupResult(start=start, end=start + len(group), total=total, outcomes=outcomes)
        if pause > 0 and start + width < total:
            sleep(pause)
