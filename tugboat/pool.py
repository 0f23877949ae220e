"""Bounded fan-out/fan-in execution over a thread pool."""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def resolve_workers(workers: int, item_count: int) -> int:
    """Clamp a requested worker count; 0 or less means one per CPU."""
    if workers <= 0:
        workers = os.cpu_count() or 1
    return max(1, min(workers, item_count))


def run(items: Sequence[T], workers: int, fn: Callable[[T], R]) -> List[R]:
    """
    Call `fn` once per item using at most `workers` concurrent threads.

    Results come back in completion order, not input order. `fn` is expected
    to encode its own failures in the value it returns; an exception raised
    by `fn` propagates to the caller once every submitted item has finished.
    """
    if not items:
        return []

    max_workers = resolve_workers(workers, len(items))
    results: List[R] = []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tugboat") as executor:
        futures = [executor.submit(fn, item) for item in items]
        for future in as_completed(futures):
            results.append(future.result())
    return results
