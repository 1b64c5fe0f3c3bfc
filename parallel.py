"""
TSP Solver - Worker Pool Helpers
Fixed-size thread pool used by the distance matrix, 2-opt and GA solvers.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def default_workers() -> int:
    """Number of workers used when the caller asks for 'all cores'."""
    return max(1, os.cpu_count() or 1)


def chunk_ranges(start: int, stop: int, chunks: int) -> List[Tuple[int, int]]:
    """
    Split [start, stop) into at most `chunks` contiguous half-open ranges.

    Empty ranges are never returned, so the result may be shorter than
    `chunks` when the interval is small.
    """
    total = stop - start
    if total <= 0:
        return []
    chunks = max(1, min(chunks, total))
    size, extra = divmod(total, chunks)

    ranges = []
    lo = start
    for k in range(chunks):
        hi = lo + size + (1 if k < extra else 0)
        ranges.append((lo, hi))
        lo = hi
    return ranges


def parallel_map(
    fn: Callable[[T], R],
    items: Sequence[T],
    workers: Optional[int] = None,
) -> List[R]:
    """
    Apply `fn` to every item and return results in input order.

    Runs inline when only one worker is requested (or there is a single
    item); otherwise blocks until every task on the pool has finished.
    Exceptions raised by a task propagate to the caller.
    """
    if workers is None:
        workers = default_workers()
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
        return list(pool.map(fn, items))


def flatten(groups: Iterable[List[T]]) -> List[T]:
    out: List[T] = []
    for group in groups:
        out.extend(group)
    return out
