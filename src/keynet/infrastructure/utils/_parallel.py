"""
Parallel-for helpers.

`for_` splits a half-open index range into contiguous blocks and runs them on
a shared thread pool; `for_i` applies a function per index. Both fall back to
a plain loop when parallelism is disabled or the range fits in one grain.

Notes
-----
- NumPy releases the GIL inside most array kernels, so per-sample kernels
  gain from threads even though the loop bodies are Python.
- Exceptions raised by a worker propagate to the caller once all submitted
  blocks have finished.
- Per-sample kernels write to disjoint gradient rows; no locking is done
  here.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from functools import lru_cache
import os
from typing import Callable

PARALLEL_THRESHOLD = 512
"""Minimum element count before optimizer updates are parallelized."""


@lru_cache(maxsize=1)
def _executor() -> ThreadPoolExecutor:
    workers = int(os.environ.get("KEYNET_NUM_THREADS", "0")) or (os.cpu_count() or 1)
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="keynet")


def _worker_count() -> int:
    return _executor()._max_workers


def for_(
    parallelize: bool,
    begin: int,
    end: int,
    fn: Callable[[int, int], None],
    grainsize: int = 1,
) -> None:
    """
    Run ``fn(block_begin, block_end)`` over ``[begin, end)``.

    Parameters
    ----------
    parallelize : bool
        Allow splitting across the thread pool.
    begin, end : int
        Half-open range.
    fn : Callable[[int, int], None]
        Block body.
    grainsize : int
        Minimum block length.
    """
    total = end - begin
    if total <= 0:
        return
    grainsize = max(1, int(grainsize))
    if not parallelize or total <= grainsize:
        fn(begin, end)
        return

    n_blocks = min(_worker_count(), (total + grainsize - 1) // grainsize)
    if n_blocks <= 1:
        fn(begin, end)
        return
    step = (total + n_blocks - 1) // n_blocks
    futures = [
        _executor().submit(fn, lo, min(lo + step, end))
        for lo in range(begin, end, step)
    ]
    wait(futures)
    for f in futures:
        f.result()


def for_i(
    parallelize: bool,
    size: int,
    fn: Callable[[int], None],
    grainsize: int = 1,
) -> None:
    """Run ``fn(i)`` for every ``i`` in ``range(size)``."""

    def block(lo: int, hi: int) -> None:
        for i in range(lo, hi):
            fn(i)

    for_(parallelize, 0, size, block, grainsize)
