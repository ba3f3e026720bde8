# File: fusionplanner/app/core/fusion/batch_scoring.py
# Version: v0.2.0
"""
Batch & parallel helpers for candidate scoring.

Goals:
- Score thousands of junction candidates with one call.
- Optional thread pool; results always come back in input order so the
  search sees the same pool regardless of worker count.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(slots=True)
class BatchOptions:
    """Controls parallelism and chunking."""
    workers: int = 1           # 0/None → auto = min(32, os.cpu_count() or 1)
    chunk_size: int = 64       # per-task inner size for small overhead


def _auto_workers(workers: int | None) -> int:
    if workers and workers > 0:
        return workers
    return max(1, min(32, os.cpu_count() or 1))


def _chunks(seq: Sequence[T], n: int) -> Iterable[Sequence[T]]:
    if n <= 0:
        n = len(seq) or 1
    for i in range(0, len(seq), n):
        yield seq[i : i + n]


def map_ordered(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    options: BatchOptions | None = None,
) -> List[R]:
    """
    Apply `fn` to every item, optionally in parallel, preserving input order.
    Exceptions raised by `fn` propagate to the caller.
    """
    opts = options or BatchOptions()
    workers = _auto_workers(opts.workers)

    def eval_chunk(chunk: Sequence[T]) -> List[R]:
        return [fn(x) for x in chunk]

    if workers == 1 or len(items) <= opts.chunk_size:
        return eval_chunk(list(items))

    results: List[R] = []
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = [ex.submit(eval_chunk, list(chunk)) for chunk in _chunks(items, opts.chunk_size)]
        for f in futs:
            results.extend(f.result())
    return results
