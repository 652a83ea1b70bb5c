"""Parallel evaluation helpers."""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Any


def parallel_map(fn: Callable[[Any], Any], items: Iterable[Any], workers: int, *, executor: ThreadPoolExecutor | None = None):
    """Map ``fn`` over ``items`` preserving order.

    Workers are threads and share the caller's agents and grid buffers.
    """
    if workers <= 1:
        return list(map(fn, items))
    if executor is not None:
        return list(executor.map(fn, items))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fn, items))


def split_range(n: int, parts: int) -> list[tuple[int, int]]:
    """Split ``range(n)`` into at most ``parts`` contiguous, non-empty chunks."""
    parts = max(1, min(parts, n))
    bounds = [round(i * n / parts) for i in range(parts + 1)]
    return [(bounds[i], bounds[i + 1]) for i in range(parts) if bounds[i + 1] > bounds[i]]
