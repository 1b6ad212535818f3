"""Bounded, order-preserving fan-out over a ThreadPoolExecutor.

Used for the per-transaction remote calls (classification, translation).
Those calls are independent and may complete in any order; the output list
still follows input order. With ``on_error`` a failing item is replaced by a
fallback value instead of failing the whole map.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

MAX_CONCURRENCY = 32


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    on_error: Callable[[InT, Exception], OutT] | None = None,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` in flight.

    Without ``on_error`` the first mapper exception propagates and work that
    has not started yet is cancelled. With it, ``on_error(item, exc)`` supplies
    that item's result and the map continues.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")
    concurrency = min(concurrency, MAX_CONCURRENCY)

    it = enumerate(iterable)
    results: dict[int, OutT] = {}
    pending: dict[Future[OutT], tuple[int, InT]] = {}

    def _submit(pool: ThreadPoolExecutor) -> bool:
        try:
            idx, item = next(it)
        except StopIteration:
            return False
        pending[pool.submit(mapper, item)] = (idx, item)
        return True

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for _ in range(concurrency):
            if not _submit(pool):
                break

        while pending:
            done, _ = wait(set(pending), return_when=FIRST_COMPLETED)
            for fut in done:
                idx, item = pending.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if on_error is None:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    results[idx] = on_error(item, e)
            for _ in range(len(done)):
                if not _submit(pool):
                    break

    return [results[i] for i in range(len(results))]


__all__ = ["MAX_CONCURRENCY", "p_map"]
