import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _run_chunk(fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
    return [fn(item) for item in items]


def chunk_bounds(n: int, parts: int) -> List[tuple]:
    """Split ``range(n)`` into at most ``parts`` contiguous, near-equal slices."""
    parts = max(1, min(parts, n))
    size, extra = divmod(n, parts)
    bounds, lo = [], 0
    for k in range(parts):
        hi = lo + size + (1 if k < extra else 0)
        bounds.append((lo, hi))
        lo = hi
    return bounds


class FrameExecutor:
    """Fan a per-item function out over a thread pool and join before returning.

    Results come back in input order whatever the worker count. Work smaller
    than ``threshold`` items runs on the calling thread. Every chunk has
    finished before ``map`` returns or raises.

    The integrator is pure Python, so the GIL keeps threads from running it
    faster than one core. The pool gives each frame one fan-out and one join.
    A process pool would pickle every ray state twice per frame.
    """

    def __init__(self, workers: int = 1, threshold: int = 64):
        self.workers = max(1, int(workers))
        self.threshold = max(1, int(threshold))
        self._pool = None
        if self.workers > 1:
            self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="lensing")

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        if self._pool is None or len(items) < self.threshold:
            return _run_chunk(fn, items)
        futures = [self._pool.submit(_run_chunk, fn, items[lo:hi])
                   for lo, hi in chunk_bounds(len(items), self.workers)]
        wait(futures)
        out: List[R] = []
        for future in futures:
            out.extend(future.result())
        return out

    def close(self) -> None:
        if self._pool is not None:
            logger.debug("shutting down %d frame workers", self.workers)
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
