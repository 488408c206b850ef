"""
parallel.py - Chunked parallel grid search

The intercept searches evaluate thousands of independent (launch time,
duration) cells.  :class:`ParallelSearch` splits the outer axis into
contiguous chunks, evaluates them on a worker pool and returns the per-chunk
results in chunk order, so the caller's reduction is deterministic no matter
which worker finished first.

Parallelism model
-----------------
Workers are threads.  Each cell captures bodies, orbits and solver objects
that are cheap to share but not worth pickling, and the solvers are pure, so
no locking is needed around them.

Early termination is ordered.  Every chunk function receives a
:class:`ChunkCancelToken`.  A chunk that finds a good enough cell calls
``token.set()`` and stops, which cancels only the chunks that come after it
on the search axis; the chunks before it run to completion.  Results of the
cancelled chunks are discarded, so the surviving results are exactly those
of a sequential scan that stops at its first hit, for any worker count.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def split_chunks(items: Sequence[T], num_chunks: int) -> List[Sequence[T]]:
    """
    Split *items* into at most *num_chunks* contiguous, near-equal slices.

    Empty slices are dropped, so fewer items than chunks yields one slice
    per item.
    """
    if num_chunks < 1:
        raise ValueError(f"num_chunks must be at least 1, got {num_chunks}")
    size, remainder = divmod(len(items), num_chunks)
    chunks = []
    start = 0
    for index in range(num_chunks):
        stop = start + size + (1 if index < remainder else 0)
        if stop > start:
            chunks.append(items[start:stop])
        start = stop
    return chunks


# =============================================================================
# Ordered cancellation
# =============================================================================

class OrderedCancellation:
    """
    Earliest chunk index that asked to stop, shared by every chunk of a run.

    Chunk ``k`` is cancelled once a chunk ``j <= k`` has stopped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.stop_index: Optional[int] = None

    def stop_at(self, index: int) -> None:
        with self._lock:
            if self.stop_index is None or index < self.stop_index:
                self.stop_index = index

    def is_cancelled(self, index: int) -> bool:
        stop_index = self.stop_index
        return stop_index is not None and index >= stop_index

    def token(self, index: int) -> 'ChunkCancelToken':
        return ChunkCancelToken(self, index)

    def surviving(self, results: List[R]) -> List[R]:
        """Results of the chunks up to and including the earliest stop."""
        if self.stop_index is None:
            return results
        return results[:self.stop_index + 1]


class ChunkCancelToken:
    """
    Per-chunk view of an :class:`OrderedCancellation`.

    Mirrors the ``is_set()`` / ``set()`` interface of ``threading.Event``.
    """

    def __init__(self, cancellation: OrderedCancellation, index: int):
        self._cancellation = cancellation
        self.index = index

    def is_set(self) -> bool:
        return self._cancellation.is_cancelled(self.index)

    def set(self) -> None:
        self._cancellation.stop_at(self.index)


# =============================================================================
# Worker pool
# =============================================================================

class ParallelSearch:
    """
    Evaluate a chunk function over contiguous slices of a search axis.

    Typical usage:
        search = ParallelSearch(num_workers=4)
        per_chunk = search.map_chunks(evaluate_chunk, launch_times)
    """

    def __init__(self, num_workers: Optional[int] = None):
        """
        Parameters
        ----------
        num_workers : int or None
            Number of worker threads. Defaults to ``os.cpu_count()``.
        """
        self.num_workers = num_workers or os.cpu_count() or 4

    def map_chunks(
        self,
        chunk_func: Callable[[Sequence[T], ChunkCancelToken], R],
        items: Sequence[T],
    ) -> List[R]:
        """
        Run *chunk_func* on every chunk of *items*.

        Parameters
        ----------
        chunk_func : callable
            ``chunk_func(chunk, token)``; should check ``token.is_set()``
            between cells, and call ``token.set()`` and return to stop the
            search at its current cell.
        items : sequence
            The search axis.

        Returns
        -------
        list of chunk results, in chunk order, up to and including the
        earliest chunk that stopped the search.  Exceptions raised by a
        chunk propagate after all chunks have finished.
        """
        cancellation = OrderedCancellation()
        chunks = split_chunks(items, self.num_workers) if len(items) else []

        if self.num_workers == 1 or len(chunks) <= 1:
            results = []
            for index, chunk in enumerate(chunks):
                results.append(chunk_func(chunk, cancellation.token(index)))
                if cancellation.stop_index is not None:
                    break
            return cancellation.surviving(results)

        logger.debug("Evaluating %d items in %d chunks on %d workers",
                     len(items), len(chunks), self.num_workers)
        with ThreadPoolExecutor(max_workers=self.num_workers) as pool:
            futures = [pool.submit(chunk_func, chunk, cancellation.token(index))
                       for index, chunk in enumerate(chunks)]
            results = [future.result() for future in futures]

        if cancellation.stop_index is not None:
            logger.debug("Search stopped in chunk %d of %d", cancellation.stop_index + 1, len(chunks))
        return cancellation.surviving(results)
