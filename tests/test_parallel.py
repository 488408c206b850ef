"""
===============================================================================
ASTRODYN - Parallel Search Test Suite
===============================================================================
Chunking, result ordering and cooperative cancellation of the worker pool.
===============================================================================
"""

import threading

import pytest

from astrodyn.performance.parallel import OrderedCancellation, ParallelSearch, split_chunks


# =============================================================================
# Chunking
# =============================================================================

class TestSplitChunks:

    def test_near_equal_contiguous(self):
        chunks = split_chunks(list(range(10)), 3)
        assert chunks == [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]

    def test_fewer_items_than_chunks(self):
        assert split_chunks([1, 2], 5) == [[1], [2]]

    def test_empty(self):
        assert split_chunks([], 4) == []

    def test_single_chunk(self):
        assert split_chunks((1, 2, 3), 1) == [(1, 2, 3)]

    @pytest.mark.parametrize("count", [0, -1])
    def test_rejects_bad_count(self, count):
        with pytest.raises(ValueError):
            split_chunks([1, 2, 3], count)


# =============================================================================
# Ordered cancellation
# =============================================================================

class TestOrderedCancellation:

    def test_cancels_stopped_chunk_and_later_ones(self):
        cancellation = OrderedCancellation()
        assert not cancellation.is_cancelled(0)

        cancellation.stop_at(2)
        assert not cancellation.is_cancelled(1)
        assert cancellation.is_cancelled(2)
        assert cancellation.is_cancelled(3)

    def test_earliest_stop_wins(self):
        cancellation = OrderedCancellation()
        cancellation.stop_at(2)
        cancellation.stop_at(3)
        assert cancellation.stop_index == 2
        cancellation.stop_at(0)
        assert cancellation.stop_index == 0

    def test_surviving_results(self):
        cancellation = OrderedCancellation()
        assert cancellation.surviving(['a', 'b', 'c']) == ['a', 'b', 'c']
        cancellation.stop_at(1)
        assert cancellation.surviving(['a', 'b', 'c']) == ['a', 'b']

    def test_token_mirrors_event(self):
        cancellation = OrderedCancellation()
        early, late = cancellation.token(0), cancellation.token(1)
        late.set()
        assert late.is_set()
        assert not early.is_set()


# =============================================================================
# Worker pool
# =============================================================================

def scan_until(stop_item):
    """Chunk function that stops the search at *stop_item*."""
    def evaluate(chunk, token):
        done = []
        for item in chunk:
            if token.is_set():
                break
            done.append(item)
            if item == stop_item:
                token.set()
                break
        return done

    return evaluate


class TestParallelSearch:

    @pytest.mark.parametrize("workers", [1, 2, 4, 7])
    def test_results_in_chunk_order(self, workers):
        items = list(range(23))
        per_chunk = ParallelSearch(num_workers=workers).map_chunks(
            lambda chunk, token: [item * item for item in chunk], items,
        )
        flattened = [value for chunk in per_chunk for value in chunk]
        assert flattened == [item * item for item in items]

    def test_default_worker_count(self):
        assert ParallelSearch().num_workers >= 1

    def test_no_items(self):
        assert ParallelSearch(num_workers=3).map_chunks(lambda chunk, token: len(chunk), []) == []

    @pytest.mark.parametrize("workers", [1, 2, 4, 7])
    def test_stop_matches_sequential_scan(self, workers):
        per_chunk = ParallelSearch(num_workers=workers).map_chunks(scan_until(25), list(range(40)))
        flattened = [item for chunk in per_chunk for item in chunk]
        assert flattened == list(range(26))

    def test_earlier_chunk_overrides_later_stop(self):
        items = list(range(40))
        later_stopped = threading.Event()

        def evaluate(chunk, token):
            if chunk[0] == 0:
                # let the last chunk stop first
                assert later_stopped.wait(timeout=5.0)
            done = []
            for item in chunk:
                if token.is_set():
                    break
                done.append(item)
                if item in (5, 30):
                    token.set()
                    if item == 30:
                        later_stopped.set()
                    break
            return done

        per_chunk = ParallelSearch(num_workers=4).map_chunks(evaluate, items)
        assert per_chunk == [[0, 1, 2, 3, 4, 5]]

    def test_stop_discards_later_chunks(self):
        per_chunk = ParallelSearch(num_workers=4).map_chunks(scan_until(0), list(range(400)))
        assert per_chunk == [[0]]

    def test_chunk_errors_propagate(self):
        def evaluate(chunk, token):
            if 5 in chunk:
                raise ZeroDivisionError("bad cell")
            return list(chunk)

        with pytest.raises(ZeroDivisionError):
            ParallelSearch(num_workers=3).map_chunks(evaluate, list(range(9)))
