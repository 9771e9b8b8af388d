"""
Unit tests for the batcher
"""

import pytest
from ingestion.batcher import Batcher


class TestBatcher:
    """Test fixed-size grouping"""

    def test_returns_batch_when_full(self):
        batcher = Batcher(3)

        assert batcher.add(1) is None
        assert batcher.add(2) is None
        batch = batcher.add(3)

        assert batch == (1, 2, 3)
        assert len(batcher) == 0

    def test_buffer_restarts_after_full_batch(self):
        batcher = Batcher(2)
        batches = [b for b in (batcher.add(i) for i in range(5)) if b is not None]

        assert batches == [(0, 1), (2, 3)]
        assert batcher.flush() == (4,)

    def test_flush_empty_buffer_returns_none(self):
        batcher = Batcher(10)

        assert batcher.flush() is None

        batcher.add("a")
        batcher.flush()
        assert batcher.flush() is None

    def test_emitted_batch_is_not_affected_by_later_records(self):
        batcher = Batcher(2)
        batcher.add("a")
        batch = batcher.add("b")
        batcher.add("c")

        assert batch == ("a", "b")
        assert isinstance(batch, tuple)

    @pytest.mark.parametrize("count,size", [(0, 3), (7, 3), (9, 3), (12000, 5000)])
    def test_partition_covers_every_record_once(self, count, size):
        batcher = Batcher(size)
        batches = [b for b in (batcher.add(i) for i in range(count)) if b is not None]
        final = batcher.flush()
        if final is not None:
            batches.append(final)

        flattened = [r for b in batches for r in b]
        assert flattened == list(range(count))
        assert all(1 <= len(b) <= size for b in batches)
        undersized = [b for b in batches if len(b) < size]
        assert len(undersized) == (1 if count % size else 0)

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            Batcher(0)
