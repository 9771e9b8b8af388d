"""
Fixed-size grouping of mapped records
"""

from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

Batch = Tuple[T, ...]


class Batcher(Generic[T]):
    """
    Accumulates records and hands them out in groups of ``batch_size``.

    A returned batch is an immutable tuple and the buffer starts empty
    again before the next record is accepted.
    """

    def __init__(self, batch_size: int):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self._buffer: List[T] = []

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, record: T) -> Optional[Batch]:
        """Buffer a record; return the full batch once the buffer reaches batch_size."""
        self._buffer.append(record)
        if len(self._buffer) < self.batch_size:
            return None
        return self._take()

    def flush(self) -> Optional[Batch]:
        """Return whatever is buffered as a final, possibly short batch."""
        if not self._buffer:
            return None
        return self._take()

    def _take(self) -> Batch:
        batch = tuple(self._buffer)
        self._buffer = []
        return batch
