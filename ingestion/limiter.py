"""
Bounded concurrency for batch writes.

The limiter owns every in-flight write of one source. Writes are dispatched
as soon as they are submitted; ``throttle`` is where the producer waits
when the ceiling is reached, and ``drain_all`` is the final barrier before
a source counts as done.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Set

from core.exceptions import BatchWriteError, format_error


BatchWriter = Callable[[Sequence[Any]], Awaitable[Any]]


class ConcurrencyLimiter:
    """
    Counting limiter over batch-write tasks.

    Attributes:
        max_concurrent: Ceiling on unresolved writes checked by ``throttle``
        submitted: Batches dispatched so far
        succeeded / failed: Batches whose outcome has been observed
        records_written / records_failed: Record totals for those batches
    """

    def __init__(
        self,
        write_batch: BatchWriter,
        max_concurrent: int,
        source_name: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self._write_batch = write_batch
        self.max_concurrent = max_concurrent
        self.source_name = source_name
        self._logger = logger or logging.getLogger(__name__)
        self._pending: Set[asyncio.Task] = set()

        self.submitted = 0
        self.succeeded = 0
        self.failed = 0
        self.records_written = 0
        self.records_failed = 0

    @property
    def in_flight(self) -> int:
        """Writes registered but not yet observed as resolved."""
        return len(self._pending)

    def submit(self, batch: Sequence[Any]) -> asyncio.Task:
        """Dispatch a write for ``batch`` right away and register it."""
        self.submitted += 1
        task = asyncio.create_task(
            self._save_batch(batch, self.submitted),
            name=f"save-batch-{self.source_name}-{self.submitted}",
        )
        self._pending.add(task)
        return task

    async def throttle(self) -> None:
        """Suspend while the number of unresolved writes is at the ceiling."""
        while len(self._pending) >= self.max_concurrent:
            done, pending = await asyncio.wait(
                self._pending, return_when=asyncio.FIRST_COMPLETED
            )
            self._pending = pending
            self._observe(done)

    async def drain_all(self) -> None:
        """Wait for every outstanding write to resolve."""
        while self._pending:
            done, pending = await asyncio.wait(self._pending)
            self._pending = pending
            self._observe(done)

    async def _save_batch(self, batch: Sequence[Any], batch_number: int) -> None:
        try:
            await self._write_batch(batch)
        except Exception as e:
            self.failed += 1
            self.records_failed += len(batch)
            error = BatchWriteError(
                "Failed to save batch",
                context={
                    "source_name": self.source_name,
                    "batch_number": batch_number,
                    "batch_size": len(batch),
                },
                original_exception=e,
            )
            self._logger.error(format_error(error), extra={"error_context": error.to_dict()})
            return

        self.succeeded += 1
        self.records_written += len(batch)
        self._logger.debug(f"Saved batch {batch_number} of {len(batch)} records")

    def _observe(self, done: Set[asyncio.Task]) -> None:
        # _save_batch swallows write failures, so anything left here is cancellation
        for task in done:
            if task.cancelled():
                self.failed += 1
                self._logger.error(f"Batch write task {task.get_name()} was cancelled")
