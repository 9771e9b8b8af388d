"""
Per-source streaming pipeline.

HTTP body -> JSON array elements -> mapper -> Batcher -> ConcurrencyLimiter
-> repository. Elements are pulled one at a time; full batches are written
in the background with at most ``max_concurrent_batches`` unresolved writes
before the pull loop is suspended.
"""

from contextlib import aclosing
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from core.config import settings
from core.exceptions import MappingError, StreamError, format_error
from ingestion.batcher import Batcher
from ingestion.http_client import HttpClientService
from ingestion.json_stream import AsyncByteReader, iter_array_elements
from ingestion.limiter import ConcurrencyLimiter
from ingestion.repository import UnifiedDataRepository
from ingestion.sources import IngestionSource
from models.base import IngestionStatus
from schemas.unified import UnifiedDataCreate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SourceReport:
    """Counters and final state of one source within a run"""
    source_name: str
    status: IngestionStatus = IngestionStatus.NOT_STARTED
    elements_read: int = 0
    records_mapped: int = 0
    records_skipped: int = 0
    batches_submitted: int = 0
    batches_succeeded: int = 0
    batches_failed: int = 0
    records_written: int = 0
    records_failed: int = 0
    stream_errors: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["duration_seconds"] = self.duration_seconds
        return data


@dataclass
class _SourceRun:
    source: IngestionSource
    report: SourceReport
    batcher: Batcher
    limiter: ConcurrencyLimiter
    reader: Optional[AsyncByteReader] = field(default=None)


class SourcePipeline:
    """
    Streams one source into the repository.

    Batch size and concurrency ceiling are fixed at construction.
    """

    def __init__(
        self,
        repository: UnifiedDataRepository,
        http_client: HttpClientService,
        batch_size: Optional[int] = None,
        max_concurrent_batches: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._repository = repository
        self._http_client = http_client
        self.batch_size = settings.INGESTION_BATCH_SIZE if batch_size is None else batch_size
        self.max_concurrent_batches = (
            settings.INGESTION_MAX_CONCURRENT_BATCHES
            if max_concurrent_batches is None else max_concurrent_batches
        )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_concurrent_batches < 1:
            raise ValueError(
                f"max_concurrent_batches must be >= 1, got {self.max_concurrent_batches}"
            )
        self._logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        source: IngestionSource,
        report: Optional[SourceReport] = None,
    ) -> SourceReport:
        """
        Ingest ``source`` to completion.

        Writes already dispatched are always drained, even when the source
        fails; the records still buffered at the failure point are dropped.

        Returns:
            The source report with status COMPLETED

        Raises:
            SourceFetchError: If the stream cannot be opened
            StreamError: If the body is not a well-formed JSON document
            MappingError: If the mapper raises on an element
        """
        report = report or SourceReport(source_name=source.name)
        report.started_at = _utcnow()
        run = _SourceRun(
            source=source,
            report=report,
            batcher=Batcher(self.batch_size),
            limiter=ConcurrencyLimiter(
                self._repository.save_all,
                self.max_concurrent_batches,
                source_name=source.name,
                logger=self._logger,
            ),
        )

        self._logger.info(f"Starting ingestion for {source.name}")

        try:
            async with self._http_client.get_stream(source.url) as response:
                run.reader = AsyncByteReader(
                    response.aiter_bytes(),
                    on_error=lambda e: self._on_stream_error(run, e),
                )
                try:
                    await self._stream(run)
                finally:
                    await run.limiter.drain_all()
            if not response.is_closed:
                self._logger.warning(f"Response stream for {source.name} was not closed")
            report.status = IngestionStatus.COMPLETED
        except Exception as e:
            report.status = IngestionStatus.FAILED
            report.error_message = format_error(e)
            raise
        finally:
            # Cancellation bypasses the except clause above
            if report.status != IngestionStatus.COMPLETED:
                report.status = IngestionStatus.FAILED
                report.error_message = report.error_message or "Ingestion cancelled"
            self._collect(run)
            report.completed_at = _utcnow()

        self._logger.info(
            f"Finished ingestion for {source.name}: "
            f"{report.records_written} written, {report.records_failed} failed, "
            f"{report.records_skipped} skipped in {report.batches_submitted} batches"
        )
        return report

    async def _stream(self, run: _SourceRun) -> None:
        run.report.status = IngestionStatus.STREAMING

        async with aclosing(iter_array_elements(run.reader)) as elements:
            async for raw in elements:
                record = self._map(run, raw)
                run.report.elements_read += 1
                if record is None:
                    run.report.records_skipped += 1
                    continue

                run.report.records_mapped += 1
                batch = run.batcher.add(record)
                if batch is not None:
                    run.limiter.submit(batch)
                    await run.limiter.throttle()

        final_batch = run.batcher.flush()
        if final_batch is not None:
            run.limiter.submit(final_batch)

        run.report.status = IngestionStatus.DRAINING

    def _map(self, run: _SourceRun, raw: Any) -> Optional[UnifiedDataCreate]:
        try:
            return run.source.mapper.map(raw)
        except Exception as e:
            raise MappingError(
                "Mapper failed on element",
                context={
                    "source_name": run.source.name,
                    "element_index": run.report.elements_read,
                },
                original_exception=e
            )

    def _on_stream_error(self, run: _SourceRun, error: BaseException) -> None:
        run.report.stream_errors += 1
        stream_error = StreamError(
            f"Stream error for {run.source.name}",
            context={"source_name": run.source.name, "url": run.source.url},
            original_exception=error
        )
        self._logger.error(format_error(stream_error), extra={"error_context": stream_error.to_dict()})

    @staticmethod
    def _collect(run: _SourceRun) -> None:
        run.report.batches_submitted = run.limiter.submitted
        run.report.batches_succeeded = run.limiter.succeeded
        run.report.batches_failed = run.limiter.failed
        run.report.records_written = run.limiter.records_written
        run.report.records_failed = run.limiter.records_failed
