"""
Ingestion Service - runs every registered source, one after another.

A failing source is logged and skipped; it never stops the sources
registered after it. Running twice ingests everything twice.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from core.exceptions import SourceIngestionError, format_error
from ingestion.http_client import HttpClientService
from ingestion.pipeline import SourcePipeline, SourceReport
from ingestion.repository import UnifiedDataRepository
from ingestion.sources import IngestionSource
from models.base import IngestionStatus


class IngestionService:
    """
    Source registry and sequential orchestrator.

    Responsibilities:
    - Keep sources in registration order (no de-duplication by name)
    - Run one source at a time through the SourcePipeline
    - Isolate source failures and keep per-source reports of the last run
    """

    def __init__(
        self,
        repository: UnifiedDataRepository,
        http_client: HttpClientService,
        batch_size: Optional[int] = None,
        max_concurrent_batches: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._http_client = http_client
        self._pipeline = SourcePipeline(
            repository=repository,
            http_client=http_client,
            batch_size=batch_size,
            max_concurrent_batches=max_concurrent_batches,
            logger=self._logger,
        )
        self._sources: List[IngestionSource] = []
        self._run_lock = asyncio.Lock()
        self._run_requested = False
        self.last_reports: List[SourceReport] = []

    @property
    def sources(self) -> Tuple[IngestionSource, ...]:
        return tuple(self._sources)

    @property
    def is_running(self) -> bool:
        """True from an accepted request_run() until that run finishes"""
        return self._run_requested or self._run_lock.locked()

    @property
    def batch_size(self) -> int:
        return self._pipeline.batch_size

    @property
    def max_concurrent_batches(self) -> int:
        return self._pipeline.max_concurrent_batches

    def request_run(self) -> bool:
        """
        Reserve the next run for a caller that starts ``ingest_all`` later
        (e.g. as a background task).

        Returns:
            False if a run is already active or reserved
        """
        if self.is_running:
            return False
        self._run_requested = True
        return True

    def register_source(self, source: IngestionSource) -> None:
        self._sources.append(source)
        self._logger.debug(f"Registered source {source.name} ({source.url})")

    async def ingest_all(self) -> None:
        """
        Ingest every registered source sequentially.

        Overlapping calls (scheduler and API trigger) wait for the run in
        progress, so sources never stream in parallel.
        """
        async with self._run_lock:
            # The reservation is now held by the lock itself
            self._run_requested = False
            sources = list(self._sources)
            reports = [SourceReport(source_name=source.name) for source in sources]
            self.last_reports = reports

            for source, report in zip(sources, reports):
                try:
                    await self._pipeline.run(source, report)
                except Exception as e:
                    report.status = IngestionStatus.FAILED
                    error = SourceIngestionError(
                        f"Failed ingestion for {source.name}",
                        context={"source_name": source.name, "url": source.url},
                        original_exception=e
                    )
                    report.error_message = format_error(e)
                    self._logger.error(
                        format_error(error),
                        exc_info=e,
                        extra={"error_context": error.to_dict()},
                    )

            failed = sum(1 for r in reports if r.status == IngestionStatus.FAILED)
            self._logger.info(
                f"Ingestion run finished: {len(reports) - failed} of {len(reports)} sources completed"
            )

    async def aclose(self) -> None:
        """Release the HTTP client once the service is no longer used."""
        await self._http_client.aclose()
