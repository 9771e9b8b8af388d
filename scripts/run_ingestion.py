"""
Script to run one ingestion pass over all configured sources
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import async_session_maker, engine
from core.logging import setup_logging
from ingestion.bootstrap import build_ingestion_service
from models.base import IngestionStatus

logger = logging.getLogger(__name__)


async def run_ingestion() -> int:
    """Run every configured source once; return the number of failed sources"""

    service = build_ingestion_service(settings, session_factory=async_session_maker)

    if not service.sources:
        logger.warning("No ingestion sources configured. Skipping run.")
        return 0

    try:
        await service.ingest_all()
    finally:
        await service.aclose()
        await engine.dispose()

    for report in service.last_reports:
        logger.info(
            f"{report.source_name}: {report.status.value} - "
            f"written={report.records_written}, failed={report.records_failed}, "
            f"skipped={report.records_skipped}"
        )

    return sum(1 for r in service.last_reports if r.status == IngestionStatus.FAILED)


if __name__ == "__main__":
    setup_logging()
    failed = asyncio.run(run_ingestion())
    sys.exit(1 if failed else 0)
