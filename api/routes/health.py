"""
Health check endpoint with database and last ingestion run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_ingestion_service
from ingestion.service import IngestionService
from models.base import IngestionStatus
from schemas.api import HealthCheckResponse, SourceReportInfo
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Per-source outcome of the last ingestion run
    """

    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    reports = [SourceReportInfo.model_validate(r.to_dict()) for r in service.last_reports]
    failed_sources = sum(1 for r in service.last_reports if r.status == IngestionStatus.FAILED)
    completed_sources = sum(
        1 for r in service.last_reports if r.status == IngestionStatus.COMPLETED
    )

    return HealthCheckResponse(
        database_connected=db_connected,
        ingestion_running=service.is_running,
        last_run=reports,
        total_sources=len(reports),
        completed_sources=completed_sources,
        failed_sources=failed_sources
    )
