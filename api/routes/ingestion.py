"""
Ingestion control endpoints
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from typing import List
from api.dependencies import get_ingestion_service
from ingestion.service import IngestionService
from schemas.api import IngestionRunResponse, SourceInfo, SourceReportInfo
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ingestion", tags=["Ingestion"])


@router.get("/sources", response_model=List[SourceInfo])
async def list_sources(service: IngestionService = Depends(get_ingestion_service)):
    """Registered sources in processing order"""
    return [SourceInfo(name=s.name, url=s.url) for s in service.sources]


@router.get("/reports", response_model=List[SourceReportInfo])
async def last_reports(service: IngestionService = Depends(get_ingestion_service)):
    """Per-source reports of the last (or current) run"""
    return [SourceReportInfo.model_validate(r.to_dict()) for r in service.last_reports]


@router.post(
    "/run",
    response_model=IngestionRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_run(
    background_tasks: BackgroundTasks,
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Start a full ingestion run in the background.

    A run already in progress is not queued again.
    """
    if not service.request_run():
        return IngestionRunResponse(
            accepted=False,
            already_running=True,
            sources=len(service.sources),
            message="Ingestion run already in progress"
        )

    logger.info("Manual ingestion run requested")
    background_tasks.add_task(service.ingest_all)
    return IngestionRunResponse(
        accepted=True,
        already_running=False,
        sources=len(service.sources),
        message="Ingestion run started"
    )
