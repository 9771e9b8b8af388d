"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List
from datetime import datetime, timezone
from models.base import IngestionStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Ingestion Schemas
# ============================================================================

class SourceInfo(BaseModel):
    """A registered source"""
    name: str
    url: str


class SourceReportInfo(BaseModel):
    """Outcome of one source in the last ingestion run"""
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    source_name: str
    status: IngestionStatus
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
    duration_seconds: Optional[float] = None


class IngestionRunResponse(BaseModel):
    """Response of the manual run trigger"""
    accepted: bool
    already_running: bool
    sources: int
    message: str


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow)
    database_connected: bool
    ingestion_running: bool = False
    last_run: List[SourceReportInfo] = Field(default_factory=list)
    total_sources: int = 0
    completed_sources: int = 0
    failed_sources: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif self.total_sources == 0 or self.failed_sources == 0:
            self.status = "healthy"
        elif self.failed_sources < self.total_sources:
            self.status = "degraded"
        else:
            self.status = "unhealthy"
        return self
