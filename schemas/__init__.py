"""
Pydantic schemas for data validation and serialization.

Schemas:
    unified: UnifiedDataCreate, the record every mapper produces
    api: API endpoint response models

Usage:
    from schemas.unified import UnifiedDataCreate
    from schemas.api import HealthCheckResponse, SourceReportInfo

Example:
    record = UnifiedDataCreate(
        source_name="my_api",
        external_id="123",
        title="Example Item",
        tags="new, featured",
    )
    assert record.tags == ["new", "featured"]
"""

__all__ = [
    "UnifiedDataCreate",
    "HealthCheckResponse",
    "SourceReportInfo",
    "SourceInfo",
    "IngestionRunResponse",
]
