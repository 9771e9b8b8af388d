"""
Pydantic schema for the unified record produced by every source mapper
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


class UnifiedDataCreate(BaseModel):
    """
    A mapped record ready to be written to storage.

    The ingestion core never inspects it; mappers build it and the
    repository turns it into a row.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Source tracking
    source_name: str
    external_id: str

    # Core fields
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    amount: Optional[float] = None

    # Flexible fields
    tags: List[str] = Field(default_factory=list)
    extra_metadata: Dict[str, Any] = Field(default_factory=dict, alias="metadata")

    published_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        """Accept a list or a comma-separated string"""
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        if isinstance(v, list):
            return [str(t).strip() for t in v if str(t).strip()]
        return []

    @field_validator("extra_metadata", mode="before")
    @classmethod
    def clean_extra_metadata(cls, v):
        """Ensure metadata is a dict"""
        if not isinstance(v, dict):
            return {}
        return v

    def to_row(self) -> Dict[str, Any]:
        """Column values for a ``unified_data`` insert."""
        row = self.model_dump()
        if row["published_at"] is not None and row["published_at"].tzinfo is not None:
            row["published_at"] = row["published_at"].astimezone(timezone.utc).replace(tzinfo=None)
        return row
