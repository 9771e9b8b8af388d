"""
Source declarations for the ingestion service
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from schemas.unified import UnifiedDataCreate


class RecordMapper(Protocol):
    """Turns one raw JSON element into a unified record, or None to skip it."""

    def map(self, raw: Any) -> Optional[UnifiedDataCreate]:
        ...


@dataclass(frozen=True)
class IngestionSource:
    """A named remote JSON array plus the mapper for its elements."""

    name: str
    url: str
    mapper: RecordMapper = field(repr=False)
