"""
Record mappers: raw JSON elements to UnifiedDataCreate.

A mapper returns None to skip an element. Skips are expected (non-object
entries, records without an identifier); anything a mapper raises is a
source-level failure.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from datetime import datetime, timezone
import logging

from models.unified_data import UnifiedData
from schemas.unified import UnifiedDataCreate

logger = logging.getLogger(__name__)

# Widths of the bounded text columns; one overlong value would fail the whole batch insert
COLUMN_LENGTHS: Dict[str, int] = {
    column.name: column.type.length
    for column in UnifiedData.__table__.columns
    if getattr(column.type, "length", None)
}


@dataclass(frozen=True)
class FieldPreset:
    """Ordered field aliases for each unified column"""
    external_id: Tuple[str, ...]
    title: Tuple[str, ...]
    description: Tuple[str, ...] = ("description",)
    category: Tuple[str, ...] = ("category",)
    url: Tuple[str, ...] = ("url",)
    author: Tuple[str, ...] = ("author",)
    amount: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ("tags",)
    published_at: Tuple[str, ...] = ()


CATALOG = FieldPreset(
    external_id=("id", "item_id", "row_id"),
    title=("name", "title", "product_name"),
    description=("description", "details"),
    category=("category",),
    url=("url", "link"),
    amount=("price", "current_price", "cost"),
    tags=("tags", "keywords"),
    published_at=("last_updated", "created_at", "created_date", "date"),
)

FEED = FieldPreset(
    external_id=("guid", "id", "link"),
    title=("title",),
    description=("summary", "description"),
    category=("category",),
    url=("link", "url"),
    author=("author",),
    tags=("tags", "keywords"),
    published_at=("published", "pubDate", "updated"),
)

PRESETS: Dict[str, FieldPreset] = {
    "catalog": CATALOG,
    "feed": FEED,
}


class FieldMapper:
    """
    Map JSON objects into the unified schema using a field preset.

    Handles:
    - Field aliasing (first present, non-empty alias wins)
    - Type conversion for amounts and timestamps
    - Leftover fields kept in extra_metadata
    """

    def __init__(self, source_name: str, preset: FieldPreset = CATALOG):
        self.source_name = source_name
        self.preset = preset
        self._mapped_fields = {
            name
            for aliases in (
                preset.external_id, preset.title, preset.description, preset.category,
                preset.url, preset.author, preset.amount, preset.tags, preset.published_at,
            )
            for name in aliases
        }

    def map(self, raw: Any) -> Optional[UnifiedDataCreate]:
        if not isinstance(raw, dict):
            return None

        external_id = self._first(raw, self.preset.external_id)
        title = self._first(raw, self.preset.title)
        if external_id is None or title is None:
            return None

        return UnifiedDataCreate(
            source_name=self.source_name,
            external_id=self._clip("external_id", str(external_id)),
            title=self._clip("title", str(title).strip()),
            description=self._text(self._first(raw, self.preset.description)),
            category=self._clip("category", self._text(self._first(raw, self.preset.category))),
            url=self._clip("url", self._text(self._first(raw, self.preset.url))),
            author=self._clip("author", self._text(self._first(raw, self.preset.author))),
            amount=self._parse_float(self._first(raw, self.preset.amount)),
            tags=self._first(raw, self.preset.tags),
            extra_metadata={k: v for k, v in raw.items() if k not in self._mapped_fields},
            published_at=self._parse_datetime(self._first(raw, self.preset.published_at)),
        )

    @staticmethod
    def _first(record: Dict[str, Any], aliases: Tuple[str, ...]) -> Any:
        for alias in aliases:
            value = record.get(alias)
            if value is not None and value != "":
                return value
        return None

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (dict, list)):
            return None
        return str(value)

    @staticmethod
    def _clip(column: str, value: Optional[str]) -> Optional[str]:
        """Truncate ``value`` to the width of ``column``"""
        if value is None:
            return None
        return value[:COLUMN_LENGTHS[column]]

    @staticmethod
    def _parse_float(value: Any) -> Optional[float]:
        """Safely parse float value"""
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        """Safely parse an ISO-8601 string or a unix timestamp"""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None


def build_mapper(preset_name: str, source_name: str) -> FieldMapper:
    """Resolve a preset by name for a configured source."""
    try:
        preset = PRESETS[preset_name]
    except KeyError:
        raise ValueError(
            f"Unknown mapper preset '{preset_name}' for source {source_name}; "
            f"expected one of {sorted(PRESETS)}"
        )
    logger.debug(f"Using '{preset_name}' mapper for {source_name}")
    return FieldMapper(source_name, preset)
