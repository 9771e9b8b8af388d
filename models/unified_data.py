from sqlalchemy import Column, String, BigInteger, Text, Float, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime, timezone
from models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UnifiedData(Base):
    """
    Unified table for records from every registered source.

    Design:
    - Append-only: each ingestion run inserts every mapped record again,
      there is no unique constraint on (source_name, external_id)
    - Common fields across sources, JSONB for source-specific leftovers
    - ingested_at is stamped by the database session, not the source
    """
    __tablename__ = "unified_data"

    id = Column(BigInteger, primary_key=True, autoincrement=True)

    # Source tracking
    source_name = Column(String(100), nullable=False, index=True)
    external_id = Column(String(255), nullable=False, index=True)

    # Core fields
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(200), nullable=True, index=True)
    url = Column(String(2048), nullable=True)
    author = Column(String(200), nullable=True)
    amount = Column(Float, nullable=True)

    # Flexible fields
    tags = Column(JSONB, nullable=True)
    extra_metadata = Column("metadata", JSONB, nullable=True)

    # Timestamps
    published_at = Column(DateTime, nullable=True, index=True)
    ingested_at = Column(DateTime, nullable=False, default=_utcnow, index=True)

    __table_args__ = (
        Index("idx_unified_data_source_external", "source_name", "external_id"),
    )
