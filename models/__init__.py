"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and the IngestionStatus enum
    unified_data: Append-only table of mapped records from all sources

Usage:
    from models.base import Base, IngestionStatus
    from models.unified_data import UnifiedData

Example:
    row = UnifiedData(
        source_name="coingecko_markets",
        external_id="bitcoin",
        title="Bitcoin",
    )
    session.add(row)
    await session.commit()
"""

__all__ = [
    "Base",
    "IngestionStatus",
    "UnifiedData",
]
