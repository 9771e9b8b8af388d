"""
Storage for unified records
"""

from typing import Protocol, Sequence
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models.unified_data import UnifiedData
from schemas.unified import UnifiedDataCreate
from core.exceptions import DatabaseError
import logging

logger = logging.getLogger(__name__)


class UnifiedDataRepository(Protocol):
    """Persists one non-empty batch of records; raises if the batch is rejected."""

    async def save_all(self, records: Sequence[UnifiedDataCreate]) -> None:
        ...


class PostgresUnifiedDataRepository:
    """
    Append batches to the ``unified_data`` table.

    Each call opens its own session: batch writes of one source run
    concurrently and an AsyncSession must not be shared between tasks.
    Rows are inserted as-is, so running a source twice stores it twice.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save_all(self, records: Sequence[UnifiedDataCreate]) -> None:
        if not records:
            return

        rows = [record.to_row() for record in records]

        async with self._session_factory() as session:
            try:
                await session.execute(insert(UnifiedData), rows)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(
                    "Failed to insert unified records",
                    context={
                        "operation": "INSERT",
                        "table_name": UnifiedData.__tablename__,
                        "records": len(rows),
                    },
                    original_exception=e
                )

        logger.debug(f"Inserted {len(rows)} rows into {UnifiedData.__tablename__}")
