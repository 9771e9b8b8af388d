"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import async_session_maker
from ingestion.service import IngestionService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session per request"""
    async with async_session_maker() as session:
        yield session


def get_ingestion_service(request: Request) -> IngestionService:
    """The service built at startup"""
    return request.app.state.ingestion_service
