"""
Database session management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Create async engine; the pool must cover the concurrent batch writes
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=max(5, settings.INGESTION_MAX_CONCURRENT_BATCHES),
    pool_pre_ping=True,
)

# Create session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)
