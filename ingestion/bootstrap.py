"""
Wiring of the ingestion service from settings
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings, settings as default_settings
from ingestion.http_client import HttpClientService
from ingestion.mappers import build_mapper
from ingestion.repository import PostgresUnifiedDataRepository, UnifiedDataRepository
from ingestion.service import IngestionService
from ingestion.sources import IngestionSource

logger = logging.getLogger(__name__)


def build_ingestion_service(
    config: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    http_client: Optional[HttpClientService] = None,
    repository: Optional[UnifiedDataRepository] = None,
) -> IngestionService:
    """
    Create an IngestionService with every source from ``INGESTION_SOURCES``.

    Either ``repository`` or ``session_factory`` must be given.

    Raises:
        ValueError: On an unknown mapper preset or missing storage
    """
    config = config or default_settings

    if repository is None:
        if session_factory is None:
            raise ValueError("build_ingestion_service needs a repository or a session_factory")
        repository = PostgresUnifiedDataRepository(session_factory)

    service = IngestionService(
        repository=repository,
        http_client=http_client or HttpClientService(timeout=config.HTTP_TIMEOUT),
        batch_size=config.INGESTION_BATCH_SIZE,
        max_concurrent_batches=config.INGESTION_MAX_CONCURRENT_BATCHES,
    )

    for source_config in config.INGESTION_SOURCES:
        service.register_source(
            IngestionSource(
                name=source_config.name,
                url=source_config.url,
                mapper=build_mapper(source_config.mapper, source_config.name),
            )
        )

    if not service.sources:
        logger.warning("No ingestion sources configured (INGESTION_SOURCES is empty)")
    return service
