"""
Core utilities and configuration for the bulk ingestion service.

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Structured exception hierarchy for the ingestion pipeline
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import BatchWriteError, format_error
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "IngestionException",
    "StreamError",
    "SourceFetchError",
    "MappingError",
    "BatchWriteError",
    "DatabaseError",
    "SourceIngestionError",
    "format_error",
]
