"""
Custom exceptions for the ingestion pipeline with structured error context.

Every failure site builds one of these with a message, a context dict and
the original exception (if any); loggers render it once via ``format_error``.

Exception Hierarchy:
    IngestionException (base)
    ├── StreamError
    │   └── SourceFetchError
    ├── MappingError
    ├── BatchWriteError
    │   └── DatabaseError
    └── SourceIngestionError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class IngestionException(Exception):
    """
    Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (source, batch size, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = dict(context or {})
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(message)
        if original_exception is not None:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception is not None:
            base_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: "
                f"{self.original_exception}"
            )

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": (
                str(self.original_exception) if self.original_exception is not None else None
            )
        }


# ============================================================================
# Stream Errors
# ============================================================================

class StreamError(IngestionException):
    """
    Raised or reported when the HTTP body stream of a source fails.

    Context should include:
        - source_name: Name of the source
        - url: URL being streamed
    """
    pass


class SourceFetchError(StreamError):
    """
    Raised when a source stream cannot be opened.

    Context should include:
        - url: URL that failed
        - status_code: HTTP status code (if a response was received)
    """
    pass


# ============================================================================
# Mapping Errors
# ============================================================================

class MappingError(IngestionException):
    """
    Raised when a record mapper throws on a raw element.

    Context should include:
        - source_name: Name of the source
        - element_index: Zero-based position of the element in the array
    """
    pass


# ============================================================================
# Write Errors
# ============================================================================

class BatchWriteError(IngestionException):
    """
    A batch rejected by the repository. Logged per batch, never re-raised.

    Context should include:
        - source_name: Name of the source
        - batch_number: One-based dispatch order of the batch
        - batch_size: Number of records in the batch
    """
    pass


class DatabaseError(BatchWriteError):
    """
    Raised by the SQL repository when an insert or commit fails.

    Context should include:
        - operation: Type of database operation
        - table_name: Name of the table
        - records: Number of records in the statement
    """
    pass


# ============================================================================
# Source Errors
# ============================================================================

class SourceIngestionError(IngestionException):
    """Source-level failure, caught and logged by the orchestrator."""
    pass


def format_error(error: BaseException) -> str:
    """Render any exception as a single log line."""
    if isinstance(error, IngestionException):
        return str(error)
    text = str(error)
    if not text:
        return type(error).__name__
    return f"{type(error).__name__}: {text}"
