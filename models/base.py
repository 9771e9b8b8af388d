from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class IngestionStatus(str, enum.Enum):
    """Lifecycle of one source within an ingestion run"""
    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"
