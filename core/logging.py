"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore", "apscheduler")


class ErrorContextFormatter(logging.Formatter):
    """Appends the ``error_context`` passed via ``extra`` to error lines"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        error_context = getattr(record, "error_context", None)
        if error_context and record.levelno >= logging.WARNING:
            message = f"{message} | error_type={error_context.get('error_type')}"
        return message


def setup_logging(level: Optional[str] = None):
    """Configure application logging once, to stdout"""

    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ErrorContextFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=log_level, handlers=[handler])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level")
