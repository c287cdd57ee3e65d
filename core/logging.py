"""
Logging configuration
"""

import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ContextFormatter(logging.Formatter):
    """Append the ``error_context`` extra, if any, as key=value pairs"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "error_context", None)
        if not context:
            return message
        details = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} | {details}"


def setup_logging():
    """Configure application logging"""

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=log_level, handlers=[handler])

    # Quiet down chatty client libraries
    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "pymongo", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level")
