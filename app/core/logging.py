import logging
import sys
from typing import Any, Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structured logging for the service.

    Args:
        level: Override for the configured log level.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())

    # Replace existing handlers so repeated startup does not duplicate output
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    # Silence noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_fields(**fields: Any) -> str:
    """Render key/value fields as `key=value` pairs, skipping None."""
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
