"""
Logging configuration.

Every module logs through ``logging.getLogger(__name__)``; this module wires the
root logger once for the API process and for the maintenance scripts.
"""
import logging
import logging.config
from typing import Optional

from .config import settings

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

# Third-party libraries (reduce noise)
MODULE_LOG_LEVELS = {
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "httpx": "WARNING",
    "asyncio": "WARNING",
    "uvicorn.access": "INFO",
}

_configured = False


def build_logging_config(level: str, log_format: str) -> dict:
    format_str = SIMPLE_FORMAT if log_format == "simple" else DETAILED_FORMAT
    loggers = {name: {"level": lvl} for name, lvl in MODULE_LOG_LEVELS.items()}
    if settings.DEBUG:
        loggers["sqlalchemy.engine"] = {"level": "INFO"}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": format_str, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None, force: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override default format (simple, detailed)
        force: Reconfigure even if logging was already set up
    """
    global _configured
    if _configured and not force:
        return
    level = (log_level or settings.LOG_LEVEL).upper()
    fmt = log_format or settings.LOG_FORMAT
    logging.config.dictConfig(build_logging_config(level, fmt))
    _configured = True
