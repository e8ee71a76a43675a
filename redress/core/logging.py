"""
Logging Configuration

One stdout handler shared by the API, the ingestion CLI and the
libraries they drive.
"""

from __future__ import annotations

import sys
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO: one line per SQL statement or per crawled URL.
QUIET_LOGGERS: tuple[str, ...] = ("sqlalchemy.engine", "httpx")


def setup_logging(level: str = "INFO") -> None:
    """
    Route ``redress``, uvicorn and library loggers to stdout.

    ``level`` (usually ``Settings.LOG_LEVEL``) applies to the root and
    ``redress`` loggers; SQL and HTTP client logs stay at WARNING.
    Called once by the API lifespan and by the ingestion script.
    """
    log_level = level.upper()

    def console_logger(logger_level: str) -> dict:
        return {"level": logger_level, "handlers": ["console"], "propagate": False}

    loggers = {
        "redress": console_logger(log_level),
        "uvicorn": console_logger("INFO"),
        "uvicorn.access": console_logger("INFO"),
    }
    loggers.update({name: console_logger("WARNING") for name in QUIET_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": log_level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
