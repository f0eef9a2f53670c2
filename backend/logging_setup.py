"""Process-wide logging configuration.

A single stdout handler on the root logger; every module logs through
``logging.getLogger(__name__)``.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

from config import LOG_LEVEL


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": level, "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging() -> None:
    """Configure logging once; no-op if the root logger already has handlers."""
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_dict_config(LOG_LEVEL))
