"""
Logging setup for the ``sqlmapper`` package logger.

Modules log through ``logging.getLogger(__name__)``. The package logger
carries a NullHandler, so records only go somewhere once the embedding
application or the SQLMAPPER_LOG_* settings say so.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from sqlmapper.config import Settings, get_settings

PACKAGE_LOGGER = "sqlmapper"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_package_logger() -> logging.Logger:
    return logging.getLogger(PACKAGE_LOGGER)


def _has_file_handler(logger: logging.Logger, path: str) -> bool:
    return any(
        isinstance(handler, RotatingFileHandler) and handler.baseFilename == path
        for handler in logger.handlers
    )


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Apply LOG_LEVEL to the package logger and, when LOG_FILE is set, attach a
    rotating file handler under LOG_DIR. Repeated calls add the file handler once.
    """
    settings = settings or get_settings()
    logger = get_package_logger()
    logger.setLevel(settings.LOG_LEVEL.upper())

    if settings.LOG_FILE:
        path = os.path.abspath(os.path.join(settings.LOG_DIR, settings.LOG_FILE))
        if not _has_file_handler(logger, path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
            handler = RotatingFileHandler(
                path,
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                encoding="utf-8",
            )
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)

    return logger
