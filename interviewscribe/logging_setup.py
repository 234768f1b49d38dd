"""Logging setup from LOG_LEVEL / LOG_FILE. Modules use logging.getLogger(__name__)."""
from __future__ import annotations

import logging
import os

from interviewscribe.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Console handler at LOG_LEVEL; also a UTF-8 file handler when LOG_FILE is set."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logger = logging.getLogger("interviewscribe")
    logger.setLevel(level)
    logger.handlers = handlers
    logger.propagate = False
    logging.captureWarnings(True)
