# backend/app/core/logger.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.core.config_loader import settings


LOGGER_NAME = "chat_backend"

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)

# backend/logs unless LOG_DIR points elsewhere
DEFAULT_LOG_DIR = Path(__file__).resolve().parents[2] / "logs"


def _log_file() -> Path:
    log_dir = Path(settings.log_dir) if settings.log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "app.log"


def _build_handlers(formatter: logging.Formatter) -> list:
    # file keeps INFO and up; console follows the logger level
    file_handler = RotatingFileHandler(
        _log_file(),
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)

    handlers = [file_handler, console_handler]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logger() -> logging.Logger:
    configured = logging.getLogger(LOGGER_NAME)
    configured.setLevel(settings.log_level.upper())

    # uvicorn --reload imports this module more than once
    if not configured.handlers:
        for handler in _build_handlers(logging.Formatter(LOG_FORMAT)):
            configured.addHandler(handler)
    return configured


logger = configure_logger()
logger.debug("Logger initialized (environment=%s).", settings.environment)
