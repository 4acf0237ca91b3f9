"""Centralized logging configuration for Parent Copilot.

Each component writes to its own rotating file under LOG_DIR (api.log,
storage.log, worker.log, ai.log, migration.log) and to the console.
"""

import logging
from logging.handlers import RotatingFileHandler
import os

from config import settings

LOG_DIR = os.path.abspath(settings.LOG_DIR)
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = '[%(asctime)s] %(levelname)s - %(name)s - %(message)s'


def _level() -> int:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, log_file: str = 'service.log') -> logging.Logger:
    """Return a logger writing to LOG_DIR/log_file and the console.

    Args:
        name: Logger name (usually __name__)
        log_file: Component log file, e.g. 'api.log' or 'worker.log'

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers when a module is imported twice
    if logger.handlers:
        return logger

    level = _level()
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    # 10MB per file, keep 5 backups
    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    console_handler = logging.StreamHandler()

    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_root_logger():
    """Reduce third-party library noise."""
    for noisy in ('uvicorn', 'uvicorn.access', 'fastapi', 'sqlalchemy', 'google', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# Auto-configure on import
configure_root_logger()
