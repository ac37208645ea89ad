"""
Application logger. Console always; a rotating file too when LOG_FILE is set.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import config

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(module)s] %(message)s"


def setup_logger(name: str = "fieldservice", log_file: Optional[str] = None,
                 level: Optional[str] = None) -> logging.Logger:
    """Configure ``name`` from config; explicit arguments win over LOG_FILE / LOG_LEVEL."""
    log_file = log_file if log_file is not None else config.LOG_FILE
    level_no = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level_no)
    # re-running must not stack handlers (uvicorn --reload, tests)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            path,
            maxBytes=config.LOG_MAX_MB * 1024 * 1024,
            backupCount=config.LOG_BACKUP_COUNT,
            encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


logger = setup_logger()
