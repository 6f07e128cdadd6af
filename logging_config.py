"""
Logging Configuration
Sets up the application logger for Penguin Analytics.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "penguin_analytics"
LOG_LEVEL_ENV = "PENGUIN_ANALYTICS_LOG_LEVEL"


def level_from_env(default: int = logging.INFO) -> int:
    """Read the log level name from the environment, falling back to ``default``."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the ``penguin_analytics`` logger.

    Streamlit re-executes the entry script on every interaction, so existing
    handlers are cleared first to keep one line per record.

    Parameters
    ----------
    level : int, optional
        Logging level. Defaults to the level named in
        ``PENGUIN_ANALYTICS_LOG_LEVEL`` or INFO.
    log_file : str or Path, optional
        Also write records to this file.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    if level is None:
        level = level_from_env()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger inside the ``penguin_analytics`` namespace.

    ``get_logger(__name__)`` in ``pca_utils.pca_calculations`` returns
    ``penguin_analytics.pca_utils.pca_calculations``.
    """
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
