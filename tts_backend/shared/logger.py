"""
Logging utilities for the TTS backend.
Provides consistent logging across all modules.
"""

import logging
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "tts_backend"


def setup_logging(level: Union[int, str] = logging.INFO, name: Optional[str] = None) -> logging.Logger:
    """
    Setup and configure logger for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR), as int or name
        name: Logger name (defaults to the package logger)

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name or ROOT_LOGGER_NAME)

    # Don't add handlers if already configured
    if logger.handlers:
        logger.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.setLevel(level)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger

