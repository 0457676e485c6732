"""Centralized logging configuration for ReefHarvest."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = 'reefharvest'

# Create logger
logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())

# Create formatter
formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    Calling this more than once replaces the handlers installed by the
    previous call instead of duplicating output.

    Parameters
    ----------
    level : int or str
        Console log level, e.g. ``logging.DEBUG`` or ``'WARNING'``.
    log_file : str or Path, optional
        If given, also write DEBUG-level records to this file.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    for handler in list(logger.handlers):
        if getattr(handler, '_reefharvest_handler', False):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(logging.DEBUG)

    # Create console handler with formatting
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._reefharvest_handler = True
    logger.addHandler(console_handler)

    # Optional: File handler for persistent logs
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler._reefharvest_handler = True
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None):
    """Get a logger instance.

    Parameters
    ----------
    name : str, optional
        Logger name (typically __name__). If None, returns root package logger.

    Returns
    -------
    logging.Logger
        Configured logger instance
    """
    if name:
        if name.startswith(f'{LOGGER_NAME}.'):
            return logging.getLogger(name)
        return logging.getLogger(f'{LOGGER_NAME}.{name}')
    return logger
