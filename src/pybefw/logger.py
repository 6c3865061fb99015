"""Centralized logging configuration for PyBEFW."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

# Create logger
logger = logging.getLogger('pybefw')
logger.setLevel(logging.DEBUG)

# Create formatter
formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Create console handler with formatting
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.WARNING)
console_handler.setFormatter(formatter)

# Add handler to logger
if not logger.handlers:
    logger.addHandler(console_handler)


def set_verbosity(level: Union[int, str]) -> None:
    """Set the level of the console handler.

    Parameters
    ----------
    level : int or str
        Logging level, e.g. ``logging.INFO`` or ``"DEBUG"``
    """
    console_handler.setLevel(level)


def log_to_file(path: Union[str, Path], level: int = logging.DEBUG) -> logging.FileHandler:
    """Also write package logs to ``path``.

    The parent directory is created if needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return file_handler


def get_logger(name: Optional[str] = None) -> logging.Logger:
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
        if name.startswith('pybefw.') or name == 'pybefw':
            return logging.getLogger(name)
        return logging.getLogger(f'pybefw.{name}')
    return logger
