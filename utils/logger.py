"""
Logging configuration for the portal map toolkit.

All toolkit loggers hang off one 'portal' logger. The console shows INFO-level
progress (clipboard updates, registry changes, click summaries); the log file
also keeps DEBUG-level details such as dropped vertices and channel activity.

Functions:
    setup_logging: Attach console and file handlers to the 'portal' logger
    get_logger: Get a logger instance for a specific module

Example:
    >>> from utils.logger import setup_logging, get_logger
    >>> log_file = setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Clipboard updated")
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

ROOT_LOGGER_NAME = 'portal'

CONSOLE_FORMAT = '%(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_dir: Optional[Path] = None,
                  console_level: int = logging.INFO,
                  log_to_file: bool = True) -> Optional[Path]:
    """
    Setup logging to console and, optionally, a timestamped file.

    Calling it again replaces the handlers from the previous call.

    Parameters:
    -----------
    log_dir : Optional[Path]
        Directory for log files. Defaults to PROJECT_ROOT/logs
    console_level : int
        Minimum level shown on the console
    log_to_file : bool
        Write DEBUG-level output to portal_<timestamp>.log

    Returns:
    --------
    Optional[Path]
        Path to the created log file, or None when file logging is off
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if not log_to_file:
        return None

    if log_dir is None:
        log_dir = Path(__file__).parent.parent / 'logs'
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"portal_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(file_handler)

    logger.debug(f"Logging initialized: {log_file}")
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Logger named 'portal.<name>', a child of the configured 'portal' logger."""
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
