"""
Standardized logging for run-android.

Every module logs through get_logger() so that build progress, device
launches and failures all share one console format. Colors are only
emitted when stdout is a terminal.
"""

import logging
import sys


# ANSI color codes for terminal output
class Colors:
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'

# Names of the loggers configured by get_logger()
_configured = set()


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.OKCYAN,
        logging.INFO: Colors.OKGREEN,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.FAIL,
        logging.CRITICAL: Colors.FAIL + Colors.BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, '')
        record.levelname = f"{color}{record.levelname}{Colors.ENDC}"
        return super().format(record)


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get a configured logger instance.

    Each logger owns its console handler and does not propagate, so a
    record is printed once even when a parent logger is configured too.

    Args:
        name: The name of the logger (usually __name__).
        level: The logging level (default: INFO).

    Returns:
        A configured logging.Logger instance.
    """
    logger = logging.getLogger(name)

    # Prevent adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if sys.stdout.isatty():
        formatter = ColoredFormatter(fmt=LOG_FORMAT, datefmt='%H:%M:%S')
    else:
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    _configured.add(name)

    return logger


def set_level(level: int) -> None:
    """Apply a level to every logger created by get_logger() so far."""
    for name in _configured:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
