# ABOUTME: Logging configuration setup for the voyant-export command line
# ABOUTME: Console output on stderr, optional rotating log file, and an uncaught-exception hook
import logging
import logging.handlers
import sys
from pathlib import Path

from voyant_export.config import Config

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logging(
    log_level: str = "INFO",
    log_file: str | None = None,
    log_dir: str | Path | None = None,
) -> logging.Logger:
    """
    Configure the ``voyant_export`` package logger.

    Debug runs get timestamps and logger names on the console too, since
    per-item messages from concurrent records interleave.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file name (if None, logs to stderr only)
        log_dir: Directory for log files (if None, uses the XDG state log directory)

    Returns:
        The configured package logger
    """
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger("voyant_export")
    logger.setLevel(level)

    # Replaces the library NullHandler and any handlers from an earlier call
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    if level <= logging.DEBUG:
        console_handler.setFormatter(detailed_formatter)
    else:
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Config().get_log_dir() if log_dir is None else Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path / log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    logger.debug(f"Logging initialized at {log_level} level")
    return logger
