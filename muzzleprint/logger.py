"""
MuzzlePrint Logging System
Provides structured logging to rotating files.

Log Files:
- biometric.log: Biometric operations (analyse, enroll, match results)
- error.log: Application errors and exceptions
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

from muzzleprint import config


# Log formats
DETAILED_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def _create_rotating_handler(
    log_file: Path,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    formatter_string: Optional[str] = None
) -> RotatingFileHandler:
    """
    Create a rotating file handler.

    Args:
        log_file: Path to the log file
        max_bytes: Max file size before rotation (default config.LOG_MAX_BYTES)
        backup_count: Number of backup files to keep (default config.LOG_BACKUP_COUNT)
        formatter_string: Log format string (default DETAILED_FORMAT)

    Returns:
        Configured RotatingFileHandler
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes if max_bytes is not None else config.LOG_MAX_BYTES,
        backupCount=backup_count if backup_count is not None else config.LOG_BACKUP_COUNT,
        encoding='utf-8',
        delay=True
    )

    formatter = logging.Formatter(formatter_string or DETAILED_FORMAT)
    handler.setFormatter(formatter)

    return handler


def _get_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get or create a logger with rotating file handler.

    Args:
        name: Logger name
        log_file: Log file name inside config.LOG_DIR
        level: Logging level (default INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)
    logger.propagate = False  # Don't propagate to root logger

    handler = _create_rotating_handler(config.LOG_DIR / log_file)
    logger.addHandler(handler)

    if config.VERBOSE:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(DETAILED_FORMAT))
        logger.addHandler(console)

    return logger


def biometric_logger() -> logging.Logger:
    return _get_logger("muzzleprint.biometric", "biometric.log")


def error_logger() -> logging.Logger:
    return _get_logger("muzzleprint.error", "error.log", level=logging.ERROR)


# Convenience functions

def log_biometric(
    operation: str,
    identifier: Optional[str],
    result: str,
    details: Optional[Dict[str, Any]] = None
):
    """
    Log biometric operation.

    Args:
        operation: Operation type (ANALYZE, ENROLL, MATCH)
        identifier: Target record identifier, or None for 1:N matching
        result: Operation result (SUCCESS, REJECTED, DUPLICATE, NO_MATCH, etc.)
        details: Additional details dict (confidence, top match, counts, etc.)
    """
    id_info = f"id={identifier}" if identifier else "id=None"

    detail_str = ""
    if details:
        detail_parts = [f"{k}={v}" for k, v in details.items()]
        detail_str = f" - {', '.join(detail_parts)}"

    biometric_logger().info(f"{operation} {result} - {id_info}{detail_str}")


def log_error(error: Exception, context: Optional[str] = None):
    """
    Log application error.

    Args:
        error: Exception object
        context: Context where error occurred (command, function name, etc.)
    """
    context_info = f" in {context}" if context else ""

    error_logger().error(
        f"{type(error).__name__}: {str(error)}{context_info}",
        exc_info=error
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger under the muzzleprint namespace.

    Module loggers carry no handlers of their own; records reach whatever the
    host application configures on the root logger.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"muzzleprint.{name}")
