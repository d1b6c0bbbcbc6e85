"""
QA Report Logging Configuration

Configurable logging with debug mode support.
"""

import os
import logging
import sys
from pathlib import Path
from typing import Optional

from qa_report.ui import mask_secrets


def debug_mode_enabled() -> bool:
    """Check QA_REPORT_DEBUG in the process environment."""
    return os.environ.get("QA_REPORT_DEBUG", "").lower() in ("1", "true", "yes")


class SecretMaskingFormatter(logging.Formatter):
    """Formatter that masks secrets in log messages."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return mask_secrets(message)


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """Set up logging configuration.

    Args:
        level: Logging level (default: DEBUG if QA_REPORT_DEBUG, else INFO)
        log_file: Optional path to a log file that receives DEBUG output

    Returns:
        Configured logger
    """
    if level is None:
        level = logging.DEBUG if debug_mode_enabled() else logging.INFO
    verbose = level <= logging.DEBUG

    logger = logging.getLogger("qa_report")
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    if verbose:
        console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    else:
        console_format = "%(message)s"

    console_handler.setFormatter(SecretMaskingFormatter(console_format))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
        file_handler.setFormatter(SecretMaskingFormatter(file_format))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "qa_report") -> logging.Logger:
    """Get a logger under the qa_report hierarchy.

    Args:
        name: Logger name (will be prefixed with 'qa_report.')

    Returns:
        Configured logger
    """
    if not name.startswith("qa_report"):
        name = f"qa_report.{name}"

    logger = logging.getLogger(name)

    parent = logging.getLogger("qa_report")
    if not parent.handlers:
        setup_logging()

    return logger
