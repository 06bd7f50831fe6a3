"""
Logging setup for the retail analytics pipeline.

Uses Loguru for structured, colorized logging with file rotation.
"""

import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

from loguru import logger


# Track if logging has been configured
_logging_configured = False


def setup_logging(
    log_dir: Path,
    level: str = "INFO",
    log_format: Optional[str] = None,
    console: bool = True,
    file: bool = True,
) -> Path:
    """
    Configure logging for the pipeline.

    Args:
        log_dir: Directory to store log files.
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Custom console format string.
        console: Whether to log to console.
        file: Whether to log to file.

    Returns:
        Path to the log file created.
    """
    global _logging_configured

    if log_format is None:
        log_format = (
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>"
        )

    # File format (no colors)
    file_format = (
        "{time:YYYY-MM-DD HH:mm:ss} | "
        "{level:<8} | "
        "{extra[component]} | "
        "{message}"
    )

    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_file = log_dir / f"pipeline_{timestamp}.log"

    # Drop the default stderr handler (and ours, when reconfiguring)
    logger.remove()
    logger.configure(extra={"component": "-"})

    if console:
        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            colorize=True,
        )

    if file:
        logger.add(
            log_file,
            format=file_format,
            level=level,
            rotation="10 MB",
            retention="30 days",
            compression="gz",
        )

    _logging_configured = True
    get_logger("Logging").info(f"Logging initialized. Log file: {log_file}")

    return log_file


def get_logger(component: str = "Pipeline"):
    """
    Get a logger bound to a pipeline component.

    Args:
        component: Component name shown in every log line.

    Returns:
        Loguru logger instance with context.
    """
    return logger.bind(component=component)
