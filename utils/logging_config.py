"""
Centralized logging configuration for the scheduling core.

Modules log through logging.getLogger(__name__); handlers live on the
top-level package loggers, configured once by the entry point.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)

# Top-level packages whose module loggers share one set of handlers
COMPONENT_LOGGERS = ("app", "db", "notifications", "scheduling", "session", "utils")


def build_handlers(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    format_string: Optional[str] = None,
) -> List[logging.Handler]:
    """Console handler, plus a rotating file handler when log_file is given."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(
        format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir_path / log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    handlers: Optional[List[logging.Handler]] = None,
) -> logging.Logger:
    """
    Setup logging for a component.

    Args:
        name: Logger name (typically a top-level package name)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file name (relative to log_dir)
        log_dir: Directory for log files
        handlers: Pre-built handlers to share between loggers

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Handlers are attached once per logger name
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for handler in handlers or build_handlers(log_level, log_file, log_dir):
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def configure_component_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    names: Iterable[str] = COMPONENT_LOGGERS,
) -> List[logging.Logger]:
    """Configure every component logger with one shared set of handlers."""
    handlers = build_handlers(log_level, log_file, log_dir)
    return [
        setup_logging(name, log_level=log_level, handlers=handlers) for name in names
    ]
