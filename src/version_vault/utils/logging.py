"""
Logging configuration and utilities for VersionVault.

All module loggers hang off the "version_vault" root logger so a single
setup_logging() call controls console and rotating-file output for the
whole pipeline.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from version_vault.config.settings import LoggingSettings


ROOT_LOGGER_NAME = "version_vault"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logging_configured = False


def setup_logging(
    settings: "LoggingSettings | None" = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Configure the application logging system.

    Should be called once at startup; later calls return the already
    configured logger unchanged.

    Args:
        settings: Logging configuration. If None, console logging at INFO.
        level: Optional level name overriding settings.level (CLI --verbose)

    Returns:
        The configured root logger for the application.
    """
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _logging_configured:
        return logger

    logger.handlers.clear()

    if settings is None:
        level_name = level or "INFO"
        formatter = logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT)
        to_console = True
        file_path = None
    else:
        level_name = level or settings.level
        formatter = logging.Formatter(settings.format, settings.date_format)
        to_console = settings.log_to_console
        file_path = settings.file_path

    numeric_level = getattr(logging, level_name.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    if to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_path is not None:
        logger.addHandler(
            _create_file_handler(
                file_path=file_path,
                max_bytes=settings.max_file_size_mb * 1024 * 1024,
                backup_count=settings.backup_count,
                level=numeric_level,
                formatter=formatter,
            )
        )

    # Keep pipeline logs out of the host application's root logger
    logger.propagate = False

    _logging_configured = True
    return logger


def _create_file_handler(
    file_path: Path,
    max_bytes: int,
    backup_count: int,
    level: int,
    formatter: logging.Formatter,
) -> RotatingFileHandler:
    """Create a rotating file handler, creating the log directory."""
    file_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(file_path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger under the application root.

    Args:
        name: Usually __name__. None returns the root application logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Fetching release notes")
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)

    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Remove all handlers and allow setup_logging() to run again."""
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    _logging_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that appends [key=value] context to every message.

    Example:
        >>> logger = LoggerAdapter(get_logger(__name__), {"url": "https://example.com"})
        >>> logger.info("Blocked")  # "Blocked [url=https://example.com]"
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        if self.extra:
            context_str = " ".join(f"[{k}={v}]" for k, v in self.extra.items())
            msg = f"{msg} {context_str}"
        return msg, kwargs


def get_logger_with_context(
    name: str | None = None,
    **context: str,
) -> LoggerAdapter:
    """
    Get a logger whose messages carry fixed context.

    Example:
        >>> logger = get_logger_with_context(__name__, url=url, method="static")
    """
    return LoggerAdapter(get_logger(name), context)
