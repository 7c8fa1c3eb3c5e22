"""
Logging helpers for llmbridge.

Context-aware log helpers used when reporting invocation decisions, and a
one-call setup for the package logger.
"""

import logging
from collections.abc import Mapping
from typing import Any

from rich.logging import RichHandler

PACKAGE_LOGGER_NAME = "llmbridge"


def get_error_text(error: BaseException) -> str:
    """
    Get loggable text for an error.

    Args:
        error: Any exception.

    Returns:
        "<TypeName>: <message>" text.
    """
    return f"{type(error).__name__}: {error}"


def format_context(context: Mapping[str, Any] | None) -> str:
    """Render a caller context as indented "* key: value" lines."""
    if not context:
        return ""
    return "".join(f"\n  * {key}: {value}" for key, value in context.items())


def log_with_context(
    log: logging.Logger,
    level: int,
    message: str,
    context: Mapping[str, Any] | None = None,
) -> None:
    """
    Log a message followed by the caller's context.

    Args:
        log: Logger to write to.
        level: Logging level (e.g. logging.INFO).
        message: Message text.
        context: Caller-supplied key/value pairs.
    """
    if log.isEnabledFor(level):
        log.log(level, f"{message}{format_context(context)}")


def log_error_with_context(
    log: logging.Logger,
    error: BaseException,
    context: Mapping[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error's type and message followed by the caller's context."""
    log_with_context(log, level, get_error_text(error), context)


def configure_logging(level: str | int = "WARNING", *, rich_output: bool = True) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Level name or number.
        rich_output: Attach a rich console handler if none is attached yet.

    Returns:
        The configured package logger.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    numeric_level = level if isinstance(level, int) else logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING
    package_logger.setLevel(numeric_level)

    if rich_output and not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(RichHandler(show_path=False, rich_tracebacks=False))

    return package_logger
