"""
Unit tests for logging helpers.
"""

import logging

from rich.logging import RichHandler

from llmbridge.logging_utils import (
    configure_logging,
    format_context,
    get_error_text,
    log_error_with_context,
    log_with_context,
)


class TestLogHelpers:
    """Tests for context-aware log helpers."""

    def test_get_error_text(self):
        """Test error text names the type and message."""
        assert get_error_text(ValueError("bad value")) == "ValueError: bad value"

    def test_format_context(self):
        """Test context is rendered as indented bullet lines."""
        assert format_context({"resource": "a.py", "attempt": 2}) == (
            "\n  * resource: a.py\n  * attempt: 2"
        )

    def test_format_empty_context(self):
        """Test no context renders nothing."""
        assert format_context(None) == ""
        assert format_context({}) == ""

    def test_log_with_context(self, caplog):
        """Test the context follows the message."""
        log = logging.getLogger("llmbridge.test")

        with caplog.at_level(logging.INFO, logger="llmbridge"):
            log_with_context(log, logging.INFO, "Switching model", {"resource": "a.py"})

        assert caplog.records[-1].getMessage() == "Switching model\n  * resource: a.py"

    def test_log_error_with_context(self, caplog):
        """Test errors are logged with their type at ERROR level."""
        log = logging.getLogger("llmbridge.test")

        with caplog.at_level(logging.ERROR, logger="llmbridge"):
            log_error_with_context(log, KeyError("x"), {"resource": "a.py"})

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.getMessage().startswith("KeyError: 'x'")

    def test_disabled_level_not_logged(self, caplog):
        """Test nothing is emitted below the logger's level."""
        log = logging.getLogger("llmbridge.test")

        with caplog.at_level(logging.WARNING, logger="llmbridge"):
            log_with_context(log, logging.DEBUG, "hidden", {"a": 1})

        assert not caplog.records


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self, package_logger):
        """Test the level name is applied to the package logger."""
        configure_logging("debug", rich_output=False)
        assert package_logger.level == logging.DEBUG

    def test_unknown_level_defaults_to_warning(self, package_logger):
        """Test an unknown level name falls back to WARNING."""
        configure_logging("LOUD", rich_output=False)
        assert package_logger.level == logging.WARNING

    def test_rich_handler_added_once(self, package_logger):
        """Test repeated setup does not stack handlers."""
        configure_logging("INFO")
        configure_logging("INFO")

        rich_handlers = [h for h in package_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
