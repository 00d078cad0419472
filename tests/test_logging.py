"""Tests for logging utilities."""

import logging
import time
from unittest.mock import patch

import pytest

from nodessh.logging import (
    TRACE,
    StructuredLogger,
    configure_logging,
    get_level_from_name,
    get_level_from_verbosity,
    get_logger,
    log_performance,
)


class TestLevels:
    """Tests for level helpers."""

    @pytest.mark.parametrize("verbosity, level", [
        (0, logging.WARNING),
        (1, logging.INFO),
        (2, logging.DEBUG),
        (3, TRACE),
        (7, TRACE),
    ])
    def test_verbosity(self, verbosity, level):
        assert get_level_from_verbosity(verbosity) == level

    def test_level_names(self):
        assert get_level_from_name("DEBUG") == logging.DEBUG
        assert get_level_from_name("trace") == TRACE

    def test_invalid_name(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            get_level_from_name("loud")


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_default(self):
        """Test default logging configuration."""
        configure_logging()
        assert logging.root.level == logging.WARNING
        assert logging.getLogger("asyncssh").level == logging.WARNING

    def test_configure_custom_level(self):
        """Test custom log level."""
        configure_logging(level=logging.DEBUG)
        assert logging.root.level == logging.DEBUG

    def test_trace_enables_asyncssh_debugging(self):
        """Test TRACE turns on asyncssh protocol logging."""
        with patch("nodessh.logging.asyncssh.set_debug_level") as set_debug_level:
            configure_logging(level=TRACE)
        assert logging.getLogger("asyncssh").level == logging.DEBUG
        set_debug_level.assert_called_once_with(2)

    def test_log_file(self, tmp_path):
        """Test logs are also written to a file."""
        log_file = tmp_path / "logs" / "nodessh.log"
        configure_logging(level=logging.INFO, log_file=str(log_file))
        logging.getLogger("nodessh.test").info("written to file")
        for handler in logging.root.handlers:
            handler.flush()
        assert "written to file" in log_file.read_text()
        configure_logging()


class TestLogPerformance:
    """Tests for log_performance context manager."""

    def test_log_performance_with_context(self, caplog):
        """Test performance logging with context."""
        logger = logging.getLogger("test.perf.context")
        logger.setLevel(logging.INFO)

        with log_performance(logger, "Remote command", hosts=3):
            time.sleep(0.01)

        assert "Remote command completed" in caplog.text
        assert "hosts=3" in caplog.text

    def test_log_performance_threshold(self, caplog):
        """Test performance logging with threshold."""
        logger = logging.getLogger("test.perf.threshold")
        logger.setLevel(logging.INFO)

        with log_performance(logger, "Fast operation", threshold=1.0):
            pass

        assert "Fast operation" not in caplog.text

    def test_log_performance_exception(self, caplog):
        """Test the duration is logged even when the block raises."""
        logger = logging.getLogger("test.perf.exception")
        logger.setLevel(logging.INFO)

        with pytest.raises(ValueError):
            with log_performance(logger, "Failing operation"):
                raise ValueError("test error")

        assert "Failing operation completed" in caplog.text


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def test_initial_context(self, caplog):
        logger = StructuredLogger("test.initial", query="roles:web")
        logger.logger.setLevel(logging.INFO)

        logger.info("Resolving hosts")

        assert logger.context == {"query": "roles:web"}
        assert "Resolving hosts (query=roles:web)" in caplog.text

    def test_log_with_extra_context(self, caplog):
        """Test logging with extra context."""
        logger = StructuredLogger("test.extra", query="roles:web")
        logger.logger.setLevel(logging.INFO)

        logger.info("Resolving hosts", manual=False)

        assert "Resolving hosts (query=roles:web, manual=False)" in caplog.text

    def test_log_without_context(self, caplog):
        logger = StructuredLogger("test.nocontext")
        logger.logger.setLevel(logging.INFO)

        logger.warning("Simple message")

        assert "Simple message" in caplog.text
        assert "(" not in caplog.text

    def test_get_logger(self):
        logger = get_logger("nodessh.cli", query="*:*")
        assert isinstance(logger, StructuredLogger)
        assert logger.logger.name == "nodessh.cli"
