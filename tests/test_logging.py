"""Test logging configuration."""

import logging
import sys
from pathlib import Path

import pytest
import structlog
from structlog.testing import LogCapture

from tunnel_bootstrap.common.logging import (
    get_logger,
    level_for_verbosity,
    setup_logging,
)


class TestLogging:
    """Test logging functionality."""

    def setup_method(self) -> None:
        """Setup before each test - reset logging configuration."""
        structlog.reset_defaults()
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    def test_setup_logging_default(self) -> None:
        """Test default logging setup."""
        setup_logging()
        logger = get_logger("test")

        assert logger is not None
        assert hasattr(logger, "info")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_with_level(self) -> None:
        """Test logging setup with custom level."""
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_console_goes_to_stderr(self) -> None:
        """Console logs never mix with command output on stdout"""
        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr  # type: ignore[attr-defined]

    def test_setup_logging_json_format(self) -> None:
        """Test logging setup with JSON format."""
        setup_logging(json_format=True)
        logger = get_logger("test")

        cap = LogCapture()
        structlog.configure(processors=[cap])

        logger.info("tunnel started", tunnel="webui")

        assert len(cap.entries) == 1
        assert cap.entries[0]["event"] == "tunnel started"
        assert cap.entries[0]["tunnel"] == "webui"

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        """Test logging setup with file output."""
        log_file = tmp_path / "tunnel.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("test_file").info("test message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "test message" in log_file.read_text()

    def test_repeated_setup_replaces_handlers(self) -> None:
        """Configuring twice does not duplicate handlers"""
        setup_logging()
        setup_logging(level="ERROR")

        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger().level == logging.ERROR


class TestLevelForVerbosity:
    """Test --log-level translation."""

    @pytest.mark.parametrize(
        ("verbosity", "level"),
        [(0, "ERROR"), (1, "INFO"), (2, "DEBUG"), (3, "DEBUG")],
    )
    def test_levels(self, verbosity: int, level: str) -> None:
        assert level_for_verbosity(verbosity) == level

    @pytest.mark.parametrize("verbosity", [-1, 4])
    def test_out_of_range(self, verbosity: int) -> None:
        """Verbosity outside 0-3 is rejected"""
        with pytest.raises(ValueError, match="between 0 and 3"):
            level_for_verbosity(verbosity)
