"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path

from payledger.services.logging import get_log_level, setup_logging


class TestSetupLogging:
    """Test logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        self.root_logger = logging.getLogger()
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_setup_logging_creates_log_directory(self) -> None:
        """Verify setup_logging creates logs directory if missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "test_logs" / "payledger.log"
            assert not log_file.parent.exists()

            setup_logging(str(log_file))

            assert log_file.parent.exists()

    def test_setup_logging_creates_handlers(self) -> None:
        """Verify setup_logging creates both stdout and file handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(str(Path(temp_dir) / "payledger.log"))

            assert len(self.root_logger.handlers) == 2

    def test_setup_logging_respects_level_name(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(str(Path(temp_dir) / "payledger.log"), level_name="debug")

            assert self.root_logger.level == logging.DEBUG

    def test_engine_messages_reach_log_file(self) -> None:
        """Verify module loggers write through the root handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "payledger.log"
            setup_logging(str(log_file), level_name="INFO")

            logging.getLogger("payledger.core.allocation").info("Allocated payment 100")
            for handler in self.root_logger.handlers:
                handler.flush()

            content = log_file.read_text()
            assert "payledger.core.allocation - INFO - Allocated payment 100" in content


class TestGetLogLevel:
    """Test level name resolution."""

    def test_known_levels(self) -> None:
        assert get_log_level("WARNING") == logging.WARNING
        assert get_log_level("error") == logging.ERROR

    def test_unknown_level_defaults_to_info(self) -> None:
        assert get_log_level("VERBOSE") == logging.INFO
