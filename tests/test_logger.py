"""Tests for logging setup: handlers, file output, logger names."""

import logging

from utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logging


class TestLogging:
    """Logger configuration."""

    def test_file_logging(self, tmp_path):
        """DEBUG messages from module loggers reach the log file."""
        log_file = setup_logging(tmp_path)
        get_logger("tests").debug("dropped vertex")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()
        assert log_file.parent == tmp_path
        assert "dropped vertex" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup(self, tmp_path):
        """Repeated setup replaces handlers instead of stacking them."""
        setup_logging(tmp_path)
        setup_logging(tmp_path, log_to_file=False)
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_logger_names(self):
        """Module loggers are children of the portal logger."""
        assert get_logger("core.models").name == "portal.core.models"
