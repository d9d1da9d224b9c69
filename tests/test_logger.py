"""
Header Chain Logging Tests
"""

import logging

import pytest

from headerchain.constants import LOG_DATE_FORMAT, LOG_FORMAT
from headerchain.logger import PACKAGE_LOGGER, LogManager, TerminalSafeFormatter, get_logger


@pytest.fixture
def manager():
    manager = LogManager()
    manager.reset()
    yield manager
    manager.reset()


@pytest.fixture
def host_handler():
    """A handler the embedding service installed on the root logger."""
    handler = logging.StreamHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)


class TestLogManager:

    def test_singleton(self):
        assert LogManager() is LogManager()

    def test_get_logger_does_not_configure(self, manager, host_handler):
        get_logger("headerchain.tests")

        assert not manager.is_configured
        assert host_handler in logging.getLogger().handlers

    def test_silent_by_default(self, manager):
        package_logger = logging.getLogger(PACKAGE_LOGGER)

        assert package_logger.propagate
        assert any(isinstance(h, logging.NullHandler) for h in package_logger.handlers)

    def test_configure_leaves_root_alone(self, manager, host_handler):
        root = logging.getLogger()
        root_level = root.level

        manager.configure(log_level="DEBUG", file_output=False)

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert manager.is_configured
        assert host_handler in root.handlers
        assert root.level == root_level
        assert package_logger.level == logging.DEBUG
        assert len(manager.handlers) == 1
        assert manager.handlers[0] in package_logger.handlers
        assert not package_logger.propagate

    def test_reset_removes_only_own_handlers(self, manager, host_handler):
        manager.configure(file_output=False)
        installed = manager.handlers

        manager.reset()

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert not any(h in package_logger.handlers for h in installed)
        assert any(isinstance(h, logging.NullHandler) for h in package_logger.handlers)
        assert host_handler in logging.getLogger().handlers
        assert package_logger.propagate

    def test_file_output(self, manager, tmp_path):
        log_file = tmp_path / "logs" / "bridge.log"

        manager.configure(log_file=log_file, console_output=False, file_output=True)
        get_logger("headerchain.tests").warning("Rejected header #5")

        assert log_file.exists()
        assert "Rejected header #5" in log_file.read_text()

    def test_get_logger(self):
        logger = get_logger("headerchain.tests")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "headerchain.tests"

    def test_valid_log_format_kept(self):
        fmt = "%(levelname)s %(message)s"
        assert LogManager.validate_log_format(fmt) == fmt

    def test_malformed_log_format_falls_back(self):
        assert LogManager.validate_log_format("(levelname)s %(message)s") == str(LOG_FORMAT.default())

    def test_empty_formats_fall_back(self):
        assert LogManager.validate_log_format("") == str(LOG_FORMAT.default())
        assert LogManager.validate_date_format("") == str(LOG_DATE_FORMAT.default())

    def test_invalid_date_format_falls_back(self):
        assert LogManager.validate_date_format("not a date") == str(LOG_DATE_FORMAT.default())
        assert LogManager.validate_date_format("%Y-%m-%d") == "%Y-%m-%d"


class TestTerminalSafeFormatter:

    def test_strips_ansi_and_control_characters(self):
        text = "header \x1b[31m#5\x1b[0m\r from \x07relayer"
        assert TerminalSafeFormatter.sanitize(text) == "header #5 from relayer"

    def test_keeps_tabs_and_newlines(self):
        assert TerminalSafeFormatter.sanitize("a\tb\nc") == "a\tb\nc"

    def test_format_sanitizes_message(self):
        formatter = TerminalSafeFormatter(fmt="%(message)s")
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="digest \x1b[2Jcleared", args=(), exc_info=None,
        )
        assert formatter.format(record) == "digest cleared"
