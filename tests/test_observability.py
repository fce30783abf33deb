"""
Tests for logging configuration.
"""

import logging

import pytest

from binswap.core.observability.logging_config import parse_level, resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True) == "INFO"
        assert resolve_level(quiet=True, env_level="DEBUG") == "ERROR"
        assert resolve_level(env_level="INFO") == "INFO"
        assert resolve_level() == "WARNING"


class TestParseLevel:
    def test_known_and_unknown(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("ERROR") == logging.ERROR
        assert parse_level("loud") == logging.WARNING
        assert parse_level(None) == logging.WARNING


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("ERROR")
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1

    def test_file_handler_can_be_more_verbose(self, tmp_path):
        log_file = tmp_path / "binswap.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        logging.getLogger("binswap.test").debug("visible in file only")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert "visible in file only" in log_file.read_text()
