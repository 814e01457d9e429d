"""Tests for weather_pulse.utils.logging module."""

import logging
import os
import tempfile

import pytest

from weather_pulse.config import PulseConfig
from weather_pulse.utils.logging import get_logger, setup_logging, setup_logging_from_dict


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_defaults(self):
        """Should setup logging with sensible defaults."""
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_setup_with_config(self):
        """Should take the level from PulseConfig."""
        setup_logging(PulseConfig(log_level="DEBUG"))
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(PulseConfig(log_level="CHATTY"))
        assert logging.getLogger().level == logging.INFO

    def test_setup_with_file(self):
        """Should create a rotating file handler when log_file is set."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".log", delete=False) as f:
            log_file = f.name

        try:
            setup_logging(PulseConfig(log_file=log_file))
            logging.getLogger("weather_pulse.test").info("Polling started")
            for handler in logging.getLogger().handlers:
                handler.flush()

            with open(log_file) as f:
                assert "Polling started" in f.read()
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            if os.path.exists(log_file):
                os.unlink(log_file)

    def test_setup_with_custom_format(self):
        setup_logging(PulseConfig(log_format="[%(levelname)s] %(message)s"))
        root = logging.getLogger()
        assert root.handlers[0].formatter._fmt == "[%(levelname)s] %(message)s"

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1


class TestSetupLoggingFromDict:
    """Tests for setup_logging_from_dict function."""

    def test_setup_from_dict(self):
        setup_logging_from_dict({"level": "WARNING"})
        assert logging.getLogger().level == logging.WARNING

    def test_setup_from_dict_with_file(self, tmp_path):
        log_file = str(tmp_path / "pulse.log")
        setup_logging_from_dict({"level": "INFO", "file": log_file, "format": "%(message)s"})
        logging.getLogger("weather_pulse.dict").info("Cache cleanup")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_file) as f:
            assert f.read().strip() == "Cache cleanup"


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_named_logger(self):
        logger = get_logger("weather_pulse.orchestrator")
        assert logger.name == "weather_pulse.orchestrator"
        assert logger is logging.getLogger("weather_pulse.orchestrator")


class TestHttpLoggers:
    """Per-request HTTP client logging."""

    def test_http_loggers_quiet_at_info(self):
        setup_logging(PulseConfig(log_level="INFO"))
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_http_loggers_verbose_at_debug(self):
        setup_logging(PulseConfig(log_level="DEBUG"))
        assert logging.getLogger("httpx").level == logging.DEBUG
