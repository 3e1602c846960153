"""
Tests for the engine logging configuration.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from grantly.utils.logging import CapabilityRedactionFilter, setup_logging


def make_record(msg, *args):
    return logging.LogRecord("grantly.test", logging.INFO, __file__, 1, msg, args, None)


class TestRedactionFilter:
    def test_short_message_untouched(self):
        record = make_record("Requesting %s", "camera")
        assert CapabilityRedactionFilter(max_length=32).filter(record)
        assert record.getMessage() == "Requesting camera"

    def test_long_token_truncated(self):
        record = make_record("Requesting %s now", ["x" * 40, "camera"])
        CapabilityRedactionFilter(max_length=10).filter(record)
        message = record.getMessage()
        assert "x" * 10 + "…" in message
        assert "x" * 11 not in message
        assert "camera" in message


class TestSetupLogging:
    def teardown_method(self):
        setup_logging(verbose=False)

    def test_quiet_mode(self):
        logger = setup_logging(verbose=False)
        assert logger.name == "grantly"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_verbose_mode(self):
        logger = setup_logging(verbose=True, console=Console(record=True))
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0], RichHandler)
        assert any(
            isinstance(f, CapabilityRedactionFilter) for f in logger.handlers[0].filters
        )

    def test_application_loggers_untouched(self):
        app_logger = logging.getLogger("asyncio")
        app_logger.setLevel(logging.INFO)
        handlers = list(app_logger.handlers)

        setup_logging(verbose=True, console=Console(record=True))
        assert app_logger.level == logging.INFO
        assert app_logger.handlers == handlers
        app_logger.setLevel(logging.NOTSET)
