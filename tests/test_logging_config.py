"""Tests for command-line logging setup."""

import logging

import pytest

from rosterplan.logging_config import HANDLER_NAME, setup_logging


@pytest.fixture
def root_logger():
    """Restore the root logger's handlers and level after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def named_handlers(root):
    return [h for h in root.handlers if h.get_name() == HANDLER_NAME]


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_repeated_calls_keep_one_handler(self, root_logger):
        setup_logging()
        setup_logging(verbose=True)

        handlers = named_handlers(root_logger)
        assert len(handlers) == 1
        assert handlers[0].level == logging.DEBUG
        assert root_logger.level == logging.DEBUG

    def test_foreign_handlers_survive(self, root_logger):
        """Only the rosterplan console handler is replaced."""
        other = logging.NullHandler()
        root_logger.addHandler(other)
        try:
            setup_logging()
            setup_logging()
            assert other in root_logger.handlers
            assert len(named_handlers(root_logger)) == 1
        finally:
            root_logger.removeHandler(other)

    def test_returns_root_logger(self, root_logger):
        assert setup_logging() is root_logger
