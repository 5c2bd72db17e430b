"""Тесты configure_logging."""

import logging

import pytest

from src.ledger import configure_logging


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_level_by_name(self):
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO

    def test_numeric_level(self):
        configure_logging(logging.WARNING)
        assert logging.getLogger().level == logging.WARNING
