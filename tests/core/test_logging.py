import logging

import pytest
from rich.logging import RichHandler

from docgraph.core.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_installs_one_rich_handler():
    """Configuring twice keeps a single managed handler."""
    # Act
    configure_logging("DEBUG")
    configure_logging("INFO")

    # Assert
    root = logging.getLogger()
    rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
    assert len(rich_handlers) == 1
    assert root.level == logging.INFO


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("DOCGRAPH_LOG_LEVEL", "error")
    configure_logging()
    assert logging.getLogger().level == logging.ERROR


def test_unknown_level_falls_back_to_info():
    configure_logging("chatty")
    assert logging.getLogger().level == logging.INFO
