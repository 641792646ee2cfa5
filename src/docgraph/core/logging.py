"""Centralized logging configuration for docgraph."""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["configure_logging", "console"]

_LOG_LEVEL_ENV: Final[str] = "DOCGRAPH_LOG_LEVEL"
_DEFAULT_LEVEL_NAME: Final[str] = "INFO"
_MANAGED_ATTR: Final[str] = "_docgraph_managed"

console = Console()


def _resolve_level(level: str | None) -> int:
    """Return the logging level from the argument or the environment."""
    level_name = (level or os.getenv(_LOG_LEVEL_ENV, _DEFAULT_LEVEL_NAME)).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Configure logging once with a Rich handler."""
    root_logger = logging.getLogger()

    managed = [h for h in root_logger.handlers if getattr(h, _MANAGED_ATTR, False)]
    if not managed:
        root_logger.handlers.clear()
        handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(handler, _MANAGED_ATTR, True)
        root_logger.addHandler(handler)

    root_logger.setLevel(_resolve_level(level))

    # Quieten down noisy libraries
    logging.getLogger("ibis").setLevel(logging.WARNING)
    logging.captureWarnings(True)
