"""Logging setup with Rich support."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a Rich handler on the root logger.

    Args:
        level: Logging level name.
        console: Console to log to; stderr if not set.
    """
    if console is None:
        console = Console(stderr=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()
    root_logger.addHandler(
        RichHandler(
            console=console,
            show_path=False,
            show_time=True,
            rich_tracebacks=True,
        )
    )


__all__ = ["setup_logging"]
