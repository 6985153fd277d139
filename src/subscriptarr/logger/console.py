from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from subscriptarr.env import get_logging_env

# Console used by RichHandler (stdout so captured output stays in one stream)
UI_CONSOLE = Console(
    file=sys.stdout,
    soft_wrap=True,
)


class ConsoleGateFilter(logging.Filter):
    """
    Gate console output when quiet or interactive UI mode is enabled.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        le = get_logging_env()

        if le.quiet:
            return False

        # In interactive mode, only allow logs explicitly marked as passthrough
        if le.interactive and not getattr(record, "passthrough", False):
            return False

        return True


def build_console_handler(level: int = logging.NOTSET) -> logging.Handler:
    handler = RichHandler(
        console=UI_CONSOLE,
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)

    # RichHandler renders the level column; the formatter must not repeat it.
    handler.setFormatter(logging.Formatter("%(message)s"))

    handler.addFilter(ConsoleGateFilter())
    return handler
