from __future__ import annotations

import argparse

from rich.console import Console

# Plain stdout console for command output (logs go through RichHandler)
RENDER = Console(soft_wrap=True, highlight=False)


def dispatch_subparser_help(
    parser: argparse.ArgumentParser, path: list[str] | None
) -> int:
    """
    Implements consistent `X help [subcmd ...]` behavior for a subtree parser.
    """
    if not path:
        parser.print_help()
        return 0

    try:
        parser.parse_args(path + ["--help"])
    except SystemExit:
        pass
    return 0


def print_table(headers: list[str], rows: list[list[str]]) -> None:
    """
    Simple fixed-width table printer for CLI output.
    """
    if not rows:
        RENDER.print("(no results)")
        return

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    fmt = "  ".join(f"{{:{w}}}" for w in widths)

    RENDER.print(fmt.format(*headers), markup=False)
    RENDER.print(fmt.format(*("-" * w for w in widths)), markup=False)

    for row in rows:
        RENDER.print(fmt.format(*(str(c) for c in row)), markup=False)
