from __future__ import annotations

import argparse
import asyncio
from datetime import datetime

from subscriptarr import config
from subscriptarr.cli.common import RENDER, dispatch_subparser_help, print_table
from subscriptarr.env.paths import cache_file
from subscriptarr.progress import LogLevel, ProgressSink
from subscriptarr.storage import JsonFileStorage


def build_logs_parser(subparsers: argparse._SubParsersAction) -> None:
    logs = subparsers.add_parser("logs", help="Recent sync events")
    lsub = logs.add_subparsers(dest="logs_cmd", required=True)

    help_p = lsub.add_parser("help", help="Show help for logs")
    help_p.add_argument("path", nargs="*", help="Subcommand path (e.g. show, export)")
    help_p.set_defaults(action="help", _help_parser=logs)

    show_p = lsub.add_parser("show", help="Show recent events")
    show_p.add_argument(
        "--level",
        choices=[lvl.value for lvl in LogLevel],
        help="Only events of this level",
    )
    show_p.add_argument("--tail", type=int, default=50, help="Events from end")
    show_p.set_defaults(action="show")

    export_p = lsub.add_parser("export", help="Print recent events as JSON")
    export_p.set_defaults(action="export")

    clear_p = lsub.add_parser("clear", help="Forget recent events")
    clear_p.set_defaults(action="clear")


def _sink() -> ProgressSink:
    sink = ProgressSink(storage=JsonFileStorage(cache_file(config.STORAGE_FILENAME)))
    asyncio.run(sink.load())
    return sink


def handle_logs(args: argparse.Namespace) -> int:
    if args.action == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    sink = _sink()

    if args.action == "show":
        level = LogLevel(args.level) if args.level else None
        events = sink.events(level)
        if args.tail > 0:
            events = events[-args.tail :]
        rows = [
            [
                datetime.fromtimestamp(e.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
                e.level.value,
                e.message,
            ]
            for e in events
        ]
        print_table(["TIME", "LEVEL", "MESSAGE"], rows)
        return 0

    if args.action == "export":
        RENDER.print(sink.export(), markup=False)
        return 0

    if args.action == "clear":
        asyncio.run(sink.clear())
        RENDER.print("Cleared recent events")
        return 0

    raise RuntimeError(f"Unknown logs action: {args.action}")
