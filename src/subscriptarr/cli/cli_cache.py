from __future__ import annotations

import argparse
import asyncio

from subscriptarr import config
from subscriptarr.cache import ResponseCache
from subscriptarr.cli.common import RENDER, dispatch_subparser_help
from subscriptarr.env import get_env
from subscriptarr.env.paths import cache_file
from subscriptarr.storage import JsonFileStorage


def build_cache_parser(subparsers: argparse._SubParsersAction) -> None:
    cache = subparsers.add_parser("cache", help="Response cache utilities")
    sub = cache.add_subparsers(dest="cache_cmd", required=True)

    help_p = sub.add_parser("help", help="Show help for cache")
    help_p.add_argument("path", nargs="*", help="Subcommand path")
    help_p.set_defaults(action="help", _help_parser=cache)

    stats_p = sub.add_parser("stats", help="Show cache entry counts")
    stats_p.set_defaults(action="stats")

    clear_p = sub.add_parser("clear", help="Drop cached responses")
    clear_p.add_argument(
        "--prefix",
        default=None,
        help="Only drop keys starting with this prefix (e.g. 'playlists')",
    )
    clear_p.set_defaults(action="clear")


def _cache() -> ResponseCache:
    env = get_env()
    return ResponseCache(
        JsonFileStorage(cache_file(config.STORAGE_FILENAME)), ttl=env.cache_ttl
    )


def handle_cache(args: argparse.Namespace) -> int:
    if args.action == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    cache = _cache()

    if args.action == "stats":
        stats = asyncio.run(cache.stats())
        RENDER.print("\n[bold]Cache[/bold]")
        RENDER.print("─" * 50)
        for key, value in stats.items():
            RENDER.print(f"  {key:<14} = {value}")
        RENDER.print()
        return 0

    if args.action == "clear":
        if args.prefix:
            prefix = args.prefix
            if not prefix.startswith(config.CACHE_NAMESPACE):
                prefix = config.CACHE_NAMESPACE + prefix
            removed = asyncio.run(cache.clear_prefix(prefix))
            RENDER.print(f"Removed {removed} cached entries with prefix '{prefix}'")
        else:
            removed = asyncio.run(cache.clear_all())
            RENDER.print(f"Removed {removed} cached entries")
        return 0

    raise RuntimeError(f"Unknown cache action: {args.action}")
