from __future__ import annotations

import argparse
import asyncio

from subscriptarr import config
from subscriptarr.cli.common import RENDER, dispatch_subparser_help
from subscriptarr.env import get_env
from subscriptarr.env.paths import cache_file
from subscriptarr.scheduler import QuotaScheduler
from subscriptarr.storage import JsonFileStorage


def build_quota_parser(subparsers: argparse._SubParsersAction) -> None:
    quota = subparsers.add_parser("quota", help="Inspect or reset the daily API quota")
    sub = quota.add_subparsers(dest="quota_cmd", required=True)

    help_p = sub.add_parser("help", help="Show help for quota")
    help_p.add_argument("path", nargs="*", help="Subcommand path")
    help_p.set_defaults(action="help", _help_parser=quota)

    status_p = sub.add_parser("status", help="Show quota used, remaining and next reset")
    status_p.set_defaults(action="status")

    reset_p = sub.add_parser("reset", help="Zero the persisted quota counter")
    reset_p.set_defaults(action="reset")


def _scheduler() -> QuotaScheduler:
    env = get_env()
    return QuotaScheduler(
        JsonFileStorage(cache_file(config.STORAGE_FILENAME)),
        limit=env.quota_limit,
        max_concurrent=env.max_concurrent,
        min_delay=env.min_delay,
        reset_hour=env.quota_reset_hour,
    )


def handle_quota(args: argparse.Namespace) -> int:
    if args.action == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    scheduler = _scheduler()

    if args.action == "status":
        asyncio.run(scheduler.initialize())
        return _print_status(scheduler)

    if args.action == "reset":
        asyncio.run(scheduler.reset_quota())
        RENDER.print("[green]Quota reset[/green]")
        return _print_status(scheduler)

    raise RuntimeError(f"Unknown quota action: {args.action}")


def _print_status(scheduler: QuotaScheduler) -> int:
    s = scheduler.status()
    hours = s["reset_in"] / 3600

    RENDER.print("\n[bold]Quota[/bold]")
    RENDER.print("─" * 50)
    RENDER.print(f"  {'used':<12} = {s['used']}")
    RENDER.print(f"  {'limit':<12} = {s['limit']}")
    RENDER.print(f"  {'remaining':<12} = {s['remaining']}")
    RENDER.print(f"  {'reset_at':<12} = {s['reset_at'].isoformat()}")
    RENDER.print(f"  {'reset_in':<12} = {hours:.1f}h")
    RENDER.print()
    return 0
