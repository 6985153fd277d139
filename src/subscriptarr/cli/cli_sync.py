from __future__ import annotations

import argparse

from subscriptarr import config
from subscriptarr.branding import SUBSCRIPTARR_BANNER, SUBSCRIPTARR_HEADER
from subscriptarr.env import get_env
from subscriptarr.logger import get_logger


def _limit(value: str) -> int:
    n = int(value)
    if not 1 <= n <= config.MAX_LIMIT:
        raise argparse.ArgumentTypeError(f"limit must be 1..{config.MAX_LIMIT}")
    return n


# ------------------------------------------------------------
# Parser
# ------------------------------------------------------------


def build_sync_parser(subparsers: argparse._SubParsersAction) -> None:
    sync = subparsers.add_parser(
        "sync", help="Mirror subscriptions into per-channel and aggregate playlists"
    )

    sync.add_argument(
        "--limit",
        type=_limit,
        default=None,
        help=f"Recent videos per channel playlist (1..{config.MAX_LIMIT})",
    )
    sync.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log planned changes without writing to YouTube",
    )
    sync.add_argument(
        "--no-update",
        dest="update",
        action="store_false",
        default=None,
        help="Always create new playlists instead of updating existing ones",
    )
    sync.add_argument("--verbose", action="store_true")
    sync.add_argument("--quiet", action="store_true")


# ------------------------------------------------------------
# Handler
# ------------------------------------------------------------


def handle_sync(args: argparse.Namespace) -> int:
    from subscriptarr.runner import RunResult, run_once

    log = get_logger("subscriptarr")

    # Force env resolution early so config errors surface before any API call
    env = get_env()

    if not env.quiet:
        log.info(SUBSCRIPTARR_BANNER)
    log.info(SUBSCRIPTARR_HEADER("Configuration").rstrip("\n"))
    log.info(f"Limit: {env.limit}")
    log.info(f"Update existing: {env.update}")
    log.info(f"Dry run: {env.dry_run}")
    log.info(f"Aggregate playlist: {env.aggregate_title}")

    result = run_once()

    # --------------------------------------------------
    # Run summary
    # --------------------------------------------------

    summary = result.summary
    if summary is not None:
        log.info("")
        log.info("Run summary:")
        log.info(f"  - Subscriptions: {summary.processed}/{summary.total}")
        for outcome in summary.channels.values():
            r = outcome.result
            log.info(
                f"  - {outcome.title}: +{r.added} -{r.removed} ~{r.reordered}"
                + (" (new)" if outcome.created else "")
            )
        if summary.aggregate is not None:
            r = summary.aggregate.result
            log.info(f"  - {summary.aggregate.title}: +{r.added} -{r.removed} ~{r.reordered}")
        if summary.failed:
            log.info(f"  - Failed: {', '.join(summary.failed)}")
        log.info("")

    # -----------------------------
    # Terminal state handling
    # -----------------------------

    if result.overall == RunResult.OK:
        log.info("Done: OK (playlists up to date)")
    elif result.overall == RunResult.QUOTA_EXHAUSTED:
        log.warning("Done: quota exhausted (playlists may be incomplete)")
    elif result.overall == RunResult.AUTH_INVALID:
        log.error("Done: OAuth invalid (reauth required)")
    else:
        log.error("Done: failed")

    log.info(f"RUN_STATUS={result.overall.value}")
    return result.exit_code
