from __future__ import annotations

import argparse
import sys

from subscriptarr.bootstrap import bootstrap_base_env, bootstrap_run_context


def _dispatch_help(parser: argparse.ArgumentParser, argv: list[str]) -> int:
    # Support:
    #   subscriptarr help
    #   subscriptarr help quota
    #   subscriptarr quota help
    if argv and argv[0] == "help":
        argv = argv[1:]

    if not argv:
        parser.print_help()
        return 0

    try:
        build_parser().parse_args(argv + ["--help"])
    except SystemExit:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="subscriptarr",
        description="Mirror subscribed channels' recent uploads into YouTube playlists.",
    )

    sub = p.add_subparsers(dest="command", required=True)

    help_cmd = sub.add_parser("help", help="Show help")
    help_cmd.add_argument("path", nargs="*", help="Command path to show help for")
    help_cmd.set_defaults(_help=True)

    # Keep imports inside builder to avoid early side effects.
    from subscriptarr.cli.cli_auth import build_auth_parser
    from subscriptarr.cli.cli_cache import build_cache_parser
    from subscriptarr.cli.cli_env import build_env_parser
    from subscriptarr.cli.cli_logs import build_logs_parser
    from subscriptarr.cli.cli_quota import build_quota_parser
    from subscriptarr.cli.cli_sync import build_sync_parser

    build_sync_parser(sub)
    build_quota_parser(sub)
    build_cache_parser(sub)
    build_auth_parser(sub)
    build_env_parser(sub)
    build_logs_parser(sub)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    bootstrap_base_env(required=False)

    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "_help", False):
        return _dispatch_help(parser, argv)

    # Stamp run context before logging reads it
    bootstrap_run_context(
        command=args.command,
        verbose=bool(getattr(args, "verbose", False)) or None,
        quiet=bool(getattr(args, "quiet", False)) or None,
        limit=getattr(args, "limit", None),
        dry_run=getattr(args, "dry_run", None),
        update=getattr(args, "update", None),
    )

    from subscriptarr.env import ConfigError
    from subscriptarr.logger import get_logger, init_logging

    init_logging(module=args.command)

    log = get_logger(__name__)
    log.debug("Subscriptarr starting")
    log.debug(f"Command: {args.command}")

    try:
        return _dispatch(args)
    except ConfigError as e:
        log.error(f"Configuration error: {e}")
        return 20


def _dispatch(args: argparse.Namespace) -> int:
    if args.command == "sync":
        from subscriptarr.cli.cli_sync import handle_sync

        return handle_sync(args)

    if args.command == "quota":
        from subscriptarr.cli.cli_quota import handle_quota

        return handle_quota(args)

    if args.command == "cache":
        from subscriptarr.cli.cli_cache import handle_cache

        return handle_cache(args)

    if args.command == "auth":
        from subscriptarr.cli.cli_auth import handle_auth

        return handle_auth(args)

    if args.command == "env":
        from subscriptarr.cli.cli_env import handle_env

        return handle_env(args)

    if args.command == "logs":
        from subscriptarr.cli.cli_logs import handle_logs

        return handle_logs(args)

    raise RuntimeError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
