from __future__ import annotations

import argparse

from rich.text import Text

from subscriptarr.auth import AuthHealthStatus, check
from subscriptarr.cli.common import RENDER
from subscriptarr.env import get_env
from subscriptarr.logger import get_logger


# ------------------------------------------------------------
# Parser
# ------------------------------------------------------------


def build_auth_parser(subparsers: argparse._SubParsersAction) -> None:
    auth = subparsers.add_parser(
        "auth",
        help="Check OAuth health and reauthenticate if required",
    )

    auth.add_argument("--verbose", action="store_true", help="Verbose console output")
    auth.add_argument("--quiet", action="store_true", help="Suppress console output")

    auth.add_argument(
        "--provider",
        default="youtube",
        help="Auth provider to check (default: youtube)",
    )

    auth.set_defaults(action="auth")


# ------------------------------------------------------------
# Handler
# ------------------------------------------------------------


def handle_auth(args: argparse.Namespace) -> int:
    logger = get_logger("subscriptarr.auth")
    env = get_env()

    logger.debug(f"Checking auth provider: {args.provider}")
    result = check(args.provider)

    if result.status == AuthHealthStatus.OK:
        if not env.quiet:
            msg = Text("OAuth OK", style="green")
            if env.verbose:
                msg.append(" (token valid and usable)", style="dim")
            RENDER.print(msg)
        return 0

    if result.status == AuthHealthStatus.OK_API_QUOTA:
        if not env.quiet:
            msg = Text("OAuth OK", style="green")
            msg.append(" (API quota exhausted)", style="yellow")
            RENDER.print(msg)
        return 0

    if result.status == AuthHealthStatus.AUTH_INVALID:
        if not env.quiet:
            RENDER.print(Text("OAuth INVALID - reauthentication required", style="red"))
        return 12

    if not env.quiet:
        RENDER.print(Text("OAuth check failed (unexpected error)", style="red"))
    return 20
