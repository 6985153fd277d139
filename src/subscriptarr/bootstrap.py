"""bootstrap.py

Process bootstrap for Subscriptarr.

Rules:
1) Only bootstrap mutates os.environ for shared run context.
2) Call bootstrap_base_env() once at the true entrypoint.
3) Call bootstrap_run_context() after argparse parsing, before init_logging().

Everything else treats environment variables as the source of truth.
"""

from __future__ import annotations

import os
from datetime import datetime

from dotenv import load_dotenv

from subscriptarr.env import reset_env_caches
from subscriptarr.env.paths import config_dir


_BOOTSTRAPPED = False


def bootstrap_base_env(*, env_file: str = ".env", required: bool = False) -> None:
    global _BOOTSTRAPPED
    if _BOOTSTRAPPED:
        return

    dotenv_path = config_dir() / env_file

    if dotenv_path.exists():
        # Real environment wins over the file.
        load_dotenv(dotenv_path, override=False)
    elif required:
        raise RuntimeError(
            f"Missing required env file: {dotenv_path}\n"
            "Expected config/.env relative to project root."
        )

    os.environ.setdefault(
        "SUBSCRIPTARR_RUN_ID",
        datetime.now().strftime("%Y-%m-%d_%H-%M-%S"),
    )

    reset_env_caches()
    _BOOTSTRAPPED = True


def bootstrap_run_context(
    *,
    command: str,
    verbose: bool | None = None,
    quiet: bool | None = None,
    limit: int | None = None,
    dry_run: bool | None = None,
    update: bool | None = None,
) -> None:
    """Establish run-scoped context used by logging and the sync job."""

    os.environ["SUBSCRIPTARR_COMMAND"] = command

    if verbose is not None:
        os.environ["SUBSCRIPTARR_VERBOSE"] = "1" if verbose else "0"
    if quiet is not None:
        os.environ["SUBSCRIPTARR_QUIET"] = "1" if quiet else "0"

    if limit is not None:
        os.environ["SUBSCRIPTARR_LIMIT"] = str(limit)
    if dry_run is not None:
        os.environ["SUBSCRIPTARR_DRY_RUN"] = "1" if dry_run else "0"
    if update is not None:
        os.environ["SUBSCRIPTARR_UPDATE"] = "1" if update else "0"

    # Context changes must invalidate cached env views.
    reset_env_caches()
