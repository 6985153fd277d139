from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------
# Project root
# ---------------------------------------------------------------------

# This file lives in src/subscriptarr/env/; the project root holds src/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent


# ---------------------------------------------------------------------
# Base directories (override-friendly)
# ---------------------------------------------------------------------


def _resolve_dir(env_var: str, default: Path) -> Path:
    """
    Resolve a directory path from an environment variable or default.
    Ensures the directory exists.
    """
    raw = os.environ.get(env_var)
    path = Path(raw).expanduser().resolve() if raw else default
    path.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------
# Public paths
# ---------------------------------------------------------------------

# Resolved on every call so env overrides made after import are honoured.


def logs_dir() -> Path:
    return _resolve_dir("SUBSCRIPTARR_LOGS_DIR", PROJECT_ROOT / "logs")


def auth_dir() -> Path:
    """OAuth tokens and client secrets."""
    return _resolve_dir("SUBSCRIPTARR_AUTH_DIR", PROJECT_ROOT / "auth")


def cache_dir() -> Path:
    """Durable storage (quota counters, cached API reads)."""
    return _resolve_dir("SUBSCRIPTARR_CACHE_DIR", PROJECT_ROOT / "cache")


def config_dir() -> Path:
    return PROJECT_ROOT / "config"


# ---------------------------------------------------------------------
# Utility / internal paths
# ---------------------------------------------------------------------


def auth_token_file(filename: str = "oauth_token.json") -> Path:
    return auth_dir() / filename


def auth_client_secrets_file(filename: str = "client_secrets.json") -> Path:
    return auth_dir() / filename


def cache_file(name: str) -> Path:
    return cache_dir() / name


# ---------------------------------------------------------------------
# Log layout helpers (used by logger)
# ---------------------------------------------------------------------


def module_logs_dir(module: str) -> Path:
    """
    Base log directory for a CLI module (e.g. sync, auth).
    """
    path = logs_dir() / module
    path.mkdir(parents=True, exist_ok=True)
    return path
