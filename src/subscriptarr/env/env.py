from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Optional

from subscriptarr import config

# ------------------------------------------------------------
# Errors / helpers
# ------------------------------------------------------------


class ConfigError(RuntimeError):
    pass


def _as_bool(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(v: str, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return default


def _as_float(v: str, default: float) -> float:
    try:
        return float(v)
    except Exception:
        return default


def _positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigError(f"{name} must be > 0 (got {value})")


# ------------------------------------------------------------
# Logging environment (SAFE ANYWHERE)
# ------------------------------------------------------------


@dataclass(frozen=True)
class LoggingEnvironment:
    log_level: str
    log_retention: int
    verbose: bool
    quiet: bool
    interactive: bool


def get_logging_env() -> LoggingEnvironment:
    log_level = os.environ.get("LOG_LEVEL", "INFO")
    log_retention = _as_int(os.environ.get("LOG_RETENTION", "30"), 30)

    verbose = _as_bool(os.environ.get("SUBSCRIPTARR_VERBOSE", "0"))
    quiet = _as_bool(os.environ.get("SUBSCRIPTARR_QUIET", "0"))

    ui_requested = _as_bool(os.environ.get("SUBSCRIPTARR_UI", "0"))
    interactive = ui_requested and not quiet and sys.stdout.isatty()

    return LoggingEnvironment(
        log_level=log_level,
        log_retention=log_retention,
        verbose=verbose,
        quiet=quiet,
        interactive=interactive,
    )


# ------------------------------------------------------------
# Full runtime environment
# ------------------------------------------------------------


class Environment:
    def __init__(self):
        # Logging snapshot (immutable)
        self._logging = get_logging_env()

        # ---- JOB ----
        self.command = os.environ.get("SUBSCRIPTARR_COMMAND", "bootstrap")
        self.limit = _as_int(
            os.environ.get("SUBSCRIPTARR_LIMIT", str(config.DEFAULT_LIMIT)),
            config.DEFAULT_LIMIT,
        )
        self.update = _as_bool(os.environ.get("SUBSCRIPTARR_UPDATE", "1"))
        self.dry_run = _as_bool(os.environ.get("SUBSCRIPTARR_DRY_RUN", "0"))
        self.aggregate_title = (
            os.environ.get("SUBSCRIPTARR_AGGREGATE_TITLE", "").strip()
            or config.DEFAULT_AGGREGATE_TITLE
        )

        # ---- QUOTA / SCHEDULER ----
        self.quota_limit = _as_int(
            os.environ.get("SUBSCRIPTARR_QUOTA_LIMIT", ""),
            config.DEFAULT_DAILY_QUOTA_LIMIT,
        )
        self.quota_reset_hour = _as_int(
            os.environ.get("SUBSCRIPTARR_QUOTA_RESET_HOUR", ""),
            config.DEFAULT_QUOTA_RESET_HOUR,
        )
        self.max_concurrent = _as_int(
            os.environ.get("SUBSCRIPTARR_MAX_CONCURRENT", ""),
            config.DEFAULT_MAX_CONCURRENT,
        )
        self.min_delay = _as_float(
            os.environ.get("SUBSCRIPTARR_MIN_DELAY_SEC", ""),
            config.DEFAULT_MIN_DELAY_SEC,
        )

        # ---- CACHE ----
        self.cache_ttl = _as_float(
            os.environ.get("SUBSCRIPTARR_CACHE_TTL_SEC", ""),
            float(config.DEFAULT_CACHE_TTL_SEC),
        )

        # ---- RETRY / HTTP ----
        self.max_attempts = _as_int(
            os.environ.get("SUBSCRIPTARR_MAX_ATTEMPTS", ""),
            config.DEFAULT_MAX_ATTEMPTS,
        )
        self.base_delay = _as_float(
            os.environ.get("SUBSCRIPTARR_BASE_DELAY_SEC", ""),
            config.DEFAULT_BASE_DELAY_SEC,
        )
        self.max_delay = _as_float(
            os.environ.get("SUBSCRIPTARR_MAX_DELAY_SEC", ""),
            config.DEFAULT_MAX_DELAY_SEC,
        )
        self.request_timeout = _as_int(
            os.environ.get("SUBSCRIPTARR_REQUEST_TIMEOUT", ""),
            config.DEFAULT_REQUEST_TIMEOUT_SEC,
        )

        self._validate()

    def _validate(self) -> None:
        _positive("SUBSCRIPTARR_QUOTA_LIMIT", self.quota_limit)
        _positive("SUBSCRIPTARR_MAX_CONCURRENT", self.max_concurrent)
        _positive("SUBSCRIPTARR_MAX_ATTEMPTS", self.max_attempts)
        _positive("SUBSCRIPTARR_CACHE_TTL_SEC", self.cache_ttl)

        if self.min_delay < 0:
            raise ConfigError("SUBSCRIPTARR_MIN_DELAY_SEC must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ConfigError("Retry delays must be >= 0")
        if not 0 <= self.quota_reset_hour <= 23:
            raise ConfigError(
                f"SUBSCRIPTARR_QUOTA_RESET_HOUR must be 0..23 (got {self.quota_reset_hour})"
            )

    def as_dict(self) -> dict:
        return {
            "Logging": {
                "log_level": self.log_level,
                "log_retention": self.log_retention,
                "verbose": self.verbose,
                "quiet": self.quiet,
            },
            "Job": {
                "command": self.command,
                "limit": self.limit,
                "update": self.update,
                "dry_run": self.dry_run,
                "aggregate_title": self.aggregate_title,
            },
            "Quota": {
                "quota_limit": self.quota_limit,
                "quota_reset_hour": self.quota_reset_hour,
                "max_concurrent": self.max_concurrent,
                "min_delay": self.min_delay,
            },
            "Cache": {
                "cache_ttl": self.cache_ttl,
            },
            "Retry": {
                "max_attempts": self.max_attempts,
                "base_delay": self.base_delay,
                "max_delay": self.max_delay,
                "request_timeout": self.request_timeout,
            },
        }

    # ---- logging passthrough ----
    @property
    def log_level(self) -> str:
        return self._logging.log_level

    @property
    def log_retention(self) -> int:
        return self._logging.log_retention

    @property
    def verbose(self) -> bool:
        return self._logging.verbose

    @property
    def quiet(self) -> bool:
        return self._logging.quiet

    @property
    def interactive(self) -> bool:
        return self._logging.interactive


_ENV: Optional[Environment] = None


def reset_env_caches() -> None:
    """Invalidate cached views of environment variables."""
    global _ENV
    _ENV = None


def get_env() -> Environment:
    global _ENV
    if _ENV is None:
        _ENV = Environment()
    return _ENV
