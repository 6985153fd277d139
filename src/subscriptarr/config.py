"""
config.py

Central constants for Subscriptarr.

This file intentionally contains ONLY:
- Constants
- Tunables (defaults)
- Cache / storage key names

It must NOT contain:
- Business logic
- API calls
- Reading environment variables

Runtime configuration (env vars, CLI flags) belongs in:
- env/env.py
- cli/*.py
"""

from __future__ import annotations

from datetime import timedelta, timezone

# ============================================================
# YOUTUBE API - ENDPOINTS / SCOPES
# ============================================================

API_BASE = "https://www.googleapis.com/youtube/v3"

YOUTUBE_OAUTH_SCOPES = ["https://www.googleapis.com/auth/youtube"]

# YouTube API max page size for list endpoints is 50
YOUTUBE_PAGE_SIZE = 50

# ============================================================
# QUOTA COSTS (units per call type)
# ============================================================

QUOTA_COST_LIST = 1
QUOTA_COST_INSERT = 50
QUOTA_COST_UPDATE = 50
QUOTA_COST_DELETE = 50

# ============================================================
# RETRY DEFAULTS (env.py may override)
# ============================================================

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_SEC = 1.0
DEFAULT_MAX_DELAY_SEC = 32.0
DEFAULT_JITTER_MAX_SEC = 0.3

RETRYABLE_STATUS_CODES = frozenset({403, 429, 500, 502, 503, 504})

DEFAULT_REQUEST_TIMEOUT_SEC = 30

# ============================================================
# SCHEDULER DEFAULTS (env.py may override)
# ============================================================

DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MIN_DELAY_SEC = 0.1
DEFAULT_DAILY_QUOTA_LIMIT = 10_000

# YouTube quota resets at midnight Pacific Time. Fixed offset, no DST.
QUOTA_RESET_TZ = timezone(timedelta(hours=-8), "PST")
DEFAULT_QUOTA_RESET_HOUR = 0

# ============================================================
# CACHE
# ============================================================

DEFAULT_CACHE_TTL_SEC = 60 * 60  # 1 hour

CACHE_NAMESPACE = "cache:"
CACHE_KEY_SUBSCRIPTIONS = "cache:subscriptions"
CACHE_KEY_CHANNEL = "cache:channel"
CACHE_KEY_PLAYLISTS = "cache:playlists"
CACHE_KEY_PLAYLIST_ITEMS = "cache:playlistItems"

# ============================================================
# DURABLE STORAGE KEYS
# ============================================================

STORAGE_KEY_QUOTA_USED = "quotaUsed"
STORAGE_KEY_QUOTA_RESET = "quotaReset"
STORAGE_KEY_LOGS = "logs"
MAX_PERSISTED_EVENTS = 100

STORAGE_FILENAME = "storage.json"

# ============================================================
# JOB DEFAULTS
# ============================================================

DEFAULT_LIMIT = 10
MAX_LIMIT = 50

CHANNEL_PLAYLIST_TITLE = "{channel} - Latest"
CHANNEL_PLAYLIST_DESCRIPTION = "Most recent uploads from {channel}."

DEFAULT_AGGREGATE_TITLE = "Subscriptions - Latest"
AGGREGATE_PLAYLIST_DESCRIPTION = "The latest upload from every subscribed channel."

DEFAULT_PRIVACY_STATUS = "private"

# Log a progress line every N processed channels
PROGRESS_LOG_EVERY = 5
