from __future__ import annotations

from subscriptarr.auth.base import AuthHealthResult, AuthHealthStatus, AuthProvider
from subscriptarr.auth.errors import AuthError, AuthFailed, AuthInvalid
from subscriptarr.auth.health import check
from subscriptarr.auth.registry import get_provider

__all__ = [
    "AuthError",
    "AuthFailed",
    "AuthHealthResult",
    "AuthHealthStatus",
    "AuthInvalid",
    "AuthProvider",
    "check",
    "get_provider",
]
