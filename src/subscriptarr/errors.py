"""
errors.py

Typed error taxonomy for remote API calls.

Every failure that leaves the transport is one of:
- TransportError      (no status; network / timeout)      -> retryable
- RateLimitedError    (403 / 429)                         -> retryable
- ServerError         (5xx)                               -> retryable
- ClientError         (other 4xx, e.g. 404)               -> not retryable
- QuotaExceededError  (local daily budget exhausted)      -> not retryable
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from subscriptarr import config


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    CLIENT = "client"
    QUOTA_EXCEEDED = "quota_exceeded"


class ApiError(Exception):
    """Base for all remote API failures. Carries a fixed {kind, status, message, body} shape."""

    kind: ErrorKind = ErrorKind.CLIENT

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"status={self.status!r}, message={self.message!r})"
        )


class TransportError(ApiError):
    """Network-level failure: no HTTP status was received."""

    kind = ErrorKind.TRANSPORT


class RateLimitedError(ApiError):
    kind = ErrorKind.RATE_LIMITED


class ServerError(ApiError):
    kind = ErrorKind.SERVER


class ClientError(ApiError):
    kind = ErrorKind.CLIENT


class QuotaExceededError(ApiError):
    """Raised by the scheduler when admitting a call would overshoot the daily budget."""

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(self, message: str, reset_in: float, used: int = 0, limit: int = 0):
        super().__init__(message)
        self.reset_in = reset_in
        self.used = used
        self.limit = limit


def classify_status(
    status: Optional[int], message: str, body: Optional[str] = None
) -> ApiError:
    """Map an HTTP status (or its absence) to the matching ApiError subclass."""
    if status is None:
        return TransportError(message, body=body)
    if status in (403, 429):
        return RateLimitedError(message, status=status, body=body)
    if 500 <= status <= 599:
        return ServerError(message, status=status, body=body)
    return ClientError(message, status=status, body=body)


def is_retryable(error: BaseException) -> bool:
    if isinstance(error, QuotaExceededError):
        return False

    if isinstance(error, ApiError):
        if error.kind in (ErrorKind.TRANSPORT, ErrorKind.RATE_LIMITED, ErrorKind.SERVER):
            return True
        return error.status in config.RETRYABLE_STATUS_CODES

    # Foreign exceptions: honour a carried status if any, else treat as network failure.
    status = getattr(error, "status", None)
    if not status:
        return True
    if not isinstance(status, int):
        return False
    return status in config.RETRYABLE_STATUS_CODES or 500 <= status <= 599
