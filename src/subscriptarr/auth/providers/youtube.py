from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from subscriptarr import config
from subscriptarr.auth.base import AuthHealthResult, AuthHealthStatus
from subscriptarr.auth.errors import AuthFailed, AuthInvalid
from subscriptarr.env.paths import auth_client_secrets_file, auth_token_file
from subscriptarr.errors import ApiError
from subscriptarr.logger import get_logger
from subscriptarr.transport import RequestsTransport


_QUOTA_REASONS = ("quotaExceeded", "dailyLimitExceeded")


def _is_quota_exceeded_error(exc: Exception) -> bool:
    """
    YouTube signals quota exhaustion as 403 with
    error.errors[].reason in ('quotaExceeded', 'dailyLimitExceeded').
    """
    if not isinstance(exc, ApiError) or exc.status != 403 or not exc.body:
        return False

    try:
        data = json.loads(exc.body)
    except ValueError:
        return any(r in exc.body for r in _QUOTA_REASONS)

    errors = (data.get("error") or {}).get("errors") or [] if isinstance(data, dict) else []
    return any(isinstance(e, dict) and e.get("reason") in _QUOTA_REASONS for e in errors)


class YouTubeOAuthProvider:
    name = "youtube"

    def __init__(self) -> None:
        self._logger = get_logger("subscriptarr.auth.youtube")
        self._creds: Optional[Credentials] = None

    def ensure_ready(self) -> None:
        """
        Ensures credentials exist and are valid (refresh if expired; interactive login if needed).
        Persists token to the auth dir.
        """
        _ = self._load_or_authenticate()

    def get_token(self) -> str:
        creds = self._creds
        if creds is None or not creds.valid:
            creds = self._load_or_authenticate()
        if not creds.token:
            raise AuthFailed("Credentials carry no access token")
        return creds.token

    def health_check(self) -> AuthHealthResult:
        """
        Validates OAuth by making a cheap authenticated request.
        Treats API quota exhaustion as OAuth OK.
        """
        self._logger.info("oauth.check.start")

        try:
            token = self.get_token()
            transport = RequestsTransport()
            try:
                transport.send(
                    "GET",
                    "/channels",
                    token,
                    {"part": "id", "mine": True, "maxResults": 1},
                    None,
                )
            finally:
                transport.close()

            self._logger.info("oauth.check.ok")
            return AuthHealthResult(
                provider=self.name,
                status=AuthHealthStatus.OK,
                message="OAuth OK",
            )

        except Exception as e:
            if _is_quota_exceeded_error(e):
                self._logger.warning("oauth.check.ok_quota_exhausted")
                return AuthHealthResult(
                    provider=self.name,
                    status=AuthHealthStatus.OK_API_QUOTA,
                    message="OAuth OK (API quota exhausted)",
                )

            if isinstance(e, AuthInvalid) or (isinstance(e, ApiError) and e.status == 401):
                self._logger.error("oauth.check.auth_invalid", exc_info=e)
                return AuthHealthResult(
                    provider=self.name,
                    status=AuthHealthStatus.AUTH_INVALID,
                    message="OAuth INVALID - reauthentication required",
                )

            self._logger.error("oauth.check.failed", exc_info=e)
            return AuthHealthResult(
                provider=self.name,
                status=AuthHealthStatus.FAILED,
                message="OAuth check failed (unexpected error)",
            )

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _load_or_authenticate(self) -> Credentials:
        token_path = auth_token_file()
        secrets_path = auth_client_secrets_file()

        creds: Optional[Credentials] = None

        if token_path.exists():
            try:
                creds = Credentials.from_authorized_user_file(
                    str(token_path),
                    config.YOUTUBE_OAUTH_SCOPES,
                )
                self._logger.debug("Loaded existing OAuth credentials")
            except (OSError, ValueError) as e:
                self._logger.warning(f"Failed to load existing credentials: {e}")
                creds = None

        if creds and creds.valid:
            self._creds = creds
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                self._logger.debug("Refreshing expired OAuth token...")
                creds.refresh(Request())
                self._logger.debug("Successfully refreshed OAuth token")
            except Exception as e:
                self._logger.error(f"Failed to refresh token: {e}")
                raise AuthInvalid(str(e)) from e
            self._persist_token(token_path, creds)
            self._creds = creds
            return creds

        if not secrets_path.exists():
            raise AuthInvalid(f"Missing OAuth credentials JSON file: {secrets_path}")

        try:
            self._logger.debug("Starting OAuth authentication flow...")
            flow = InstalledAppFlow.from_client_secrets_file(
                str(secrets_path),
                config.YOUTUBE_OAUTH_SCOPES,
            )
            creds = flow.run_local_server(port=0)
            self._logger.debug("Successfully authenticated with OAuth")
        except Exception as e:
            self._logger.error(f"OAuth authentication failed: {e}")
            raise AuthInvalid(str(e)) from e

        self._persist_token(token_path, creds)
        self._creds = creds
        return creds

    def _persist_token(self, token_path: Path, creds: Credentials) -> None:
        try:
            token_path.write_text(creds.to_json(), encoding="utf-8")
            self._logger.debug("Saved OAuth token")
        except OSError as e:
            self._logger.warning(f"Failed to save OAuth token: {e}")
            return

        # Best-effort permission tightening (POSIX only)
        try:
            os.chmod(token_path, 0o600)
        except OSError as e:
            self._logger.debug(f"Could not set restrictive permissions: {e}")
