"""
transport.py

Blocking HTTP transport (requests) exposed as a coroutine.

Responsibilities:
- Bearer-token authenticated JSON requests against the YouTube Data API
- HTTP -> domain error translation (see errors.py)

Does NOT:
- Retry (retry.py)
- Throttle or meter quota (scheduler.py)
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Protocol

import requests

from subscriptarr import config
from subscriptarr.errors import classify_status


class Transport(Protocol):
    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]: ...


def _clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k, v in (params or {}).items():
        if v is None:
            continue
        if isinstance(v, bool):
            out[k] = "true" if v else "false"
        else:
            out[k] = str(v)
    return out


class RequestsTransport:
    def __init__(
        self,
        base_url: str = config.API_BASE,
        timeout: int = config.DEFAULT_REQUEST_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(
        self,
        method: str,
        path: str,
        token: str,
        params: Optional[Dict[str, Any]],
        body: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        url = self.base_url + path

        try:
            response = self.session.request(
                method,
                url,
                params=_clean_params(params),
                json=body,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise classify_status(None, f"API {method} {path}: {e}") from e

        if not response.ok:
            text = response.text or ""
            raise classify_status(
                response.status_code,
                f"API {method} {path}: {response.status_code} {response.reason} {text[:300]}".rstrip(),
                body=text,
            )

        # DELETE returns 204 with no body
        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise classify_status(
                response.status_code,
                f"API {method} {path}: invalid JSON response",
                body=response.text,
            ) from e

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await asyncio.to_thread(self.send, method, path, token, params, body)

    def close(self) -> None:
        self.session.close()
