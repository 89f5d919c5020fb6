from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Optional

import requests

from .config import Settings, load_settings
from .diagnostics import get_logger
from .errors import (
    AuthenticationError,
    BadRequestError,
    HttpStatusError,
    NetworkError,
    RateLimitError,
)

logger = get_logger("http")


class CoralogixClient:
    """Authenticated HTTP access to the Coralogix API.

    Headers, base URL and timeout are fixed at construction; the instance is
    shared by every tool call and never mutated afterwards.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_s: float = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoralogixClient":
        return cls(api_key=settings.api_key, base_url=settings.base_url, timeout_s=settings.timeout_s)

    def request(self, method: str, path: str, body: Optional[Any] = None) -> str:
        """Send one request and return the raw response text.

        Raises a :class:`TransportError` subclass on network failure or on any
        non-2xx status.
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s body=%s", method, path, json.dumps(body) if body is not None else "-")
        try:
            r = self._session.request(method, url, json=body, timeout=self.timeout_s)
        except requests.Timeout as exc:
            raise NetworkError(f"Network error - request timed out after {self.timeout_s:g}s") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Network error - {exc}") from exc

        if r.status_code >= 400:
            raise _status_error(r)

        if not r.encoding:
            r.encoding = "utf-8"
        text = r.text
        logger.debug("%s %s -> %d (%d bytes)", method, path, r.status_code, len(text))
        return text


def _status_error(r: requests.Response) -> Exception:
    status = r.status_code
    # Surface the service's own explanation when the body carries one
    try:
        err = r.json()
        reason = err.get("message") if isinstance(err, dict) else None
    except ValueError:
        reason = None

    if status in (401, 403):
        return AuthenticationError(
            f"Authentication failed (HTTP {status}). Please check your API key and permissions.",
            status,
        )
    if status == 400:
        return BadRequestError(f"Bad request (HTTP 400): {reason or 'Invalid query or parameters'}", status)
    if status == 429:
        return RateLimitError(
            "Rate limit exceeded (HTTP 429). Please wait before making more requests.",
            status,
        )
    extra = f": {reason}" if reason else ""
    return HttpStatusError(f"HTTP {status}{extra}", status)


@lru_cache(maxsize=1)
def get_client() -> CoralogixClient:
    """Process-wide client, created on first use from the environment."""
    return CoralogixClient.from_settings(load_settings())
