from __future__ import annotations

from typing import Optional


class CoralogixError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigurationError(CoralogixError):
    """Credentials or domain missing / unsupported."""


class TransportError(CoralogixError):
    """The service could not be asked: network failure or non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(TransportError):
    """Connection failure or timeout before any HTTP status was received."""


class AuthenticationError(TransportError):
    """401/403 from the service."""


class BadRequestError(TransportError):
    """400 from the service; the message carries the service explanation."""


class RateLimitError(TransportError):
    """429 from the service. Callers may back off and try again later."""


class HttpStatusError(TransportError):
    """Any other non-2xx status."""


class UnexpectedResponseError(CoralogixError):
    """A 2xx response whose body does not have the expected shape."""
