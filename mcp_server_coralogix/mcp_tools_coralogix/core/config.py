"""Coralogix API configuration."""

from __future__ import annotations

import os
from typing import Dict, Final, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from .errors import ConfigurationError

DOMAIN_ENDPOINTS: Final[Dict[str, str]] = {
    "coralogix.com": "https://api.coralogix.com",
    "coralogix.us": "https://api.coralogix.us",
    "cx498.coralogix.com": "https://api.cx498.coralogix.com",
    "eu2.coralogix.com": "https://api.eu2.coralogix.com",
    "coralogix.in": "https://api.coralogix.in",
    "coralogixsg.com": "https://api.coralogixsg.com",
    "ap3.coralogix.com": "https://api.ap3.coralogix.com",
}

API_KEY_ENV: Final = "CORALOGIX_API_KEY"
DOMAIN_ENV: Final = "CORALOGIX_DOMAIN"
LOG_LEVEL_ENV: Final = "CORALOGIX_LOG_LEVEL"

# Per underlying HTTP call; there is no overall deadline across a poll loop.
REQUEST_TIMEOUT_S: Final = 30


class Settings(BaseModel):
    """Resolved connection settings."""
    model_config = ConfigDict(frozen=True)

    api_key: str
    domain: str
    base_url: str
    log_level: str = "INFO"
    timeout_s: float = REQUEST_TIMEOUT_S


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from ``environ`` (defaults to ``os.environ`` plus ``.env``)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    api_key = (environ.get(API_KEY_ENV) or "").strip()
    domain = (environ.get(DOMAIN_ENV) or "").strip().lower()

    missing = [name for name, value in ((API_KEY_ENV, api_key), (DOMAIN_ENV, domain)) if not value]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    base_url = DOMAIN_ENDPOINTS.get(domain)
    if base_url is None:
        raise ConfigurationError(
            f"Unsupported Coralogix domain: {domain}. "
            f"Supported domains: {', '.join(DOMAIN_ENDPOINTS)}"
        )

    return Settings(
        api_key=api_key,
        domain=domain,
        base_url=base_url,
        log_level=(environ.get(LOG_LEVEL_ENV) or "INFO").strip().upper(),
    )
