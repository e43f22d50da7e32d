"""Centralised settings for the webreader backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Content limits
    # ------------------------------------------------------------------
    default_max_length: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_MAX_LENGTH", "50000"))
    )
    default_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_MAX_TOKENS", "100000"))
    )

    # ------------------------------------------------------------------
    # HTTP fetch
    # ------------------------------------------------------------------
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "10.0"))
    )
    max_response_size: int = field(
        default_factory=lambda: int(os.environ.get("MAX_RESPONSE_SIZE", "10485760"))
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("MAX_REDIRECTS", "5"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "USER_AGENT", "webreader/1.0 (+https://github.com/webreader)"
        )
    )

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------
    max_concurrent: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENT", "3"))
    )
    per_domain_interval: float = field(
        default_factory=lambda: float(os.environ.get("PER_DOMAIN_INTERVAL", "2.0"))
    )

    # ------------------------------------------------------------------
    # Page cache
    # ------------------------------------------------------------------
    cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_TTL", "3600"))
    )
    cache_max_keys: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_MAX_KEYS", "500"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )


# Module-level singleton, import this everywhere:
#   from webreader.config import settings
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Send ``webreader`` log records to stderr at *level* (default: settings)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
