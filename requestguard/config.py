"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import Any

from requestguard.orchestration.config import DEFAULT_CRYPTO_KEY


def _get_int_env(name: str, default: int | None) -> int | None:
    """Get an integer value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set or not an integer.

    Returns:
        Integer value from environment.
    """
    value = os.getenv(name, "").strip()
    if not value:
        return default
    if value.lower() in ("none", "off", "unbounded"):
        return None
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """Get a float value from environment variable."""
    value = os.getenv(name, "").strip()
    try:
        return float(value) if value else default
    except ValueError:
        return default


@dataclass
class Settings:
    """Client settings loaded from environment variables.

    Attributes:
        CRYPTO_KEY: Cipher key for the crypto policy.
        CACHE_TIME_MS: Default cache time to live in milliseconds.
        CACHE_MAX_SIZE: Default cache entry limit (None for unbounded).
        RETRY_COUNT: Default number of retries.
        RETRY_DELAY_MS: Default delay between retries in milliseconds.
        DEDUP_TIMEOUT_MS: Inactivity timeout for in-flight requests.
        HTTP_TIMEOUT: Transport timeout in seconds.
    """

    CRYPTO_KEY: str = DEFAULT_CRYPTO_KEY
    CACHE_TIME_MS: int = 5000
    CACHE_MAX_SIZE: int | None = 50
    RETRY_COUNT: int = 3
    RETRY_DELAY_MS: int = 500
    DEDUP_TIMEOUT_MS: int | None = 5000
    HTTP_TIMEOUT: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            CRYPTO_KEY=os.getenv("REQUESTGUARD_CRYPTO_KEY", DEFAULT_CRYPTO_KEY),
            CACHE_TIME_MS=_get_int_env("REQUESTGUARD_CACHE_TIME_MS", 5000) or 5000,
            CACHE_MAX_SIZE=_get_int_env("REQUESTGUARD_CACHE_MAX_SIZE", 50),
            RETRY_COUNT=_get_int_env("REQUESTGUARD_RETRY_COUNT", 3) or 0,
            RETRY_DELAY_MS=_get_int_env("REQUESTGUARD_RETRY_DELAY_MS", 500) or 0,
            DEDUP_TIMEOUT_MS=_get_int_env("REQUESTGUARD_DEDUP_TIMEOUT_MS", 5000),
            HTTP_TIMEOUT=_get_float_env("REQUESTGUARD_HTTP_TIMEOUT", 30.0),
        )

    def policy_defaults(self) -> dict[str, Any]:
        """Global policy options derived from these settings.

        Only options are set here; whether each policy is on by default is
        left to the resolver's builtin defaults.
        """
        return {
            "cache": {
                "enabled": False,
                "cache_time": self.CACHE_TIME_MS,
                "max_size": self.CACHE_MAX_SIZE,
            },
            "retry": {"count": self.RETRY_COUNT, "delay": self.RETRY_DELAY_MS},
            "duplicated": {"timeout": self.DEDUP_TIMEOUT_MS},
            "crypto": {"enabled": False, "key": self.CRYPTO_KEY},
        }
