"""Tests for environment-driven settings."""

import os
from unittest.mock import patch

from requestguard.config import Settings, _get_float_env, _get_int_env
from requestguard.orchestration.config import DEFAULT_CRYPTO_KEY, ConfigResolver


class TestEnvHelpers:
    """Tests for the environment parsing helpers."""

    def test_int_env(self) -> None:
        """Test integer parsing with fallbacks."""
        with patch.dict(os.environ, {"RG_A": "42", "RG_B": "nope", "RG_C": "off"}):
            assert _get_int_env("RG_A", 1) == 42
            assert _get_int_env("RG_B", 1) == 1
            assert _get_int_env("RG_C", 1) is None
            assert _get_int_env("RG_MISSING", 7) == 7

    def test_float_env(self) -> None:
        """Test float parsing with fallbacks."""
        with patch.dict(os.environ, {"RG_F": "2.5", "RG_G": "x"}):
            assert _get_float_env("RG_F", 1.0) == 2.5
            assert _get_float_env("RG_G", 1.0) == 1.0


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        """Test default values."""
        settings = Settings()
        assert settings.CRYPTO_KEY == DEFAULT_CRYPTO_KEY
        assert settings.CACHE_TIME_MS == 5000
        assert settings.CACHE_MAX_SIZE == 50
        assert settings.RETRY_COUNT == 3
        assert settings.RETRY_DELAY_MS == 500
        assert settings.DEDUP_TIMEOUT_MS == 5000
        assert settings.HTTP_TIMEOUT == 30.0

    def test_from_env(self) -> None:
        """Test loading from environment variables."""
        env = {
            "REQUESTGUARD_CRYPTO_KEY": "fedcba9876543210",
            "REQUESTGUARD_CACHE_TIME_MS": "1000",
            "REQUESTGUARD_CACHE_MAX_SIZE": "unbounded",
            "REQUESTGUARD_RETRY_COUNT": "0",
            "REQUESTGUARD_RETRY_DELAY_MS": "50",
            "REQUESTGUARD_DEDUP_TIMEOUT_MS": "none",
            "REQUESTGUARD_HTTP_TIMEOUT": "2.5",
        }
        with patch.dict(os.environ, env):
            settings = Settings.from_env()

        assert settings.CRYPTO_KEY == "fedcba9876543210"
        assert settings.CACHE_TIME_MS == 1000
        assert settings.CACHE_MAX_SIZE is None
        assert settings.RETRY_COUNT == 0
        assert settings.RETRY_DELAY_MS == 50
        assert settings.DEDUP_TIMEOUT_MS is None
        assert settings.HTTP_TIMEOUT == 2.5

    def test_policy_defaults_keep_switches(self) -> None:
        """Test settings change options without turning policies on."""
        settings = Settings(CACHE_TIME_MS=100, RETRY_COUNT=1, CRYPTO_KEY="k" * 16)

        config = ConfigResolver(settings.policy_defaults()).resolve(
            {"cache": True, "crypto": True}
        )
        plain = ConfigResolver(settings.policy_defaults()).resolve()

        assert plain.cache.enabled is False
        assert plain.crypto.enabled is False
        assert plain.retry.options.count == 1
        assert config.cache.options.cache_time == 100
        assert config.crypto.options.key == "k" * 16
