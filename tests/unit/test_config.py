"""
Unit tests for Configuration module.

This module contains unit tests for the configuration settings, validators,
and computed properties.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.core.config import (
    ConfigValidator,
    EnvironmentEnum,
    LogFormatEnum,
    LogLevelEnum,
    Settings,
    get_config_summary,
    settings,
)

PROVIDER_ENV = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_API_KEY",
    "TWILIO_API_SECRET",
    "TWILIO_CONVERSATIONS_SERVICE_SID",
)


class TestSettings:
    """Test cases for Settings configuration."""

    def test_default_settings(self, monkeypatch):
        """Test default configuration values."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        test_settings = Settings(_env_file=None)

        assert test_settings.app_name == "Conversation Relay API"
        assert test_settings.environment == EnvironmentEnum.development
        assert test_settings.algorithm == "HS256"
        assert test_settings.access_token_expire_minutes == 24 * 60
        assert test_settings.provider_token_ttl == 3600
        assert test_settings.default_conversation_page_size == 50
        assert test_settings.log_level == LogLevelEnum.INFO
        assert test_settings.log_format == LogFormatEnum.simple

    def test_generated_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)

        first = Settings(_env_file=None)
        second = Settings(_env_file=None)

        assert len(first.secret_key) >= 32
        assert first.secret_key != second.secret_key

    def test_environment_validation(self):
        """Test environment validation with various inputs."""
        assert Settings(environment="production").environment == EnvironmentEnum.production
        assert Settings(environment="dev").environment == EnvironmentEnum.development
        assert Settings(environment="prod").environment == EnvironmentEnum.production

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="moon")

    @pytest.mark.parametrize("field", ["access_token_expire_minutes", "provider_token_ttl"])
    def test_token_lifetimes_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    @pytest.mark.parametrize("size", [0, 1001])
    def test_page_size_bounds(self, size):
        with pytest.raises(ValidationError):
            Settings(default_conversation_page_size=size)

    def test_allowed_origins_list(self):
        test_settings = Settings(allowed_origins="http://a.test, http://b.test,,")

        assert test_settings.allowed_origins_list == ["http://a.test", "http://b.test"]

    def test_environment_properties(self):
        assert Settings(environment="production").is_production is True
        assert Settings(environment="testing").is_testing is True
        assert Settings(environment="development").is_development is True

    def test_provider_properties(self, monkeypatch):
        for name in PROVIDER_ENV:
            monkeypatch.delenv(name, raising=False)

        bare = Settings(_env_file=None)
        assert bare.has_provider_credentials is False
        assert bare.has_provider_signing_keys is False

        configured = Settings(
            _env_file=None,
            twilio_account_sid="AC1",
            twilio_auth_token="token",
            twilio_api_key="SK1",
            twilio_api_secret="secret",
        )
        assert configured.has_provider_credentials is True
        assert configured.has_provider_signing_keys is True


class TestConfigValidator:
    """Test cases for ConfigValidator."""

    def test_test_settings_are_valid(self):
        ConfigValidator.validate_required_settings()

    def test_missing_provider_settings(self):
        with patch("app.core.config.settings.twilio_auth_token", None):
            with pytest.raises(ValueError, match="TWILIO_AUTH_TOKEN"):
                ConfigValidator.validate_required_settings()

    def test_feature_status(self):
        status = ConfigValidator.get_feature_status()

        assert status["provider_enabled"] is True
        assert status["provider_tokens_enabled"] is True
        assert status["conversation_service_scoped"] is True
        assert status["environment"] == settings.environment

    def test_config_summary(self):
        summary = get_config_summary()

        assert summary["app_name"] == settings.app_name
        assert summary["database_configured"] is True
        assert "features" in summary
