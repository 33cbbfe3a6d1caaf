# python
# app/core/config.py
"""Configuration settings for the Conversation Relay API.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Conversation Relay API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for session token signing",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(
        default=24 * 60, description="Session token lifetime (one day)"
    )

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Conversation Provider (Twilio) =====
    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_api_key: str | None = Field(default=None, description="Twilio API key SID")
    twilio_api_secret: str | None = Field(default=None, description="Twilio API key secret")
    twilio_conversations_service_sid: str | None = Field(
        default=None, description="Twilio Conversations service SID"
    )
    provider_token_ttl: int = Field(
        default=3600, description="Provider access token lifetime in seconds"
    )
    default_conversation_page_size: int = Field(
        default=50, description="Result limit for conversation listings"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_provider_credentials(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)

    @property
    def has_provider_signing_keys(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_api_key and self.twilio_api_secret)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
        return v

    @field_validator("access_token_expire_minutes", "provider_token_ttl")
    @classmethod
    def validate_positive_lifetime(cls, v):
        if v <= 0:
            raise ValueError("Token lifetimes must be positive")
        return v

    @field_validator("default_conversation_page_size")
    @classmethod
    def validate_page_size(cls, v):
        if not 1 <= v <= 1000:
            raise ValueError("Conversation page size must be between 1 and 1000")
        return v


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if not settings.has_provider_credentials:
            errors.append("TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN are required")
        if not settings.has_provider_signing_keys:
            errors.append("TWILIO_API_KEY and TWILIO_API_SECRET are required")
        if settings.is_production and not settings.twilio_conversations_service_sid:
            errors.append("TWILIO_CONVERSATIONS_SERVICE_SID is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "provider_enabled": settings.has_provider_credentials,
            "provider_tokens_enabled": settings.has_provider_signing_keys,
            "conversation_service_scoped": bool(settings.twilio_conversations_service_sid),
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
