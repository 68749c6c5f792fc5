"""Application configuration using Pydantic settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "LINE Login"
    VERSION: str = "0.1.0"

    # LINE Login channel
    LINE_CHANNEL_ID: str = ""
    LINE_CHANNEL_SECRET: str = ""
    LINE_CALLBACK_PATH: str = "/signin-line"
    LINE_SCOPES: list[str] = ["profile"]
    LINE_AUTHENTICATION_TYPE: str = "Line"
    LINE_AUTHENTICATION_MODE: Literal["active", "passive"] = "passive"
    LINE_SIGN_IN_AS_AUTHENTICATION_TYPE: str = "Cookies"
    LINE_BACKCHANNEL_TIMEOUT: float = 60.0  # seconds

    # State protection (Fernet key, urlsafe base64 of 32 bytes)
    STATE_ENCRYPTION_KEY: str = ""
    STATE_LIFETIME_SECONDS: int = 900  # 15 minutes

    # Correlation (anti-CSRF) store
    CORRELATION_STORE: Literal["cookie", "redis"] = "cookie"
    CORRELATION_TTL_SECONDS: int = 900

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50

    # Sign-in cookie (JWT)
    JWT_SECRET_KEY: str = "dev_jwt_secret_change_in_production"
    JWT_ALGORITHM: str = "HS256"
    AUTH_COOKIE_NAME: str = "line_login_auth"
    AUTH_COOKIE_EXPIRE_MINUTES: int = 1440  # 24 hours
    AUTH_COOKIE_SECURE: bool = False


# Global settings instance
settings = Settings()
