"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides helper functions for accessing cached settings
and email configuration.
"""

from functools import lru_cache
from typing import List

from fastapi_mail import ConnectionConfig
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Session token lifetime in minutes.
        RESET_TOKEN_EXPIRE_MINUTES: Password reset token lifetime in minutes.
        AUTH_COOKIE_NAME: Name of the cookie carrying the session token.
        COOKIE_SECURE: Whether the session cookie is marked ``Secure``.
        API_PREFIX: Versioned prefix every route is mounted under.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        OWNER_EMAIL: Email of the protected owner account.
        OWNER_NAME: Display name used when seeding the owner account.
        OWNER_PASSWORD: Initial owner password; seeding is skipped when unset.
        CLOUDINARY_URL: Cloudinary connection URL for media uploads.
        MEDIA_FOLDER: Cloudinary folder media is uploaded into.
        MEDIA_MAX_BYTES: Largest accepted media upload.
        SMTP_FROM_EMAIL: Sender email address for outgoing emails.
        SMTP_USER: SMTP username; email is skipped when unset.
        SMTP_PASSWORD: SMTP password; email is skipped when unset.
        SMTP_PORT: SMTP server port.
        SMTP_HOST: SMTP server host.
        BASE_URL: Public URL of the website, used in email links.
        LOG_LEVEL: Level of the ``church`` logger.
        LOG_FILE: Optional path of a rotating log file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="allow")

    DATABASE_URL: str = "sqlite:///./church.db"
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    AUTH_COOKIE_NAME: str = "auth_token"
    COOKIE_SECURE: bool = False
    API_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]
    OWNER_EMAIL: str = "admin@gracechurch.org"
    OWNER_NAME: str = "Admin User"
    OWNER_PASSWORD: str | None = None
    CLOUDINARY_URL: str | None = None
    MEDIA_FOLDER: str = "grace_church"
    MEDIA_MAX_BYTES: int = 10 * 1024 * 1024
    SMTP_FROM_EMAIL: str = "church@example.com"
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_PORT: int = 587
    SMTP_HOST: str = "smtp.example.com"
    BASE_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    @property
    def mail_enabled(self) -> bool:
        """Whether SMTP credentials are configured."""
        return bool(self.SMTP_USER and self.SMTP_PASSWORD)


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()


def get_mail_config() -> ConnectionConfig:
    """Create and return email configuration for FastAPI-Mail.

    Returns:
        ConnectionConfig: Configured email connection settings.
    """

    settings = get_settings()
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USER or "",
        MAIL_PASSWORD=settings.SMTP_PASSWORD or "",
        MAIL_FROM=settings.SMTP_FROM_EMAIL,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
    )
