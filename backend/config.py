import logging
import warnings
from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)


# Default insecure secret key - MUST be changed in production
_DEFAULT_INSECURE_SECRET_KEY = "your-secret-key-here-change-in-production"


class AppMode(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Settings(BaseSettings):
    # Application mode - defaults to DEV for safety
    # SECURITY: In production, explicitly set APP_MODE=prod
    APP_MODE: AppMode = AppMode.DEV

    # Debug mode - MUST be False in production
    DEBUG: bool = False

    # Database (SQLite default for dev, use PostgreSQL in production)
    DATABASE_URL: str = "sqlite+aiosqlite:///./physique_coach.db"

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    # Absolute base URL of this API, used to build local-storage URLs that
    # the AI providers and the compositor can fetch.
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # JWT verification (tokens are issued by the identity provider)
    SECRET_KEY: str = _DEFAULT_INSECURE_SECRET_KEY
    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "physique-coach"
    JWT_AUDIENCE: str = "physique-coach-users"

    # Google Gemini (structured completions + vision scan)
    GOOGLE_API_KEY: str = ""
    COMPLETION_MODEL: str = "gemini-2.5-flash"
    VISION_MODEL: str = "gemini-2.5-flash"

    # Replicate (physique image generation)
    REPLICATE_API_TOKEN: str = ""
    REPLICATE_API_BASE_URL: str = "https://api.replicate.com/v1"
    IMAGE_MODEL: str = "black-forest-labs/flux-kontext-pro"
    IMAGE_SAFETY_TOLERANCE: int = 5
    IMAGE_POLL_INTERVAL_SECONDS: float = 1.0

    # Upper bound for any single external call (AI providers, image fetches)
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 120.0

    # Storage backend: "local" for dev, "s3" for production
    STORAGE_BACKEND: str = "local"
    LOCAL_STORAGE_DIR: str = "storage"
    SIGNED_URL_EXPIRY_SECONDS: int = 300

    # S3 settings (used when STORAGE_BACKEND="s3")
    S3_BUCKET: str = "physique-photos"
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_PREFIX: str = ""
    # S3 endpoint (for Cloudflare R2, MinIO, etc.)
    S3_ENDPOINT_URL: str = ""

    CORS_ALLOWED_ORIGINS: str = ""  # Comma-separated list of allowed origins

    LOG_LEVEL: str = "INFO"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Get allowed CORS origins.

        SECURITY: never returns ["*"]; production must configure
        CORS_ALLOWED_ORIGINS explicitly.
        """
        origins: List[str] = []
        if self.APP_MODE == AppMode.DEV:
            origins = [
                "http://localhost:8081",
                "http://localhost:19006",
                "http://127.0.0.1:8081",
            ]

        if self.CORS_ALLOWED_ORIGINS:
            origins.extend(
                o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()
            )

        if not origins and self.APP_MODE == AppMode.PROD:
            logger.warning(
                "No CORS_ALLOWED_ORIGINS configured in production. "
                "Cross-origin requests will be blocked."
            )
        return origins

    @property
    def ai_completion_enabled(self) -> bool:
        return bool(self.GOOGLE_API_KEY)

    @property
    def image_generation_enabled(self) -> bool:
        return bool(self.REPLICATE_API_TOKEN)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env variables


def _validate_settings(settings: Settings) -> Settings:
    """
    Validate settings and warn/error on misconfiguration.

    Production fails fast on the default secret key and on DEBUG.
    """
    if settings.APP_MODE == AppMode.PROD:
        if settings.SECRET_KEY == _DEFAULT_INSECURE_SECRET_KEY:
            error_msg = (
                "CRITICAL SECURITY ERROR: Default SECRET_KEY is being used in production! "
                "Set a strong, unique SECRET_KEY environment variable."
            )
            logger.critical(error_msg)
            raise ValueError(error_msg)

        if settings.DEBUG:
            error_msg = (
                "CRITICAL SECURITY ERROR: DEBUG=True in production! "
                "Set DEBUG=False or remove the DEBUG environment variable."
            )
            logger.critical(error_msg)
            raise ValueError(error_msg)

        if len(settings.SECRET_KEY) < 32:
            warnings.warn(
                "SECRET_KEY appears to be weak (less than 32 characters). "
                "Consider using a longer, more random key for production.",
                SecurityWarning,
                stacklevel=2,
            )

    if not settings.REPLICATE_API_TOKEN:
        logger.warning(
            "REPLICATE_API_TOKEN not configured. Physique previews will use the "
            "placeholder image generator."
        )

    return settings


class SecurityWarning(UserWarning):
    """Warning for security-related configuration issues."""
    pass


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Settings are validated on first access.
    """
    settings = Settings()
    return _validate_settings(settings)


def get_optional_setting(settings: Settings, name: str) -> Optional[str]:
    """Return a string setting, or None when it is empty."""
    value = getattr(settings, name, "")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
