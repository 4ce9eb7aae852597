"""
PhotoGuard Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
All credentials use SecretStr to prevent accidental logging.

Provider enable flags are resolved once at startup; nothing in the
moderation pipeline re-reads configuration after that.
"""

from functools import lru_cache
from typing import Literal
import logging
import sys

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from photoguard.moderation.models import ModerationProvider


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    photo_moderation_provider: ModerationProvider = Field(
        default=ModerationProvider.LOCAL_NSFW,
        description="Preferred moderation provider, tried first on every call",
    )

    photo_moderation_fallback: bool = Field(
        default=True,
        description="Try the remaining enabled providers when the preferred one fails",
    )

    local_nsfw_moderation_enabled: bool = Field(
        default=True, description="Enable the local ONNX NSFW classifier"
    )

    google_vision_moderation_enabled: bool = Field(
        default=False, description="Enable Google Cloud Vision SafeSearch"
    )

    aws_rekognition_moderation_enabled: bool = Field(
        default=False, description="Enable AWS Rekognition moderation labels"
    )

    nsfw_model_path: str | None = Field(
        default=None,
        description="Path to the ONNX export of the five-class NSFW image model",
    )

    nsfw_input_size: int = Field(
        default=224,
        gt=0,
        description="Square input resolution expected by the NSFW model",
    )

    nsfw_ready_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long a call waits for the local model to finish loading",
    )

    google_application_credentials: str | None = Field(
        default=None,
        description="Service account JSON path (default: ambient Google credentials)",
    )

    aws_region: str = Field(default="us-east-1", description="AWS region for Rekognition")

    aws_access_key_id: SecretStr | None = Field(
        default=None, description="AWS access key (default: boto3 credential chain)"
    )

    aws_secret_access_key: SecretStr | None = Field(
        default=None, description="AWS secret key (default: boto3 credential chain)"
    )

    rekognition_min_confidence: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="Labels below this confidence are not returned by Rekognition",
    )

    provider_timeout_seconds: float = Field(
        default=12.0,
        gt=0,
        description="Upper bound for a single provider call before falling back",
    )

    upload_dir: str = Field(
        default="./uploads/photos", description="Directory where uploaded photos are saved"
    )

    image_fetch_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for downloading remote images"
    )

    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest accepted image payload in bytes",
    )

    track_metrics: bool = Field(
        default=True, description="Record per-call moderation metrics"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("photo_moderation_provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: object) -> object:
        """Accept provider names in any case (e.g. 'google_vision')."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def provider_enabled(self, provider: ModerationProvider) -> bool:
        """Return the configured enable flag for a provider."""
        match provider:
            case ModerationProvider.LOCAL_NSFW:
                return self.local_nsfw_moderation_enabled
            case ModerationProvider.GOOGLE_VISION:
                return self.google_vision_moderation_enabled
            case ModerationProvider.AWS_REKOGNITION:
                return self.aws_rekognition_moderation_enabled
        return False


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from third-party HTTP and cloud SDK libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
