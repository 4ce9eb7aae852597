"""
Provider Registry

Static metadata for the three moderation backends and the factory that
builds their adapters from settings:
- LOCAL_NSFW: offline ONNX model, no network, lowest precision
- GOOGLE_VISION: SafeSearch likelihoods, needs google-cloud-vision
- AWS_REKOGNITION: moderation labels, needs boto3

The fallback rank fixes the order in which remaining providers are tried
after the preferred one fails.
"""

import logging

from pydantic import BaseModel, Field

from photoguard.classifiers import (
    GoogleVisionClassifier,
    LocalNsfwClassifier,
    RekognitionClassifier,
)
from photoguard.config import Settings
from photoguard.moderation.models import ModerationProvider
from photoguard.providers import (
    AWSRekognitionAdapter,
    GoogleVisionAdapter,
    LocalNsfwAdapter,
    ProviderAdapter,
)
from photoguard.storage.images import ImageStore

logger = logging.getLogger(__name__)


class ProviderMetadata(BaseModel):
    """Descriptive metadata for a registered moderation provider."""

    provider: ModerationProvider = Field(..., description="Provider identity")

    display_name: str = Field(..., description="Human-readable provider name")

    fallback_rank: int = Field(
        ...,
        ge=0,
        description="Position in the fallback chain (lower is tried first)",
    )

    requires_network: bool = Field(
        default=True,
        description="Whether classification calls leave the host",
    )

    optional_extra: str | None = Field(
        default=None,
        description="pip extra that installs the provider SDK",
    )

    reject_threshold: str = Field(
        default="",
        description="Summary of the rejection policy, for operators",
    )


class ProviderRegistry:
    """
    Central registry of moderation providers.

    Attributes:
        _providers: Dictionary mapping provider identity to its metadata
    """

    def __init__(self) -> None:
        self._providers: dict[ModerationProvider, ProviderMetadata] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        """Register all available providers with their metadata."""

        self._register(
            ProviderMetadata(
                provider=ModerationProvider.LOCAL_NSFW,
                display_name=LocalNsfwAdapter.display_name,
                fallback_rank=0,
                requires_network=False,
                reject_threshold="adult > 15%",
            )
        )

        self._register(
            ProviderMetadata(
                provider=ModerationProvider.GOOGLE_VISION,
                display_name=GoogleVisionAdapter.display_name,
                fallback_rank=1,
                optional_extra="google",
                reject_threshold="adult or violence LIKELY and above",
            )
        )

        self._register(
            ProviderMetadata(
                provider=ModerationProvider.AWS_REKOGNITION,
                display_name=AWSRekognitionAdapter.display_name,
                fallback_rank=2,
                optional_extra="aws",
                reject_threshold="adult or violence label > 80%",
            )
        )

    def _register(self, metadata: ProviderMetadata) -> None:
        self._providers[metadata.provider] = metadata

    def get(self, provider: ModerationProvider) -> ProviderMetadata | None:
        """
        Retrieve provider metadata.

        Args:
            provider: The provider identity

        Returns:
            ProviderMetadata if registered, None otherwise
        """
        return self._providers.get(provider)

    def list_providers(self) -> list[ProviderMetadata]:
        """Return all providers in fallback order."""
        return sorted(self._providers.values(), key=lambda m: m.fallback_rank)

    def fallback_order(self, exclude: ModerationProvider | None = None) -> list[ModerationProvider]:
        """
        Return providers in fallback order.

        Args:
            exclude: Provider to leave out (normally the preferred one)
        """
        return [m.provider for m in self.list_providers() if m.provider != exclude]


_registry_instance: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """
    Get the global provider registry instance.

    Returns:
        The singleton ProviderRegistry instance
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = ProviderRegistry()
    return _registry_instance


def create_adapters(
    settings: Settings, image_store: ImageStore
) -> dict[ModerationProvider, ProviderAdapter]:
    """
    Build one adapter per provider from settings.

    Enable flags are resolved here, once. Enabled cloud providers build
    their SDK client immediately, so a missing SDK or missing credentials
    show up as a disabled adapter from startup on instead of as a failure
    on every call.

    Args:
        settings: Application settings
        image_store: Storage used by every adapter to read image bytes

    Returns:
        Dictionary mapping provider identity to its adapter
    """
    aws_key = settings.aws_access_key_id
    aws_secret = settings.aws_secret_access_key

    google = GoogleVisionClassifier(
        credentials_path=settings.google_application_credentials,
        timeout=settings.provider_timeout_seconds,
    )
    rekognition = RekognitionClassifier(
        region=settings.aws_region,
        access_key_id=aws_key.get_secret_value() if aws_key else None,
        secret_access_key=aws_secret.get_secret_value() if aws_secret else None,
        min_confidence=settings.rekognition_min_confidence,
        timeout=settings.provider_timeout_seconds,
    )

    if settings.local_nsfw_moderation_enabled and not settings.nsfw_model_path:
        logger.warning("Local NSFW moderation enabled but NSFW_MODEL_PATH is not set")
    if settings.google_vision_moderation_enabled:
        google.connect()
    if settings.aws_rekognition_moderation_enabled:
        rekognition.connect()

    return {
        ModerationProvider.LOCAL_NSFW: LocalNsfwAdapter(
            LocalNsfwClassifier(
                model_path=settings.nsfw_model_path,
                input_size=settings.nsfw_input_size,
                ready_timeout=settings.nsfw_ready_timeout_seconds,
            ),
            image_store,
            enabled=settings.local_nsfw_moderation_enabled,
        ),
        ModerationProvider.GOOGLE_VISION: GoogleVisionAdapter(
            google,
            image_store,
            enabled=settings.google_vision_moderation_enabled,
        ),
        ModerationProvider.AWS_REKOGNITION: AWSRekognitionAdapter(
            rekognition,
            image_store,
            enabled=settings.aws_rekognition_moderation_enabled,
        ),
    }
