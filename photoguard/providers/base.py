"""
Provider adapter base class.

An adapter pairs one classifier with the policy that turns its native
output into a ModerationResult. The shared flow is:

    is_enabled? -> fetch image bytes -> classifier.classify -> evaluate

evaluate() is pure and owns the thresholds appropriate to the
classifier's score calibration.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from photoguard.classifiers.base import RiskClassifier
from photoguard.errors import ProviderDisabledError
from photoguard.moderation.models import ModerationProvider, ModerationResult
from photoguard.storage.images import ImageStore, preview

logger = logging.getLogger(__name__)

P = TypeVar("P")


class ProviderAdapter(ABC, Generic[P]):
    """
    Base class for moderation provider adapters.

    Attributes:
        provider: Identity reported in every result
        display_name: Human-readable provider name
    """

    provider: ClassVar[ModerationProvider]
    display_name: ClassVar[str]

    def __init__(
        self,
        classifier: RiskClassifier[P],
        image_store: ImageStore,
        enabled: bool = True,
    ) -> None:
        self._classifier = classifier
        self._image_store = image_store
        self._enabled = enabled

    @property
    def classifier(self) -> RiskClassifier[P]:
        return self._classifier

    async def initialize(self) -> None:
        """Prepare the backend before first use. Remote providers need nothing."""

    async def wait_ready(self) -> None:
        """
        Block until the backend can serve a call.

        Runs before the per-call timeout starts, under the backend's own
        readiness bound. Remote providers are always ready.
        """

    @property
    def is_loading(self) -> bool:
        """True while the backend is enabled but still preparing."""
        return False

    def is_enabled(self) -> bool:
        """Check if provider is enabled by configuration and its backend is usable."""
        return self._enabled and self._classifier.is_available()

    async def moderate_image(self, image_ref: str) -> ModerationResult:
        """
        Moderate one image.

        Args:
            image_ref: Local path or URL of the image

        Returns:
            ModerationResult produced by this provider

        Raises:
            ProviderDisabledError: If the provider is not enabled
            ProviderError / ImageFetchError: If the backend call fails
        """
        if not self.is_enabled():
            raise ProviderDisabledError(
                self.provider.value, f"{self.display_name} provider is not enabled"
            )

        start_time = time.perf_counter()
        try:
            data = await self._image_store.fetch_image(image_ref)
            prediction = await self._classifier.classify(data)
        except Exception as e:
            logger.error(f"{self.display_name} moderation error for {preview(image_ref)}: {e}")
            raise

        result = self.evaluate(prediction)
        latency_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"{self.display_name} moderation: {result.status.value} "
            f"({result.confidence:.0f}%) - {', '.join(result.reasons) or 'Clean'} "
            f"[{latency_ms:.0f}ms]"
        )
        return result

    @abstractmethod
    def evaluate(self, prediction: P) -> ModerationResult:
        """Map the classifier's native prediction to a ModerationResult."""

    def describe(self) -> dict[str, Any]:
        """Report status for introspection endpoints."""
        return {"enabled": self.is_enabled(), "name": self.display_name}
