"""
Moderation Orchestrator - provider selection, fallback and degradation.

Every call tries the preferred provider first. If it is disabled, raises,
or exceeds the per-provider timeout, the remaining enabled providers are
tried in fixed order (local model, Google Vision, AWS Rekognition). When
nothing produces a verdict the caller still gets a result: NEEDS_REVIEW
with confidence 0 and provider "NONE".

moderate() never raises for provider or infrastructure failures. Content
risk is only ever expressed through the returned status.

The orchestrator is stateless between calls. The provider set, the
preferred provider and the fallback flag are fixed at construction.
"""

import asyncio
import logging
import time
from typing import Any, Mapping

from photoguard.config import Settings, get_settings
from photoguard.metrics.store import MetricsStore, ModerationMetric, get_metrics_store
from photoguard.moderation.models import (
    BATCH_FAILURE_REASON,
    ModerationProvider,
    ModerationResult,
    degraded_result,
)
from photoguard.providers.base import ProviderAdapter
from photoguard.registry.providers import (
    ProviderRegistry,
    create_adapters,
    get_provider_registry,
)
from photoguard.storage.images import ImageStore, get_image_store, preview

logger = logging.getLogger(__name__)


class ModerationOrchestrator:
    """
    Runs the preferred provider and the fallback chain.

    Usage:
        orchestrator = ModerationOrchestrator(adapters, ModerationProvider.GOOGLE_VISION)
        await orchestrator.initialize()
        result = await orchestrator.moderate("uploads/photos/abc.jpg")

    Attributes:
        preferred: Provider tried first on every call
        fallback_enabled: Whether the remaining providers are tried after a failure
    """

    def __init__(
        self,
        adapters: Mapping[ModerationProvider, ProviderAdapter],
        preferred: ModerationProvider,
        fallback_enabled: bool = True,
        provider_timeout: float = 12.0,
        registry: ProviderRegistry | None = None,
        metrics_store: MetricsStore | None = None,
    ):
        self._adapters = dict(adapters)
        self._preferred = preferred
        self._fallback_enabled = fallback_enabled
        self._provider_timeout = provider_timeout
        self._registry = registry or get_provider_registry()
        self._metrics = metrics_store
        self._init_task: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        image_store: ImageStore | None = None,
    ) -> "ModerationOrchestrator":
        """Build an orchestrator with adapters for every configured provider."""
        settings = settings or get_settings()
        adapters = create_adapters(settings, image_store or get_image_store())
        return cls(
            adapters=adapters,
            preferred=settings.photo_moderation_provider,
            fallback_enabled=settings.photo_moderation_fallback,
            provider_timeout=settings.provider_timeout_seconds,
            metrics_store=get_metrics_store() if settings.track_metrics else None,
        )

    @property
    def preferred(self) -> ModerationProvider:
        return self._preferred

    @property
    def fallback_enabled(self) -> bool:
        return self._fallback_enabled

    @property
    def adapters(self) -> dict[ModerationProvider, ProviderAdapter]:
        return dict(self._adapters)

    async def initialize(self, wait: bool = False) -> None:
        """
        Start backend preparation (loading the local model).

        By default loading runs as a background task so startup is not
        blocked; calls issued meanwhile wait for it.

        Args:
            wait: Await loading before returning
        """
        if self._init_task is None:
            self._init_task = asyncio.create_task(self._initialize_adapters())
        if wait:
            await self._init_task

    async def _initialize_adapters(self) -> None:
        for provider, adapter in self._adapters.items():
            try:
                await adapter.initialize()
            except Exception as e:
                logger.warning(f"{provider.value} unavailable after initialization: {e}")

    def provider_order(self) -> list[ModerationProvider]:
        """Providers in the order a call tries them."""
        order = [self._preferred]
        if self._fallback_enabled:
            order.extend(self._registry.fallback_order(exclude=self._preferred))
        return order

    async def moderate(self, image_ref: str) -> ModerationResult:
        """
        Moderate one image.

        Args:
            image_ref: Local path or URL of the image

        Returns:
            The first provider result, or the degraded NEEDS_REVIEW result
            when no provider produced one
        """
        start_time = time.perf_counter()
        attempts = 0

        for index, provider in enumerate(self.provider_order()):
            adapter = self._adapters.get(provider)
            if adapter is None or not adapter.is_enabled():
                if index == 0:
                    logger.warning(f"Preferred provider {provider.value} is not enabled")
                continue

            attempts += 1
            try:
                # Model loading is bounded by its own ready timeout, not the call timeout
                await adapter.wait_ready()
                result = await asyncio.wait_for(
                    adapter.moderate_image(image_ref), timeout=self._provider_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"{provider.value} timed out after {self._provider_timeout:.1f}s "
                    f"for {preview(image_ref)}"
                )
                continue
            except Exception as e:
                label = "Preferred provider" if index == 0 else "Fallback provider"
                logger.warning(f"{label} {provider.value} failed: {e}")
                continue

            if index > 0:
                logger.info(f"Fallback to {provider.value} succeeded")
            self._record(result, start_time, fallback_used=index > 0, attempts=attempts)
            return result

        logger.error(f"All moderation providers failed for {preview(image_ref)}")
        result = degraded_result()
        self._record(result, start_time, fallback_used=False, attempts=attempts)
        return result

    async def moderate_batch(self, image_refs: list[str]) -> list[ModerationResult]:
        """
        Moderate several images concurrently.

        One item's failure never affects the others. Results are returned
        in input order.
        """
        outcomes = await asyncio.gather(
            *(self.moderate(ref) for ref in image_refs), return_exceptions=True
        )

        results: list[ModerationResult] = []
        for ref, outcome in zip(image_refs, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Batch moderation failed for {preview(ref)}: {outcome}")
                results.append(degraded_result(BATCH_FAILURE_REASON))
            else:
                results.append(outcome)
        return results

    def get_provider_status(self) -> dict[str, Any]:
        """
        Report the preferred provider, the fallback flag and each
        provider's enabled state and display name.
        """
        return {
            "preferred": self._preferred.value,
            "fallback_enabled": self._fallback_enabled,
            "providers": {
                provider.value: self._adapters[provider].describe()
                for provider in self._registry.fallback_order()
                if provider in self._adapters
            },
        }

    def _record(
        self,
        result: ModerationResult,
        start_time: float,
        fallback_used: bool,
        attempts: int,
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.record(
            ModerationMetric(
                timestamp=time.time(),
                provider=result.provider,
                status=result.status.value,
                confidence=result.confidence,
                latency_ms=(time.perf_counter() - start_time) * 1000,
                fallback_used=fallback_used,
                attempts=attempts,
            )
        )


_orchestrator_instance: ModerationOrchestrator | None = None


def get_moderation_orchestrator() -> ModerationOrchestrator:
    """
    Get the global orchestrator instance.

    Builds the orchestrator from settings on first call. Enable flags and
    the preferred provider are read once, here.

    Returns:
        The singleton ModerationOrchestrator
    """
    global _orchestrator_instance
    if _orchestrator_instance is None:
        _orchestrator_instance = ModerationOrchestrator.from_settings()
    return _orchestrator_instance


async def ensure_moderation_ready(wait: bool = False) -> ModerationOrchestrator:
    """
    Create the orchestrator and start provider initialization.

    Example:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await ensure_moderation_ready()
            yield
    """
    orchestrator = get_moderation_orchestrator()
    await orchestrator.initialize(wait=wait)
    return orchestrator


def reset_moderation_orchestrator() -> None:
    """
    Reset the global orchestrator instance.

    Primarily useful for testing to ensure a fresh orchestrator is
    created between test runs.
    """
    global _orchestrator_instance
    _orchestrator_instance = None
