"""
Pytest configuration and shared fixtures.

Provides stub adapters, fake classifiers, result factories and a
TestClient wired to an in-process orchestrator, so no real network,
cloud SDK or model file is needed.

IMPORTANT: Environment variables must be set BEFORE importing photoguard
modules that use pydantic-settings.
"""

import asyncio
import io
import os

# Set test environment variables before importing photoguard modules
os.environ["LOCAL_NSFW_MODERATION_ENABLED"] = "false"
os.environ["GOOGLE_VISION_MODERATION_ENABLED"] = "false"
os.environ["AWS_REKOGNITION_MODERATION_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

# Now safe to import everything else
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from PIL import Image

from photoguard.moderation.models import (
    ModerationProvider,
    ModerationResult,
    ModerationStatus,
)


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line(
        "markers", "integration: mark test as requiring real cloud credentials"
    )
    config.addinivalue_line("markers", "slow: mark test as slow-running")


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    yield

    from photoguard.config import get_settings
    from photoguard.metrics import store as metrics_store
    from photoguard.moderation.orchestrator import reset_moderation_orchestrator
    from photoguard.registry import providers as registry
    from photoguard.storage import images
    from photoguard.submissions import store as submission_store
    from photoguard.submissions.gatekeeper import reset_gatekeeper

    reset_moderation_orchestrator()
    reset_gatekeeper()

    if metrics_store._store is not None:
        metrics_store._store.reset()

    registry._registry_instance = None
    images._image_store = None
    submission_store._submission_store = None
    submission_store._abuse_counter_store = None

    get_settings.cache_clear()


# =============================================================================
# RESULTS AND IMAGES
# =============================================================================


@pytest.fixture
def make_result():
    """
    Factory fixture for creating ModerationResult objects.

    Usage:
        result = make_result(ModerationStatus.REJECTED, reasons=["Adult content detected"])
    """

    def _create(
        status: ModerationStatus = ModerationStatus.APPROVED,
        confidence: float = 95,
        reasons: list[str] | None = None,
        scores: dict[str, float] | None = None,
        provider: str = ModerationProvider.LOCAL_NSFW.value,
    ) -> ModerationResult:
        if reasons is None:
            reasons = [] if status == ModerationStatus.APPROVED else [f"{status.value} reason"]
        return ModerationResult(
            status=status,
            confidence=confidence,
            reasons=tuple(reasons),
            scores=scores if scores is not None else {"adult": 100 - confidence},
            provider=provider,
        )

    return _create


def encode_image(color=(200, 120, 40), size=(32, 32), fmt="PNG") -> bytes:
    """Encode a solid-color image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def encode():
    """The encode_image helper, as a fixture."""
    return encode_image


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image()


@pytest.fixture
def image_store(tmp_path):
    """A real ImageStore rooted in a temporary directory."""
    from photoguard.storage.images import ImageStore

    return ImageStore(
        upload_dir=tmp_path / "uploads",
        fetch_timeout=5.0,
        max_bytes=1024 * 1024,
        base_dir=tmp_path,
    )


class FakeImageStore:
    """Image store returning fixed bytes; deletions are recorded."""

    def __init__(self, data: bytes = b"image-bytes"):
        self.data = data
        self.fetch_image = AsyncMock(return_value=data)
        self.delete_image = AsyncMock(return_value=True)


@pytest.fixture
def fake_image_store():
    return FakeImageStore()


# =============================================================================
# CLASSIFIERS AND ADAPTERS
# =============================================================================


class FakeClassifier:
    """Classifier returning a preset prediction or raising a preset error."""

    def __init__(self, prediction=None, error: Exception | None = None, available: bool = True):
        self.prediction = prediction
        self.error = error
        self.available = available
        self.calls: list[bytes] = []

    def is_available(self) -> bool:
        return self.available

    async def classify(self, data: bytes):
        self.calls.append(data)
        if self.error is not None:
            raise self.error
        return self.prediction


@pytest.fixture
def fake_classifier():
    """
    Factory fixture for FakeClassifier.

    Usage:
        classifier = fake_classifier(prediction=[...])
    """
    return FakeClassifier


class StubAdapter:
    """
    Stand-in for a ProviderAdapter with scripted behaviour.

    Attributes:
        calls: Image references passed to moderate_image
    """

    def __init__(
        self,
        provider: ModerationProvider,
        result: ModerationResult | None = None,
        error: Exception | None = None,
        enabled: bool = True,
        delay: float = 0.0,
    ):
        self.provider = provider
        self.display_name = provider.value.replace("_", " ").title()
        self.result = result
        self.error = error
        self.enabled = enabled
        self.delay = delay
        self.is_loading = False
        self.initialized = False
        self.calls: list[str] = []

    def is_enabled(self) -> bool:
        return self.enabled

    async def initialize(self) -> None:
        self.initialized = True

    async def wait_ready(self) -> None:
        pass

    async def moderate_image(self, image_ref: str) -> ModerationResult:
        self.calls.append(image_ref)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    def describe(self) -> dict:
        return {"enabled": self.is_enabled(), "name": self.display_name}


@pytest.fixture
def stub_adapter(make_result):
    """
    Factory fixture for StubAdapter.

    Usage:
        adapter = stub_adapter(ModerationProvider.GOOGLE_VISION, status=ModerationStatus.REJECTED)
        adapter = stub_adapter(ModerationProvider.LOCAL_NSFW, error=RuntimeError("down"))
    """

    def _create(
        provider: ModerationProvider,
        status: ModerationStatus = ModerationStatus.APPROVED,
        error: Exception | None = None,
        enabled: bool = True,
        delay: float = 0.0,
        result: ModerationResult | None = None,
    ) -> StubAdapter:
        if result is None:
            result = make_result(status, provider=provider.value)
        return StubAdapter(provider, result=result, error=error, enabled=enabled, delay=delay)

    return _create


@pytest.fixture
def make_orchestrator():
    """
    Factory fixture building an orchestrator over stub adapters.

    Usage:
        orchestrator = make_orchestrator([local, google], preferred=ModerationProvider.GOOGLE_VISION)
    """
    from photoguard.metrics import get_metrics_store
    from photoguard.moderation.orchestrator import ModerationOrchestrator

    def _create(
        adapters,
        preferred: ModerationProvider = ModerationProvider.LOCAL_NSFW,
        fallback_enabled: bool = True,
        provider_timeout: float = 1.0,
        track_metrics: bool = True,
    ):
        return ModerationOrchestrator(
            adapters={adapter.provider: adapter for adapter in adapters},
            preferred=preferred,
            fallback_enabled=fallback_enabled,
            provider_timeout=provider_timeout,
            metrics_store=get_metrics_store() if track_metrics else None,
        )

    return _create


# =============================================================================
# API CLIENT
# =============================================================================


@pytest.fixture
def api_adapters(stub_adapter):
    """Default adapters behind the API client; tests may replace their result."""
    return {
        ModerationProvider.LOCAL_NSFW: stub_adapter(ModerationProvider.LOCAL_NSFW),
        ModerationProvider.GOOGLE_VISION: stub_adapter(
            ModerationProvider.GOOGLE_VISION, enabled=False
        ),
        ModerationProvider.AWS_REKOGNITION: stub_adapter(
            ModerationProvider.AWS_REKOGNITION, enabled=False
        ),
    }


@pytest.fixture
def test_client(api_adapters, image_store, make_orchestrator):
    """
    Create a FastAPI TestClient over stub adapters.

    The module singletons are pre-seeded so the app's lifespan and
    endpoints pick up the stub orchestrator and the temporary image store.
    """
    from photoguard.moderation import orchestrator as orchestrator_module
    from photoguard.storage import images

    orchestrator_module._orchestrator_instance = make_orchestrator(
        list(api_adapters.values()), preferred=ModerationProvider.LOCAL_NSFW
    )
    images._image_store = image_store

    from photoguard.main import app

    with TestClient(app) as client:
        yield client
