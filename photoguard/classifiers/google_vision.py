"""
Google Cloud Vision SafeSearch classifier.

Returns an ordinal likelihood per category (adult, violence, racy,
medical, spoof). The google-cloud-vision package is an optional extra;
without it the classifier reports itself unavailable.

Setup:
1. Enable Cloud Vision API in Google Cloud Console
2. Create a service account and download its JSON key
3. Set GOOGLE_APPLICATION_CREDENTIALS to the key path
"""

import asyncio
import logging
from typing import Any

from photoguard.errors import ClassifierError, ProviderDisabledError
from photoguard.moderation.models import ModerationProvider, RiskLevel, SafeSearchAnnotation

try:
    from google.cloud import vision
except ImportError:  # optional extra: pip install photoguard[google]
    vision = None

logger = logging.getLogger(__name__)

_PROVIDER = ModerationProvider.GOOGLE_VISION.value

# Numeric values of google.cloud.vision.Likelihood
_LIKELIHOOD_NAMES: dict[int, str] = {
    0: "UNKNOWN",
    1: "VERY_UNLIKELY",
    2: "UNLIKELY",
    3: "POSSIBLE",
    4: "LIKELY",
    5: "VERY_LIKELY",
}


def to_risk_level(value: Any) -> RiskLevel:
    """Convert a Likelihood enum, its name, or its number to a RiskLevel."""
    if isinstance(value, RiskLevel):
        return value
    if isinstance(value, str):
        name = value
    elif hasattr(value, "name"):
        name = value.name
    else:
        name = _LIKELIHOOD_NAMES.get(int(value), "UNKNOWN")

    try:
        return RiskLevel(name.upper())
    except ValueError:
        return RiskLevel.UNKNOWN


class GoogleVisionClassifier:
    """
    SafeSearch detection through the Vision ImageAnnotator client.

    The SDK client is synchronous; calls run in a worker thread so the
    event loop is never blocked.
    """

    def __init__(
        self,
        credentials_path: str | None = None,
        timeout: float = 10.0,
        client: Any = None,
    ):
        self._credentials_path = credentials_path
        self._timeout = timeout
        self._client = client
        self._client_error: str | None = None

    @staticmethod
    def sdk_available() -> bool:
        """Check whether google-cloud-vision is installed."""
        return vision is not None

    def is_available(self) -> bool:
        if self._client_error is not None:
            return False
        return self._client is not None or self.sdk_available()

    def connect(self) -> bool:
        """
        Build the client now rather than on the first call.

        A failure (SDK missing, unreadable key file, no default
        credentials) is remembered and the classifier reports itself
        unavailable from then on.

        Returns:
            True if the client is usable
        """
        try:
            _ = self.client
        except Exception as e:
            self._client_error = str(e)
            logger.warning(f"Google Vision client unavailable: {e}")
            return False
        return True

    @property
    def client(self) -> Any:
        """
        Get the ImageAnnotator client (lazy initialization).

        Raises:
            ProviderDisabledError: If google-cloud-vision is not installed
                                   or an earlier connect() failed
        """
        if self._client_error is not None:
            raise ProviderDisabledError(
                _PROVIDER, f"Google Vision client unavailable: {self._client_error}"
            )
        if self._client is None:
            if vision is None:
                raise ProviderDisabledError(
                    _PROVIDER,
                    "google-cloud-vision is not installed. "
                    "Run: pip install photoguard[google]",
                )
            if self._credentials_path:
                self._client = vision.ImageAnnotatorClient.from_service_account_file(
                    self._credentials_path
                )
            else:
                self._client = vision.ImageAnnotatorClient()
            logger.debug("Initialized Google Vision client")
        return self._client

    def _detect(self, data: bytes) -> Any:
        image = vision.Image(content=data) if vision is not None else {"content": data}
        return self.client.safe_search_detection(image=image, timeout=self._timeout)

    async def classify(self, data: bytes) -> SafeSearchAnnotation:
        """
        Run SafeSearch on an encoded image.

        The SDK call runs in a worker thread. If the caller cancels (for
        example on a timeout) the thread keeps running until the request
        deadline passed to the SDK expires.

        Raises:
            ClassifierError: On any SDK, network, auth or quota failure
        """
        try:
            response = await asyncio.to_thread(self._detect, data)
        except ProviderDisabledError:
            raise
        except Exception as e:
            raise ClassifierError(_PROVIDER, f"SafeSearch request failed: {e}") from e

        error = getattr(response, "error", None)
        if error is not None and getattr(error, "message", ""):
            raise ClassifierError(_PROVIDER, f"SafeSearch returned an error: {error.message}")

        annotation = response.safe_search_annotation
        return SafeSearchAnnotation(
            adult=to_risk_level(annotation.adult),
            violence=to_risk_level(annotation.violence),
            racy=to_risk_level(annotation.racy),
            medical=to_risk_level(annotation.medical),
            spoof=to_risk_level(annotation.spoof),
        )
