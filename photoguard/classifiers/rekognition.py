"""
AWS Rekognition moderation-label classifier.

Detects inappropriate, unwanted, or offensive content and returns free
text labels, each with its own confidence (0-100). boto3 is an optional
extra; without it the classifier reports itself unavailable.

Setup:
1. Enable AWS Rekognition in the AWS Console
2. Create an IAM user with Rekognition permissions
3. Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY (or use any boto3
   credential source)
"""

import asyncio
import logging
from typing import Any

from photoguard.errors import ClassifierError, ProviderDisabledError
from photoguard.moderation.models import ModerationLabel, ModerationProvider

try:
    import boto3
    from botocore.config import Config as BotoConfig
except ImportError:  # optional extra: pip install photoguard[aws]
    boto3 = None
    BotoConfig = None

logger = logging.getLogger(__name__)

_PROVIDER = ModerationProvider.AWS_REKOGNITION.value


class RekognitionClassifier:
    """
    DetectModerationLabels through a boto3 Rekognition client.

    boto3 is synchronous; calls run in a worker thread.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        min_confidence: float = 50.0,
        timeout: float = 10.0,
        client: Any = None,
    ):
        self._region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._min_confidence = min_confidence
        self._timeout = timeout
        self._client = client
        self._client_error: str | None = None

    @staticmethod
    def sdk_available() -> bool:
        """Check whether boto3 is installed."""
        return boto3 is not None

    def is_available(self) -> bool:
        if self._client_error is not None:
            return False
        return self._client is not None or self.sdk_available()

    def connect(self) -> bool:
        """
        Build the client now rather than on the first call.

        A failure (boto3 missing, empty credential chain) is remembered
        and the classifier reports itself unavailable from then on.

        Returns:
            True if the client is usable
        """
        try:
            _ = self.client
        except Exception as e:
            self._client_error = str(e)
            logger.warning(f"AWS Rekognition client unavailable: {e}")
            return False
        return True

    @property
    def client(self) -> Any:
        """
        Get the Rekognition client (lazy initialization).

        Raises:
            ProviderDisabledError: If boto3 is not installed, no credentials
                                   are found, or an earlier connect() failed
        """
        if self._client_error is not None:
            raise ProviderDisabledError(
                _PROVIDER, f"AWS Rekognition client unavailable: {self._client_error}"
            )
        if self._client is None:
            if boto3 is None:
                raise ProviderDisabledError(
                    _PROVIDER, "boto3 is not installed. Run: pip install photoguard[aws]"
                )
            credentials = {}
            if self._access_key_id and self._secret_access_key:
                credentials = {
                    "aws_access_key_id": self._access_key_id,
                    "aws_secret_access_key": self._secret_access_key,
                }
            session = boto3.Session(region_name=self._region, **credentials)
            if session.get_credentials() is None:
                raise ProviderDisabledError(_PROVIDER, "No AWS credentials found")
            self._client = session.client(
                "rekognition",
                config=BotoConfig(
                    connect_timeout=self._timeout,
                    read_timeout=self._timeout,
                    retries={"max_attempts": 2},
                ),
            )
            logger.debug(f"Initialized Rekognition client (region={self._region})")
        return self._client

    def _detect(self, data: bytes) -> dict:
        return self.client.detect_moderation_labels(
            Image={"Bytes": data},
            MinConfidence=self._min_confidence,
        )

    async def classify(self, data: bytes) -> list[ModerationLabel]:
        """
        Detect moderation labels in an encoded image.

        The boto3 call runs in a worker thread and is not interrupted when
        the caller cancels; its connect and read timeouts bound it.

        Raises:
            ClassifierError: On any SDK, network, auth or quota failure
        """
        try:
            response = await asyncio.to_thread(self._detect, data)
        except ProviderDisabledError:
            raise
        except Exception as e:
            raise ClassifierError(_PROVIDER, f"DetectModerationLabels failed: {e}") from e

        return [
            ModerationLabel(
                name=label.get("Name", ""),
                confidence=float(label.get("Confidence", 0.0)),
                parent_name=label.get("ParentName") or None,
            )
            for label in response.get("ModerationLabels", [])
        ]
