"""
Local NSFW model adapter.

The local model is the least accurate backend, so it runs in
"catch more, review more" mode with the lowest rejection threshold:
- adult (Porn + Hentai) > 15% -> REJECTED
- adult in (5%, 15%]          -> NEEDS_REVIEW
- racy (Sexy) > 20%           -> NEEDS_REVIEW, unless already rejected
Confidence is 100 minus the worse of adult and racy.
"""

from typing import Any

from photoguard.classifiers.local_nsfw import LocalNsfwClassifier
from photoguard.moderation.models import (
    ModerationProvider,
    ModerationResult,
    ModerationStatus,
    NsfwClass,
    NsfwPrediction,
    RiskCategory,
)
from photoguard.providers.base import ProviderAdapter

ADULT_REJECT_THRESHOLD = 15.0
ADULT_REVIEW_THRESHOLD = 5.0
RACY_REVIEW_THRESHOLD = 20.0


class LocalNsfwAdapter(ProviderAdapter[list[NsfwPrediction]]):
    """Adapter for the offline ONNX NSFW classifier."""

    provider = ModerationProvider.LOCAL_NSFW
    display_name = "Local NSFW model"

    @property
    def model(self) -> LocalNsfwClassifier:
        return self._classifier

    async def initialize(self) -> None:
        if self._enabled:
            await self.model.initialize()

    async def wait_ready(self) -> None:
        await self.model.wait_ready()

    @property
    def is_loading(self) -> bool:
        return self._enabled and self.model.is_loading

    def evaluate(self, prediction: list[NsfwPrediction]) -> ModerationResult:
        probabilities = {p.class_name: p.probability for p in prediction}

        adult_score = (
            probabilities.get(NsfwClass.PORN, 0.0) + probabilities.get(NsfwClass.HENTAI, 0.0)
        ) * 100
        racy_score = probabilities.get(NsfwClass.SEXY, 0.0) * 100

        reasons: list[str] = []
        status = ModerationStatus.APPROVED

        if adult_score > ADULT_REJECT_THRESHOLD:
            reasons.append(f"Explicit content detected ({adult_score:.1f}%)")
            status = ModerationStatus.REJECTED
        elif adult_score > ADULT_REVIEW_THRESHOLD:
            reasons.append(f"Possible explicit content ({adult_score:.1f}%)")
            status = ModerationStatus.NEEDS_REVIEW

        if racy_score > RACY_REVIEW_THRESHOLD and status == ModerationStatus.APPROVED:
            reasons.append(f"Suggestive content detected ({racy_score:.1f}%)")
            status = ModerationStatus.NEEDS_REVIEW

        confidence = round(max(0.0, 100 - max(adult_score, racy_score)))

        return ModerationResult(
            status=status,
            confidence=confidence,
            reasons=tuple(reasons),
            scores={
                RiskCategory.ADULT.value: round(adult_score, 2),
                RiskCategory.RACY.value: round(racy_score, 2),
            },
            provider=self.provider.value,
            details=self._details(prediction),
        )

    @staticmethod
    def _details(prediction: list[NsfwPrediction]) -> dict[str, Any]:
        return {
            "predictions": [
                {"class": p.class_name.value, "probability": round(p.probability * 100, 2)}
                for p in prediction
            ]
        }
