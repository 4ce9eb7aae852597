"""
Google Cloud Vision SafeSearch adapter.

Policy over the five-point likelihood scale:
- adult or violence LIKELY/VERY_LIKELY -> REJECTED
- adult or violence POSSIBLE           -> NEEDS_REVIEW (unless rejected)
- racy LIKELY/VERY_LIKELY              -> NEEDS_REVIEW, never REJECTED
- medical is scored but never decides the verdict
Confidence is the average safety across adult, violence and racy.
"""

from dataclasses import asdict

from photoguard.moderation.models import (
    ModerationProvider,
    ModerationResult,
    ModerationStatus,
    RiskCategory,
    RiskLevel,
    SafeSearchAnnotation,
)
from photoguard.providers.base import ProviderAdapter

RISK_SCORES: dict[RiskLevel, int] = {
    RiskLevel.UNKNOWN: 0,
    RiskLevel.VERY_UNLIKELY: 5,
    RiskLevel.UNLIKELY: 20,
    RiskLevel.POSSIBLE: 50,
    RiskLevel.LIKELY: 80,
    RiskLevel.VERY_LIKELY: 95,
}

HIGH_RISK = frozenset({RiskLevel.LIKELY, RiskLevel.VERY_LIKELY})
MEDIUM_RISK = frozenset({RiskLevel.POSSIBLE})


def risk_score(level: RiskLevel) -> int:
    return RISK_SCORES.get(level, 0)


class GoogleVisionAdapter(ProviderAdapter[SafeSearchAnnotation]):
    """Adapter for Google Cloud Vision SafeSearch."""

    provider = ModerationProvider.GOOGLE_VISION
    display_name = "Google Cloud Vision API"

    def evaluate(self, prediction: SafeSearchAnnotation) -> ModerationResult:
        reasons: list[str] = []
        status = ModerationStatus.APPROVED

        if prediction.adult in HIGH_RISK:
            reasons.append("Adult content detected")
            status = ModerationStatus.REJECTED
        elif prediction.adult in MEDIUM_RISK:
            reasons.append("Possible adult content")
            status = ModerationStatus.NEEDS_REVIEW

        if prediction.violence in HIGH_RISK:
            reasons.append("Violent content detected")
            status = ModerationStatus.REJECTED
        elif prediction.violence in MEDIUM_RISK:
            reasons.append("Possible violent content")
            if status == ModerationStatus.APPROVED:
                status = ModerationStatus.NEEDS_REVIEW

        if prediction.racy in HIGH_RISK:
            reasons.append("Suggestive content detected")
            if status == ModerationStatus.APPROVED:
                status = ModerationStatus.NEEDS_REVIEW

        scores = {
            RiskCategory.ADULT.value: risk_score(prediction.adult),
            RiskCategory.VIOLENCE.value: risk_score(prediction.violence),
            RiskCategory.RACY.value: risk_score(prediction.racy),
            RiskCategory.MEDICAL.value: risk_score(prediction.medical),
        }

        # Average safety, not worst case
        average_risk = (
            scores[RiskCategory.ADULT.value]
            + scores[RiskCategory.VIOLENCE.value]
            + scores[RiskCategory.RACY.value]
        ) / 3
        confidence = round(100 - average_risk)

        return ModerationResult(
            status=status,
            confidence=confidence,
            reasons=tuple(reasons),
            scores=scores,
            provider=self.provider.value,
            details={key: level.value for key, level in asdict(prediction).items()},
        )
