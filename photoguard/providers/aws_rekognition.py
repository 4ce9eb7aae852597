"""
AWS Rekognition adapter.

Labels are bucketed into adult, violence and racy by keyword. Each bucket
keeps the highest label confidence seen. Policy per label:
- adult/violence confidence > 80 -> REJECTED
- adult/violence confidence > 60 -> NEEDS_REVIEW (unless rejected)
- racy confidence > 60           -> NEEDS_REVIEW, never REJECTED
Confidence is 100 minus the single highest bucket score (worst case).
"""

from dataclasses import asdict

from photoguard.moderation.models import (
    ModerationLabel,
    ModerationProvider,
    ModerationResult,
    ModerationStatus,
    RiskCategory,
)
from photoguard.providers.base import ProviderAdapter

REJECT_THRESHOLD = 80.0
REVIEW_THRESHOLD = 60.0
RACY_REVIEW_THRESHOLD = 60.0

ADULT_KEYWORDS = ("explicit nudity", "nudity", "sexual", "adult")
VIOLENCE_KEYWORDS = ("violence", "weapon", "blood", "gore", "corpse")
RACY_KEYWORDS = ("suggestive", "revealing", "partial nudity")


def _match(name: str) -> set[RiskCategory]:
    categories: set[RiskCategory] = set()
    if any(keyword in name for keyword in RACY_KEYWORDS):
        categories.add(RiskCategory.RACY)
    # "partial nudity" is suggestive, not explicit
    elif any(keyword in name for keyword in ADULT_KEYWORDS):
        categories.add(RiskCategory.ADULT)
    if any(keyword in name for keyword in VIOLENCE_KEYWORDS):
        categories.add(RiskCategory.VIOLENCE)
    return categories


def categorize(label: ModerationLabel) -> set[RiskCategory]:
    """
    Bucket a label by keyword.

    The label's own name decides; the parent name is only consulted when
    the name matches nothing.
    """
    categories = _match(label.name.lower())
    if not categories and label.parent_name:
        categories = _match(label.parent_name.lower())
    return categories


class AWSRekognitionAdapter(ProviderAdapter[list[ModerationLabel]]):
    """Adapter for AWS Rekognition moderation labels."""

    provider = ModerationProvider.AWS_REKOGNITION
    display_name = "AWS Rekognition"

    def evaluate(self, prediction: list[ModerationLabel]) -> ModerationResult:
        reasons: list[str] = []
        status = ModerationStatus.APPROVED
        scores = {
            RiskCategory.ADULT.value: 0.0,
            RiskCategory.VIOLENCE.value: 0.0,
            RiskCategory.RACY.value: 0.0,
        }

        for label in prediction:
            categories = categorize(label)
            confidence = label.confidence

            if RiskCategory.ADULT in categories:
                scores["adult"] = max(scores["adult"], confidence)
                if confidence > REJECT_THRESHOLD:
                    reasons.append(f"Adult content: {label.name}")
                    status = ModerationStatus.REJECTED
                elif confidence > REVIEW_THRESHOLD:
                    reasons.append(f"Possible adult content: {label.name}")
                    if status == ModerationStatus.APPROVED:
                        status = ModerationStatus.NEEDS_REVIEW

            if RiskCategory.VIOLENCE in categories:
                scores["violence"] = max(scores["violence"], confidence)
                if confidence > REJECT_THRESHOLD:
                    reasons.append(f"Violent content: {label.name}")
                    status = ModerationStatus.REJECTED
                elif confidence > REVIEW_THRESHOLD:
                    reasons.append(f"Possible violent content: {label.name}")
                    if status == ModerationStatus.APPROVED:
                        status = ModerationStatus.NEEDS_REVIEW

            if RiskCategory.RACY in categories:
                scores["racy"] = max(scores["racy"], confidence)
                if confidence > RACY_REVIEW_THRESHOLD and status == ModerationStatus.APPROVED:
                    reasons.append(f"Suggestive content: {label.name}")
                    status = ModerationStatus.NEEDS_REVIEW

        # Worst case, deliberately stricter than the SafeSearch average
        confidence = round(100 - max(scores.values()))

        return ModerationResult(
            status=status,
            confidence=confidence,
            reasons=tuple(reasons),
            scores=scores,
            provider=self.provider.value,
            details={"labels": [asdict(label) for label in prediction]},
        )
