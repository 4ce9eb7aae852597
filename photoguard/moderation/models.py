"""
Moderation Data Model

Enumerations and the immutable result type shared by every provider:
- ModerationStatus: terminal verdict for one image
- ModerationProvider: identity of a pluggable backend
- RiskLevel: Google SafeSearch ordinal likelihood scale
- RiskCategory: canonical risk dimensions scored 0-100
- NsfwClass: output classes of the local NSFW model
- ModerationResult: the canonical verdict produced by an adapter
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ModerationStatus(str, Enum):
    """
    Photo moderation verdict.

    APPROVED: Content is safe, accept silently
    REJECTED: Content violates policy, block the submission
    NEEDS_REVIEW: Content is uncertain, accept and leave to bar staff
    """

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVIEW = "NEEDS_REVIEW"


class ModerationProvider(str, Enum):
    """Available moderation backends."""

    LOCAL_NSFW = "LOCAL_NSFW"  # Offline, lowest precision
    GOOGLE_VISION = "GOOGLE_VISION"
    AWS_REKOGNITION = "AWS_REKOGNITION"


NO_PROVIDER = "NONE"


class RiskLevel(str, Enum):
    """Ordinal likelihood returned by Google SafeSearch."""

    UNKNOWN = "UNKNOWN"
    VERY_UNLIKELY = "VERY_UNLIKELY"
    UNLIKELY = "UNLIKELY"
    POSSIBLE = "POSSIBLE"
    LIKELY = "LIKELY"
    VERY_LIKELY = "VERY_LIKELY"


class RiskCategory(str, Enum):
    """Named dimensions of content risk, each scored independently 0-100."""

    ADULT = "adult"
    VIOLENCE = "violence"
    RACY = "racy"
    MEDICAL = "medical"


class NsfwClass(str, Enum):
    """Output classes of the five-class NSFW image model."""

    DRAWING = "Drawing"
    HENTAI = "Hentai"
    NEUTRAL = "Neutral"
    PORN = "Porn"
    SEXY = "Sexy"


@dataclass(frozen=True)
class NsfwPrediction:
    """Probability (0.0-1.0) for a single NSFW model class."""

    class_name: NsfwClass
    probability: float


@dataclass(frozen=True)
class SafeSearchAnnotation:
    """Per-category likelihoods from a SafeSearch detection."""

    adult: RiskLevel
    violence: RiskLevel
    racy: RiskLevel
    medical: RiskLevel = RiskLevel.UNKNOWN
    spoof: RiskLevel = RiskLevel.UNKNOWN


@dataclass(frozen=True)
class ModerationLabel:
    """A single Rekognition moderation label."""

    name: str
    confidence: float  # 0-100
    parent_name: str | None = None


@dataclass(frozen=True)
class ModerationResult:
    """
    Result of moderating one image.

    Created fresh for every evaluation and never mutated afterwards.

    Attributes:
        status: Overall verdict
        confidence: Confidence (0-100) that the content is safe; higher is safer
        reasons: Human-readable explanations in evaluation order, empty when clean
        scores: Risk score (0-100) per evaluated category; a missing category
                means "not evaluated", not "zero risk"
        provider: Backend that produced the result, or "NONE"
        details: Provider-specific diagnostic payload, for audit only
    """

    status: ModerationStatus
    confidence: float
    reasons: tuple[str, ...] = ()
    scores: Mapping[str, float] = field(default_factory=dict)
    provider: str = NO_PROVIDER
    details: Any = None

    def __post_init__(self):
        """Freeze collections and enforce the verdict invariants."""
        object.__setattr__(self, "reasons", tuple(self.reasons))
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))
        object.__setattr__(self, "confidence", max(0.0, min(100.0, self.confidence)))

        if self.status != ModerationStatus.APPROVED and not self.reasons:
            raise ValueError(f"A {self.status.value} result must carry at least one reason")

    @property
    def is_rejected(self) -> bool:
        return self.status == ModerationStatus.REJECTED

    @property
    def is_degraded(self) -> bool:
        """True when no provider produced this result."""
        return self.provider == NO_PROVIDER

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (details excluded)."""
        return {
            "status": self.status.value,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "scores": dict(self.scores),
            "provider": self.provider,
        }


MANUAL_REVIEW_REASON = "Automatic moderation failed - requires manual review"
BATCH_FAILURE_REASON = "Moderation failed"


def degraded_result(reason: str = MANUAL_REVIEW_REASON) -> ModerationResult:
    """
    Build the synthetic verdict used when no provider produced a result.

    Infrastructure failure degrades to human review: never to approval,
    never to an exception.
    """
    return ModerationResult(
        status=ModerationStatus.NEEDS_REVIEW,
        confidence=0,
        reasons=(reason,),
        scores={},
        provider=NO_PROVIDER,
    )
