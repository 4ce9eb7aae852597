"""
Submission Data Model

A photo submission records which drinks a user claims to have ordered at
a bar, backed by a photo that bar staff later validate or reject.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from photoguard.moderation.models import ModerationResult

GUEST = "guest"


class SubmissionStatus(str, Enum):
    """
    Lifecycle of a submission.

    PENDING: Waiting for bar staff
    VALIDATED: Accepted by the bar
    REJECTED: Refused by the bar
    """

    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    REJECTED = "REJECTED"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SubmissionItem:
    """
    One drink on a submission.

    Attributes:
        drink_id: Drink being claimed
        friend_id: Friend the drink is for; None means the submitter or a guest
    """

    drink_id: str
    friend_id: str | None = None

    @classmethod
    def create(cls, drink_id: str, friend_id: str | None = None) -> "SubmissionItem":
        """Build an item, mapping the 'guest' placeholder to None."""
        return cls(drink_id=drink_id, friend_id=None if friend_id == GUEST else friend_id)

    def to_dict(self) -> dict[str, Any]:
        return {"drink_id": self.drink_id, "friend_id": self.friend_id}


@dataclass(frozen=True)
class ModerationSummary:
    """The part of a ModerationResult kept with a submission for staff."""

    status: str
    provider: str
    confidence: float
    reasons: tuple[str, ...] = ()

    @classmethod
    def from_result(cls, result: ModerationResult) -> "ModerationSummary":
        return cls(
            status=result.status.value,
            provider=result.provider,
            confidence=result.confidence,
            reasons=tuple(result.reasons),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "provider": self.provider,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
        }


@dataclass
class PhotoSubmission:
    """
    A user's photo claim at a bar.

    Attributes:
        user_id: Submitting user
        bar_id: Bar the photo was taken at
        photo_ref: Reference of the stored photo
        items: Claimed drinks
        status: Lifecycle state
        moderation: Automatic moderation outcome, None if moderation did not run
    """

    user_id: str
    bar_id: str
    photo_ref: str
    items: list[SubmissionItem] = field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.PENDING
    moderation: ModerationSummary | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    validated_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    rejection_comment: str | None = None

    @property
    def needs_review(self) -> bool:
        """True when automatic moderation flagged the photo for staff attention."""
        return self.moderation is not None and self.moderation.status == "NEEDS_REVIEW"

    def mark_validated(self) -> None:
        self.status = SubmissionStatus.VALIDATED
        self.validated_at = self.updated_at = _now()

    def mark_rejected(self, reason: str | None = None, comment: str | None = None) -> None:
        self.status = SubmissionStatus.REJECTED
        self.rejected_at = self.updated_at = _now()
        self.rejection_reason = reason
        self.rejection_comment = comment

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bar_id": self.bar_id,
            "photo_ref": self.photo_ref,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "moderation": self.moderation.to_dict() if self.moderation else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "validated_at": self.validated_at,
            "rejected_at": self.rejected_at,
            "rejection_reason": self.rejection_reason,
            "rejection_comment": self.rejection_comment,
        }
