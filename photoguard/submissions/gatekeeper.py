"""
Submission Gatekeeper - applies the moderation verdict to photo submissions.

Consequences per verdict:
- REJECTED: delete the stored photo (best effort), add one abuse flag to
  the user, raise PhotoRejectedError. No submission is created.
- NEEDS_REVIEW: log a warning and create the PENDING submission; bar
  staff make the final decision.
- APPROVED: create the PENDING submission silently.

If the orchestrator itself raises, the submission proceeds without
moderation. A broken moderation stack never blocks a drink claim.
"""

import logging
from typing import Iterable

from photoguard.errors import PhotoRejectedError
from photoguard.moderation.models import ModerationResult, ModerationStatus
from photoguard.moderation.orchestrator import (
    ModerationOrchestrator,
    get_moderation_orchestrator,
)
from photoguard.storage.images import ImageStore, get_image_store, preview
from photoguard.submissions.models import (
    ModerationSummary,
    PhotoSubmission,
    SubmissionItem,
    SubmissionStatus,
)
from photoguard.submissions.store import (
    AbuseCounterStore,
    SubmissionStore,
    get_abuse_counter_store,
    get_submission_store,
)

logger = logging.getLogger(__name__)

ALL_STATUSES = "ALL"


class SubmissionGatekeeper:
    """
    Photo submission flow with content moderation.

    Usage:
        gatekeeper = get_gatekeeper()
        submission = await gatekeeper.submit_photo(user_id, bar_id, photo_ref, items)
    """

    def __init__(
        self,
        orchestrator: ModerationOrchestrator,
        image_store: ImageStore,
        submissions: SubmissionStore,
        abuse_counter: AbuseCounterStore,
    ):
        self._orchestrator = orchestrator
        self._image_store = image_store
        self._submissions = submissions
        self._abuse_counter = abuse_counter

    async def submit_photo(
        self,
        user_id: str,
        bar_id: str,
        photo_ref: str,
        items: Iterable[SubmissionItem],
    ) -> PhotoSubmission:
        """
        Moderate a photo and record the submission.

        Args:
            user_id: Submitting user
            bar_id: Bar the photo was taken at
            photo_ref: Reference of the already-stored photo
            items: Claimed drinks

        Returns:
            The new PENDING submission

        Raises:
            PhotoRejectedError: If moderation rejected the photo
        """
        result = await self._moderate(photo_ref)

        if result is not None and result.status == ModerationStatus.REJECTED:
            await self._handle_rejection(user_id, photo_ref, result)

        if result is not None and result.status == ModerationStatus.NEEDS_REVIEW:
            logger.warning(
                f"Photo from user {user_id} at bar {bar_id} needs manual review: "
                f"{', '.join(result.reasons)}"
            )

        submission = self._submissions.add(
            PhotoSubmission(
                user_id=user_id,
                bar_id=bar_id,
                photo_ref=photo_ref,
                items=list(items),
                moderation=ModerationSummary.from_result(result) if result else None,
            )
        )
        logger.info(f"Photo submission created: {submission.id} ({len(submission.items)} items)")
        return submission

    async def _moderate(self, photo_ref: str) -> ModerationResult | None:
        try:
            return await self._orchestrator.moderate(photo_ref)
        except Exception:
            logger.exception(
                f"Moderation unavailable for {preview(photo_ref)}, continuing without it"
            )
            return None

    async def _handle_rejection(
        self, user_id: str, photo_ref: str, result: ModerationResult
    ) -> None:
        try:
            await self._image_store.delete_image(photo_ref)
        except Exception as e:
            logger.warning(f"Could not delete rejected photo {preview(photo_ref)}: {e}")

        flags = self._abuse_counter.increment(user_id)
        logger.warning(
            f"Photo rejected for user {user_id} by {result.provider} "
            f"(flags: {flags}): {', '.join(result.reasons)}"
        )

        raise PhotoRejectedError(
            reasons=result.reasons,
            scores=result.scores,
            provider=result.provider,
            confidence=result.confidence,
        )

    def validate_submission(self, submission_id: str, bar_id: str) -> PhotoSubmission:
        """
        Accept a PENDING submission on behalf of its bar.

        Raises:
            SubmissionNotFoundError / SubmissionForbiddenError /
            SubmissionAlreadyProcessedError
        """
        submission = self._submissions.transition(
            submission_id, bar_id, SubmissionStatus.VALIDATED
        )
        logger.info(f"Photo submission validated: {submission_id}")
        return submission

    def reject_submission(
        self,
        submission_id: str,
        bar_id: str,
        reason: str | None = None,
        comment: str | None = None,
    ) -> PhotoSubmission:
        """Refuse a PENDING submission on behalf of its bar."""
        submission = self._submissions.transition(
            submission_id, bar_id, SubmissionStatus.REJECTED, reason=reason, comment=comment
        )
        logger.info(f"Photo submission rejected: {submission_id}")
        return submission

    def list_user_submissions(self, user_id: str) -> list[PhotoSubmission]:
        return self._submissions.list_by_user(user_id)

    def list_bar_submissions(
        self, bar_id: str, status: SubmissionStatus | str | None = ALL_STATUSES
    ) -> list[PhotoSubmission]:
        """
        List a bar's submissions, newest first.

        Args:
            status: Status to keep; None or "ALL" keeps everything

        Raises:
            ValueError: For an unknown status name
        """
        if status is None or status == ALL_STATUSES:
            return self._submissions.list_by_bar(bar_id)
        return self._submissions.list_by_bar(bar_id, SubmissionStatus(status))

    def get_abuse_count(self, user_id: str) -> int:
        return self._abuse_counter.get(user_id)


_gatekeeper_instance: SubmissionGatekeeper | None = None


def get_gatekeeper() -> SubmissionGatekeeper:
    """
    Get the global gatekeeper instance.

    Returns:
        The singleton SubmissionGatekeeper wired to the global orchestrator,
        image store, submission store and abuse counter
    """
    global _gatekeeper_instance
    if _gatekeeper_instance is None:
        _gatekeeper_instance = SubmissionGatekeeper(
            orchestrator=get_moderation_orchestrator(),
            image_store=get_image_store(),
            submissions=get_submission_store(),
            abuse_counter=get_abuse_counter_store(),
        )
    return _gatekeeper_instance


def reset_gatekeeper() -> None:
    """Reset the global gatekeeper instance (testing)."""
    global _gatekeeper_instance
    _gatekeeper_instance = None
