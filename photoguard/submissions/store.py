"""
Submission and abuse-counter storage.

In-memory, thread-safe stores behind small interfaces. State transitions
are checked and applied under the store lock so two staff members cannot
both process the same submission.
"""

import threading
from collections import defaultdict

from photoguard.errors import (
    SubmissionAlreadyProcessedError,
    SubmissionForbiddenError,
    SubmissionNotFoundError,
)
from photoguard.submissions.models import PhotoSubmission, SubmissionStatus


class SubmissionStore:
    """Thread-safe in-memory submission storage, kept in creation order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._submissions: dict[str, PhotoSubmission] = {}

    def add(self, submission: PhotoSubmission) -> PhotoSubmission:
        with self._lock:
            self._submissions[submission.id] = submission
        return submission

    def get(self, submission_id: str) -> PhotoSubmission | None:
        with self._lock:
            return self._submissions.get(submission_id)

    def list_by_user(self, user_id: str) -> list[PhotoSubmission]:
        """Submissions of one user, newest first."""
        with self._lock:
            return [s for s in reversed(self._submissions.values()) if s.user_id == user_id]

    def list_by_bar(
        self, bar_id: str, status: SubmissionStatus | None = None
    ) -> list[PhotoSubmission]:
        """Submissions at one bar, newest first, optionally filtered by status."""
        with self._lock:
            return [
                s
                for s in reversed(self._submissions.values())
                if s.bar_id == bar_id and (status is None or s.status == status)
            ]

    def transition(
        self,
        submission_id: str,
        bar_id: str,
        target: SubmissionStatus,
        reason: str | None = None,
        comment: str | None = None,
    ) -> PhotoSubmission:
        """
        Move a PENDING submission to VALIDATED or REJECTED.

        Raises:
            SubmissionNotFoundError: Unknown id
            SubmissionForbiddenError: Submission belongs to another bar
            SubmissionAlreadyProcessedError: Submission is not PENDING
        """
        with self._lock:
            submission = self._submissions.get(submission_id)
            if submission is None:
                raise SubmissionNotFoundError(f"Submission not found: {submission_id}")
            if submission.bar_id != bar_id:
                raise SubmissionForbiddenError("This photo does not belong to your bar")
            if submission.status != SubmissionStatus.PENDING:
                raise SubmissionAlreadyProcessedError(
                    f"Submission already processed ({submission.status.value})"
                )

            if target == SubmissionStatus.VALIDATED:
                submission.mark_validated()
            elif target == SubmissionStatus.REJECTED:
                submission.mark_rejected(reason, comment)
            else:
                raise ValueError(f"Cannot transition a submission to {target.value}")
            return submission

    def reset(self) -> None:
        with self._lock:
            self._submissions.clear()


class AbuseCounterStore:
    """Per-user tally of photos rejected by automatic moderation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = defaultdict(int)

    def increment(self, user_id: str) -> int:
        """Add one flag and return the new total."""
        with self._lock:
            self._counts[user_id] += 1
            return self._counts[user_id]

    def get(self, user_id: str) -> int:
        with self._lock:
            return self._counts.get(user_id, 0)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


_submission_store: SubmissionStore | None = None
_abuse_counter_store: AbuseCounterStore | None = None


def get_submission_store() -> SubmissionStore:
    """Get the global submission store instance."""
    global _submission_store
    if _submission_store is None:
        _submission_store = SubmissionStore()
    return _submission_store


def get_abuse_counter_store() -> AbuseCounterStore:
    """Get the global abuse counter instance."""
    global _abuse_counter_store
    if _abuse_counter_store is None:
        _abuse_counter_store = AbuseCounterStore()
    return _abuse_counter_store
