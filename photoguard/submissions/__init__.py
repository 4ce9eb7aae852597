"""
Submissions module: photo claims gated by content moderation.

This module contains:
- models.py: PhotoSubmission, SubmissionItem, SubmissionStatus
- store.py: thread-safe in-memory submission store and abuse counter
- gatekeeper.py: applies moderation verdicts and the staff lifecycle
"""

from photoguard.submissions.gatekeeper import (
    SubmissionGatekeeper,
    get_gatekeeper,
    reset_gatekeeper,
)
from photoguard.submissions.models import (
    GUEST,
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

__all__ = [
    "GUEST",
    "SubmissionStatus",
    "SubmissionItem",
    "ModerationSummary",
    "PhotoSubmission",
    "SubmissionStore",
    "AbuseCounterStore",
    "get_submission_store",
    "get_abuse_counter_store",
    "SubmissionGatekeeper",
    "get_gatekeeper",
    "reset_gatekeeper",
]
