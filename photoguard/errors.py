"""
PhotoGuard exception hierarchy.

Content risk is never an exception: it is a ModerationResult status.
Exceptions here describe backends that could not produce a result,
unreadable images, the structured rejection raised to the submission
flow, and invalid submission state transitions.
"""

from typing import Mapping


class PhotoGuardError(Exception):
    """Base class for all PhotoGuard errors."""


# =============================================================================
# PROVIDER ERRORS
# =============================================================================


class ProviderError(PhotoGuardError):
    """A moderation provider could not produce a result for this call."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class ProviderDisabledError(ProviderError):
    """Provider is disabled by configuration, missing its SDK, or missing credentials."""


class ClassifierNotReadyError(ProviderError):
    """The local model has not finished (or failed) loading."""


class ClassifierError(ProviderError):
    """Network, SDK or inference failure inside a classifier."""


# =============================================================================
# IMAGE ERRORS
# =============================================================================


class ImageFetchError(PhotoGuardError):
    """An image reference could not be read."""

    def __init__(self, reference: str, message: str):
        super().__init__(message)
        self.reference = reference


# =============================================================================
# SUBMISSION ERRORS
# =============================================================================


class PhotoRejectedError(PhotoGuardError):
    """
    Structured content-risk rejection.

    Carries the reasons and scores so the client can explain to the
    user why the photo was refused.
    """

    def __init__(
        self,
        reasons: list[str] | tuple[str, ...],
        scores: Mapping[str, float],
        provider: str,
        confidence: float,
    ):
        super().__init__("Photo rejected by content moderation: " + "; ".join(reasons))
        self.reasons = list(reasons)
        self.scores = dict(scores)
        self.provider = provider
        self.confidence = confidence


class SubmissionError(PhotoGuardError):
    """Base class for invalid submission operations."""


class SubmissionNotFoundError(SubmissionError):
    pass


class SubmissionForbiddenError(SubmissionError):
    """The submission belongs to another bar."""


class SubmissionAlreadyProcessedError(SubmissionError):
    """Only PENDING submissions can be validated or rejected."""
