"""
Pydantic Schemas for the PhotoGuard API

This module defines the request and response models:
- ModerationResponse: verdict, confidence, reasons, scores, provider
- Batch moderation request/response
- Provider status, submission, error, metrics and health schemas

Internal results are frozen dataclasses; conversion helpers at the bottom
bridge them to these API models.
"""

import json
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from photoguard.moderation.models import ModerationStatus

if TYPE_CHECKING:
    from photoguard.errors import PhotoRejectedError
    from photoguard.moderation.models import ModerationResult
    from photoguard.submissions.models import PhotoSubmission


# =============================================================================
# MODERATION MODELS
# =============================================================================


class ModerationResponse(BaseModel):
    """
    Verdict for one image.

    Example:
        {
            "status": "NEEDS_REVIEW",
            "confidence": 50,
            "reasons": ["Possible adult content"],
            "scores": {"adult": 50, "violence": 5, "racy": 20, "medical": 5},
            "provider": "GOOGLE_VISION"
        }
    """

    status: ModerationStatus = Field(..., description="APPROVED, REJECTED or NEEDS_REVIEW")

    confidence: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Confidence (0-100) that the content is safe",
    )

    reasons: list[str] = Field(
        default_factory=list,
        description="Human-readable explanations, empty when clean",
    )

    scores: dict[str, float] = Field(
        default_factory=dict,
        description="Risk score (0-100) per evaluated category",
    )

    provider: str = Field(..., description="Provider that produced the verdict, or NONE")

    image_ref: str | None = Field(default=None, description="The moderated image reference")

    @computed_field
    @property
    def degraded(self) -> bool:
        """True when no provider produced the verdict."""
        return self.provider == "NONE"

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "status": "APPROVED",
                    "confidence": 97,
                    "reasons": [],
                    "scores": {"adult": 1.2, "racy": 3.1},
                    "provider": "LOCAL_NSFW",
                }
            ]
        }
    )


class BatchModerationRequest(BaseModel):
    """Request body for /moderate/batch."""

    image_refs: list[str] = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Local paths or URLs of the images to moderate",
    )

    @field_validator("image_refs")
    @classmethod
    def validate_refs_not_blank(cls, v: list[str]) -> list[str]:
        """Reject blank references."""
        if any(not ref.strip() for ref in v):
            raise ValueError("Image references cannot be empty")
        return v


class BatchModerationResponse(BaseModel):
    """Verdicts for a batch, in input order."""

    results: list[ModerationResponse] = Field(default_factory=list)

    @computed_field
    @property
    def summary(self) -> dict[str, int]:
        """Count of each status in the batch."""
        counts = {status.value: 0 for status in ModerationStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts


class ProviderInfo(BaseModel):
    enabled: bool
    name: str


class ProviderStatusResponse(BaseModel):
    """Response from the /providers endpoint."""

    preferred: str = Field(..., description="Provider tried first")
    fallback_enabled: bool = Field(..., description="Whether the fallback chain is active")
    providers: dict[str, ProviderInfo] = Field(default_factory=dict)


# =============================================================================
# SUBMISSION MODELS
# =============================================================================


class SubmissionItemInput(BaseModel):
    """One claimed drink, as sent by the client."""

    drink_id: str = Field(..., min_length=1, description="Drink being claimed")

    friend_id: str | None = Field(
        default=None,
        description="Friend the drink is for; null for yourself, 'guest' for a guest",
    )

    model_config = ConfigDict(extra="ignore")


def parse_items(raw: str) -> list[SubmissionItemInput]:
    """
    Parse the multipart 'items' field (a JSON array).

    Raises:
        ValueError: If the field is not a JSON array of items
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"items must be a JSON array: {e.msg}") from e
    if not isinstance(data, list):
        raise ValueError("items must be a JSON array")
    return [SubmissionItemInput.model_validate(item) for item in data]


class SubmissionItemResponse(BaseModel):
    drink_id: str
    friend_id: str | None = None


class ModerationSummaryResponse(BaseModel):
    status: ModerationStatus
    provider: str
    confidence: float
    reasons: list[str] = Field(default_factory=list)


class SubmissionResponse(BaseModel):
    """A photo submission as returned by the API."""

    id: str
    user_id: str
    bar_id: str
    photo_ref: str
    items: list[SubmissionItemResponse] = Field(default_factory=list)
    status: Literal["PENDING", "VALIDATED", "REJECTED"]
    moderation: ModerationSummaryResponse | None = Field(
        default=None,
        description="Automatic moderation outcome, null if moderation did not run",
    )
    created_at: datetime
    updated_at: datetime
    validated_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    rejection_comment: str | None = None


class BarDecisionRequest(BaseModel):
    """Body for the bar staff validate endpoint."""

    bar_id: str = Field(..., min_length=1, description="Bar performing the action")


class BarRejectionRequest(BarDecisionRequest):
    """Body for the bar staff reject endpoint."""

    reason: str | None = Field(default=None, max_length=200)
    comment: str | None = Field(default=None, max_length=1000)


class UserFlagsResponse(BaseModel):
    user_id: str
    flags: int = Field(..., ge=0, description="Photos rejected by automatic moderation")


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PHOTO_REJECTED = "PHOTO_REJECTED"
    IMAGE_UNREADABLE = "IMAGE_UNREADABLE"
    SUBMISSION_NOT_FOUND = "SUBMISSION_NOT_FOUND"
    SUBMISSION_FORBIDDEN = "SUBMISSION_FORBIDDEN"
    SUBMISSION_ALREADY_PROCESSED = "SUBMISSION_ALREADY_PROCESSED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Rejections additionally carry the reasons and scores so the client
    can explain the refusal to the user.
    """

    code: str = Field(..., description="Machine-readable error code")

    message: str = Field(..., description="Human-readable error message")

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )

    reasons: list[str] | None = Field(default=None, description="Rejection reasons")

    scores: dict[str, float] | None = Field(default=None, description="Rejection risk scores")


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "PHOTO_REJECTED",
                "message": "Photo rejected by content moderation",
                "reasons": ["Adult content detected"],
                "scores": {"adult": 95, "violence": 5, "racy": 80, "medical": 5}
            }
        }
    """

    error: ErrorDetail = Field(..., description="Error details")


# =============================================================================
# METRICS MODELS
# =============================================================================


class ProviderMetrics(BaseModel):
    """Aggregated metrics for one provider (or NONE for degraded calls)."""

    provider: str = Field(..., description="Provider identifier")

    request_count: int = Field(default=0, ge=0, description="Verdicts produced")

    avg_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Average safety confidence",
    )

    avg_latency_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Average call latency in milliseconds",
    )

    statuses: dict[str, int] = Field(default_factory=dict, description="Verdict counts")


class MetricsResponse(BaseModel):
    """
    Response from the /metrics endpoint.

    Example:
        {
            "total_requests": 120,
            "requests_by_provider": {...},
            "requests_by_status": {"APPROVED": 110, "NEEDS_REVIEW": 8, "REJECTED": 2},
            "fallback_rate_percent": 2.5,
            "degraded_count": 0,
            "avg_latency_ms": 84.1
        }
    """

    total_requests: int = Field(default=0, ge=0, description="Moderation calls")

    requests_by_provider: dict[str, ProviderMetrics] = Field(default_factory=dict)

    requests_by_status: dict[str, int] = Field(default_factory=dict)

    fallback_rate_percent: float = Field(
        default=0.0,
        ge=0.0,
        description="Share of calls answered by a non-preferred provider",
    )

    degraded_count: int = Field(
        default=0,
        ge=0,
        description="Calls where every provider failed",
    )

    avg_latency_ms: float = Field(default=0.0, ge=0.0)


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """Health status of an individual system component."""

    name: str = Field(..., description="Component name (e.g., 'orchestrator', 'LOCAL_NSFW')")

    status: Literal["healthy", "degraded", "unhealthy"] = Field(...)

    latency_ms: float | None = Field(
        default=None,
        ge=0.0,
        description="Initialization latency for this component",
    )

    message: str | None = Field(default=None, description="Additional status information")


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "healthy",
            "service": "photoguard",
            "version": "0.1.0",
            "components": [
                {"name": "orchestrator", "status": "healthy"},
                {"name": "LOCAL_NSFW", "status": "healthy", "latency_ms": 812.4}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(...)

    service: str = Field(default="photoguard")

    version: str = Field(...)

    components: list[ComponentHealth] = Field(default_factory=list)

    uptime_seconds: float | None = Field(default=None, ge=0.0)


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def moderation_response_from_result(
    result: "ModerationResult", image_ref: str | None = None
) -> ModerationResponse:
    """Convert a ModerationResult dataclass to its API model (details dropped)."""
    return ModerationResponse(
        status=result.status,
        confidence=result.confidence,
        reasons=list(result.reasons),
        scores=dict(result.scores),
        provider=result.provider,
        image_ref=image_ref,
    )


def submission_response(submission: "PhotoSubmission") -> SubmissionResponse:
    """Convert a PhotoSubmission dataclass to its API model."""
    return SubmissionResponse.model_validate(submission.to_dict())


def rejection_error(exc: "PhotoRejectedError") -> ErrorResponse:
    """Build the error body for a moderation rejection."""
    return ErrorResponse(
        error=ErrorDetail(
            code=ErrorCodes.PHOTO_REJECTED,
            message="Photo rejected by content moderation",
            reasons=list(exc.reasons),
            scores=dict(exc.scores),
        )
    )
