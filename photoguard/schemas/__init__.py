"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the PhotoGuard API:
- Moderation verdicts (single and batch) and provider status
- Photo submissions and bar staff decisions
- Error, metrics and health check responses

Example usage:
    from photoguard.schemas import moderation_response_from_result

    response = moderation_response_from_result(result, image_ref)
"""

from photoguard.schemas.moderation import (
    # Moderation models
    BatchModerationRequest,
    BatchModerationResponse,
    ModerationResponse,
    ProviderInfo,
    ProviderStatusResponse,
    # Submission models
    BarDecisionRequest,
    BarRejectionRequest,
    ModerationSummaryResponse,
    SubmissionItemInput,
    SubmissionItemResponse,
    SubmissionResponse,
    UserFlagsResponse,
    parse_items,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Metrics models
    MetricsResponse,
    ProviderMetrics,
    # Health models
    ComponentHealth,
    HealthResponse,
    # Conversion utilities
    moderation_response_from_result,
    rejection_error,
    submission_response,
)

__all__ = [
    # Moderation models
    "ModerationResponse",
    "BatchModerationRequest",
    "BatchModerationResponse",
    "ProviderInfo",
    "ProviderStatusResponse",
    # Submission models
    "SubmissionItemInput",
    "SubmissionItemResponse",
    "ModerationSummaryResponse",
    "SubmissionResponse",
    "BarDecisionRequest",
    "BarRejectionRequest",
    "UserFlagsResponse",
    "parse_items",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Metrics models
    "ProviderMetrics",
    "MetricsResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
    # Conversion utilities
    "moderation_response_from_result",
    "submission_response",
    "rejection_error",
]
