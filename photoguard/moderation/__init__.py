"""
Moderation module: shared data model and the orchestrator.

This module contains:
- models.py: statuses, provider identities, ModerationResult
- orchestrator.py: preferred provider, fallback chain, degraded result

Only the data model is re-exported here; photoguard.config depends on it.
Import the orchestrator from photoguard.moderation.orchestrator.
"""

from photoguard.moderation.models import (
    BATCH_FAILURE_REASON,
    MANUAL_REVIEW_REASON,
    NO_PROVIDER,
    ModerationLabel,
    ModerationProvider,
    ModerationResult,
    ModerationStatus,
    NsfwClass,
    NsfwPrediction,
    RiskCategory,
    RiskLevel,
    SafeSearchAnnotation,
    degraded_result,
)

__all__ = [
    "ModerationStatus",
    "ModerationProvider",
    "RiskLevel",
    "RiskCategory",
    "NsfwClass",
    "NsfwPrediction",
    "SafeSearchAnnotation",
    "ModerationLabel",
    "ModerationResult",
    "NO_PROVIDER",
    "MANUAL_REVIEW_REASON",
    "BATCH_FAILURE_REASON",
    "degraded_result",
]
