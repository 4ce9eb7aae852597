"""
Metrics Module: Moderation Storage and Reporting

Components:
    MetricsStore: Thread-safe in-memory metrics aggregation
    ModerationMetric: Individual moderation call record
    AggregatedMetrics: Pre-computed aggregates for reporting
    MetricsReporter: Generate MetricsResponse for API endpoints

Usage:
    from photoguard.metrics import get_metrics_store, ModerationMetric

    store = get_metrics_store()
    store.record(ModerationMetric(
        timestamp=time.time(),
        provider="GOOGLE_VISION",
        status="NEEDS_REVIEW",
        confidence=55,
        latency_ms=310.0,
        fallback_used=True,
        attempts=2,
    ))

    from photoguard.metrics import MetricsReporter
    response = MetricsReporter().generate_report()

Singleton Access:
    get_metrics_store(): Returns global MetricsStore instance
"""

from photoguard.metrics.store import (
    AggregatedMetrics,
    MetricsStore,
    ModerationMetric,
    get_metrics_store,
)

from photoguard.metrics.reporter import (
    MetricsReporter,
    get_reporter,
)


__all__ = [
    # Storage
    "MetricsStore",
    "ModerationMetric",
    "AggregatedMetrics",
    "get_metrics_store",
    # Reporting
    "MetricsReporter",
    "get_reporter",
]
