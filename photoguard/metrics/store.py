"""
Metrics Store for Moderation Tracking

Aggregates per-call moderation metrics for analysis and reporting.
Uses in-memory storage; production systems should export to
Prometheus or a time-series database.

The store is thread-safe using threading.Lock to handle
concurrent requests in FastAPI's async environment.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field


@dataclass
class ModerationMetric:
    """
    Individual moderation call record.

    Attributes:
        timestamp: Unix timestamp when the call finished
        provider: Provider that produced the verdict, or "NONE" if degraded
        status: Verdict ('APPROVED', 'REJECTED', 'NEEDS_REVIEW')
        confidence: Safety confidence of the verdict (0-100)
        latency_ms: Total time including any fallback attempts
        fallback_used: Whether a provider other than the preferred one answered
        attempts: Number of providers invoked for this call
    """

    timestamp: float
    provider: str
    status: str
    confidence: float
    latency_ms: float
    fallback_used: bool = False
    attempts: int = 1

    @property
    def degraded(self) -> bool:
        return self.provider == "NONE"


@dataclass
class _ProviderAggregate:
    """Internal aggregate for per-provider metrics."""

    count: int = 0
    confidences: list[float] = field(default_factory=list)
    latencies: list[float] = field(default_factory=list)
    statuses: dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class AggregatedMetrics:
    """
    Aggregated metrics snapshot for reporting.

    All fields are snapshots captured at a specific moment.

    Attributes:
        total_requests: Total number of moderation calls
        fallback_count: Calls answered by a non-preferred provider
        degraded_count: Calls where every provider failed
        requests_by_provider: Count and latency/confidence samples per provider
        latencies: Latency samples across all calls
        statuses: Count of each verdict
    """

    total_requests: int = 0
    fallback_count: int = 0
    degraded_count: int = 0

    requests_by_provider: dict[str, _ProviderAggregate] = field(
        default_factory=lambda: defaultdict(_ProviderAggregate)
    )

    latencies: list[float] = field(default_factory=list)

    statuses: dict[str, int] = field(default_factory=lambda: defaultdict(int))


class MetricsStore:
    """
    Thread-safe in-memory metrics storage.

    Example:
        store = MetricsStore()
        store.record(ModerationMetric(
            timestamp=time.time(),
            provider="LOCAL_NSFW",
            status="APPROVED",
            confidence=97,
            latency_ms=42.0,
        ))
        aggregated = store.get_aggregated()
    """

    def __init__(self, max_history: int = 10000):
        """
        Initialize the metrics store.

        Args:
            max_history: Maximum individual metrics to retain.
                         Aggregates are preserved regardless of this limit.
        """
        self._lock = threading.Lock()
        self._metrics: list[ModerationMetric] = []
        self._max_history = max_history

        self._total_requests: int = 0
        self._fallback_count: int = 0
        self._degraded_count: int = 0

        self._by_provider: dict[str, _ProviderAggregate] = defaultdict(_ProviderAggregate)
        self._latencies: list[float] = []
        self._statuses: dict[str, int] = defaultdict(int)

    def record(self, metric: ModerationMetric) -> None:
        """
        Record a moderation call.

        Thread-safe. Updates both raw history and pre-computed aggregates.
        """
        with self._lock:
            self._metrics.append(metric)
            if len(self._metrics) > self._max_history:
                self._metrics = self._metrics[-self._max_history :]

            self._total_requests += 1
            if metric.fallback_used:
                self._fallback_count += 1
            if metric.degraded:
                self._degraded_count += 1

            provider_agg = self._by_provider[metric.provider]
            provider_agg.count += 1
            provider_agg.confidences.append(metric.confidence)
            provider_agg.latencies.append(metric.latency_ms)
            provider_agg.statuses[metric.status] += 1

            self._latencies.append(metric.latency_ms)
            if len(self._latencies) > self._max_history:
                self._latencies = self._latencies[-self._max_history :]

            self._statuses[metric.status] += 1

    def get_aggregated(self) -> AggregatedMetrics:
        """
        Get current aggregated metrics.

        Thread-safe. The returned object is a copy and safe to use
        outside the lock.
        """
        with self._lock:
            by_provider_copy = {
                provider: _ProviderAggregate(
                    count=agg.count,
                    confidences=list(agg.confidences),
                    latencies=list(agg.latencies),
                    statuses=dict(agg.statuses),
                )
                for provider, agg in self._by_provider.items()
            }

            return AggregatedMetrics(
                total_requests=self._total_requests,
                fallback_count=self._fallback_count,
                degraded_count=self._degraded_count,
                requests_by_provider=by_provider_copy,
                latencies=list(self._latencies),
                statuses=dict(self._statuses),
            )

    def get_recent(self, count: int = 100) -> list[ModerationMetric]:
        """Get the most recent moderation metrics."""
        with self._lock:
            return list(self._metrics[-count:])

    def reset(self) -> None:
        """
        Reset all metrics.

        Thread-safe. Primarily used for testing.
        """
        with self._lock:
            self._metrics.clear()
            self._total_requests = 0
            self._fallback_count = 0
            self._degraded_count = 0
            self._by_provider.clear()
            self._latencies.clear()
            self._statuses.clear()


_store: MetricsStore | None = None


def get_metrics_store() -> MetricsStore:
    """
    Get the global metrics store instance.

    Returns:
        Singleton MetricsStore instance
    """
    global _store
    if _store is None:
        _store = MetricsStore()
    return _store
