"""
Metrics Reporter for API Responses

Transforms raw aggregated metrics into the MetricsResponse schema
with computed averages and rates.
"""

from photoguard.metrics.store import MetricsStore, get_metrics_store
from photoguard.schemas.moderation import MetricsResponse, ProviderMetrics


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class MetricsReporter:
    """
    Generate metrics reports from aggregated data.

    Example:
        reporter = MetricsReporter()
        response = reporter.generate_report()
    """

    def __init__(self, store: MetricsStore | None = None):
        """
        Initialize the reporter.

        Args:
            store: MetricsStore instance to report from.
                   If None, uses the global singleton.
        """
        self._store = store or get_metrics_store()

    def generate_report(self) -> MetricsResponse:
        """
        Generate a complete metrics report.

        Returns:
            MetricsResponse ready for API serialization
        """
        agg = self._store.get_aggregated()

        providers: dict[str, ProviderMetrics] = {}
        for provider, data in agg.requests_by_provider.items():
            providers[provider] = ProviderMetrics(
                provider=provider,
                request_count=data.count,
                avg_confidence=round(_mean(data.confidences), 2),
                avg_latency_ms=round(_mean(data.latencies), 2),
                statuses=dict(data.statuses),
            )

        total = agg.total_requests
        return MetricsResponse(
            total_requests=total,
            requests_by_provider=providers,
            requests_by_status=dict(agg.statuses),
            fallback_rate_percent=round(agg.fallback_count / total * 100, 2) if total else 0.0,
            degraded_count=agg.degraded_count,
            avg_latency_ms=round(_mean(agg.latencies), 2),
        )

    def get_status_distribution(self) -> dict[str, float]:
        """
        Get the share of each verdict, in percent.

        Returns:
            Dictionary mapping verdict names to percentage of total calls
        """
        agg = self._store.get_aggregated()
        total = sum(agg.statuses.values())
        if total == 0:
            return {}
        return {status: round(count / total * 100, 1) for status, count in agg.statuses.items()}


def get_reporter(store: MetricsStore | None = None) -> MetricsReporter:
    """
    Get a metrics reporter instance.

    Args:
        store: Optional MetricsStore to use. Defaults to global singleton.
    """
    return MetricsReporter(store)
