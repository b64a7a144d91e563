"""Prometheus metrics for external calls and orchestration corrections."""

from prometheus_client import Counter, Histogram

# External call metrics
external_call_latency_ms = Histogram(
    "external_call_latency_ms",
    "External service call latency in milliseconds",
    ["service", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 30000],
)

external_call_errors_total = Counter(
    "external_call_errors_total",
    "Total external service call errors",
    ["service", "reason"],
)

# Geocoding
geocode_resolutions_total = Counter(
    "geocode_resolutions_total",
    "Geocoding resolutions by the tier that answered",
    ["tier"],
)

# Orchestration corrections
feasibility_corrections_total = Counter(
    "feasibility_corrections_total",
    "Corrections applied by the feasibility guard",
    ["guard"],
)

budget_autotrim_segments_total = Counter(
    "budget_autotrim_segments_total",
    "Segments removed by reconciliation auto-correction",
    ["kind"],
)


class PrometheusCallMetrics:
    """Prometheus-based external call metrics implementation."""

    def record_latency(self, service: str, outcome: str, latency_ms: float) -> None:
        """Record call latency."""
        external_call_latency_ms.labels(service=service, outcome=outcome).observe(latency_ms)

    def inc_error(self, service: str, reason: str) -> None:
        """Increment error counter."""
        external_call_errors_total.labels(service=service, reason=reason).inc()
