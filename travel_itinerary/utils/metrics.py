"""Prometheus metrics for table store calls."""

from prometheus_client import Counter, Histogram

# Store call metrics
store_latency_ms = Histogram(
    "store_latency_ms",
    "Table store call latency in milliseconds",
    ["table", "operation", "outcome"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500],
)

store_errors_total = Counter(
    "store_errors_total",
    "Total table store errors",
    ["table", "reason"],
)

store_conflicts_total = Counter(
    "store_conflicts_total",
    "Total optimistic concurrency conflicts",
    ["table"],
)


class PrometheusStoreMetrics:
    """Prometheus-based store metrics implementation."""

    def record_latency(self, table: str, operation: str, outcome: str, latency_ms: float) -> None:
        """Record store call latency."""
        store_latency_ms.labels(table=table, operation=operation, outcome=outcome).observe(
            latency_ms
        )

    def inc_error(self, table: str, reason: str) -> None:
        """Increment error counter."""
        store_errors_total.labels(table=table, reason=reason).inc()

    def inc_conflict(self, table: str) -> None:
        """Increment conflict counter."""
        store_conflicts_total.labels(table=table).inc()
