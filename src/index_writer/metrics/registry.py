"""
Prometheus metrics for the index writer, registered in the global REGISTRY.
Import this module at app startup to expose them.
"""

from prometheus_client import Counter, Histogram


# --- Operation Metrics ---

OPERATIONS_TOTAL = Counter(
    "index_writer_operations_total",
    "Operations acknowledged by the index writer",
    ["action", "outcome"],
)

CALLBACK_ERRORS_TOTAL = Counter(
    "index_writer_callback_errors_total",
    "Completion callbacks that raised while being notified",
)

# --- Bulk Request Metrics ---

BULK_REQUESTS_TOTAL = Counter(
    "index_writer_bulk_requests_total",
    "Bulk submissions sent to the backend",
    ["outcome"],
)

BULK_REQUEST_LATENCY_MS = Histogram(
    "index_writer_bulk_request_latency_ms",
    "Bulk submission latency in milliseconds",
    buckets=[1, 2.5, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

FLUSH_PASSES_TOTAL = Counter(
    "index_writer_flush_passes_total",
    "Build-and-submit passes run by the flush controller (first attempts and retries)",
)


class MetricsRegistry:
    """Centralized metrics registry for index writer components."""

    operations_total = OPERATIONS_TOTAL
    callback_errors_total = CALLBACK_ERRORS_TOTAL
    bulk_requests_total = BULK_REQUESTS_TOTAL
    bulk_request_latency_ms = BULK_REQUEST_LATENCY_MS
    flush_passes_total = FLUSH_PASSES_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
