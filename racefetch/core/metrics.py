from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Race metrics
# ---------------------------------------------------------------------------
race_total = Counter(
    "race_total",
    "Total number of finished races by terminal cause",
    ["cause"],
)
race_duration_seconds = Histogram(
    "race_duration_seconds",
    "Wall time from race start to its single outcome",
    ["cause"],
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 15, 30, 60],
)
strategy_outcomes_total = Counter(
    "strategy_outcomes_total",
    "Settled strategy invocations by strategy name and outcome kind",
    ["strategy", "outcome"],
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests to the API",
    ["method", "path", "status"],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
