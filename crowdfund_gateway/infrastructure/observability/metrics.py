"""Prometheus metrics for investment settlement, performance workflow and distribution payouts"""

from prometheus_client import Counter, Histogram

# Investment metrics
investment_counter = Counter(
    "crowdfund_investment_total",
    "Investment lifecycle transitions",
    ["outcome"],  # created | completed | failed | refunded
)

settled_amount_counter = Counter(
    "crowdfund_settled_amount_cents_total",
    "Investment amount credited to businesses, in minor units",
)

# Performance metrics
performance_transition_counter = Counter(
    "crowdfund_performance_transition_total",
    "Performance report status transitions",
    ["status"],  # submitted | verified | approved
)

# Distribution metrics
distributions_created_counter = Counter(
    "crowdfund_distributions_created_total",
    "Distributions created by approval fan-out",
    ["distribution_type"],  # profit | loss | mixed | neutral
)

distribution_transition_counter = Counter(
    "crowdfund_distribution_transition_total",
    "Distribution status transitions",
    ["status"],  # approved | paid | failed | cancelled
)

fan_out_size_histogram = Histogram(
    "crowdfund_fan_out_size",
    "Distributions created per approved performance report",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250],
)

# Notification webhook metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_fan_out(distribution_types: list) -> None:
    """Record the size and type mix of one approval fan-out"""
    fan_out_size_histogram.observe(len(distribution_types))
    for distribution_type in distribution_types:
        distributions_created_counter.labels(distribution_type=distribution_type).inc()
