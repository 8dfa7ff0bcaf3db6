"""Prometheus metric inventory.

Every metric the service exposes is defined here; the modules that own
the behaviour import the metric and increment it at the point of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by RequestContextMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Lesson-time metrics
# ---------------------------------------------------------------------------

LESSON_TIME_UPDATES = Counter(
    "lesson_time_updates_total",
    "Lesson position updates by outcome",
    ["outcome"],  # saved|unchanged|invalid|not_found|error
)

STUDY_TIME_LOGS = Counter(
    "study_time_logs_total",
    "Study-time audit attempts by result",
    ["result"],  # logged|skipped|failed
)

BLOCKED_CLIENTS = Counter(
    "blocked_client_requests_total",
    "Requests rejected by the client filter",
    ["reason"],  # user_agent|origin
)
