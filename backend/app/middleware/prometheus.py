"""Prometheus metrics middleware and custom metrics.

Features:
- HTTP request metrics (latency, count, errors)
- WebSocket connection and message metrics
- Leaderboard broadcast and store error counters
"""

from prometheus_client import Counter, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator, metrics
from fastapi import FastAPI


# =============================================================================
# Custom Metrics
# =============================================================================

APP_INFO = Info("kittenboard_app", "Application information")

WS_CONNECTIONS_TOTAL = Gauge(
    "kittenboard_ws_connections_total",
    "Total active WebSocket connections",
)

WS_MESSAGES_SENT = Counter(
    "kittenboard_ws_messages_sent_total",
    "Total WebSocket messages sent",
    ["message_type"],  # reply, broadcast
)

WS_MESSAGES_RECEIVED = Counter(
    "kittenboard_ws_messages_received_total",
    "Total WebSocket messages received",
)

LEADERBOARD_BROADCASTS = Counter(
    "kittenboard_leaderboard_broadcasts_total",
    "Out-of-band leaderboard pushes",
    ["reason"],  # update, reset
)

STORE_ERRORS = Counter(
    "kittenboard_store_errors_total",
    "Failed store operations",
    ["operation", "kind"],  # kind: unavailable, error
)


# =============================================================================
# Instrumentator Setup
# =============================================================================

def setup_prometheus(app: FastAPI, app_version: str = "1.0.0") -> Instrumentator:
    """Setup Prometheus metrics instrumentation.

    Args:
        app: FastAPI application instance
        app_version: Application version string

    Returns:
        Configured Instrumentator instance
    """
    APP_INFO.info({
        "version": app_version,
        "app_name": "kittenboard",
    })

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/health/live", "/health/ready", "/metrics"],
        inprogress_name="kittenboard_http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="kittenboard",
            metric_subsystem="http",
            latency_highr_buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5),
        )
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=True, tags=["Monitoring"])

    return instrumentator


# =============================================================================
# Metric Helper Functions
# =============================================================================

def record_ws_connection(connected: bool) -> None:
    """Record WebSocket connection change."""
    if connected:
        WS_CONNECTIONS_TOTAL.inc()
    else:
        WS_CONNECTIONS_TOTAL.dec()


def record_ws_message(direction: str, message_type: str = "reply") -> None:
    """Record WebSocket message.

    Args:
        direction: "sent" or "received"
        message_type: "reply" or "broadcast" for sent messages
    """
    if direction == "sent":
        WS_MESSAGES_SENT.labels(message_type=message_type).inc()
    else:
        WS_MESSAGES_RECEIVED.inc()


def record_broadcast(reason: str) -> None:
    LEADERBOARD_BROADCASTS.labels(reason=reason).inc()


def record_store_error(operation: str, unavailable: bool) -> None:
    STORE_ERRORS.labels(
        operation=operation,
        kind="unavailable" if unavailable else "error",
    ).inc()
