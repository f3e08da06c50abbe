"""Sentry error tracking integration.

Features:
- Automatic error capture
- Performance monitoring
- Player context for realtime failures
"""

import logging
import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.redis import RedisIntegration

# Business errors that are answered with a 4xx and never reported
EXPECTED_ERRORS = frozenset({
    "InvalidArgumentError",
    "RequestValidationError",
    "ValidationError",
})


def init_sentry(
    dsn: str | None = None,
    environment: str = "development",
    release: str | None = None,
    traces_sample_rate: float = 0.1,
) -> bool:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN. If None, uses SENTRY_DSN env var.
        environment: Environment name (development, staging, production)
        release: Release version string
        traces_sample_rate: Percentage of transactions to trace (0.0 to 1.0)

    Returns:
        True if Sentry was initialized, False otherwise
    """
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")

    if not sentry_dsn:
        return False

    logging_integration = LoggingIntegration(
        level=logging.INFO,
        event_level=logging.ERROR,
    )

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        release=release or os.getenv("APP_VERSION", "1.0.0"),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            RedisIntegration(),
            logging_integration,
        ],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )

    return True


def _before_send(event: dict, hint: dict) -> dict | None:
    """Drop expected business errors before sending to Sentry."""
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]
        if exc_type.__name__ in EXPECTED_ERRORS:
            return None

    return event


def _before_send_transaction(event: dict, hint: dict) -> dict | None:
    """Drop health check and metrics transactions."""
    transaction_name = event.get("transaction", "")
    if any(path in transaction_name for path in ["/health", "/metrics"]):
        return None

    return event


def capture_realtime_error(
    error: Exception,
    connection_id: str,
    user_name: str | None = None,
    extra: dict[str, Any] | None = None,
) -> str | None:
    """Capture an error that tore down a WebSocket connection.

    Returns:
        Sentry event ID or None
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_level("error")
        scope.set_tag("connection_id", connection_id)
        scope.set_tag("realtime_error", "true")
        if user_name:
            scope.set_tag("user_name", user_name)
        if extra:
            for key, value in extra.items():
                scope.set_extra(key, value)

        return sentry_sdk.capture_exception(error)
