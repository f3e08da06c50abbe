"""Structured logging for the card game service.

Every event carries ``service`` and ``env``. Events emitted while serving a
request also carry ``request_id``, and, once the player is known,
``user_name``. Realtime events carry ``connection_id`` instead of a request id.

- JSON output in production, colored console output otherwise
- stdlib loggers (uvicorn, redis, the ws modules) are rendered the same way
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "kittenboard"

# Keys bound per request or connection; cleared together
CONTEXT_KEYS = ("request_id", "connection_id", "user_name")


def add_service_context(app_env: str) -> Processor:
    """Build a processor stamping ``service`` and ``env`` on every event."""

    def processor(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", app_env)
        return event_dict

    return processor


def drop_color_message(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    # uvicorn duplicates its message with ANSI codes under this key
    event_dict.pop("color_message", None)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    app_env: str = "development",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: If True, output JSON logs
        app_env: Application environment; production always logs JSON
    """
    use_json = json_logs or app_env == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context(app_env),
        drop_color_message,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors.append(structlog.dev.set_exc_info)
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # The request middleware already logs one line per request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # Pool reconnect chatter; store failures are logged by RedisStore
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("leaderboard_updated", user_name="alice", score=5)
    """
    return structlog.get_logger(name)


def bind_request(request_id: str) -> None:
    """Start a fresh HTTP request context."""
    structlog.contextvars.unbind_contextvars(*CONTEXT_KEYS)
    structlog.contextvars.bind_contextvars(request_id=request_id)


def bind_connection(connection_id: str) -> None:
    """Start a fresh realtime connection context."""
    structlog.contextvars.unbind_contextvars(*CONTEXT_KEYS)
    structlog.contextvars.bind_contextvars(connection_id=connection_id)


def bind_player(user_name: str) -> None:
    """Tag the current request or connection with the player name."""
    if user_name:
        structlog.contextvars.bind_contextvars(user_name=user_name)
