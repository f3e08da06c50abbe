"""FastAPI application entry point.

Card game backend: per-player game state in Redis, a global leaderboard
sorted set, and realtime leaderboard pushes over WebSocket.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware

from app.api import game_router, leaderboard_router
from app.config import Settings, get_settings
from app.logging_config import bind_request, configure_logging, get_logger
from app.middleware.prometheus import setup_prometheus
from app.middleware.sentry import init_sentry
from app.services.game_state import GameStateRepository
from app.services.leaderboard import LeaderboardService
from app.services.store import RedisStore
from app.utils.errors import ErrorCode, GameError
from app.utils.json_utils import ORJSONResponse
from app.utils.redis_client import close_redis, init_redis
from app.ws.gateway import router as ws_router
from app.ws.manager import ConnectionManager
from app.ws.tally import LiveConnectionTally

APP_VERSION = "1.0.0"

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

sentry_enabled = init_sentry(
    dsn=settings.sentry_dsn,
    environment=settings.app_env,
    release=APP_VERSION,
    traces_sample_rate=settings.sentry_traces_sample_rate
    if settings.app_env == "production"
    else 0.0,
)
if sentry_enabled:
    logger.info("Sentry error tracking initialized")
elif settings.app_env == "production":
    logger.warning("Sentry DSN not configured - error tracking disabled")


# =============================================================================
# Composition Root
# =============================================================================


def build_components(app: FastAPI, redis_client: Redis, settings: Settings) -> None:
    """Wire the services around one Redis client and store them on ``app.state``."""
    store = RedisStore(redis_client)
    leaderboard = LeaderboardService(store, key=settings.leaderboard_key)

    app.state.redis = redis_client
    app.state.store = store
    app.state.leaderboard = leaderboard
    app.state.game_state = GameStateRepository(
        store,
        leaderboard,
        deck_size=settings.deck_size,
        strict_decoding=settings.strict_state_decoding,
    )
    app.state.tally = LiveConnectionTally()
    app.state.connection_manager = ConnectionManager(
        max_connections=settings.ws_max_connections,
        send_timeout=settings.ws_send_timeout,
    )


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting application...")

    try:
        logger.info("Initializing Redis connection...")
        redis_client = await init_redis(settings)
        logger.info("Redis connection established")

        build_components(_app, redis_client, settings)
        logger.info("Application startup complete")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Shutting down application...")

    try:
        await _app.state.connection_manager.close_all()
        await close_redis(_app.state.redis)
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Kittenboard API",
    version=APP_VERSION,
    description="Card game state and realtime leaderboard server",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

prometheus_instrumentator = setup_prometheus(app, app_version=APP_VERSION)


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add X-Request-ID header to all requests and responses."""

    async def dispatch(self, request: Request, call_next):
        # Skip WebSocket upgrade requests - BaseHTTPMiddleware doesn't handle them properly
        if request.headers.get("upgrade", "").lower() == "websocket":
            return await call_next(request)

        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = datetime.now(timezone.utc)

        bind_request(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration:.3f}s - "
            f"Request-ID: {request_id}"
        )

        return response


app.add_middleware(RequestIDMiddleware)

cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Error Handlers
# =============================================================================


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "traceId": trace_id,
    }


GAME_ERROR_STATUS = {
    ErrorCode.INVALID_ARGUMENT.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_PAYLOAD.value: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError) -> ORJSONResponse:
    """Handle store, argument and decode errors."""
    trace_id = get_request_id(request)
    status_code = GAME_ERROR_STATUS.get(
        exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    if status_code >= 500:
        logger.error("game_error", code=exc.code, message=exc.message, trace_id=trace_id)
    else:
        logger.warning("game_error", code=exc.code, message=exc.message, trace_id=trace_id)

    return ORJSONResponse(
        status_code=status_code,
        content={"error": exc.to_dict(), "traceId": trace_id},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Malformed query parameters or request bodies are 400s."""
    trace_id = get_request_id(request)
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning("invalid_payload", errors=errors, trace_id=trace_id)

    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=create_error_response(
            code=ErrorCode.INVALID_PAYLOAD.value,
            message="Failed to decode request",
            details={"errors": errors},
            trace_id=trace_id,
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> ORJSONResponse:
    """Handle HTTP exceptions."""
    trace_id = get_request_id(request)

    return ORJSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            code="HTTP_ERROR",
            message=str(exc.detail),
            trace_id=trace_id,
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handle unexpected exceptions."""
    trace_id = get_request_id(request)

    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=True,
    )

    message = "Internal server error"
    if settings.app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=message,
            trace_id=trace_id,
        ),
    )


# =============================================================================
# Health Check Endpoints
# =============================================================================


@app.get("/health", tags=["Health"], summary="Health check endpoint")
async def health_check(request: Request) -> dict[str, Any]:
    """Check application health status, including Redis connectivity."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "services": {"redis": "unknown"},
        "connections": request.app.state.connection_manager.connection_count,
    }

    try:
        await request.app.state.store.ping()
        health_status["services"]["redis"] = "healthy"
    except GameError as e:
        health_status["services"]["redis"] = f"unhealthy: {e.message}"
        health_status["status"] = "degraded"
        logger.error(f"Redis health check failed: {e}")

    return health_status


@app.get("/health/live", tags=["Health"], summary="Liveness probe")
async def liveness_probe() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"], summary="Readiness probe")
async def readiness_probe(request: Request):
    """Readiness probe: ready once Redis answers."""
    try:
        await request.app.state.store.ping()
        return {"status": "ready"}
    except GameError as e:
        logger.error("readiness_probe_failed", error=e.message)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "error": e.message},
        )


# =============================================================================
# Routers
# =============================================================================


app.include_router(game_router)
app.include_router(leaderboard_router)

# WebSocket router (endpoint is /ws)
app.include_router(ws_router)


@app.get("/", tags=["Root"], summary="API root endpoint")
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "Kittenboard API",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    if settings.app_debug:
        uvicorn.run(
            "app.main:app",
            host=settings.app_host,
            port=settings.app_port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
    else:
        # Each worker keeps its own tally and connection registry
        uvicorn.run(
            "app.main:app",
            host=settings.app_host,
            port=settings.app_port,
            workers=settings.uvicorn_workers,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
