"""Application configuration."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_debug: bool = True
    log_level: str = "DEBUG"
    uvicorn_workers: int = Field(
        default=1,
        description="Number of Uvicorn workers (the realtime tally is per process)",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(
        default=50,
        description="Redis max connections in the shared pool",
    )
    redis_socket_timeout: float = Field(
        default=5.0,
        description="Redis socket timeout in seconds",
    )
    redis_socket_connect_timeout: float = Field(
        default=5.0,
        description="Redis socket connect timeout in seconds",
    )
    redis_health_check_interval: int = Field(
        default=30,
        description="Redis health check interval in seconds",
    )

    # Game
    leaderboard_key: str = Field(
        default="leaderboard",
        description="Sorted set holding every player's score",
    )
    deck_size: int = Field(
        default=5,
        ge=1,
        description="Number of cards dealt to a new player",
    )
    strict_state_decoding: bool = Field(
        default=False,
        description="Raise on malformed stored player fields instead of defaulting them",
    )

    # WebSocket
    ws_max_connections: int = Field(
        default=600,
        description="Maximum WebSocket connections per process",
    )
    ws_send_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds a broadcast waits on one connection before dropping it",
    )

    # Sentry Error Tracking
    sentry_dsn: str | None = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.05,
        description="Sentry transaction sampling rate (0.0-1.0, default 5%)",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

            if self.log_level == "DEBUG":
                import warnings
                warnings.warn(
                    "DEBUG log level in production may expose sensitive information"
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
