"""Utility modules."""

from app.utils.errors import (
    ErrorCode,
    GameError,
    InvalidArgumentError,
    StoreError,
    StoreUnavailableError,
)
from app.utils.redis_client import close_redis, init_redis

__all__ = [
    "ErrorCode",
    "GameError",
    "InvalidArgumentError",
    "StoreError",
    "StoreUnavailableError",
    "close_redis",
    "init_redis",
]
