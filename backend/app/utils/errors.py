"""Custom exception classes for game errors.

Provides structured error handling with error codes and user-friendly messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for game errors."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"

    # Store errors
    STORE_ERROR = "STORE_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"

    # Stored data errors
    DECODE_FAILURE = "DECODE_FAILURE"


class GameError(Exception):
    """Base exception for game-related errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """The ``error`` object of an HTTP error response."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class StoreError(GameError):
    """Raised when a store command fails."""

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        code: ErrorCode = ErrorCode.STORE_ERROR,
    ):
        super().__init__(
            code=code,
            message=message or f"Store operation failed: {operation}",
            details={"operation": operation},
        )
        self.operation = operation


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached."""

    def __init__(self, operation: str):
        super().__init__(
            operation=operation,
            message=f"Store unavailable during {operation}",
            code=ErrorCode.STORE_UNAVAILABLE,
        )


class InvalidArgumentError(GameError):
    """Raised when a required argument is missing or malformed."""

    def __init__(self, field: str, message: str | None = None):
        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message or f"Missing {field}",
            details={"field": field},
        )


class DecodeFailureError(GameError):
    """Raised when a stored player field cannot be decoded."""

    def __init__(self, user_name: str, field: str, raw: Any):
        super().__init__(
            code=ErrorCode.DECODE_FAILURE,
            message=f"Malformed stored field '{field}' for {user_name!r}",
            details={"userName": user_name, "field": field, "raw": str(raw)},
        )
