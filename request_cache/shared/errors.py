"""
Shared error handling for the request cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class CacheError(Exception):
    """Base exception for cache operations."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConnectionNotReadyError(CacheError):
    """Store command attempted before the connection handshake completed."""

    status_code = 503

    def __init__(self, message: str = "Redis server not connected.", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONNECTION_NOT_READY", message, details)


class SerializationError(CacheError):
    """Value could not be converted to or from JSON text."""

    status_code = 422

    def __init__(self, message: str = "Serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_ERROR", message, details)


class StoreError(CacheError):
    """Failure reported by Redis or the Redis client."""

    status_code = 503

    def __init__(self, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)

    @classmethod
    def from_exception(cls, operation: str, exc: BaseException) -> "StoreError":
        """Wrap a client exception, keeping it as the cause."""
        error = cls(
            str(exc) or exc.__class__.__name__,
            details={"operation": operation, "error_type": exc.__class__.__name__},
        )
        error.__cause__ = exc
        return error
