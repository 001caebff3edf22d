#!/usr/bin/env python3
"""Exception Hierarchy for the LoRaWAN migration tool.

Every failure raised while reading a source inventory, translating it or
pushing it to the destination network server maps onto one of the classes
below, so that callers can decide at which boundary an error is contained:

    - Transport errors (APIError, NetworkError) stop at the resource
      currently being created or deleted.
    - Translation errors (TranslationError) stop at the entity being
      translated (one device, one output, one gateway).
    - PaginationError and SourceResponseError abort the whole load, since
      continuing would import an unknown subset of the inventory.

Exception Hierarchy:
    MigrationError (base)
    ├── ConfigurationError (unrecoverable - fix environment)
    ├── APIError (destination REST responses)
    │   ├── RateLimitError
    │   ├── NotFoundError
    │   ├── ValidationError
    │   └── ServerError
    ├── NetworkError (recoverable - retry)
    │   ├── ConnectionError
    │   └── TimeoutError
    ├── PaginationError (fatal for the load)
    ├── SourceError (gRPC / CSV inventory)
    │   └── SourceResponseError
    └── TranslationError (per entity)
        ├── UnsupportedOutputError
        └── UnknownGatewayModelError

Author: LoRaWAN Migration Team
"""
from datetime import datetime, timezone
from typing import Any, Optional

import grpc

# ============================================
# Base Exception
# ============================================

class MigrationError(Exception):
    """Base exception for all migration errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "NOT_FOUND")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(MigrationError):
    """Raised when an environment variable is missing or malformed."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Destination API Errors
# ============================================

class APIError(MigrationError):
    """Base class for destination API response errors.

    Attributes:
        status_code: HTTP status code
        endpoint: API endpoint that was called
        response_body: Raw response body (may be truncated)
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: Optional[str] = None,
        response_body: Optional[str] = None,
        method: str = "GET",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        if endpoint:
            details["endpoint"] = endpoint
        if method:
            details["method"] = method
        if response_body:
            details["response_body"] = response_body[:500]

        kwargs.setdefault("recoverable", status_code in (429, 500, 502, 503, 504))
        kwargs.setdefault("code", f"API_ERROR_{status_code}")

        super().__init__(
            message,
            details=details,
            **kwargs,
        )
        self.status_code = status_code
        self.endpoint = endpoint
        self.response_body = response_body
        self.method = method


class RateLimitError(APIError):
    """Raised when the destination rejects a request with HTTP 429.

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header)
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 429)
        details = kwargs.pop("details", {})
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(
            message,
            code="RATE_LIMIT_EXCEEDED",
            details=details,
            **kwargs,
        )
        self.retry_after = retry_after or 5


class NotFoundError(APIError):
    """Raised when the requested resource does not exist (HTTP 404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        kwargs.setdefault("status_code", 404)
        details = kwargs.pop("details", {})
        details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message,
            code="NOT_FOUND",
            details=details,
            recoverable=False,
            **kwargs,
        )


class ValidationError(APIError):
    """Raised when the destination rejects a payload (HTTP 400/422)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 400)
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field

        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


class ServerError(APIError):
    """Raised when the destination returns a 5xx error."""

    def __init__(
        self,
        message: str = "Server error",
        **kwargs,
    ):
        kwargs.setdefault("status_code", 500)
        super().__init__(
            message,
            code="SERVER_ERROR",
            recoverable=True,
            **kwargs,
        )


# ============================================
# Network Errors (Usually Recoverable)
# ============================================

class NetworkError(MigrationError):
    """Base class for network-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionError(NetworkError):
    """Raised when the connection to the destination fails."""

    def __init__(
        self,
        message: str = "Failed to connect to server",
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details=details,
            **kwargs,
        )


class TimeoutError(NetworkError):
    """Raised when a request times out."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds:
            details["timeout_seconds"] = timeout_seconds
        super().__init__(
            message,
            code="TIMEOUT_ERROR",
            details=details,
            **kwargs,
        )


# ============================================
# Pagination Errors (Fatal for the load)
# ============================================

class PaginationError(MigrationError):
    """Raised when a paginated listing is inconsistent.

    Either the expected result field is absent from a page, or a page that
    should hold records (according to the reported total) came back empty.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        field: Optional[str] = None,
        page: Optional[int] = None,
        total: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if endpoint:
            details["endpoint"] = endpoint
        if field:
            details["field"] = field
        if page is not None:
            details["page"] = page
        if total is not None:
            details["total"] = total
        super().__init__(
            message,
            code="PAGINATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Source Errors
# ============================================

class SourceError(MigrationError):
    """Base class for errors raised while reading the source inventory."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider
        kwargs.setdefault("code", "SOURCE_ERROR")
        super().__init__(message, details=details, **kwargs)
        self.provider = provider


class SourceResponseError(SourceError):
    """Raised when a source response lacks a field the reader depends on."""

    def __init__(
        self,
        message: str,
        rpc: Optional[str] = None,
        field: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if rpc:
            details["rpc"] = rpc
        if field:
            details["field"] = field
        super().__init__(
            message,
            code="SOURCE_RESPONSE_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Translation Errors (Per Entity)
# ============================================

class TranslationError(MigrationError):
    """Raised when a single source record cannot be translated.

    Attributes:
        entity: Kind of entity ("device", "output", "gateway")
        key: Natural key of the record (DevEUI, push configuration id, gateway EUI)
    """

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if entity:
            details["entity"] = entity
        if key:
            details["key"] = key
        kwargs.setdefault("code", "TRANSLATION_ERROR")
        super().__init__(
            message,
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.entity = entity
        self.key = key


class UnsupportedOutputError(TranslationError):
    """Raised for integration / push configuration kinds with no destination output."""

    def __init__(self, output_type: str, **kwargs):
        kwargs.setdefault("entity", "output")
        super().__init__(
            f"Unsupported output type {output_type}",
            code="UNSUPPORTED_OUTPUT",
            **kwargs,
        )
        self.output_type = output_type


class UnknownGatewayModelError(TranslationError):
    """Raised when no hardware profile matches a gateway brand and description."""

    def __init__(self, brand: Optional[str], description: Optional[str], **kwargs):
        kwargs.setdefault("entity", "gateway")
        super().__init__(
            f"Unknown model {brand} {description}",
            code="UNKNOWN_GATEWAY_MODEL",
            **kwargs,
        )
        self.brand = brand
        self.description = description


# ============================================
# Error Rendering
# ============================================

def describe_error(error: BaseException) -> str:
    """Render an exception with its transport detail for a log line.

    HTTP errors carry their status and (truncated) response body, gRPC
    errors their status code name and details string.
    """
    if isinstance(error, APIError):
        text = f"{error.method} {error.endpoint} -> {error.status_code}"
        if error.response_body:
            text += f" {error.response_body[:200]}"
        return text

    if isinstance(error, grpc.aio.AioRpcError):
        return f"gRPC {error.code().name}: {error.details()}"

    if isinstance(error, MigrationError):
        return str(error)

    return f"{error.__class__.__name__}: {error}"


# ============================================
# Exports
# ============================================

__all__ = [
    # Base
    "MigrationError",
    # Configuration
    "ConfigurationError",
    # API
    "APIError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    # Network
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    # Pagination
    "PaginationError",
    # Source
    "SourceError",
    "SourceResponseError",
    # Translation
    "TranslationError",
    "UnsupportedOutputError",
    "UnknownGatewayModelError",
    # Utilities
    "describe_error",
]
