"""Destination API modules.

Classes:
    NetworkServerClient: HTTP client with pagination and retry
    PaginationConfig: perPage/page listing configuration

Exceptions:
    MigrationError: Base exception for all migration errors
    ConfigurationError: Missing or invalid configuration
    APIError: Destination request failures (NotFoundError, ValidationError,
        RateLimitError, ServerError)
    NetworkError: Network connectivity issues
    PaginationError: Inconsistent paginated listing
    SourceError: Source inventory failures
    TranslationError: A source record violates a LoRaWAN rule

Resilience:
    process_concurrent: Bounded fan-out over independent items
"""
from .client import DEFAULT_PAGINATION, NetworkServerClient, PaginationConfig
from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    MigrationError,
    NetworkError,
    NotFoundError,
    PaginationError,
    RateLimitError,
    ServerError,
    SourceError,
    SourceResponseError,
    TimeoutError,
    TranslationError,
    UnknownGatewayModelError,
    UnsupportedOutputError,
    ValidationError,
    describe_error,
)
from .resilience import process_concurrent

__all__ = [
    # Client
    "NetworkServerClient",
    "PaginationConfig",
    "DEFAULT_PAGINATION",
    # Exceptions
    "MigrationError",
    "ConfigurationError",
    "APIError",
    "NotFoundError",
    "ValidationError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "PaginationError",
    "SourceError",
    "SourceResponseError",
    "TranslationError",
    "UnsupportedOutputError",
    "UnknownGatewayModelError",
    "describe_error",
    # Resilience
    "process_concurrent",
]
