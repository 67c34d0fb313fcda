"""Error handling framework for Courier Bridge.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions for the proxy pipeline and record store
- Error formatting utilities

Error categories:
- E-1xxx: Network errors
- E-2xxx: Validation errors
- E-3xxx: Courier API errors
- E-4xxx: System/internal errors
- E-5xxx: Authentication errors
"""

from courier_bridge.errors.domain import (
    DomainError,
    HttpError,
    NetworkError,
    NotFoundError,
    PersistenceError,
    TokenExtractionError,
    ValidationError,
)
from courier_bridge.errors.formatter import CourierBridgeError, format_error
from courier_bridge.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain exceptions
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "PersistenceError",
    "NetworkError",
    "HttpError",
    "TokenExtractionError",
    # Formatter
    "CourierBridgeError",
    "format_error",
]
