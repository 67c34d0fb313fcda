"""Typed domain exceptions for courier integration failures.

These exceptions give routes and the proxy orchestrator concrete types to
branch on instead of matching message strings. Each carries the E-XXXX
registry code used when it is rendered for the user.

Usage:
    # In service layer
    raise ValidationError("API URL is required.", error_code="E-2001")

    # In route handler
    try:
        courier = service.get_courier(courier_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
"""

from typing import Any


class DomainError(Exception):
    """Base exception for all domain errors."""

    error_code = "E-4001"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    error_code = "E-4002"

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}' not found")
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(DomainError):
    """Request configuration rejected before dispatch. Maps to HTTP 400."""

    def __init__(self, message: str, error_code: str = "E-2005") -> None:
        super().__init__(message)
        self.error_code = error_code


class PersistenceError(DomainError):
    """Record store failure. The original driver message is passed through."""

    error_code = "E-4001"


class NetworkError(DomainError):
    """No response reached us: DNS, refused connection, timeout or abort."""

    def __init__(self, message: str, code: str, error_code: str = "E-1004") -> None:
        super().__init__(message)
        self.code = code
        self.error_code = error_code


class HttpError(DomainError):
    """A response arrived with status >= 400."""

    def __init__(
        self,
        message: str,
        status: int,
        status_text: str = "",
        details: Any = None,
        error_code: str = "E-3005",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.details = details
        self.error_code = error_code


class TokenExtractionError(DomainError):
    """Token response received but the configured token path did not resolve."""

    error_code = "E-5002"

    def __init__(self, message: str, token_path: str, details: Any = None) -> None:
        super().__init__(message)
        self.token_path = token_path
        self.details = details
