"""Error formatting utilities.

This module provides:
- CourierBridgeError exception class for registry-coded errors
- Conversion from typed domain exceptions
- Error formatting for CLI and API display
"""

from dataclasses import dataclass, field

from courier_bridge.errors.domain import DomainError
from courier_bridge.errors.registry import ErrorCategory, get_error

# HTTP status returned by the API for each error category
_CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.NETWORK: 502,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.COURIER_API: 502,
    ErrorCategory.SYSTEM: 500,
    ErrorCategory.AUTH: 401,
}


@dataclass
class CourierBridgeError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action user should take to resolve.
        status_code: HTTP status used when the error reaches the API layer.
        is_retryable: Whether the operation can be retried without user action.
        details: Additional context dictionary.
    """

    code: str
    message: str
    remediation: str
    status_code: int = 500
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "CourierBridgeError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message template substitution.
                The special key 'details' is stored on the error rather
                than substituted into the message.

        Returns:
            CourierBridgeError instance with formatted message.
        """
        details = kwargs.get("details", {})
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                details=details,
            )

        message = error_def.message_template
        try:
            template_kwargs = {k: v for k, v in kwargs.items() if k != "details"}
            message = message.format(**template_kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            status_code=_CATEGORY_STATUS.get(error_def.category, 500),
            is_retryable=error_def.is_retryable,
            details=details,
        )

    @classmethod
    def from_domain(cls, exc: DomainError) -> "CourierBridgeError":
        """Wrap a typed domain exception, keeping its own message.

        Args:
            exc: The domain exception raised by a service.

        Returns:
            CourierBridgeError carrying the registry remediation for the
            exception's error code.
        """
        error_def = get_error(exc.error_code)
        status_code = 500
        remediation = "Contact support."
        is_retryable = False
        if error_def:
            status_code = _CATEGORY_STATUS.get(error_def.category, 500)
            remediation = error_def.remediation
            is_retryable = error_def.is_retryable
        if exc.error_code == "E-4002":
            status_code = 404

        return cls(
            code=exc.error_code,
            message=exc.message,
            remediation=remediation,
            status_code=status_code,
            is_retryable=is_retryable,
        )


def format_error(error: CourierBridgeError, include_remediation: bool = True) -> str:
    """Format error for display to user.

    Args:
        error: The CourierBridgeError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for user display.
    """
    lines = [f"{error.code}: {error.message}"]

    for key, value in error.details.items():
        lines.append(f"  {key}: {value}")

    if include_remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)
