"""Error code registry with E-XXXX format codes.

This module defines the error code system for Courier Bridge, organizing
errors into categories:
- E-1xxx: Network errors (no response reached the proxy)
- E-2xxx: Validation errors (request configuration rejected before dispatch)
- E-3xxx: Courier API errors (response reached, status >= 400)
- E-4xxx: System/internal errors (record store, generated modules)
- E-5xxx: Authentication errors (token acquisition and extraction)

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    NETWORK = "network"  # E-1xxx: Transport-level failures
    VALIDATION = "validation"  # E-2xxx: Pre-flight validation errors
    COURIER_API = "courier_api"  # E-3xxx: Courier HTTP errors
    SYSTEM = "system"  # E-4xxx: System/internal errors
    AUTH = "auth"  # E-5xxx: Authentication errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Network errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.NETWORK,
        title="Host Not Found",
        message_template='The hostname "{host}" could not be resolved.',
        remediation="Check the URL for typos and confirm the courier host is publicly reachable.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.NETWORK,
        title="Connection Refused",
        message_template="The connection to {host} was refused.",
        remediation="Confirm the courier API is running and the port in the URL is correct.",
        is_retryable=True,
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.NETWORK,
        title="Connection Timed Out",
        message_template="The request to {host} timed out after {timeout} seconds.",
        remediation="The courier API may be slow or unreachable. Try again later.",
        is_retryable=True,
    ),
    "E-1004": ErrorCode(
        code="E-1004",
        category=ErrorCategory.NETWORK,
        title="Network Error",
        message_template="A network error occurred while contacting {host}: {reason}",
        remediation="Check the URL and your network connection, then retry.",
        is_retryable=True,
    ),
    # Validation errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.VALIDATION,
        title="Missing URL",
        message_template="API URL is required.",
        remediation="Enter the full courier endpoint URL, including https://.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.VALIDATION,
        title="Invalid URL",
        message_template="Invalid URL format: '{url}'.",
        remediation="Use an absolute http:// or https:// URL.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.VALIDATION,
        title="Private Host Rejected",
        message_template="Cannot connect to private IP address or localhost: '{host}'.",
        remediation="Use a publicly accessible courier API endpoint.",
    ),
    "E-2004": ErrorCode(
        code="E-2004",
        category=ErrorCategory.VALIDATION,
        title="Missing Tracking Number",
        message_template="A test docket number is required for intent '{intent}'.",
        remediation="Enter a tracking number to use for the test call.",
    ),
    "E-2005": ErrorCode(
        code="E-2005",
        category=ErrorCategory.VALIDATION,
        title="Invalid Request Configuration",
        message_template="Invalid request configuration: {reason}",
        remediation="Correct the request configuration and retry.",
    ),
    "E-2006": ErrorCode(
        code="E-2006",
        category=ErrorCategory.VALIDATION,
        title="Invalid cURL Command",
        message_template="Could not parse cURL command: {reason}",
        remediation='Paste a complete command starting with "curl" and including the URL.',
    ),
    "E-2007": ErrorCode(
        code="E-2007",
        category=ErrorCategory.VALIDATION,
        title="Invalid Request Encoding",
        message_template="The request could not be encoded: {reason}",
        remediation="Header names and values must be plain ASCII. Remove accented or special characters from headers, tokens and keys.",
    ),
    # Courier API errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.COURIER_API,
        title="Authentication Failed",
        message_template="Authentication failed. Please check your credentials.",
        remediation="Verify the username, password, token, or API key for this courier.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.COURIER_API,
        title="Access Forbidden",
        message_template="Access forbidden. Your credentials do not have permission for this endpoint.",
        remediation="Ask the courier to enable this API for your account.",
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.COURIER_API,
        title="Endpoint Not Found",
        message_template="Endpoint not found. Please check the API URL.",
        remediation="Confirm the endpoint path against the courier's API documentation.",
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.COURIER_API,
        title="Courier Server Error",
        message_template="Courier server error (HTTP {status}).",
        remediation="The courier API is failing. Retry later or contact the courier.",
        is_retryable=True,
    ),
    "E-3005": ErrorCode(
        code="E-3005",
        category=ErrorCategory.COURIER_API,
        title="Request Rejected",
        message_template="API request failed with status {status}.",
        remediation="Inspect the response details and adjust the request configuration.",
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Record Store Error",
        message_template="Record store operation failed: {reason}",
        remediation="Check the database connection and retry.",
        is_retryable=True,
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.SYSTEM,
        title="Record Not Found",
        message_template="{resource} '{identifier}' not found.",
        remediation="Refresh the list and select an existing record.",
    ),
    "E-4003": ErrorCode(
        code="E-4003",
        category=ErrorCategory.SYSTEM,
        title="Unexpected Proxy Error",
        message_template="Error in courier-proxy: {reason}",
        remediation="Check the request body is valid JSON and retry.",
    ),
    # Authentication errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.AUTH,
        title="Token Request Failed",
        message_template="Failed to fetch JWT token: {reason}",
        remediation="Check the token endpoint, method, headers and body.",
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.AUTH,
        title="Token Not Found",
        message_template='Token not found in response using path "{token_path}".',
        remediation="Inspect the token response and correct the token path.",
    ),
    "E-5003": ErrorCode(
        code="E-5003",
        category=ErrorCategory.AUTH,
        title="Credentials Not Found",
        message_template="Credentials not found for courier '{courier}'.",
        remediation="Store credentials for this courier or supply them in the request.",
    ),
    "E-5004": ErrorCode(
        code="E-5004",
        category=ErrorCategory.AUTH,
        title="Credential Decryption Failed",
        message_template="Stored credentials for courier '{courier}' could not be decrypted.",
        remediation="Re-enter the courier credentials. The encryption key may have changed.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
