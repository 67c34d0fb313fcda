"""Unit tests for courier_bridge/errors/registry.py.

Tests verify:
- Every code is registered under the category its prefix names
- Lookups by code and category
"""

import pytest

from courier_bridge.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    get_error,
    get_errors_by_category,
)

_PREFIX_CATEGORY = {
    "E-1": ErrorCategory.NETWORK,
    "E-2": ErrorCategory.VALIDATION,
    "E-3": ErrorCategory.COURIER_API,
    "E-4": ErrorCategory.SYSTEM,
    "E-5": ErrorCategory.AUTH,
}


@pytest.mark.parametrize(
    "code,category,title",
    [
        ("E-1002", ErrorCategory.NETWORK, "Connection Refused"),
        ("E-2003", ErrorCategory.VALIDATION, "Private Host Rejected"),
        ("E-2006", ErrorCategory.VALIDATION, "Invalid cURL Command"),
        ("E-2007", ErrorCategory.VALIDATION, "Invalid Request Encoding"),
        ("E-3001", ErrorCategory.COURIER_API, "Authentication Failed"),
        ("E-4003", ErrorCategory.SYSTEM, "Unexpected Proxy Error"),
        ("E-5002", ErrorCategory.AUTH, "Token Not Found"),
    ],
)
def test_error_codes_registered(code, category, title):
    error = get_error(code)
    assert error is not None, f"{code} not found in registry"
    assert error.category == category
    assert error.title == title


def test_codes_match_their_category_prefix():
    for code, error in ERROR_REGISTRY.items():
        assert error.code == code
        assert _PREFIX_CATEGORY[code[:3]] == error.category, code


def test_every_code_has_remediation():
    assert all(error.remediation for error in ERROR_REGISTRY.values())


def test_unknown_code():
    assert get_error("E-9999") is None


def test_get_errors_by_category():
    auth = get_errors_by_category(ErrorCategory.AUTH)
    assert {e.code for e in auth} == {"E-5001", "E-5002", "E-5003", "E-5004"}


def test_transient_network_errors_are_retryable():
    assert get_error("E-1002").is_retryable is True
    assert get_error("E-2001").is_retryable is False
