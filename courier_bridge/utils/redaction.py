"""Secret redaction for logs, stored test payloads and error responses.

Request configurations carry credentials in three shapes: plain keys
(``password``, ``apiKey``), whole containers (``headers``, ``credentials``)
and ordered key/value rows (``{"key": "x-api-key", "value": "..."}`` in
``queryParams``). All three are handled. Key matching is a case-insensitive
substring test.
"""

import re
from typing import Any

_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "authorization", "api_key", "apikey", "api-key",
    "password", "credential", "client_id", "client_secret",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"credentials", "headers", "jwtauthheaders", "jwt_auth_headers"})

_REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def _is_key_value_row(item: dict) -> bool:
    return set(item.keys()) <= {"key", "value"} and isinstance(item.get("key"), str)


def _redact_item(item: Any, sensitive_patterns: frozenset[str]) -> Any:
    if isinstance(item, dict):
        if _is_key_value_row(item) and _is_sensitive_key(item["key"], sensitive_patterns):
            return {**item, "value": _REDACTED}
        return redact_for_logging(item, sensitive_patterns)
    if isinstance(item, list):
        return [_redact_item(i, sensitive_patterns) for i in item]
    return item


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict for safe logging or persistence.

    Args:
        obj: Dict to redact (not mutated; a copy is returned).
        sensitive_patterns: Substring patterns whose matching keys' values
            are replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
    """
    result = {}
    for key, value in obj.items():
        key_text = str(key)
        if key_text.lower() in _CONTAINER_KEYS:
            result[key] = _REDACTED
        elif _is_sensitive_key(key_text, sensitive_patterns):
            result[key] = _REDACTED
        else:
            result[key] = _redact_item(value, sensitive_patterns)
    return result


_SENSITIVE_KEYWORDS = (
    r"secret|token|password|api_key|apikey|x-api-key|client_id|client_secret|"
    r"access_token|refresh_token|authorization|credential"
)
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    # Authorization: Bearer <token> / Basic <b64>
    r"Authorization\s*:\s*(?:Bearer|Basic)\s+\S+"
    r"|"
    # JSON-style "key": "value"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    # key = "quoted value"
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\"[^\"]*\""
    r"|"
    # key=value, unquoted, up to whitespace or '&'
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*[^\s&]+"
    r")",
)


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Redact key=value style secrets in free text and truncate.

    Args:
        msg: Error message to sanitize (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(_REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
