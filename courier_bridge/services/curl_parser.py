"""Import a pasted cURL command as a RequestConfig.

Handles the flags courier API docs actually use: ``-X``, ``-H``, ``-d``
(and its ``--data*`` spellings), ``-u`` and the URL itself, either
positional or via ``--url``. Unknown flags are ignored. Flags that never
take a value (``-L``, ``-k``, ``--compressed``...) are skipped without
consuming the next token.
"""

import base64
import binascii
import json
import logging
import shlex
from typing import Any
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from courier_bridge.errors.domain import ValidationError
from courier_bridge.services.integration_types import (
    BasicAuth,
    BearerAuth,
    KeyValue,
    NoAuth,
    RequestConfig,
)

logger = logging.getLogger(__name__)

_METHOD_FLAGS = frozenset({"-X", "--request"})
_HEADER_FLAGS = frozenset({"-H", "--header"})
_DATA_FLAGS = frozenset({"-d", "--data", "--data-raw", "--data-binary", "--data-ascii", "--data-urlencode"})
_USER_FLAGS = frozenset({"-u", "--user"})
_URL_FLAGS = frozenset({"--url"})
# Flags that consume a value we do not use.
_IGNORED_VALUE_FLAGS = frozenset({
    "-o", "--output", "-A", "--user-agent", "-e", "--referer", "-m", "--max-time",
    "--connect-timeout", "-b", "--cookie", "-c", "--cookie-jar", "-x", "--proxy",
    "--retry", "-w", "--write-out", "--cacert", "--cert", "--key",
})
_VALUE_FLAGS = _METHOD_FLAGS | _HEADER_FLAGS | _DATA_FLAGS | _USER_FLAGS | _URL_FLAGS | _IGNORED_VALUE_FLAGS
_SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


def _fail(message: str) -> ValidationError:
    return ValidationError(f"Invalid cURL command: {message}", error_code="E-2006")


def _split_header(raw: str) -> tuple[str, str] | None:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        return None
    return name.strip(), value.strip()


def _decode_basic(value: str) -> BasicAuth | None:
    try:
        decoded = base64.b64decode(value.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, _, password = decoded.partition(":")
    return BasicAuth(username=username, password=password)


def _parse_body(parts: list[str]) -> tuple[Any, bool]:
    """(body, is_form) from the collected ``-d`` values."""
    raw = "&".join(parts)
    try:
        return json.loads(raw), False
    except json.JSONDecodeError:
        pass
    pairs = parse_qsl(raw, keep_blank_values=True)
    if pairs:
        return dict(pairs), True
    return raw, False


def parse_curl(command: str) -> RequestConfig:
    """Parse a cURL command line into a RequestConfig.

    Raises:
        ValidationError: Not a curl command, unbalanced quotes, a flag
            missing its value, or no URL (code E-2006).
    """
    text = command.replace("\\\r\n", " ").replace("\\\n", " ").strip()
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise _fail(str(e)) from None
    if not tokens or tokens[0] != "curl":
        raise _fail("command must start with 'curl'")

    method: str | None = None
    url: str | None = None
    headers: list[tuple[str, str]] = []
    data: list[str] = []
    user: str | None = None

    it = iter(tokens[1:])
    for token in it:
        flag, eq, inline = token.partition("=") if token.startswith("--") else (token, "", "")
        if flag in _VALUE_FLAGS:
            value = inline if eq else next(it, None)
            if value is None:
                raise _fail(f"flag {flag} needs a value")
            if flag in _METHOD_FLAGS:
                method = value.upper()
                if method not in _SUPPORTED_METHODS:
                    raise _fail(f"unsupported method {method}")
            elif flag in _HEADER_FLAGS:
                header = _split_header(value)
                if header is not None:
                    headers.append(header)
            elif flag in _DATA_FLAGS:
                data.append(value)
            elif flag in _USER_FLAGS:
                user = value
            elif flag in _URL_FLAGS:
                url = value
        elif token.startswith("-"):
            continue
        elif url is None:
            url = token

    if not url:
        raise _fail("no URL found")
    if "://" not in url:
        url = f"https://{url}"

    parts = urlsplit(url)
    query_params = [KeyValue(key=k, value=v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))

    auth: Any = NoAuth()
    if user is not None:
        username, _, password = user.partition(":")
        auth = BasicAuth(username=username, password=password)
    custom_headers: list[KeyValue] = []
    is_form = False
    for name, value in headers:
        lowered = name.lower()
        if lowered == "authorization":
            scheme, _, credential = value.partition(" ")
            if scheme.lower() == "bearer" and credential.strip():
                auth = BearerAuth(token=credential.strip())
                continue
            if scheme.lower() == "basic":
                decoded = _decode_basic(credential)
                if decoded is not None:
                    auth = decoded
                    continue
        if lowered == "content-type":
            is_form = "x-www-form-urlencoded" in value.lower()
            continue
        custom_headers.append(KeyValue(key=name, value=value))

    body: Any = None
    if data:
        body, body_is_form = _parse_body(data)
        is_form = is_form or body_is_form
        if method is None or method == "GET":
            method = "POST"

    config = RequestConfig(
        url=base_url,
        method=method or "GET",
        auth=auth,
        headers=custom_headers,
        query_params=query_params,
        body=body,
        is_form_url_encoded=is_form,
    )
    logger.debug("Parsed cURL command: %s %s (auth=%s)", config.method, config.url, config.auth.type)
    return config
