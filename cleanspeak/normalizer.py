"""Turn raw CleanSpeak responses into results and errors."""

from __future__ import annotations

import json
from typing import Any

from cleanspeak.errors import AuthenticationFailed, RequestFailed
from cleanspeak.models import FilterResult

# Deeply nested arrays overflow the JSON decoder with RecursionError.
_UNDECODABLE = (ValueError, TypeError, RecursionError)


def _decode(body: str | bytes | None) -> Any:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return json.loads(body)


def _as_text(body: str | bytes | None) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def parse_filter_result(body: str | bytes, status_code: int = 200) -> FilterResult:
    """Reduce a filter response to a :class:`FilterResult`.

    The server always returns its best replacement text, identical to the
    input when nothing matched, so ``replacement`` is copied as-is.
    """
    try:
        data = _decode(body)
    except _UNDECODABLE:
        raise RequestFailed(status_code, _as_text(body))
    if not isinstance(data, dict):
        raise RequestFailed(status_code, data)

    return FilterResult(filtered=bool(data.get("matches")), replacement=data.get("replacement"))


def normalize_error(status_code: int, raw_body: str | bytes | None) -> RequestFailed:
    """Build the standard error for a non-200 response.

    Never raises: bodies that are not JSON are kept as text.
    """
    try:
        message = _decode(raw_body)
    except _UNDECODABLE:
        message = _as_text(raw_body)
    return RequestFailed(status_code, message)


def error_from_response(status_code: int, raw_body: str | bytes | None) -> RequestFailed:
    if status_code == 401:
        return AuthenticationFailed()
    return normalize_error(status_code, raw_body)


def application_id_from(body: str | bytes, status_code: int = 200) -> str:
    """Pull ``application.id`` out of a create-application response."""
    try:
        return _decode(body)["application"]["id"]
    except (KeyError, *_UNDECODABLE):
        raise RequestFailed(status_code, _as_text(body))
