# backoffice/variations/errors.py
# --------------------------------------------------------------------------------------
# Error taxonomy for variation mutations and best-effort message extraction from
# whatever the backend sent back (plain text, JSON string, {error}, {message},
# {errors: [...]}, HTML error pages from a proxy).
# --------------------------------------------------------------------------------------
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from backoffice.logging_filters import looks_like_html, summarize_html

DEFAULT_FALLBACK = "Something went wrong"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    API = "api"
    UNKNOWN = "unknown"


class VariationError(Exception):
    kind: ErrorKind = ErrorKind.UNKNOWN


class ValidationError(VariationError):
    """Local, pre-network failure. The request is never sent."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ApiError(VariationError):
    """Transport failure or a backend response with status >= 400."""
    kind = ErrorKind.API

    def __init__(self, message: str | None = None, *, status_code: int | None = None,
                 body: Any = None, method: str | None = None, url: str | None = None):
        super().__init__(message or (f"HTTP {status_code}" if status_code else "API request failed"))
        self.message = message
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url


def classify(err: BaseException) -> ErrorKind:
    if isinstance(err, VariationError):
        return err.kind
    return ErrorKind.UNKNOWN


# ---- Decoders: each returns a message or None; first hit wins ----

def _clean(s: Any) -> Optional[str]:
    if isinstance(s, str) and s.strip():
        return s.strip()
    return None


def _decode_text(body: Any) -> Optional[str]:
    if not isinstance(body, str):
        return None
    if looks_like_html(body):
        return summarize_html(body)
    return _clean(body)


def _decode_error_key(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        return _clean(body.get("error"))
    return None


def _decode_message_key(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        return _clean(body.get("message"))
    return None


def _decode_errors_list(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if not isinstance(errors, list):
        return None
    parts = []
    for e in errors:
        if isinstance(e, dict):
            e = e.get("message") or e.get("msg") or e.get("error")
        msg = _clean(e)
        if msg:
            parts.append(msg)
    return ", ".join(parts) or None


DECODERS: Tuple[Callable[[Any], Optional[str]], ...] = (
    _decode_text,
    _decode_error_key,
    _decode_message_key,
    _decode_errors_list,
)


def _parse_json_string(body: Any) -> Any:
    """A body that is a JSON document in string form is decoded first."""
    if isinstance(body, str) and body.strip()[:1] in ("{", "["):
        try:
            return json.loads(body)
        except ValueError:
            return body
    return body


def _body_of(err: Any) -> Any:
    if isinstance(err, ApiError):
        return err.body
    if isinstance(err, (dict, list, str)):
        return err
    return None


def extract_error_message(err: Any, fallback: str = DEFAULT_FALLBACK) -> str:
    """
    Best-effort human-readable message for any error/response object.
    Order: string body (JSON-parsed first), .error, .message, .errors[] joined,
    the exception's own message, then `fallback`.
    """
    body = _parse_json_string(_body_of(err))
    for decode in DECODERS:
        msg = decode(body)
        if msg:
            return msg
    if isinstance(err, ApiError):
        own = _clean(err.message)
    elif isinstance(err, BaseException):
        own = _clean(str(err))
    else:
        own = None
    return own or fallback
