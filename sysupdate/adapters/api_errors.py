"""Typed failures raised by the update server adapters.

``error_from_response`` turns a non-2xx response into ``ApiClientError`` or
``ApiServerError``, pulling a readable detail and hint out of whatever body
the server sent (JSON object, list, or plain text).
"""

from __future__ import annotations

from typing import Any, Optional

_TEXT_LIMIT = 200
_DETAIL_KEYS = ("message", "detail", "error", "title")
_HINT_KEYS = ("hint", "details", "errors")
_CODE_KEYS = ("code", "error_code")


class ApiError(RuntimeError):
    """Base class for update server adapter failures."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.hint = hint
        self.payload = payload
        self.context = context


class ApiClientError(ApiError):
    """HTTP 4xx from the update server."""


class ApiServerError(ApiError):
    """HTTP 5xx from the update server."""


class ApiTimeoutError(ApiError):
    """No response: timeout, refused connection, or dropped stream."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message, context=context)


class ApiPayloadError(ApiError):
    """2xx response whose body is not the JSON shape the adapter expects."""


def _clip(text: str) -> Optional[str]:
    text = " ".join(text.split())
    return text[:_TEXT_LIMIT] if text else None


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return _clip(value)
    if isinstance(value, list):
        parts = [part for part in (_as_text(item) for item in value[:3]) if part]
        return _clip("; ".join(parts)) if parts else None
    if isinstance(value, dict):
        return detail_from_payload(value)
    return None


def detail_from_payload(payload: Any) -> Optional[str]:
    """Human-readable detail from an error body, if one can be found."""
    if isinstance(payload, dict):
        for key in _DETAIL_KEYS:
            text = _as_text(payload.get(key))
            if text:
                return text
        return None
    return _as_text(payload)


def extract_error_hint(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in _HINT_KEYS:
            text = _as_text(payload.get(key))
            if text:
                return text
        return None
    if isinstance(payload, str):
        return _clip(payload)
    return None


def read_payload(resp: Any) -> Any:
    """Response JSON, else the leading text, else ``None``. Never raises."""
    try:
        return resp.json()
    except ValueError:
        text = getattr(resp, "text", "") or ""
        return text[:400] or None


def error_from_response(resp: Any, ctx: str) -> ApiError:
    status = int(getattr(resp, "status_code", 0) or 0)
    payload = read_payload(resp)
    detail = detail_from_payload(payload)
    message = f"{ctx}: {detail} (HTTP {status})" if detail else f"{ctx}: HTTP {status}"
    code = None
    if isinstance(payload, dict):
        code = next((str(payload[key]) for key in _CODE_KEYS if payload.get(key) is not None), None)
    kwargs = dict(status=status, code=code, hint=extract_error_hint(payload), payload=payload, context=ctx)
    if 400 <= status < 500:
        return ApiClientError(message, **kwargs)
    if 500 <= status < 600:
        return ApiServerError(message, **kwargs)
    return ApiError(message, **kwargs)


def raise_for_status(resp: Any, ctx: str) -> None:
    """Raise the typed error for any non-2xx response."""
    status = int(getattr(resp, "status_code", 0) or 0)
    if not 200 <= status < 300:
        raise error_from_response(resp, ctx)


__all__ = [
    "ApiClientError",
    "ApiError",
    "ApiPayloadError",
    "ApiServerError",
    "ApiTimeoutError",
    "detail_from_payload",
    "error_from_response",
    "extract_error_hint",
    "raise_for_status",
    "read_payload",
]
