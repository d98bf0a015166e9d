"""Translate adapter errors into user-facing UseCaseError instances."""

from __future__ import annotations

from typing import Optional

import requests

from sysupdate.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiPayloadError,
    ApiServerError,
    ApiTimeoutError,
    extract_error_hint,
)
from sysupdate.domain.ports import UseCaseError

# 4xx statuses with a dedicated code; anything else is REQUEST_FAILED
_CLIENT_STATUS_CODES = {
    401: ("AUTH_FAILED", "Update server rejected the application key"),
    403: ("AUTH_FAILED", "Update server rejected the application key"),
    404: ("NOT_FOUND", "Update resource not found"),
    429: ("RATE_LIMITED", "Update server is throttling requests"),
}


def map_api_error(
    exc: Exception,
    *,
    default_code: str,
    default_message: Optional[str] = None,
) -> UseCaseError:
    """Map adapter exceptions to stable UseCaseError codes.

    ``UseCaseError`` instances pass through unchanged; unrecognised exceptions
    get ``default_code`` and ``default_message`` (or their own text).
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, ApiTimeoutError):
        return UseCaseError("REQUEST_TIMEOUT", "Update server request timed out. Check connection.")
    if isinstance(exc, ApiClientError):
        return _map_client_error(exc)
    if isinstance(exc, ApiServerError):
        label = f"Update server error (HTTP {exc.status})" if exc.status else "Update server error"
        return UseCaseError("SERVER_ERROR", _with_hint(label, exc.hint))
    if isinstance(exc, ApiPayloadError):
        return UseCaseError("INVALID_RESPONSE", _with_hint("Update server sent an invalid response", str(exc)))
    if isinstance(exc, ApiError):
        return UseCaseError("API_ERROR", str(exc))
    if isinstance(exc, requests.RequestException):
        return UseCaseError("NETWORK_ERROR", _with_hint("Network error", str(exc)))
    return UseCaseError(default_code, default_message or str(exc) or "Unexpected error.")


def _map_client_error(exc: ApiClientError) -> UseCaseError:
    status = exc.status or 0
    hint = exc.hint or extract_error_hint(exc.payload)
    if status in _CLIENT_STATUS_CODES:
        code, label = _CLIENT_STATUS_CODES[status]
        if code == "AUTH_FAILED":
            return UseCaseError(code, f"{label}.", hint or "")
        return UseCaseError(code, _with_hint(label, hint))
    label = f"Request failed (HTTP {status})" if status else "Request failed"
    return UseCaseError("REQUEST_FAILED", _with_hint(label, hint))


def _with_hint(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    return base if base.endswith(".") else f"{base}."


__all__ = ["map_api_error"]
