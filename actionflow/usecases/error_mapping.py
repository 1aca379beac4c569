"""Translate adapter errors into user-facing UseCaseError instances."""

from __future__ import annotations

from typing import Optional

from actionflow.adapters.api_errors import (
    ApiConnectionError,
    ApiError,
    ApiTimeoutError,
)
from actionflow.domain.ports import UseCaseError


def map_api_error(
    exc: Exception,
    *,
    default_code: str,
    default_message: Optional[str] = None,
) -> UseCaseError:
    """Map adapter exceptions to stable UseCaseError codes.

    Args:
        exc (Exception): Failure raised by the transport adapter.
        default_code (str): Code used for exceptions outside the API hierarchy.
        default_message (Optional[str]): Message used when ``exc`` has none.

    Returns:
        UseCaseError: Value returned to the caller.
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, ApiTimeoutError):
        return UseCaseError("REQUEST_TIMEOUT", "Request timed out. Check connection.")
    if isinstance(exc, ApiConnectionError):
        return UseCaseError(
            "CONNECTION_FAILED",
            _compose_error_message("Task API unreachable", exc.context),
        )
    if isinstance(exc, ApiError):
        return UseCaseError("API_ERROR", str(exc) or "Failed to call API.")

    message = default_message or str(exc) or "Unexpected error."
    return UseCaseError(default_code, message)


def _compose_error_message(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    if base.endswith("."):
        return base
    return f"{base}."


__all__ = ["map_api_error"]
