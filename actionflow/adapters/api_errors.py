from __future__ import annotations

from typing import Optional


class ApiError(RuntimeError):
    """Base class for transport failures talking to the workflow authority."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context = context


class ApiTimeoutError(ApiError):
    """The bounded request timeout elapsed before a response arrived."""

    def __init__(
        self,
        message: str,
        *,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, code="timeout", context=context)


class ApiConnectionError(ApiError):
    """The authority could not be reached at all."""

    def __init__(
        self,
        message: str,
        *,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, code="connection", context=context)
