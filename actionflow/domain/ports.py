from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from .capture import CaptureResult
from .envelope import ApiCall


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta = meta


# ---- Ports (Hexagonal boundaries) ----
class TransportPort(Protocol):
    """Request/response exchange with the workflow authority.

    Any HTTP status comes back as an ``ApiCall``; only transport failures
    (timeout, unreachable host) raise, and use cases map those to
    ``status=0`` results.
    """

    def post(self, path: str, body: Dict[str, Any]) -> ApiCall: ...
    def url_for(self, path: str) -> str: ...


class ScreenCapturePort(Protocol):
    """Best-effort screen grab returning an image data URL."""

    def capture(self) -> CaptureResult: ...
