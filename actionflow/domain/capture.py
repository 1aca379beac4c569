"""Screen capture artifacts and the placeholder used when capture fails."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Optional

IMAGE_DATA_URL_PREFIX = "data:image/"
_PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="1280" height="720">'
    '<rect width="100%" height="100%" fill="#161b22"/>'
    '<text x="32" y="72" fill="#f0f6fc" font-size="32" font-family="Segoe UI, Arial">'
    "Screenshot unavailable</text>"
    '<text x="32" y="118" fill="#8b949e" font-size="22" font-family="Segoe UI, Arial">'
    "{reason}</text></svg>"
)


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of one capture attempt.

    Attributes:
        ok: ``True`` when the image came from the screen.
        data_url: Image data URL; a placeholder when ``ok`` is ``False``.
        error: Human-readable capture failure, ``None`` on success.
    """

    ok: bool
    data_url: str
    error: Optional[str] = None


def is_image_data_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(IMAGE_DATA_URL_PREFIX)


def placeholder_capture(reason: Any) -> CaptureResult:
    """Build a failed :class:`CaptureResult` carrying an SVG placeholder image."""
    text = str(reason) if reason is not None else "unknown"
    safe = "".join("_" if ch in '<>&"' else ch for ch in text)
    svg = _PLACEHOLDER_SVG.format(reason=safe)
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return CaptureResult(
        ok=False,
        data_url=f"data:image/svg+xml;base64,{encoded}",
        error=text or "Failed to capture screenshot",
    )


__all__ = ["CaptureResult", "IMAGE_DATA_URL_PREFIX", "is_image_data_url", "placeholder_capture"]
