"""Native screen capture backed by Pillow's ``ImageGrab``."""

from __future__ import annotations

import base64
import io
import logging
from typing import Optional, Tuple

from PIL import ImageGrab

from actionflow.domain.capture import CaptureResult, placeholder_capture
from actionflow.domain.ports import ScreenCapturePort


class PillowScreenCapture(ScreenCapturePort):
    """Grab the full screen and encode it as a PNG data URL.

    Failures never propagate: the result carries an SVG placeholder and the
    error text instead.
    """

    def __init__(self, *, bbox: Optional[Tuple[int, int, int, int]] = None, all_screens: bool = False) -> None:
        self.bbox = bbox
        self.all_screens = all_screens
        self._log = logging.getLogger(__name__)

    def capture(self) -> CaptureResult:
        try:
            image = ImageGrab.grab(bbox=self.bbox, all_screens=self.all_screens)
            buf = io.BytesIO()
            image.save(buf, format="PNG")
        except Exception as exc:
            self._log.warning("Screen capture failed: %s", exc)
            return placeholder_capture(str(exc) or "Failed to capture screenshot")
        encoded = base64.b64encode(buf.getvalue()).decode("ascii")
        return CaptureResult(ok=True, data_url=f"data:image/png;base64,{encoded}")


__all__ = ["PillowScreenCapture"]
