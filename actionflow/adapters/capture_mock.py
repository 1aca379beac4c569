from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from actionflow.domain.capture import CaptureResult, placeholder_capture
from actionflow.domain.ports import ScreenCapturePort

# 1x1 transparent PNG.
TINY_PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@dataclass
class CaptureMock(ScreenCapturePort):
    """Deterministic capture stub used for tests and headless runs."""

    fail_with: Optional[str] = None
    calls: int = 0

    def capture(self) -> CaptureResult:
        self.calls += 1
        if self.fail_with is not None:
            return placeholder_capture(self.fail_with)
        return CaptureResult(ok=True, data_url=TINY_PNG_DATA_URL)
