"""Request/response envelope shared by every task call.

Every request body is ``{taskId, sentAt, ...fields}``. A response counts as a
failure when its HTTP status is outside 2xx or when the decoded body carries
``success: false``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .time_utils import utcnow_iso

PREVIEW_PATH = "/task/action-preview"
CHECK_PATH = "/task/check"
NEXT_PATH = "/task/next"
DONE_PATH = "/task/done"

TRANSPORT_FAILURE_STATUS = 0


@dataclass(frozen=True)
class ApiRequestTrace:
    """What was sent, kept for observability."""

    endpoint: str
    url: Optional[str]
    body: Dict[str, Any]

    def to_payload(self) -> Dict[str, Any]:
        return {"endpoint": self.endpoint, "url": self.url, "body": dict(self.body)}


@dataclass(frozen=True)
class ApiCall:
    """Uniform result of one transport exchange.

    Attributes:
        success: Overall verdict (status in 2xx and body not ``success: false``).
        status: HTTP status, or ``0`` for transport failures.
        url: Absolute URL that was called.
        request_body: Envelope that was sent.
        data: Decoded response body (always a mapping).
        error: Transport failure text, ``None`` when a response arrived.
        error_code: Stable code for transport failures.
    """

    success: bool
    status: int
    url: str
    request_body: Dict[str, Any]
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        value = self.data.get("message")
        if isinstance(value, str) and value.strip():
            return value
        return self.error

    def to_payload(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status,
            "url": self.url,
            "requestBody": json.loads(json.dumps(self.request_body)),
            "data": json.loads(json.dumps(self.data)),
            "error": self.error,
            "errorCode": self.error_code,
        }


def build_envelope(
    task_id: str, fields: Mapping[str, Any], *, sent_at: Optional[str] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"taskId": task_id, "sentAt": sent_at or utcnow_iso()}
    body.update(fields)
    return body


def parse_body(raw_text: Optional[str]) -> Dict[str, Any]:
    """Decode a response body; non-object bodies are wrapped as ``{message: text}``."""
    if not raw_text:
        return {}
    try:
        data = json.loads(raw_text)
    except ValueError:
        return {"message": raw_text}
    if not isinstance(data, dict):
        return {"message": raw_text}
    return data


def is_success(status: int, data: Mapping[str, Any]) -> bool:
    return 200 <= status < 300 and data.get("success") is not False


def transport_failure(
    url: str, request_body: Dict[str, Any], message: str, *, code: Optional[str] = None
) -> ApiCall:
    return ApiCall(
        success=False,
        status=TRANSPORT_FAILURE_STATUS,
        url=url,
        request_body=request_body,
        data={"success": False, "message": message},
        error=message,
        error_code=code,
    )


__all__ = [
    "ApiCall",
    "ApiRequestTrace",
    "CHECK_PATH",
    "DONE_PATH",
    "NEXT_PATH",
    "PREVIEW_PATH",
    "TRANSPORT_FAILURE_STATUS",
    "build_envelope",
    "is_success",
    "parse_body",
    "transport_failure",
]
