"""Domain package exports for task value objects and the wire envelope."""

from .capture import CaptureResult, is_image_data_url, placeholder_capture
from .entities import (
    Action,
    ActionKind,
    CheckOutcome,
    Coordinate,
    HistoryEntry,
    HistoryType,
    TaskState,
    to_int,
)
from .envelope import ApiCall, ApiRequestTrace, build_envelope, parse_body

__all__ = [
    "Action",
    "ActionKind",
    "ApiCall",
    "ApiRequestTrace",
    "CaptureResult",
    "CheckOutcome",
    "Coordinate",
    "HistoryEntry",
    "HistoryType",
    "TaskState",
    "build_envelope",
    "is_image_data_url",
    "parse_body",
    "placeholder_capture",
    "to_int",
]
