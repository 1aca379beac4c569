"""Task, action and audit-trail value objects shared by use cases and view models."""

from __future__ import annotations

import copy
import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Mapping, Optional

from .time_utils import utcnow_iso

UNNAMED_ACTION_LABEL = "Unnamed Action"
UNKNOWN_ACTION_VALUE = "unknown"
DEFAULT_HISTORY_LIMIT = 50


def to_int(value: Any, fallback: int = 0) -> int:
    """Round ``value`` half-up to an integer.

    Booleans, numbers and numeric strings are accepted. Anything that does not
    convert to a finite number yields ``fallback``.
    """
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return int(math.floor(number + 0.5))


class ActionKind(str, Enum):
    """Interaction family the operator picked from the action menu."""

    SHORTCUT = "shortcut"
    MOUSE = "mouse"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ActionKind":
        if isinstance(value, ActionKind):
            return value
        text = str(value or "").strip().lower()
        for kind in cls:
            if kind.value == text:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class Coordinate:
    """Integer screen position the action targets."""

    x: int = 0
    y: int = 0

    @classmethod
    def from_raw(cls, raw: Any) -> "Coordinate":
        if not isinstance(raw, Mapping):
            return cls()
        return cls(x=to_int(raw.get("x")), y=to_int(raw.get("y")))

    def to_payload(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True)
class Action:
    """Interaction proposed for the current step."""

    kind: ActionKind
    """Shortcut, mouse gesture, or ``unknown`` when the input did not say."""
    label: str
    """Display text shown to the operator, e.g. ``Ctrl + C``."""
    value: str
    """Machine-readable identifier such as a key-combination string."""
    coordinate: Coordinate
    """Target position, always integral."""
    created_at: str
    """ISO-8601 timestamp of the operator's selection."""

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "Action":
        """Normalize an operator-supplied mapping into an :class:`Action`.

        Missing kind maps to ``unknown``, a missing label to a placeholder,
        and coordinates are rounded to the nearest integer with non-finite
        components coerced to ``0``.
        """
        data: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        label = data.get("label")
        value = data.get("value")
        created_at = data.get("createdAt") or data.get("created_at")
        return cls(
            kind=ActionKind.parse(data.get("kind")),
            label=str(label) if label is not None else UNNAMED_ACTION_LABEL,
            value=str(value) if value is not None else UNKNOWN_ACTION_VALUE,
            coordinate=Coordinate.from_raw(data.get("coordinate")),
            created_at=str(created_at) if created_at else utcnow_iso(),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "value": self.value,
            "coordinate": self.coordinate.to_payload(),
            "createdAt": self.created_at,
        }

    def describe(self) -> str:
        return f"{self.kind.value} | {self.label} | {self.coordinate}"


@dataclass(frozen=True)
class CheckOutcome:
    """Authority verdict for the action of one step."""

    step: int
    success: bool
    status: int
    data: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "success": self.success,
            "status": self.status,
            "data": copy.deepcopy(self.data),
        }


class HistoryType(str, Enum):
    ACTION_PREVIEW = "action-preview"
    CHECK = "check"
    NEXT = "next"
    DONE = "done"


@dataclass(frozen=True)
class HistoryEntry:
    """Append-only audit record for one orchestrator call."""

    type: HistoryType
    step: int
    success: bool
    at: str = field(default_factory=utcnow_iso)
    action: Optional[Action] = None
    next_step: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "step": self.step,
            "at": self.at,
            "success": self.success,
        }
        if self.action is not None:
            payload["action"] = self.action.to_payload()
        if self.next_step is not None:
            payload["nextStep"] = self.next_step
        return payload


@dataclass
class TaskState:
    """Client-side view of one task.

    ``history`` keeps at most ``history_limit`` entries and drops the oldest
    one when a new entry would exceed the limit.
    """

    task_id: str
    step: int = 1
    last_action: Optional[Action] = None
    last_screenshot: Optional[str] = None
    last_check_outcome: Optional[CheckOutcome] = None
    done: bool = False
    history_limit: int = DEFAULT_HISTORY_LIMIT
    history: Deque[HistoryEntry] = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.task_id, str) or not self.task_id.strip():
            raise ValueError("TaskState requires a non-empty task id.")
        if self.step < 1:
            raise ValueError("TaskState step must start at 1 or above.")
        if self.history_limit < 1:
            raise ValueError("history_limit must be positive.")
        self.history = deque(maxlen=self.history_limit)

    def add_history(self, entry: HistoryEntry) -> None:
        self.history.append(entry)

    def select_action(self, action: Action) -> None:
        # A new action invalidates any verdict given for the previous one.
        self.last_action = action
        self.last_check_outcome = None

    def advance(self) -> None:
        self.step += 1
        self.last_action = None
        self.last_check_outcome = None

    def mark_done(self) -> None:
        self.done = True

    def history_payload(self) -> List[Dict[str, Any]]:
        return [entry.to_payload() for entry in self.history]

    def to_payload(self) -> Dict[str, Any]:
        """Return a detached, JSON-shaped copy of the whole state."""
        return {
            "taskId": self.task_id,
            "step": self.step,
            "lastAction": self.last_action.to_payload() if self.last_action else None,
            "lastScreenshot": self.last_screenshot,
            "done": self.done,
            "lastCheckOutcome": (
                self.last_check_outcome.to_payload() if self.last_check_outcome else None
            ),
            "history": self.history_payload(),
        }


__all__ = [
    "Action",
    "ActionKind",
    "CheckOutcome",
    "Coordinate",
    "DEFAULT_HISTORY_LIMIT",
    "HistoryEntry",
    "HistoryType",
    "TaskState",
    "UNKNOWN_ACTION_VALUE",
    "UNNAMED_ACTION_LABEL",
    "to_int",
]
