"""Workflow authority: per-task records and validation of the four task calls.

The authority is the source of truth for step advancement and completion.
Each ``handle_*`` method takes the decoded request body and returns an
:class:`AuthorityReply` (HTTP status plus JSON body); nothing here raises for
a bad payload.
"""

from __future__ import annotations

import logging
import math
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_DENYLIST: Tuple[str, ...] = ("Alt+Tab",)

LABEL_REQUIRED = "Action label is required"
CHECK_FIELDS_REQUIRED = "Screenshot and action coordinate are required"
NEXT_AFTER_FAILED_CHECK = "Cannot move next when check failed"
NEXT_WITHOUT_CHECK = "Cannot move next without a successful check"


def utcnow_iso() -> str:
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def _truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthoritySettings:
    """Business rules applied by :class:`WorkflowAuthority`.

    Attributes:
        denylist: Action values that always fail the check call.
        strict_next: When ``True`` a next call must echo a successful check;
            when ``False`` only an explicit ``success: false`` is rejected.
        history_limit: Optional per-task cap on the audit trail; ``None``
            keeps every entry.
    """

    denylist: Tuple[str, ...] = DEFAULT_DENYLIST
    strict_next: bool = False
    history_limit: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AuthoritySettings":
        env = os.environ if environ is None else environ
        denylist = DEFAULT_DENYLIST
        raw_denylist = env.get("AUTHORITY_DENYLIST")
        if raw_denylist is not None:
            denylist = tuple(item.strip() for item in raw_denylist.split(",") if item.strip())
        history_limit: Optional[int] = None
        raw_limit = (env.get("AUTHORITY_HISTORY_LIMIT") or "").strip()
        if raw_limit:
            try:
                history_limit = int(raw_limit)
            except ValueError as exc:
                raise ValueError("AUTHORITY_HISTORY_LIMIT must be an integer") from exc
            if history_limit < 1:
                raise ValueError("AUTHORITY_HISTORY_LIMIT must be positive")
        return cls(
            denylist=denylist,
            strict_next=_truthy(env.get("AUTHORITY_STRICT_NEXT")),
            history_limit=history_limit,
        )


@dataclass
class TaskRecord:
    task_id: str
    step: int = 1
    history: List[Dict[str, Any]] = field(default_factory=list)
    done: bool = False

    def snapshot(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "step": self.step,
            "done": self.done,
            "historyCount": len(self.history),
            "history": [dict(entry) for entry in self.history],
        }


@dataclass(frozen=True)
class AuthorityReply:
    status_code: int
    body: Dict[str, Any]

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300 and self.body.get("success") is not False


def has_screenshot(payload: Mapping[str, Any]) -> bool:
    value = payload.get("screenshot")
    return isinstance(value, str) and value.startswith("data:image/")


def _finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def has_coordinate(payload: Mapping[str, Any]) -> bool:
    action = payload.get("action")
    if not isinstance(action, Mapping):
        return False
    coordinate = action.get("coordinate")
    if not isinstance(coordinate, Mapping):
        return False
    return _finite_number(coordinate.get("x")) and _finite_number(coordinate.get("y"))


def _action(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    action = payload.get("action")
    return action if isinstance(action, Mapping) else {}


class WorkflowAuthority:
    """Hold one :class:`TaskRecord` per task id and validate incoming calls.

    Records are created lazily on first contact. A single lock serializes
    record access; calls for the same task are neither deduplicated nor
    reordered.
    """

    def __init__(
        self,
        settings: Optional[AuthoritySettings] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or AuthoritySettings()
        self.log = logger or logging.getLogger("rest_api.authority")
        self._tasks: Dict[str, TaskRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------
    def _record_locked(self, task_id: str) -> TaskRecord:
        record = self._tasks.get(task_id)
        if record is None:
            record = self._tasks[task_id] = TaskRecord(task_id=task_id)
            self.log.info("Task %s created", task_id)
        return record

    def snapshot(self, task_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._tasks.get(task_id)
            return record.snapshot() if record else None

    def task_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _append_history(self, record: TaskRecord, event: str, payload: Mapping[str, Any]) -> None:
        step = payload.get("step")
        if step is None:
            step = payload.get("finalStep")
        record.history.append(
            {
                "event": event,
                "at": utcnow_iso(),
                "step": step,
                "action": _action(payload).get("label"),
            }
        )
        limit = self.settings.history_limit
        if limit is not None and len(record.history) > limit:
            del record.history[: len(record.history) - limit]

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------
    def handle_preview(self, payload: Mapping[str, Any]) -> AuthorityReply:
        with self._lock:
            record = self._record_locked(str(payload.get("taskId")))
            self._append_history(record, "action-preview", payload)

        action = _action(payload)
        if not action.get("label"):
            self.log.warning("Preview rejected for task %s: missing label", record.task_id)
            return AuthorityReply(400, {"success": False, "message": LABEL_REQUIRED})

        return AuthorityReply(
            200,
            {
                "success": True,
                "message": f"Action preview stored for step {payload.get('step')}",
                "action": dict(action),
                "hasScreenshot": has_screenshot(payload),
            },
        )

    def handle_check(self, payload: Mapping[str, Any]) -> AuthorityReply:
        with self._lock:
            record = self._record_locked(str(payload.get("taskId")))
            self._append_history(record, "check", payload)

        if not has_screenshot(payload) or not has_coordinate(payload):
            self.log.warning("Check rejected for task %s: structural fields missing", record.task_id)
            return AuthorityReply(400, {"success": False, "message": CHECK_FIELDS_REQUIRED})

        action = _action(payload)
        value = action.get("value")
        if value in self.settings.denylist:
            self.log.info("Check failed for task %s: %s is denylisted", record.task_id, value)
            return AuthorityReply(
                200,
                {
                    "success": False,
                    "message": f"Mock fail rule: {value} is blocked in this demo",
                    "next": False,
                },
            )

        return AuthorityReply(
            200,
            {
                "success": True,
                "message": f"Step {payload.get('step')} check success",
                "next": True,
                "includeInNext": {
                    "approvedAction": dict(action),
                    "approvedAt": utcnow_iso(),
                },
            },
        )

    def handle_next(self, payload: Mapping[str, Any]) -> AuthorityReply:
        with self._lock:
            record = self._record_locked(str(payload.get("taskId")))
            self._append_history(record, "next", payload)

            check = payload.get("checkResponse")
            echoed = check.get("success") if isinstance(check, Mapping) else None
            if echoed is False:
                self.log.warning("Next rejected for task %s: check failed", record.task_id)
                return AuthorityReply(400, {"success": False, "message": NEXT_AFTER_FAILED_CHECK})
            if self.settings.strict_next and echoed is not True:
                self.log.warning("Next rejected for task %s: no successful check", record.task_id)
                return AuthorityReply(400, {"success": False, "message": NEXT_WITHOUT_CHECK})

            record.step += 1
            step = record.step

        return AuthorityReply(
            200,
            {
                "success": True,
                "message": f"Moved to step {step}",
                "step": step,
                "previousStepPayload": dict(payload),
            },
        )

    def handle_done(self, payload: Mapping[str, Any]) -> AuthorityReply:
        with self._lock:
            record = self._record_locked(str(payload.get("taskId")))
            self._append_history(record, "done", payload)
            record.done = True
            history_count = len(record.history)

        return AuthorityReply(
            200,
            {
                "success": True,
                "message": f"Task {record.task_id} finished",
                "finalStep": payload.get("finalStep"),
                "historyCount": history_count,
            },
        )


__all__ = [
    "AuthorityReply",
    "AuthoritySettings",
    "TaskRecord",
    "WorkflowAuthority",
    "has_coordinate",
    "has_screenshot",
]
