"""View state for the task panel: step, action, status, log and controls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..domain.entities import Action
from ..domain.envelope import ApiCall, ApiRequestTrace

NO_ACTION_TEXT = "none"
WORKING_TEXT = "Working..."


@dataclass(frozen=True)
class ButtonState:
    """Enablement of the three progression controls."""

    check: bool = False
    next: bool = False
    done: bool = True

    @classmethod
    def locked(cls) -> "ButtonState":
        return cls(check=False, next=False, done=False)


class TaskVM:
    """Keeps task panel UI state, no I/O here.

    Control policy: a failed check locks every control until a new action is
    created, a failed next locks every control, and done is terminal.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = datetime.now,
        on_changed: Optional[Callable[["TaskVM"], None]] = None,
    ) -> None:
        self._clock = clock
        self.on_changed = on_changed
        self.step: int = 1
        self.action_text: str = NO_ACTION_TEXT
        self.status: str = ""
        self.busy: bool = False
        self.buttons = ButtonState()
        self.screenshot: Optional[str] = None
        self.screenshot_meta: str = ""
        self.request_text: str = "{}"
        self.response_text: str = "{}"
        self.log_lines: List[str] = []
        self.finished: bool = False

    # ------------------------------------------------------------------
    @property
    def button_labels(self) -> Dict[str, str]:
        if self.busy:
            return {"check": WORKING_TEXT, "next": WORKING_TEXT, "done": WORKING_TEXT}
        return {"check": "Check", "next": "Next", "done": "Done"}

    @property
    def log_text(self) -> str:
        return "\n".join(self.log_lines)

    def set_busy(self, busy: bool) -> None:
        self.busy = bool(busy)
        self._changed()

    def set_status(self, text: str) -> None:
        self.status = text
        self._changed()

    def append_log(self, message: str) -> None:
        stamp = self._clock().strftime("%H:%M:%S")
        self.log_lines.append(f"[{stamp}] {message}")
        self._changed()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def bootstrap(self, state: Mapping[str, Any], capture: Optional[Mapping[str, Any]] = None) -> None:
        self.buttons = ButtonState(check=False, next=False, done=True)
        self.step = int(state.get("step") or 1)
        self.action_text = NO_ACTION_TEXT
        if capture:
            self._set_screenshot(capture.get("data_url"), capture.get("error"))
        self.status = "Ready. Right-click on screenshot to create an action."
        self.append_log("App initialized.")

    def apply_action_created(self, result: Any) -> None:
        self._set_action(result.action)
        self._set_screenshot(result.screenshot, result.screenshot_error)
        self._set_trace(result.api_request, result.api_response)
        # A new action re-opens Check even after a failed check locked the panel.
        self.buttons = ButtonState(check=True, next=False, done=True)
        self.status = "Action created. Click Check to validate this step."
        label = result.action.label if result.action else "?"
        self.append_log(f"Action created ({label}) and preview API called before execution.")

    def block_check_without_action(self) -> None:
        self.status = "Select an action first."
        self.append_log("Check blocked: no selected action.")

    def is_enabled(self, control: str) -> bool:
        """Return whether ``control`` ("check", "next" or "done") accepts a click."""
        return bool(getattr(self.buttons, control))

    def block_locked(self, control: str) -> None:
        name = control.capitalize()
        if self.finished:
            self.status = "Task finished. Controls are locked."
        else:
            self.status = f"{name} is disabled."
        self.append_log(f"{name} blocked: control is disabled.")

    def apply_check(self, result: Any) -> None:
        self._set_trace(result.api_request, result.api_response)
        self._set_screenshot(result.screenshot, result.screenshot_error)
        if result.success:
            self.buttons = ButtonState(check=False, next=True, done=True)
            self.status = "Check success. Click Next to continue."
            self.append_log(f"Check success on step {self.step}.")
        else:
            self.buttons = ButtonState.locked()
            self.status = "Check failed. All buttons are now disabled."
            self.append_log(f"Check failed on step {self.step}.")

    def apply_next(self, result: Any) -> None:
        self._set_trace(result.api_request, result.api_response)
        if result.success:
            self.step = result.step
            self._set_action(None)
            self.buttons = ButtonState(check=False, next=False, done=True)
            self.status = "Step moved forward. Create the next action."
            self.append_log(f"Moved from step {result.previous_step} to step {result.step}.")
        else:
            self.buttons = ButtonState.locked()
            self.status = "Next failed. All buttons are now disabled."
            self.append_log("Next failed and controls were locked.")

    def apply_done(self, result: Any) -> None:
        self._set_trace(result.api_request, result.api_response)
        self.buttons = ButtonState.locked()
        if result.success:
            self.finished = True
            self.status = "Task finished."
            self.append_log(f"Done API called successfully at step {result.step}.")
        else:
            self.status = "Done API call failed. Task controls remain locked."
            self.append_log("Done API failed.")

    def apply_runtime_error(self, operation: str, exc: BaseException) -> None:
        self.buttons = ButtonState.locked()
        self.status = f"{operation} failed due to runtime error."
        self.append_log(f"{operation} runtime error: {exc}")

    def apply_state(self, snapshot: Mapping[str, Any]) -> None:
        """Mirror orchestrator notifications that change the step counter."""
        step = snapshot.get("step")
        if isinstance(step, int) and step != self.step:
            self.step = step
            self._changed()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _set_action(self, action: Optional[Action]) -> None:
        self.action_text = action.describe() if action is not None else NO_ACTION_TEXT

    def _set_screenshot(self, data_url: Optional[str], error: Optional[str]) -> None:
        if data_url:
            self.screenshot = data_url
        if error:
            self.screenshot_meta = f"Capture fallback: {error}"
        else:
            self.screenshot_meta = f"Captured at {self._clock().strftime('%H:%M:%S')}"

    def _set_trace(self, request: Optional[ApiRequestTrace], response: Optional[ApiCall]) -> None:
        self.request_text = _pretty(request.to_payload()) if request is not None else "{}"
        self.response_text = _pretty(response.to_payload()) if response is not None else "{}"

    def _changed(self) -> None:
        if self.on_changed:
            self.on_changed(self)


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2)


__all__ = ["ButtonState", "TaskVM"]
