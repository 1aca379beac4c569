"""Client-side state machine for one operator-driven task.

The orchestrator sequences the four remote calls (preview, check, next, done),
keeps the locally cached task state, and reconciles it with every response.
Every operation returns a result object with a ``success`` flag; transport,
capture and remote failures are all reported that way and never raised.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from actionflow.domain.capture import CaptureResult, is_image_data_url, placeholder_capture
from actionflow.domain.entities import (
    DEFAULT_HISTORY_LIMIT,
    Action,
    CheckOutcome,
    HistoryEntry,
    HistoryType,
    TaskState,
)
from actionflow.domain.envelope import (
    CHECK_PATH,
    DONE_PATH,
    NEXT_PATH,
    PREVIEW_PATH,
    ApiCall,
    ApiRequestTrace,
    build_envelope,
    transport_failure,
)
from actionflow.domain.ports import ScreenCapturePort, TransportPort
from actionflow.domain.time_utils import epoch_ms
from actionflow.usecases.error_mapping import map_api_error

NO_ACTION_MESSAGE = "No action selected"
BUSY_MESSAGE = "Another task operation is in progress"
EXECUTION_PHASE = "before-execution"


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


@dataclass
class TaskHooks:
    """Optional callbacks fired after the orchestrator reconciles its state."""

    on_state_changed: Callable[[Dict[str, Any]], None] = _noop
    on_step_advanced: Callable[[int, int], None] = _noop
    on_done: Callable[[Dict[str, Any]], None] = _noop

    def __post_init__(self) -> None:
        self.on_state_changed = self.on_state_changed or _noop
        self.on_step_advanced = self.on_step_advanced or _noop
        self.on_done = self.on_done or _noop


@dataclass(frozen=True)
class ActionPreviewResult:
    success: bool
    step: int
    message: Optional[str] = None
    action: Optional[Action] = None
    screenshot: Optional[str] = None
    screenshot_error: Optional[str] = None
    api_request: Optional[ApiRequestTrace] = None
    api_response: Optional[ApiCall] = None


@dataclass(frozen=True)
class CheckResult:
    success: bool
    step: int
    message: Optional[str] = None
    screenshot: Optional[str] = None
    screenshot_error: Optional[str] = None
    api_request: Optional[ApiRequestTrace] = None
    api_response: Optional[ApiCall] = None


@dataclass(frozen=True)
class NextResult:
    success: bool
    previous_step: int
    step: int
    message: Optional[str] = None
    api_request: Optional[ApiRequestTrace] = None
    api_response: Optional[ApiCall] = None


@dataclass(frozen=True)
class DoneResult:
    success: bool
    step: int
    message: Optional[str] = None
    api_request: Optional[ApiRequestTrace] = None
    api_response: Optional[ApiCall] = None


class TaskOrchestrator:
    """Own the local state of one task and drive it through the authority.

    Only one operation runs at a time; a call made while another is in flight
    is rejected locally with :data:`BUSY_MESSAGE`.
    """

    def __init__(
        self,
        transport: TransportPort,
        capture: ScreenCapturePort,
        *,
        task_id: Optional[str] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        hooks: Optional[TaskHooks] = None,
    ) -> None:
        self.transport = transport
        self.capture = capture
        self.hooks = hooks or TaskHooks()
        self._state = TaskState(
            task_id=task_id or f"task-{epoch_ms()}",
            history_limit=history_limit,
        )
        self._flight = threading.Lock()
        self._log = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def task_id(self) -> str:
        return self._state.task_id

    @property
    def step(self) -> int:
        return self._state.step

    @property
    def busy(self) -> bool:
        return self._flight.locked()

    def get_state(self) -> Dict[str, Any]:
        """Return a deep, mutation-safe snapshot of the local state."""
        return self._state.to_payload()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def propose_action(self, raw_action: Optional[Mapping[str, Any]]) -> ActionPreviewResult:
        """Select a new action for the current step and submit it for preview.

        The previous check outcome is discarded, a screenshot is captured and
        the preview call is issued. History is recorded whatever the remote
        outcome.
        """
        with self._single_flight() as acquired:
            if not acquired:
                return ActionPreviewResult(success=False, step=self.step, message=BUSY_MESSAGE)

            state = self._state
            step = state.step
            action = Action.from_raw(raw_action)
            state.select_action(action)

            shot = self._capture()
            state.last_screenshot = shot.data_url

            request, call = self._call(
                PREVIEW_PATH,
                {
                    "step": step,
                    "action": action.to_payload(),
                    "screenshot": shot.data_url,
                    "executionPhase": EXECUTION_PHASE,
                },
            )
            state.add_history(
                HistoryEntry(
                    type=HistoryType.ACTION_PREVIEW,
                    step=step,
                    success=call.success,
                    action=action,
                )
            )
            self._log.info(
                "Preview step %s action=%s -> HTTP %s success=%s",
                step,
                action.value,
                call.status,
                call.success,
            )
            self._notify_state()
            return ActionPreviewResult(
                success=call.success,
                step=step,
                message=call.message,
                action=action,
                screenshot=shot.data_url,
                screenshot_error=shot.error,
                api_request=request,
                api_response=call,
            )

    def run_check(self) -> CheckResult:
        """Ask the authority to validate the current action."""
        with self._single_flight() as acquired:
            if not acquired:
                return CheckResult(success=False, step=self.step, message=BUSY_MESSAGE)

            state = self._state
            step = state.step
            action = state.last_action
            if action is None:
                self._log.info("Check blocked on step %s: no action selected", step)
                return CheckResult(success=False, step=step, message=NO_ACTION_MESSAGE)

            shot = self._capture()
            state.last_screenshot = shot.data_url

            request, call = self._call(
                CHECK_PATH,
                {
                    "step": step,
                    "action": action.to_payload(),
                    "screenshot": shot.data_url,
                },
            )
            state.last_check_outcome = CheckOutcome(
                step=step,
                success=call.success,
                status=call.status,
                data=copy.deepcopy(call.data),
            )
            state.add_history(HistoryEntry(type=HistoryType.CHECK, step=step, success=call.success))
            if call.success:
                self._log.info("Check success on step %s", step)
            else:
                self._log.warning(
                    "Check failed on step %s (HTTP %s): %s", step, call.status, call.message
                )
            self._notify_state()
            return CheckResult(
                success=call.success,
                step=step,
                message=call.message,
                screenshot=shot.data_url,
                screenshot_error=shot.error,
                api_request=request,
                api_response=call,
            )

    def run_next(self) -> NextResult:
        """Request advancement to the next step.

        The local step only moves on a successful response, and then by
        exactly one. A failed call leaves the action and check outcome in
        place so the operator has to retry or abandon explicitly.
        """
        with self._single_flight() as acquired:
            if not acquired:
                step = self.step
                return NextResult(success=False, previous_step=step, step=step, message=BUSY_MESSAGE)

            state = self._state
            previous_step = state.step
            request, call = self._call(
                NEXT_PATH,
                {
                    "step": previous_step,
                    "action": self._action_payload(),
                    "checkResponse": self._check_payload(),
                    "screenshot": state.last_screenshot,
                },
            )
            if call.success:
                state.advance()
                remote_step = call.data.get("step")
                if isinstance(remote_step, int) and remote_step != state.step:
                    self._log.warning(
                        "Step diverged after next: client=%s authority=%s",
                        state.step,
                        remote_step,
                    )
                self._log.info("Moved from step %s to step %s", previous_step, state.step)
            else:
                self._log.warning(
                    "Next failed on step %s (HTTP %s): %s", previous_step, call.status, call.message
                )
            state.add_history(
                HistoryEntry(
                    type=HistoryType.NEXT,
                    step=previous_step,
                    success=call.success,
                    next_step=state.step,
                )
            )
            if call.success:
                self._emit(self.hooks.on_step_advanced, previous_step, state.step)
            self._notify_state()
            return NextResult(
                success=call.success,
                previous_step=previous_step,
                step=state.step,
                message=call.message,
                api_request=request,
                api_response=call,
            )

    def run_done(self) -> DoneResult:
        """Finish the task at the current step.

        No successful check is required; the authority decides. The last
        action and check outcome are kept.
        """
        with self._single_flight() as acquired:
            if not acquired:
                return DoneResult(success=False, step=self.step, message=BUSY_MESSAGE)

            state = self._state
            step = state.step
            request, call = self._call(
                DONE_PATH,
                {
                    "finalStep": step,
                    "action": self._action_payload(),
                    "checkResponse": self._check_payload(),
                    "history": state.history_payload(),
                },
            )
            state.add_history(HistoryEntry(type=HistoryType.DONE, step=step, success=call.success))
            if call.success:
                state.mark_done()
                self._log.info("Task %s finished at step %s", state.task_id, step)
                self._emit(self.hooks.on_done, self.get_state())
            else:
                self._log.warning("Done failed (HTTP %s): %s", call.status, call.message)
            self._notify_state()
            return DoneResult(
                success=call.success,
                step=step,
                message=call.message,
                api_request=request,
                api_response=call,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @contextmanager
    def _single_flight(self) -> Iterator[bool]:
        acquired = self._flight.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._flight.release()

    def _capture(self) -> CaptureResult:
        try:
            result = self.capture.capture()
        except Exception as exc:
            self._log.warning("Screen capture raised: %s", exc)
            return placeholder_capture(str(exc) or "Failed to capture screenshot")
        if result is None or not is_image_data_url(result.data_url):
            reason = getattr(result, "error", None) or "Capture returned no image"
            return placeholder_capture(reason)
        return result

    def _call(self, path: str, fields: Dict[str, Any]) -> Tuple[ApiRequestTrace, ApiCall]:
        body = build_envelope(self._state.task_id, fields)
        try:
            call = self.transport.post(path, body)
        except Exception as exc:
            err = map_api_error(
                exc,
                default_code="TRANSPORT_FAILED",
                default_message="Failed to call API",
            )
            self._log.warning("%s transport failure (%s): %s", path, err.code, err.message)
            call = transport_failure(self._url_for(path), body, err.message, code=err.code)
        return ApiRequestTrace(endpoint=path, url=call.url, body=body), call

    def _url_for(self, path: str) -> str:
        try:
            return self.transport.url_for(path)
        except Exception:
            return path

    def _action_payload(self) -> Optional[Dict[str, Any]]:
        action = self._state.last_action
        return action.to_payload() if action is not None else None

    def _check_payload(self) -> Optional[Dict[str, Any]]:
        outcome = self._state.last_check_outcome
        return copy.deepcopy(outcome.data) if outcome is not None else None

    def _notify_state(self) -> None:
        self._emit(self.hooks.on_state_changed, self.get_state())

    def _emit(self, hook: Callable[..., None], *args: Any) -> None:
        try:
            hook(*args)
        except Exception:
            self._log.exception("Task hook failed")


__all__ = [
    "ActionPreviewResult",
    "BUSY_MESSAGE",
    "CheckResult",
    "DoneResult",
    "NO_ACTION_MESSAGE",
    "NextResult",
    "TaskHooks",
    "TaskOrchestrator",
]
