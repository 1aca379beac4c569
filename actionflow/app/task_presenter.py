"""Presenter binding operator gestures to the orchestrator and the task view model."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from ..domain.catalog import find_template, menu_action
from ..domain.ports import UseCaseError
from ..usecases.task_orchestrator import TaskHooks
from ..viewmodels.task_vm import TaskVM
from .controller import AppController


class TaskPresenter:
    """Serialize operator commands and reflect their outcome in :class:`TaskVM`.

    Every handler returns ``False`` without touching the orchestrator while a
    previous command is still running or while its control is disabled in
    the view model. Creating an action stays possible until the task is done.
    """

    def __init__(self, controller: AppController, vm: TaskVM) -> None:
        self.controller = controller
        self.vm = vm
        self._log = logging.getLogger(__name__)
        if controller.hooks is None:
            controller.hooks = TaskHooks(on_state_changed=vm.apply_state)

    # ------------------------------------------------------------------
    def bootstrap(self) -> bool:
        if not self._ready():
            return False
        orchestrator = self.controller.orchestrator
        capture = self.controller.capture_screen()
        shot = {"data_url": capture.data_url, "error": capture.error} if capture else None
        self.vm.bootstrap(orchestrator.get_state(), shot)
        return True

    def handle_menu_selection(self, kind: str, label: str, coordinate: Mapping[str, Any]) -> bool:
        template = find_template(kind, label)
        if template is None:
            self.vm.append_log(f"Unknown menu entry: {kind}/{label}")
            return False
        return self.handle_action_selected(menu_action(kind, template, coordinate))

    def handle_action_selected(self, raw_action: Mapping[str, Any]) -> bool:
        if self.vm.finished:
            self.vm.block_locked("action")
            return False
        return self._run(
            "Create action",
            lambda orch: orch.propose_action(raw_action),
            self.vm.apply_action_created,
        )

    def handle_check_click(self) -> bool:
        if self.vm.busy or not self._ready():
            return False
        if self.controller.orchestrator.get_state()["lastAction"] is None:
            self.vm.block_check_without_action()
            return False
        if not self._enabled("check"):
            return False
        return self._run("Check", lambda orch: orch.run_check(), self.vm.apply_check)

    def handle_next_click(self) -> bool:
        if not self._enabled("next"):
            return False
        return self._run("Next", lambda orch: orch.run_next(), self.vm.apply_next)

    def handle_done_click(self) -> bool:
        if not self._enabled("done"):
            return False
        return self._run("Done", lambda orch: orch.run_done(), self.vm.apply_done)

    # ------------------------------------------------------------------
    def _enabled(self, control: str) -> bool:
        if self.vm.is_enabled(control):
            return True
        self._log.info("%s ignored: control is disabled", control.capitalize())
        self.vm.block_locked(control)
        return False

    def _ready(self) -> bool:
        try:
            if self.controller.ensure_ready():
                return True
        except Exception as exc:
            self._log.exception("Failed to build task client")
            self.vm.apply_runtime_error("Startup", exc)
            return False
        err = UseCaseError("CONFIG_INVALID", "Task client settings are invalid.")
        self._log.warning("UseCase error (%s): %s", err.code, err.message)
        self.vm.set_status(err.message)
        return False

    def _run(
        self,
        operation: str,
        call: Callable[[Any], Any],
        apply: Callable[[Any], None],
    ) -> bool:
        if self.vm.busy:
            return False
        if not self._ready():
            return False
        self.vm.set_busy(True)
        result: Optional[Any] = None
        try:
            result = call(self.controller.orchestrator)
            apply(result)
        except Exception as exc:
            self._log.exception("%s failed unexpectedly", operation)
            self.vm.apply_runtime_error(operation, exc)
        finally:
            self.vm.set_busy(False)
        return bool(result is not None and result.success)


__all__ = ["TaskPresenter"]
