from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from actionflow.adapters.capture_mock import CaptureMock
from actionflow.adapters.screen_capture import PillowScreenCapture
from actionflow.app.controller import AppController
from actionflow.app.task_presenter import TaskPresenter
from actionflow.viewmodels.settings_vm import SettingsConfig, SettingsVM
from actionflow.viewmodels.task_vm import ButtonState, TaskVM


class _ResponseStub:
    def __init__(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        self.status_code = status_code
        self.text = json.dumps(payload)


class _SessionStub:
    def __init__(self, responses: Sequence[_ResponseStub] = ()) -> None:
        self._responses = list(responses)
        self.urls: List[str] = []

    def post(self, url: str, *, data: Optional[str] = None, headers=None, timeout=None) -> _ResponseStub:
        self.urls.append(url)
        if self._responses:
            return self._responses.pop(0)
        return _ResponseStub({"success": True})

    def close(self) -> None:
        pass


def _controller(**cfg: Any) -> AppController:
    settings = SettingsVM(config=SettingsConfig(task_id="task-ui", **cfg))
    return AppController(settings, capture=CaptureMock())


def _wire(responses: Sequence[_ResponseStub] = ()):
    controller = _controller()
    vm = TaskVM(clock=lambda: datetime(2026, 1, 1, 12, 0, 0))
    presenter = TaskPresenter(controller, vm)
    assert controller.ensure_ready()
    stub = _SessionStub(responses)
    controller.transport.session.session = stub  # type: ignore[assignment]
    return presenter, controller, vm, stub


def test_controller_builds_orchestrator_once() -> None:
    controller = _controller()

    assert controller.ensure_ready() is True
    first = controller.orchestrator
    assert controller.ensure_ready() is True

    assert controller.orchestrator is first
    assert first.task_id == "task-ui"
    assert controller.transport.url_for("/task/done") == "http://127.0.0.1:8787/task/done"


def test_controller_refuses_invalid_settings() -> None:
    controller = AppController(SettingsVM(config=SettingsConfig(api_base_url="nope")))

    assert controller.ensure_ready() is False
    assert controller.orchestrator is None


def test_controller_reset_starts_fresh_task() -> None:
    controller = AppController(SettingsVM(), capture=CaptureMock())
    controller.ensure_ready()
    first = controller.orchestrator

    controller.reset()
    assert controller.orchestrator is None
    controller.ensure_ready()

    assert controller.orchestrator is not first


def test_controller_picks_capture_from_settings() -> None:
    assert isinstance(AppController._build_capture(False), CaptureMock)
    assert isinstance(AppController._build_capture(True), PillowScreenCapture)


def test_presenter_full_step_flow() -> None:
    presenter, controller, vm, stub = _wire(
        [
            _ResponseStub({"success": True, "message": "Action preview stored for step 1"}),
            _ResponseStub({"success": True, "message": "Step 1 check success", "next": True}),
            _ResponseStub({"success": True, "message": "Moved to step 2", "step": 2}),
        ]
    )

    assert presenter.bootstrap() is True
    assert vm.buttons == ButtonState(check=False, next=False, done=True)

    assert presenter.handle_menu_selection("shortcut", "Ctrl + C", {"x": 100, "y": 200}) is True
    assert vm.buttons.check is True
    assert presenter.handle_check_click() is True
    assert vm.buttons.next is True
    assert presenter.handle_next_click() is True

    assert vm.step == 2
    assert vm.action_text == "none"
    assert [url.rsplit("/", 1)[-1] for url in stub.urls] == ["action-preview", "check", "next"]
    assert controller.orchestrator.get_state()["step"] == 2


def test_presenter_blocks_check_without_action() -> None:
    presenter, _, vm, stub = _wire()

    assert presenter.handle_check_click() is False

    assert vm.status == "Select an action first."
    assert stub.urls == []


def test_presenter_unknown_menu_entry_is_logged() -> None:
    presenter, _, vm, stub = _wire()

    assert presenter.handle_menu_selection("shortcut", "Ctrl + Q", {"x": 0, "y": 0}) is False

    assert vm.log_lines[-1].endswith("Unknown menu entry: shortcut/Ctrl + Q")
    assert stub.urls == []


def test_presenter_ignores_commands_while_busy() -> None:
    presenter, _, vm, stub = _wire()
    vm.busy = True

    assert presenter.handle_done_click() is False
    assert stub.urls == []


def test_presenter_reports_invalid_settings() -> None:
    controller = AppController(SettingsVM(config=SettingsConfig(api_base_url="nope")))
    vm = TaskVM()
    presenter = TaskPresenter(controller, vm)

    assert presenter.handle_done_click() is False
    assert vm.status == "Task client settings are invalid."


def test_presenter_contains_apply_errors() -> None:
    presenter, _, vm, _ = _wire()

    def _broken(result):
        raise RuntimeError("render failed")

    vm.apply_done = _broken  # type: ignore[assignment]

    assert presenter.handle_done_click() is True
    assert vm.busy is False
    assert vm.status == "Done failed due to runtime error."


def test_next_before_any_check_makes_no_call() -> None:
    presenter, controller, vm, stub = _wire()
    presenter.bootstrap()

    assert presenter.handle_next_click() is False

    assert stub.urls == []
    assert vm.status == "Next is disabled."
    assert controller.orchestrator.get_state()["step"] == 1


def test_failed_check_locks_check_next_and_done() -> None:
    presenter, controller, vm, stub = _wire(
        [
            _ResponseStub({"success": True}),
            _ResponseStub({"success": False, "message": "blocked", "next": False}),
        ]
    )
    presenter.bootstrap()
    presenter.handle_menu_selection("shortcut", "Alt + Tab", {"x": 1, "y": 1})
    assert presenter.handle_check_click() is False

    assert presenter.handle_check_click() is False
    assert presenter.handle_next_click() is False
    assert presenter.handle_done_click() is False

    assert [url.rsplit("/", 1)[-1] for url in stub.urls] == ["action-preview", "check"]
    assert controller.orchestrator.get_state()["step"] == 1
    assert vm.log_lines[-1].endswith("Done blocked: control is disabled.")


def test_new_action_reopens_check_after_failed_check() -> None:
    presenter, _, vm, stub = _wire(
        [
            _ResponseStub({"success": True}),
            _ResponseStub({"success": False, "next": False}),
        ]
    )
    presenter.bootstrap()
    presenter.handle_menu_selection("shortcut", "Alt + Tab", {"x": 1, "y": 1})
    presenter.handle_check_click()

    assert presenter.handle_menu_selection("shortcut", "Ctrl + C", {"x": 1, "y": 1}) is True
    assert presenter.handle_check_click() is True

    assert [url.rsplit("/", 1)[-1] for url in stub.urls] == [
        "action-preview",
        "check",
        "action-preview",
        "check",
    ]
    assert vm.buttons.next is True


def test_done_locks_every_control() -> None:
    presenter, _, vm, stub = _wire()
    presenter.bootstrap()
    presenter.handle_menu_selection("mouse", "Left Click", {"x": 3, "y": 4})
    assert presenter.handle_done_click() is True

    assert presenter.handle_check_click() is False
    assert presenter.handle_next_click() is False
    assert presenter.handle_done_click() is False
    assert presenter.handle_menu_selection("mouse", "Double Click", {"x": 3, "y": 4}) is False

    assert [url.rsplit("/", 1)[-1] for url in stub.urls] == ["action-preview", "done"]
    assert vm.status == "Task finished. Controls are locked."
