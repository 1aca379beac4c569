from __future__ import annotations

import io
import json
import logging

from actionflow.adapters.capture_mock import CaptureMock
from actionflow.app.controller import AppController
from actionflow.app.main import App, main
from actionflow.utils import logging as logging_utils
from actionflow.viewmodels.settings_vm import SettingsConfig, SettingsVM


class _ResponseStub:
    def __init__(self, payload, status_code: int = 200) -> None:
        self.status_code = status_code
        self.text = json.dumps(payload)


class _ScriptedSession:
    def __init__(self) -> None:
        self.paths = []

    def post(self, url, *, data=None, headers=None, timeout=None):
        path = url.split("8787", 1)[1]
        self.paths.append(path)
        if path == "/task/check":
            value = json.loads(data)["action"]["value"]
            if value == "Alt+Tab":
                return _ResponseStub({"success": False, "message": "blocked", "next": False})
        if path == "/task/next":
            return _ResponseStub({"success": True, "step": 2})
        return _ResponseStub({"success": True})

    def close(self) -> None:
        pass


def _app():
    settings = SettingsVM(config=SettingsConfig(task_id="task-cli"))
    controller = AppController(settings, capture=CaptureMock())
    out = io.StringIO()
    app = App(settings_vm=settings, controller=controller, out=out)
    controller.ensure_ready()
    session = _ScriptedSession()
    controller.transport.session.session = session  # type: ignore[assignment]
    return app, out, session


def test_console_session_walks_one_step_and_finishes() -> None:
    app, out, session = _app()

    app.run(
        [
            "menu",
            'action shortcut 100 200 "Ctrl + C"',
            "check",
            "next",
            "done",
            "state",
        ]
    )

    text = out.getvalue()
    assert "shortcut: Ctrl + C, Ctrl + V" in text
    assert "Coordinate: (100, 200)" in text
    assert "Step 2 | Action: none | Enabled: done" in text
    assert "Task finished." in text
    assert session.paths == ["/task/action-preview", "/task/check", "/task/next", "/task/done"]
    # The session ends after done, so "state" is never processed.
    assert '"taskId"' not in text


def test_console_failed_check_locks_controls() -> None:
    app, out, session = _app()
    app.presenter.bootstrap()

    app.dispatch("action shortcut 1 1 Alt + Tab")
    app.dispatch("check")
    assert "Enabled: none" in out.getvalue()
    assert app.task_vm.status == "Check failed. All buttons are now disabled."

    app.dispatch("check")
    app.dispatch("next")

    assert session.paths == ["/task/action-preview", "/task/check"]
    assert app.task_vm.step == 1
    assert app.task_vm.status == "Next is disabled."


def test_console_next_right_after_startup_is_refused() -> None:
    app, out, session = _app()
    app.presenter.bootstrap()

    assert app.dispatch("next") is True

    assert session.paths == []
    assert "Next blocked: control is disabled." in out.getvalue()
    assert app.controller.orchestrator.step == 1


def test_console_rejects_unknown_and_malformed_commands() -> None:
    app, out, session = _app()

    assert app.dispatch("jump") is True
    assert app.dispatch("action shortcut 1") is True
    assert app.dispatch('action "unterminated') is True
    assert app.dispatch("") is True
    assert app.dispatch("quit") is False

    text = out.getvalue()
    assert "Unknown command: jump" in text
    assert "Usage: action" in text
    assert "Cannot parse command" in text
    assert session.paths == []


def test_configure_root_honors_env(monkeypatch) -> None:
    root = logging.getLogger()
    previous = root.level
    monkeypatch.delenv("ACTIONFLOW_LOG_LEVEL", raising=False)
    monkeypatch.setenv("ACTIONFLOW_DEBUG", "yes")
    try:
        assert logging_utils.configure_root() == logging.DEBUG
        monkeypatch.setenv("ACTIONFLOW_LOG_LEVEL", "warning")
        assert logging_utils.configure_root() == logging.WARNING
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)


def test_configure_root_default_level(monkeypatch) -> None:
    root = logging.getLogger()
    previous = root.level
    monkeypatch.delenv("ACTIONFLOW_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ACTIONFLOW_DEBUG", raising=False)
    try:
        assert logging_utils.configure_root("error") == logging.ERROR
    finally:
        root.setLevel(previous)


def test_main_reports_malformed_timeout(monkeypatch, caplog) -> None:
    root = logging.getLogger()
    previous = root.level
    monkeypatch.delenv("ACTIONFLOW_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ACTIONFLOW_DEBUG", raising=False)
    monkeypatch.setenv("API_TIMEOUT_MS", "soon")
    try:
        with caplog.at_level(logging.ERROR, logger="actionflow.app.main"):
            assert main() == 2
    finally:
        root.setLevel(previous)

    assert "Invalid task client settings: API_TIMEOUT_MS must be a number." in caplog.text
