"""End-to-end flows: client orchestrator talking to the FastAPI authority in-process."""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import pytest
from fastapi.testclient import TestClient

from actionflow.adapters.capture_mock import CaptureMock
from actionflow.adapters.task_rest import TaskRestAdapter
from actionflow.domain.catalog import find_template, menu_action
from actionflow.usecases.task_orchestrator import TaskOrchestrator
from rest_api.app import create_app
from rest_api.authority import AuthoritySettings, WorkflowAuthority


class _TestClientSession:
    """Forward ``requests``-style posts to a FastAPI ``TestClient``."""

    def __init__(self, client: TestClient) -> None:
        self.client = client

    def post(
        self,
        url: str,
        *,
        data: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        return self.client.post(urlsplit(url).path, content=data, headers=headers)

    def close(self) -> None:
        pass


@pytest.fixture
def wired():
    authority = WorkflowAuthority(AuthoritySettings())
    with TestClient(create_app(authority)) as client:
        transport = TaskRestAdapter("http://authority.test")
        transport.session.session = _TestClientSession(client)  # type: ignore[assignment]
        orchestrator = TaskOrchestrator(transport, CaptureMock(), task_id="task-e2e")
        yield orchestrator, authority


def _pick(kind: str, label: str, x: int = 100, y: int = 200) -> Dict[str, Any]:
    return menu_action(kind, find_template(kind, label), {"x": x, "y": y})


def test_happy_path_moves_both_sides_to_step_two(wired) -> None:
    orchestrator, authority = wired

    preview = orchestrator.propose_action(_pick("shortcut", "Ctrl + C"))
    check = orchestrator.run_check()
    nxt = orchestrator.run_next()

    assert preview.success and check.success and nxt.success
    assert check.api_response.data["includeInNext"]["approvedAction"]["value"] == "Ctrl+C"
    assert orchestrator.step == 2
    assert orchestrator.get_state()["lastAction"] is None
    assert authority.snapshot("task-e2e")["step"] == 2


def test_denylisted_action_blocks_next_on_both_sides(wired) -> None:
    orchestrator, authority = wired

    orchestrator.propose_action(_pick("shortcut", "Alt + Tab"))
    check = orchestrator.run_check()
    nxt = orchestrator.run_next()

    assert check.success is False
    assert check.api_response.status == 200
    assert check.message == "Mock fail rule: Alt+Tab is blocked in this demo"
    assert nxt.success is False
    assert nxt.api_response.status == 400
    assert nxt.message == "Cannot move next when check failed"
    assert orchestrator.step == 1
    assert authority.snapshot("task-e2e")["step"] == 1


def test_recovering_with_a_new_action_after_failed_check(wired) -> None:
    orchestrator, authority = wired

    orchestrator.propose_action(_pick("shortcut", "Alt + Tab"))
    orchestrator.run_check()
    orchestrator.propose_action(_pick("mouse", "Left Click", 5, 6))
    orchestrator.run_check()
    nxt = orchestrator.run_next()

    assert nxt.success is True
    assert authority.snapshot("task-e2e")["step"] == 2


def test_done_twice_reports_same_final_step(wired) -> None:
    orchestrator, authority = wired
    orchestrator.propose_action(_pick("mouse", "Double Click"))
    orchestrator.run_check()
    orchestrator.run_next()

    first = orchestrator.run_done()
    second = orchestrator.run_done()

    assert first.success and second.success
    assert first.api_response.data["finalStep"] == second.api_response.data["finalStep"] == 2
    assert second.api_response.data["historyCount"] > first.api_response.data["historyCount"]
    assert authority.snapshot("task-e2e")["done"] is True
    assert orchestrator.get_state()["done"] is True


def test_check_without_screenshot_is_rejected_and_step_unchanged(wired) -> None:
    orchestrator, authority = wired
    transport = orchestrator.transport

    call = transport.post(
        "/task/check",
        {"taskId": "task-e2e", "step": 1, "action": _pick("shortcut", "Ctrl + V")},
    )

    assert call.status == 400
    assert call.success is False
    assert call.message == "Screenshot and action coordinate are required"
    assert authority.snapshot("task-e2e")["step"] == 1
    assert orchestrator.step == 1


def test_unreachable_authority_reports_status_zero() -> None:
    orchestrator = TaskOrchestrator(
        TaskRestAdapter("http://127.0.0.1:9", request_timeout_s=0.5),
        CaptureMock(),
        task_id="task-offline",
    )

    result = orchestrator.run_done()

    assert result.success is False
    assert result.api_response.status == 0
    assert result.api_response.error_code in {"CONNECTION_FAILED", "REQUEST_TIMEOUT"}
    assert orchestrator.get_state()["done"] is False
