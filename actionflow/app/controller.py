"""Adapter and use-case wiring for the task client runtime.

This module owns lazy construction of the transport adapter, the capture
adapter and the task orchestrator from values in
:class:`actionflow.viewmodels.settings_vm.SettingsVM`. It is invoked by the
presenter before any task operation.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..adapters.capture_mock import CaptureMock
from ..adapters.screen_capture import PillowScreenCapture
from ..adapters.task_rest import TaskRestAdapter
from ..domain.ports import ScreenCapturePort
from ..usecases.task_orchestrator import TaskHooks, TaskOrchestrator
from ..viewmodels.settings_vm import SettingsVM


class AppController:
    """Create and cache runtime adapters/use-cases from settings state.

    Call chain:
        ``TaskPresenter`` calls ``ensure_ready`` before every operation and
        reads ``orchestrator`` afterwards.
    """

    def __init__(
        self,
        settings_vm: SettingsVM,
        *,
        hooks: Optional[TaskHooks] = None,
        capture: Optional[ScreenCapturePort] = None,
    ) -> None:
        """Initialize controller with settings-backed lazy dependencies.

        Args:
            settings_vm: UI state model containing the API URL and timeout.
            hooks: Orchestrator notifications forwarded to the UI layer.
            capture: Capture adapter override; defaults to native capture or
                the offline stub depending on settings.
        """
        self.settings_vm = settings_vm
        self.hooks = hooks
        self._capture_override = capture
        self._transport: Optional[TaskRestAdapter] = None
        self._capture: Optional[ScreenCapturePort] = None
        self.orchestrator: Optional[TaskOrchestrator] = None
        self._log = logging.getLogger(__name__)

    @property
    def transport(self) -> Optional[TaskRestAdapter]:
        """Return the cached transport adapter."""
        return self._transport

    def reset(self) -> None:
        """Drop cached adapters and the orchestrator.

        Side Effects:
            The next ``ensure_ready`` call starts a fresh task with a new id.
        """
        if self._transport is not None:
            self._transport.close()
        self._transport = None
        self._capture = None
        self.orchestrator = None

    def ensure_ready(self) -> bool:
        """Ensure the orchestrator is available.

        Returns:
            ``True`` when dependencies are available, ``False`` when settings
            are invalid.
        """
        if self.orchestrator is not None:
            return True
        if not self.settings_vm.is_valid():
            self._log.warning("Task client settings are invalid; cannot build orchestrator")
            return False

        cfg = self.settings_vm.config
        self._transport = TaskRestAdapter(cfg.api_base_url, request_timeout_s=cfg.request_timeout_s)
        self._capture = self._capture_override or self._build_capture(cfg.use_screen_capture)
        self.orchestrator = TaskOrchestrator(
            self._transport,
            self._capture,
            task_id=cfg.task_id,
            history_limit=cfg.history_limit,
            hooks=self.hooks,
        )
        self._log.info(
            "Task client ready: task=%s api=%s timeout=%.1fs",
            self.orchestrator.task_id,
            cfg.api_base_url,
            cfg.request_timeout_s,
        )
        return True

    def capture_screen(self):
        """Capture a screenshot outside any task call (initial preview)."""
        if not self.ensure_ready() or self._capture is None:
            return None
        return self._capture.capture()

    @staticmethod
    def _build_capture(use_screen_capture: bool) -> ScreenCapturePort:
        if not use_screen_capture:
            return CaptureMock()
        return PillowScreenCapture()
