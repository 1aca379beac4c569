"""Console front end for the task client.

Reads one command per line, forwards it to :class:`TaskPresenter` and prints
the resulting view state. Commands::

    menu                          list the action catalog
    action <kind> <x> <y> <label> pick a catalog entry at a coordinate
    check | next | done           progression controls
    state                         dump the orchestrator state as JSON
    quit                          leave
"""

from __future__ import annotations

import json
import logging
import shlex
import sys
from typing import IO, Iterable, List, Optional

from ..domain.catalog import CATALOG, coordinate_caption
from ..utils import logging as logging_utils
from ..viewmodels.settings_vm import SettingsConfig, SettingsVM
from ..viewmodels.task_vm import TaskVM
from .controller import AppController
from .task_presenter import TaskPresenter

HELP_TEXT = "Commands: menu | action <kind> <x> <y> <label> | check | next | done | state | quit"


class App:
    """Bootstrap: wire the task view model, presenter and REST adapter."""

    def __init__(
        self,
        *,
        settings_vm: Optional[SettingsVM] = None,
        controller: Optional[AppController] = None,
        out: Optional[IO[str]] = None,
    ) -> None:
        self._log = logging.getLogger(__name__)
        self.out = out or sys.stdout
        self.settings_vm = settings_vm or SettingsVM(config=SettingsConfig.from_env())
        self.controller = controller or AppController(self.settings_vm)
        self.task_vm = TaskVM()
        self.presenter = TaskPresenter(self.controller, self.task_vm)
        self._printed_logs = 0

    # ------------------------------------------------------------------
    def run(self, lines: Iterable[str]) -> None:
        if not self.presenter.bootstrap():
            self._render()
            return
        self._print(HELP_TEXT)
        self._render()
        for line in lines:
            if not self.dispatch(line):
                break

    def dispatch(self, line: str) -> bool:
        """Handle one command line; return ``False`` when the session should end."""
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            self._print(f"Cannot parse command: {exc}")
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command in {"quit", "exit"}:
            return False
        if command == "menu":
            self._print_menu()
        elif command == "state":
            self._print(json.dumps(self.controller.orchestrator.get_state(), indent=2))
        elif command == "action":
            self._on_action(args)
        elif command == "check":
            self.presenter.handle_check_click()
        elif command == "next":
            self.presenter.handle_next_click()
        elif command == "done":
            self.presenter.handle_done_click()
        else:
            self._print(f"Unknown command: {command}. {HELP_TEXT}")
            return True
        if command in {"action", "check", "next", "done"}:
            self._render()
        return not self.task_vm.finished

    # ------------------------------------------------------------------
    def _on_action(self, args: List[str]) -> None:
        if len(args) < 4:
            self._print("Usage: action <kind> <x> <y> <label>")
            return
        kind, x, y = args[0], args[1], args[2]
        label = " ".join(args[3:])
        coordinate = {"x": x, "y": y}
        self._print(coordinate_caption(coordinate))
        self.presenter.handle_menu_selection(kind, label, coordinate)

    def _print_menu(self) -> None:
        for kind, templates in CATALOG.items():
            labels = ", ".join(template.label for template in templates)
            self._print(f"{kind.value}: {labels}")

    def _render(self) -> None:
        vm = self.task_vm
        for line in vm.log_lines[self._printed_logs:]:
            self._print(line)
        self._printed_logs = len(vm.log_lines)
        enabled = [name for name in ("check", "next", "done") if getattr(vm.buttons, name)]
        self._print(f"Step {vm.step} | Action: {vm.action_text} | Enabled: {', '.join(enabled) or 'none'}")
        if vm.status:
            self._print(vm.status)

    def _print(self, text: str) -> None:
        self.out.write(f"{text}\n")
        self.out.flush()


def main() -> int:
    logging_utils.configure_root()
    try:
        app = App()
    except ValueError as exc:
        logging.getLogger(__name__).error("Invalid task client settings: %s", exc)
        return 2
    app.run(sys.stdin)
    if app.controller.transport is not None:
        app.controller.transport.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
