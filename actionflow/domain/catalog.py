"""Menu templates the operator picks actions from."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .entities import ActionKind, Coordinate
from .time_utils import utcnow_iso


@dataclass(frozen=True)
class ActionTemplate:
    label: str
    value: str


SHORTCUT_ACTIONS: Tuple[ActionTemplate, ...] = (
    ActionTemplate("Ctrl + C", "Ctrl+C"),
    ActionTemplate("Ctrl + V", "Ctrl+V"),
    ActionTemplate("Ctrl + Z", "Ctrl+Z"),
    ActionTemplate("Alt + Tab", "Alt+Tab"),
    ActionTemplate("Win + D", "Meta+D"),
)

MOUSE_ACTIONS: Tuple[ActionTemplate, ...] = (
    ActionTemplate("Left Click", "left-click"),
    ActionTemplate("Double Click", "double-click"),
    ActionTemplate("Drag Start", "drag-start"),
    ActionTemplate("Drag End", "drag-end"),
)

CATALOG: Dict[ActionKind, Tuple[ActionTemplate, ...]] = {
    ActionKind.SHORTCUT: SHORTCUT_ACTIONS,
    ActionKind.MOUSE: MOUSE_ACTIONS,
}


def find_template(kind: Any, label: str) -> Optional[ActionTemplate]:
    for template in CATALOG.get(ActionKind.parse(kind), ()):
        if template.label == label:
            return template
    return None


def menu_action(
    kind: Any, template: ActionTemplate, coordinate: Mapping[str, Any]
) -> Dict[str, Any]:
    """Build the raw action mapping emitted when a menu entry is clicked."""
    coord = Coordinate.from_raw(coordinate)
    return {
        "kind": ActionKind.parse(kind).value,
        "label": template.label,
        "value": template.value,
        "coordinate": coord.to_payload(),
        "createdAt": utcnow_iso(),
    }


def coordinate_caption(coordinate: Mapping[str, Any]) -> str:
    return f"Coordinate: {Coordinate.from_raw(coordinate)}"


__all__ = [
    "ActionTemplate",
    "CATALOG",
    "MOUSE_ACTIONS",
    "SHORTCUT_ACTIONS",
    "coordinate_caption",
    "find_template",
    "menu_action",
]
