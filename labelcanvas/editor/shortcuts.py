"""
Keyboard shortcut maps for annotation canvases.

Shortcuts are keyed by a normalized key name: printable keys by their text
("b", "R", "[") and special keys by a fixed name ("Delete", "Tab",
"ArrowLeft").
"""

from typing import Callable, Dict, NamedTuple, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeyEvent


class Shortcut(NamedTuple):
    """A key binding: the action to run and its help text."""
    handler: Callable[[], None]
    description: str


ShortcutMap = Dict[str, Shortcut]


_SPECIAL_KEYS = {
    Qt.Key.Key_Left: "ArrowLeft",
    Qt.Key.Key_Right: "ArrowRight",
    Qt.Key.Key_Up: "ArrowUp",
    Qt.Key.Key_Down: "ArrowDown",
    Qt.Key.Key_Delete: "Delete",
    Qt.Key.Key_Backspace: "Backspace",
    Qt.Key.Key_Tab: "Tab",
    Qt.Key.Key_Return: "Enter",
    Qt.Key.Key_Enter: "Enter",
    Qt.Key.Key_Escape: "Escape",
}


def key_name(event: QKeyEvent) -> Optional[str]:
    """Normalize a key event to a shortcut key name, or None if unmapped."""
    special = _SPECIAL_KEYS.get(event.key())
    if special:
        return special

    text = event.text()
    if text and text.isprintable():
        return text
    return None


def merge_shortcuts(general: ShortcutMap, specific: ShortcutMap) -> ShortcutMap:
    """Combine two maps; editor-specific bindings override general ones."""
    merged = dict(general)
    merged.update(specific)
    return merged


def class_shortcuts(select_class: Callable[[int], None]) -> ShortcutMap:
    """Bindings 1-9 selecting the class at index 0-8."""
    return {
        str(number): Shortcut(
            lambda index=number - 1: select_class(index),
            f"Select Class {number}",
        )
        for number in range(1, 10)
    }


def delete_shortcuts(delete_selected: Callable[[], None]) -> ShortcutMap:
    """Delete, Backspace and d all remove the selection."""
    return {
        "Delete": Shortcut(delete_selected, "Delete Selected"),
        "Backspace": Shortcut(delete_selected, "Delete Selected"),
        "d": Shortcut(delete_selected, "Delete Selected"),
    }
