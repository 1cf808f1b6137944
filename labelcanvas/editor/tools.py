"""
Tool and gesture states for LabelCanvas editors.

Each canvas exposes a fixed set of tools; exactly one tool is current and
at most one gesture (draw, resize, rotate, drag, paint) is active at a time.
"""

from enum import Enum, auto
from typing import Dict

from PySide6.QtCore import Qt


class ToolType(Enum):
    """Enum for tool types; values are the names used in project configs."""
    SELECT = "select"
    PAN = "pan"
    BBOX = "bbox"
    OBB = "obb"
    MASK = "mask"
    KEYPOINT = "keypoint"
    LANDMARK = "landmark"
    # Time-series tools
    POINT = "point"
    RANGE = "range"
    ZOOM = "zoom"


class GestureMode(Enum):
    """The single pointer gesture an editor is currently performing."""
    IDLE = auto()
    DRAWING = auto()
    RESIZING = auto()
    ROTATING = auto()
    DRAGGING = auto()
    PAINTING = auto()


TOOL_CURSORS: Dict[ToolType, Qt.CursorShape] = {
    ToolType.SELECT: Qt.CursorShape.ArrowCursor,
    ToolType.PAN: Qt.CursorShape.OpenHandCursor,
    ToolType.BBOX: Qt.CursorShape.CrossCursor,
    ToolType.OBB: Qt.CursorShape.CrossCursor,
    ToolType.MASK: Qt.CursorShape.CrossCursor,
    ToolType.KEYPOINT: Qt.CursorShape.CrossCursor,
    ToolType.LANDMARK: Qt.CursorShape.CrossCursor,
    ToolType.POINT: Qt.CursorShape.CrossCursor,
    ToolType.RANGE: Qt.CursorShape.SizeHorCursor,
    ToolType.ZOOM: Qt.CursorShape.ArrowCursor,
}


def tool_cursor(tool: ToolType) -> Qt.CursorShape:
    """Return the cursor shown while a tool is active."""
    return TOOL_CURSORS.get(tool, Qt.CursorShape.ArrowCursor)
