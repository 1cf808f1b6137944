"""
Handle and rotation geometry shared by the box editors.

Resize works on (left, top, right, bottom) edges so the same routine
serves axis-aligned boxes in image space and oriented boxes in their
local frame.
"""

import math
from enum import Enum
from typing import Dict, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF


class Handle(Enum):
    """The eight resize handles: 4 corners + 4 edge midpoints."""
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"
    N = "n"
    S = "s"
    E = "e"
    W = "w"


# Which edges each handle drags: (moves_left, moves_top, moves_right, moves_bottom)
_HANDLE_EDGES: Dict[Handle, Tuple[bool, bool, bool, bool]] = {
    Handle.NW: (True, True, False, False),
    Handle.NE: (False, True, True, False),
    Handle.SW: (True, False, False, True),
    Handle.SE: (False, False, True, True),
    Handle.N: (False, True, False, False),
    Handle.S: (False, False, False, True),
    Handle.E: (False, False, True, False),
    Handle.W: (True, False, False, False),
}


def handle_positions(rect: QRectF) -> Dict[Handle, QPointF]:
    """Return the control point of every handle for a rectangle."""
    left, top, right, bottom = rect.left(), rect.top(), rect.right(), rect.bottom()
    mid_x = (left + right) / 2
    mid_y = (top + bottom) / 2
    return {
        Handle.NW: QPointF(left, top),
        Handle.NE: QPointF(right, top),
        Handle.SW: QPointF(left, bottom),
        Handle.SE: QPointF(right, bottom),
        Handle.N: QPointF(mid_x, top),
        Handle.S: QPointF(mid_x, bottom),
        Handle.E: QPointF(right, mid_y),
        Handle.W: QPointF(left, mid_y),
    }


def hit_test_handle(rect: QRectF, point: QPointF, threshold: float) -> Optional[Handle]:
    """
    Find the handle whose control point is within threshold of point.

    Uses a square (Chebyshev) distance; corners are tested before edges.
    """
    for handle, pos in handle_positions(rect).items():
        if abs(point.x() - pos.x()) <= threshold and abs(point.y() - pos.y()) <= threshold:
            return handle
    return None


def resize_rect(original: QRectF, handle: Handle, point: QPointF, min_size: float) -> QRectF:
    """
    Move the edges a handle controls to point, keeping the opposite edges fixed.

    Dragged edges are clamped so neither side drops below min_size; the
    box never flips.

    Args:
        original: Snapshot of the rectangle when the gesture started.
        handle: The handle being dragged.
        point: Cursor position in the same frame as original.
        min_size: Minimum width and height.
    """
    left, top, right, bottom = original.left(), original.top(), original.right(), original.bottom()
    moves_left, moves_top, moves_right, moves_bottom = _HANDLE_EDGES[handle]

    if moves_left:
        left = min(point.x(), right - min_size)
    if moves_right:
        right = max(point.x(), left + min_size)
    if moves_top:
        top = min(point.y(), bottom - min_size)
    if moves_bottom:
        bottom = max(point.y(), top + min_size)

    return QRectF(left, top, right - left, bottom - top)


def rotate_point(point: QPointF, center: QPointF, degrees: float) -> QPointF:
    """Rotate point about center by clockwise degrees (y axis pointing down)."""
    radians = math.radians(degrees)
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    dx = point.x() - center.x()
    dy = point.y() - center.y()
    return QPointF(
        center.x() + dx * cos_a - dy * sin_a,
        center.y() + dx * sin_a + dy * cos_a,
    )


def to_local(point: QPointF, center: QPointF, angle: float) -> QPointF:
    """Express a world point in a box frame centered at center and rotated by angle."""
    rotated = rotate_point(point, center, -angle)
    return QPointF(rotated.x() - center.x(), rotated.y() - center.y())


def to_world(local: QPointF, center: QPointF, angle: float) -> QPointF:
    """Inverse of to_local."""
    return rotate_point(
        QPointF(center.x() + local.x(), center.y() + local.y()), center, angle
    )


def polar_angle(point: QPointF, center: QPointF) -> float:
    """Angle of point around center in degrees, clockwise from +x."""
    return math.degrees(math.atan2(point.y() - center.y(), point.x() - center.x()))


def distance(a: QPointF, b: QPointF) -> float:
    return math.hypot(a.x() - b.x(), a.y() - b.y())
