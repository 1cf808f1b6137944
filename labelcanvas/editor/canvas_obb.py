"""
Oriented bounding box editor.

An oriented box is a center, extents along its own axes and a clockwise
angle. All editing happens in the box's local frame: the query point is
rotated by -angle about the center, tested or resized against the
axis-aligned local rectangle, and the result mapped back to the image.

Angles are stored relative to the unrotated image buffer. A box drawn
while the image is displayed rotated gets angle = -rotation so that it
appears axis-aligned on screen.
"""

from typing import List, Optional

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from labelcanvas.editor.annotations import Annotation, AnnotationKind, OrientedBoxData
from labelcanvas.editor.canvas_base import HANDLE_COLOR, AnnotationCanvas
from labelcanvas.editor.geometry import (
    Handle,
    distance,
    hit_test_handle,
    polar_angle,
    resize_rect,
    to_local,
    to_world,
)
from labelcanvas.editor.shortcuts import (
    Shortcut,
    ShortcutMap,
    class_shortcuts,
    delete_shortcuts,
)
from labelcanvas.editor.tools import GestureMode, ToolType, tool_cursor

ROTATION_HANDLE_OFFSET = 30
ROTATION_HANDLE_HIT_RADIUS = 12
ROTATION_STEP = 15


class OrientedBoxCanvas(AnnotationCanvas):
    """Editor for oriented-box (OBB) projects."""

    ANNOTATION_KIND = AnnotationKind.OBB

    def __init__(self, parent=None, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self._mode = GestureMode.IDLE
        self._start_pos: Optional[QPointF] = None
        self._current_pos: Optional[QPointF] = None
        self._active_handle: Optional[Handle] = None
        self._original_box: Optional[OrientedBoxData] = None
        self._rotation_start_angle: float = 0.0
        self._drag_offset = QPointF(0, 0)

    @property
    def mode(self) -> GestureMode:
        return self._mode

    def available_tools(self) -> List[ToolType]:
        return [ToolType.OBB, ToolType.SELECT, ToolType.PAN]

    def specific_shortcuts(self) -> ShortcutMap:
        shortcuts = {
            "o": Shortcut(lambda: self.set_tool(ToolType.OBB), "Oriented Box Tool"),
            "v": Shortcut(lambda: self.set_tool(ToolType.SELECT), "Select Tool"),
            "r": Shortcut(lambda: self.rotate_selected(ROTATION_STEP), "Rotate Clockwise"),
            "R": Shortcut(lambda: self.rotate_selected(-ROTATION_STEP), "Rotate Counter-Clockwise"),
            "Escape": Shortcut(self.cancel_gesture, "Cancel"),
        }
        shortcuts.update(delete_shortcuts(self.delete_selected))
        shortcuts.update(class_shortcuts(self.select_class))
        return shortcuts

    # ─── Geometry ─────────────────────────────────────────────────────────

    def box_from_drag(self, start: QPointF, end: QPointF) -> OrientedBoxData:
        """
        Box spanned by a corner-to-corner drag in the displayed frame.

        The extents are the drag measured along the on-screen axes; the
        center is the midpoint of the two corners in image space.
        """
        angle = (-self.rotation) % 360.0
        local = to_local(end, start, angle)
        return OrientedBoxData(
            cx=(start.x() + end.x()) / 2,
            cy=(start.y() + end.y()) / 2,
            width=abs(local.x()),
            height=abs(local.y()),
            angle=angle,
        )

    def contains(self, box: OrientedBoxData, pos: QPointF) -> bool:
        """Local-frame hit test."""
        local = to_local(pos, box.center, box.angle)
        return abs(local.x()) <= box.width / 2 and abs(local.y()) <= box.height / 2

    def rotation_handle_position(self, box: OrientedBoxData) -> QPointF:
        """Rotation knob above the box, in image coordinates."""
        offset = max(box.width, box.height) / 2 + ROTATION_HANDLE_OFFSET / self.zoom
        return to_world(QPointF(0, -offset), box.center, box.angle)

    def hit_rotation_handle(self, box: OrientedBoxData, pos: QPointF) -> bool:
        """Rotation knob hit test, measured in canvas pixels."""
        knob = self.image_to_canvas(self.rotation_handle_position(box))
        return distance(self.image_to_canvas(pos), knob) <= ROTATION_HANDLE_HIT_RADIUS

    def hit_test(self, pos: QPointF) -> Optional[Annotation]:
        for annotation in self.owned_annotations_reversed():
            if self.contains(annotation.data, pos):
                return annotation
        return None

    def handle_at(self, pos: QPointF) -> Optional[Handle]:
        selected = self.selected_annotation
        if selected is None or selected.kind != AnnotationKind.OBB:
            return None
        box = selected.data
        local = to_local(pos, box.center, box.angle)
        return hit_test_handle(box.local_rect(), local, self.handle_size() * 2)

    def rotate_selected(self, delta: float) -> bool:
        """Rotate the selected box by delta degrees (clockwise positive)."""
        selected = self.selected_annotation
        if selected is None or selected.kind != AnnotationKind.OBB:
            return False
        selected.data.angle = (selected.data.angle + delta) % 360.0
        self.mark_dirty()
        self.request_redraw()
        return True

    # ─── Gestures ─────────────────────────────────────────────────────────

    def handle_draw_start(self, pos: QPointF) -> None:
        if self._current_tool == ToolType.OBB:
            if not self.require_class():
                return
            self._mode = GestureMode.DRAWING
            self._start_pos = pos
            self._current_pos = pos
            return

        if self._current_tool != ToolType.SELECT:
            return

        selected = self.selected_annotation
        if selected is not None and selected.kind == AnnotationKind.OBB:
            if self.hit_rotation_handle(selected.data, pos):
                self._mode = GestureMode.ROTATING
                self._original_box = self.begin_annotation_edit(selected).data
                self._rotation_start_angle = polar_angle(pos, selected.data.center)
                return

            handle = self.handle_at(pos)
            if handle is not None:
                self._mode = GestureMode.RESIZING
                self._active_handle = handle
                self._original_box = self.begin_annotation_edit(selected).data
                return

        hit = self.hit_test(pos)
        self.select_annotation(hit)
        if hit is not None:
            self._mode = GestureMode.DRAGGING
            self._drag_offset = QPointF(pos.x() - hit.data.cx, pos.y() - hit.data.cy)
            self.begin_annotation_edit(hit)

    def handle_draw_move(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAWING:
            self._current_pos = pos
            self.request_redraw()
            return

        if self._mode == GestureMode.IDLE:
            if self._current_tool == ToolType.SELECT:
                self._update_hover_cursor(pos)
            return

        selected = self.selected_annotation
        if selected is None:
            return
        box = selected.data

        if self._mode == GestureMode.ROTATING:
            delta = polar_angle(pos, self._original_box.center) - self._rotation_start_angle
            box.angle = (self._original_box.angle + delta) % 360.0

        elif self._mode == GestureMode.RESIZING:
            original = self._original_box
            local = to_local(pos, original.center, original.angle)
            rect = resize_rect(original.local_rect(), self._active_handle, local, self.min_box_size)
            center = to_world(rect.center(), original.center, original.angle)
            box.cx, box.cy = center.x(), center.y()
            box.width, box.height = rect.width(), rect.height()

        elif self._mode == GestureMode.DRAGGING:
            box.cx = pos.x() - self._drag_offset.x()
            box.cy = pos.y() - self._drag_offset.y()

        self.request_redraw()

    def handle_draw_end(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAWING and self._start_pos is not None:
            box = self.box_from_drag(self._start_pos, pos)
            if box.width > self.min_box_size and box.height > self.min_box_size:
                self.add_annotation(Annotation(AnnotationKind.OBB, self._current_class, box))
                self.toast("OBB added", "success")
            else:
                self._logger.debug(f"Discarded oriented box below minimum size: {box}")

        elif self._mode in (GestureMode.ROTATING, GestureMode.RESIZING, GestureMode.DRAGGING):
            selected = self.selected_annotation
            if selected is not None:
                self.end_annotation_edit(selected)

        self._reset_gesture()
        self.request_redraw()

    def cancel_gesture(self) -> None:
        """Abort the current gesture; an edit is rolled back to its snapshot."""
        if self._mode in (GestureMode.ROTATING, GestureMode.RESIZING, GestureMode.DRAGGING):
            selected = self.selected_annotation
            snapshot = self._edit_snapshot
            if selected is not None and snapshot is not None:
                original = snapshot.data
                box = selected.data
                box.cx, box.cy = original.cx, original.cy
                box.width, box.height, box.angle = original.width, original.height, original.angle
            self._edit_snapshot = None
        self._reset_gesture()
        self.request_redraw()

    def on_tool_deactivated(self, tool: ToolType) -> None:
        self.cancel_gesture()

    def _reset_gesture(self) -> None:
        self._mode = GestureMode.IDLE
        self._start_pos = None
        self._current_pos = None
        self._active_handle = None
        self._original_box = None

    def _update_hover_cursor(self, pos: QPointF) -> None:
        selected = self.selected_annotation
        if (selected is not None and selected.kind == AnnotationKind.OBB
                and self.hit_rotation_handle(selected.data, pos)):
            self.setCursor(Qt.CursorShape.PointingHandCursor)
        elif self.handle_at(pos) is not None:
            self.setCursor(Qt.CursorShape.CrossCursor)
        elif self.hit_test(pos) is not None:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.setCursor(tool_cursor(self._current_tool))

    # ─── Rendering ────────────────────────────────────────────────────────

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        if annotation.kind != AnnotationKind.OBB:
            return

        box = annotation.data
        color = self.class_color(annotation.class_id)
        selected = self.is_selected(annotation)
        local = box.local_rect()

        painter.save()
        painter.translate(box.cx, box.cy)
        painter.rotate(box.angle)

        fill = QColor(color)
        fill.setAlpha(32)
        painter.setBrush(fill)
        painter.setPen(QPen(color, (3 if selected else 2) / self.zoom))
        painter.drawRect(local)

        if self.show_labels:
            text = self.label_text(annotation.class_id)
            if text:
                self.draw_label(painter, text, local.topLeft(), color)

        if selected:
            self.draw_selection_handles(painter, local)

            # Rotation knob
            knob = QPointF(0, -(max(box.width, box.height) / 2 + ROTATION_HANDLE_OFFSET / self.zoom))
            painter.setPen(QPen(HANDLE_COLOR, 1 / self.zoom))
            painter.drawLine(QPointF(0, local.top()), knob)
            painter.setBrush(QColor(255, 255, 255))
            radius = 5 / self.zoom
            painter.drawEllipse(knob, radius, radius)

        painter.restore()

    def draw_overlay(self, painter: QPainter) -> None:
        if self._mode != GestureMode.DRAWING or self._start_pos is None:
            return

        preview = self.box_from_drag(self._start_pos, self._current_pos)
        pen = QPen(self.class_color(self._current_class), 2 / self.zoom)
        pen.setStyle(Qt.PenStyle.DashLine)

        painter.save()
        painter.translate(preview.cx, preview.cy)
        painter.rotate(preview.angle)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(preview.local_rect())
        painter.restore()
