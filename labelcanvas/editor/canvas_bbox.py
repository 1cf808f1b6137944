"""
Axis-aligned bounding box editor.

Draw boxes by dragging, then select to move or resize them through eight
handles. Boxes are always stored normalized (positive width and height).
"""

from typing import List, Optional

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from labelcanvas.editor.annotations import Annotation, AnnotationKind, BoxData
from labelcanvas.editor.canvas_base import AnnotationCanvas
from labelcanvas.editor.geometry import Handle, hit_test_handle, resize_rect
from labelcanvas.editor.shortcuts import (
    Shortcut,
    ShortcutMap,
    class_shortcuts,
    delete_shortcuts,
)
from labelcanvas.editor.tools import GestureMode, ToolType, tool_cursor

HANDLE_CURSORS = {
    Handle.NW: Qt.CursorShape.SizeFDiagCursor,
    Handle.SE: Qt.CursorShape.SizeFDiagCursor,
    Handle.NE: Qt.CursorShape.SizeBDiagCursor,
    Handle.SW: Qt.CursorShape.SizeBDiagCursor,
    Handle.N: Qt.CursorShape.SizeVerCursor,
    Handle.S: Qt.CursorShape.SizeVerCursor,
    Handle.E: Qt.CursorShape.SizeHorCursor,
    Handle.W: Qt.CursorShape.SizeHorCursor,
}


class BoxCanvas(AnnotationCanvas):
    """Editor for detection projects."""

    ANNOTATION_KIND = AnnotationKind.BBOX

    def __init__(self, parent=None, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self._mode = GestureMode.IDLE
        self._start_pos: Optional[QPointF] = None
        self._current_pos: Optional[QPointF] = None
        self._active_handle: Optional[Handle] = None
        self._original_box: Optional[BoxData] = None
        self._drag_offset = QPointF(0, 0)

    @property
    def mode(self) -> GestureMode:
        return self._mode

    def available_tools(self) -> List[ToolType]:
        return [ToolType.BBOX, ToolType.SELECT, ToolType.PAN]

    def specific_shortcuts(self) -> ShortcutMap:
        shortcuts = {
            "b": Shortcut(lambda: self.set_tool(ToolType.BBOX), "Bounding Box Tool"),
            "v": Shortcut(lambda: self.set_tool(ToolType.SELECT), "Select Tool"),
            "Escape": Shortcut(self.cancel_gesture, "Cancel"),
        }
        shortcuts.update(delete_shortcuts(self.delete_selected))
        shortcuts.update(class_shortcuts(self.select_class))
        return shortcuts

    # ─── Hit Testing ──────────────────────────────────────────────────────

    def hit_test(self, pos: QPointF) -> Optional[Annotation]:
        """Topmost box containing pos."""
        for annotation in self.owned_annotations_reversed():
            if annotation.data.contains(pos):
                return annotation
        return None

    def handle_at(self, pos: QPointF) -> Optional[Handle]:
        """Resize handle of the selected box under pos, if any."""
        selected = self.selected_annotation
        if selected is None or selected.kind != AnnotationKind.BBOX:
            return None
        return hit_test_handle(selected.data.to_rect(), pos, self.handle_size() * 2)

    # ─── Gestures ─────────────────────────────────────────────────────────

    def handle_draw_start(self, pos: QPointF) -> None:
        if self._current_tool == ToolType.BBOX:
            if not self.require_class():
                return
            self._mode = GestureMode.DRAWING
            self._start_pos = pos
            self._current_pos = pos
            return

        if self._current_tool != ToolType.SELECT:
            return

        handle = self.handle_at(pos)
        if handle is not None:
            selected = self.selected_annotation
            self._mode = GestureMode.RESIZING
            self._active_handle = handle
            self._original_box = self.begin_annotation_edit(selected).data
            return

        hit = self.hit_test(pos)
        self.select_annotation(hit)
        if hit is not None:
            self._mode = GestureMode.DRAGGING
            self._drag_offset = QPointF(pos.x() - hit.data.x, pos.y() - hit.data.y)
            self.begin_annotation_edit(hit)

    def handle_draw_move(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAWING:
            self._current_pos = pos
            self.request_redraw()

        elif self._mode == GestureMode.RESIZING:
            selected = self.selected_annotation
            if selected is None or self._original_box is None:
                return
            rect = resize_rect(
                self._original_box.to_rect(), self._active_handle, pos, self.min_box_size
            )
            box = selected.data
            box.x, box.y, box.width, box.height = rect.x(), rect.y(), rect.width(), rect.height()
            self.request_redraw()

        elif self._mode == GestureMode.DRAGGING:
            selected = self.selected_annotation
            if selected is None:
                return
            selected.data.x = pos.x() - self._drag_offset.x()
            selected.data.y = pos.y() - self._drag_offset.y()
            self.request_redraw()

        elif self._current_tool == ToolType.SELECT:
            self._update_hover_cursor(pos)

    def handle_draw_end(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAWING and self._start_pos is not None:
            box = BoxData.from_corners(self._start_pos.x(), self._start_pos.y(), pos.x(), pos.y())
            if box.width > self.min_box_size and box.height > self.min_box_size:
                self.add_annotation(Annotation(AnnotationKind.BBOX, self._current_class, box))
                self.toast("Bbox added", "success")
            else:
                self._logger.debug(f"Discarded box below minimum size: {box}")

        elif self._mode in (GestureMode.RESIZING, GestureMode.DRAGGING):
            selected = self.selected_annotation
            if selected is not None:
                self.end_annotation_edit(selected)

        self._reset_gesture()
        self.request_redraw()

    def cancel_gesture(self) -> None:
        """Abort the current gesture; a move or resize is rolled back."""
        if self._mode in (GestureMode.RESIZING, GestureMode.DRAGGING):
            selected = self.selected_annotation
            snapshot = self._edit_snapshot
            if selected is not None and snapshot is not None:
                original = snapshot.data
                box = selected.data
                box.x, box.y, box.width, box.height = (
                    original.x, original.y, original.width, original.height
                )
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
        handle = self.handle_at(pos)
        if handle is not None:
            self.setCursor(HANDLE_CURSORS[handle])
        elif self.hit_test(pos) is not None:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.setCursor(tool_cursor(self._current_tool))

    # ─── Rendering ────────────────────────────────────────────────────────

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        if annotation.kind != AnnotationKind.BBOX:
            return

        box = annotation.data
        color = self.class_color(annotation.class_id)
        selected = self.is_selected(annotation)

        fill = QColor(color)
        fill.setAlpha(32)
        painter.setBrush(fill)
        painter.setPen(QPen(color, (3 if selected else 2) / self.zoom))
        painter.drawRect(box.to_rect())

        if self.show_labels:
            text = self.label_text(annotation.class_id)
            if text:
                self.draw_label(painter, text, QPointF(box.x, box.y), color)

        if selected:
            self.draw_selection_handles(painter, box.to_rect())

    def draw_overlay(self, painter: QPainter) -> None:
        if self._mode != GestureMode.DRAWING or self._start_pos is None:
            return

        preview = BoxData.from_corners(
            self._start_pos.x(), self._start_pos.y(),
            self._current_pos.x(), self._current_pos.y(),
        )
        pen = QPen(self.class_color(self._current_class), 2 / self.zoom)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(preview.to_rect())
