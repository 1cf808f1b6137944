"""
Landmark editor: free, independently named points.
"""

from typing import Any, Dict, List, Optional

from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor, QFont, QPainter, QPen

from labelcanvas.editor.annotations import Annotation, AnnotationKind, LandmarkData
from labelcanvas.editor.canvas_base import AnnotationCanvas
from labelcanvas.editor.geometry import distance
from labelcanvas.editor.shortcuts import (
    Shortcut,
    ShortcutMap,
    class_shortcuts,
    delete_shortcuts,
)
from labelcanvas.editor.tools import GestureMode, ToolType

HIT_RADIUS = 10


class LandmarkCanvas(AnnotationCanvas):
    """Editor for landmark projects."""

    ANNOTATION_KIND = AnnotationKind.LANDMARK

    def __init__(self, parent=None, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        self._mode = GestureMode.IDLE
        self._hover_id: Optional[str] = None
        self._drag_offset = QPointF(0, 0)

    def available_tools(self) -> List[ToolType]:
        return [ToolType.LANDMARK, ToolType.SELECT, ToolType.PAN]

    def specific_shortcuts(self) -> ShortcutMap:
        shortcuts = {
            "p": Shortcut(lambda: self.set_tool(ToolType.LANDMARK), "Landmark Tool"),
            "v": Shortcut(lambda: self.set_tool(ToolType.SELECT), "Select Tool"),
        }
        shortcuts.update(delete_shortcuts(self.delete_selected))
        shortcuts.update(class_shortcuts(self.select_class))
        return shortcuts

    # ─── Landmarks ────────────────────────────────────────────────────────

    def landmark_counts(self) -> Dict[Any, int]:
        """Number of landmarks per class id."""
        counts: Dict[Any, int] = {}
        for annotation in self._annotations:
            if annotation.kind == AnnotationKind.LANDMARK:
                counts[annotation.class_id] = counts.get(annotation.class_id, 0) + 1
        return counts

    def add_landmark(self, pos: QPointF) -> Optional[Annotation]:
        """Create a landmark named "Point N" for the current class."""
        if not self.require_class():
            return None

        number = self.landmark_counts().get(self._current_class, 0) + 1
        annotation = Annotation(
            AnnotationKind.LANDMARK,
            self._current_class,
            LandmarkData(pos.x(), pos.y(), f"Point {number}"),
        )
        self.add_annotation(annotation)
        self.select_annotation(annotation)
        return annotation

    def rename_landmark(self, annotation: Annotation, name: str) -> bool:
        """Rename a landmark; blank names are rejected."""
        name = (name or "").strip()
        if not name:
            self.toast("Landmark name cannot be empty", "warning")
            return False
        if annotation.data.name == name:
            return True

        annotation.data.name = name
        self.mark_dirty()
        self.request_redraw()
        return True

    def renumber_landmarks(self) -> int:
        """
        Rename the current class's landmarks "Point 1..N" in list order.

        Returns:
            Number of landmarks renumbered.
        """
        landmarks = [
            a for a in self._annotations
            if a.kind == AnnotationKind.LANDMARK and a.class_id == self._current_class
        ]
        for number, annotation in enumerate(landmarks, start=1):
            annotation.data.name = f"Point {number}"

        if landmarks:
            self.mark_dirty()
            self.request_redraw()
            self.toast(f"Renumbered {len(landmarks)} landmarks", "success")
        return len(landmarks)

    def hit_test(self, pos: QPointF) -> Optional[Annotation]:
        radius = HIT_RADIUS / self.zoom
        for annotation in self.owned_annotations_reversed():
            if distance(QPointF(annotation.data.x, annotation.data.y), pos) <= radius:
                return annotation
        return None

    # ─── Gestures ─────────────────────────────────────────────────────────

    def handle_draw_start(self, pos: QPointF) -> None:
        if self._current_tool not in (ToolType.LANDMARK, ToolType.SELECT):
            return

        hit = self.hit_test(pos)
        if hit is not None:
            self.select_annotation(hit)
            self._mode = GestureMode.DRAGGING
            self._drag_offset = QPointF(pos.x() - hit.data.x, pos.y() - hit.data.y)
            self.begin_annotation_edit(hit)
            return

        if self._current_tool == ToolType.LANDMARK:
            self.add_landmark(pos)
        else:
            self.select_annotation(None)

    def handle_draw_move(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAGGING:
            selected = self.selected_annotation
            if selected is None:
                return
            selected.data.x = pos.x() - self._drag_offset.x()
            selected.data.y = pos.y() - self._drag_offset.y()
            self.request_redraw()
            return

        hover = self.hit_test(pos)
        hover_id = hover.id if hover is not None else None
        if hover_id != self._hover_id:
            self._hover_id = hover_id
            self.request_redraw()

    def handle_draw_end(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAGGING:
            selected = self.selected_annotation
            if selected is not None:
                self.end_annotation_edit(selected)
        self._mode = GestureMode.IDLE

    def on_tool_deactivated(self, tool: ToolType) -> None:
        self._mode = GestureMode.IDLE

    def on_image_loaded(self) -> None:
        self._mode = GestureMode.IDLE
        self._hover_id = None

    # ─── Rendering ────────────────────────────────────────────────────────

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        if annotation.kind != AnnotationKind.LANDMARK:
            return

        data: LandmarkData = annotation.data
        color = self.class_color(annotation.class_id)
        emphasized = self.is_selected(annotation) or annotation.id == self._hover_id
        center = QPointF(data.x, data.y)
        radius = (7 if emphasized else 5) / self.zoom

        painter.setPen(QPen(QColor(255, 255, 255), (2 if emphasized else 1) / self.zoom))
        painter.setBrush(color)
        painter.drawEllipse(center, radius, radius)

        if self.show_labels and data.name:
            font = QFont()
            font.setPixelSize(max(1, round(12 / self.zoom)))
            painter.setFont(font)
            painter.setPen(color)
            painter.drawText(QPointF(data.x + radius * 1.5, data.y - radius), data.name)
