"""
Keypoint / skeleton editor for pose projects.

Each instance holds one slot per skeleton joint. Clicking with the
keypoint tool fills the current slot and advances to the next joint;
the instance bounding box is always derived from the labeled points.
"""

from typing import Any, Dict, List, Optional, Tuple

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from labelcanvas.editor.annotations import (
    Annotation,
    AnnotationKind,
    KeypointsData,
    Visibility,
)
from labelcanvas.editor.canvas_base import AnnotationCanvas
from labelcanvas.editor.geometry import distance
from labelcanvas.editor.shortcuts import (
    Shortcut,
    ShortcutMap,
    class_shortcuts,
    delete_shortcuts,
)
from labelcanvas.editor.skeletons import Skeleton, default_skeleton
from labelcanvas.editor.tools import GestureMode, ToolType

OCCLUDED_COLOR = QColor(255, 204, 0)
POINT_HIT_RADIUS = 8


class KeypointCanvas(AnnotationCanvas):
    """Editor for keypoint (pose) projects."""

    ANNOTATION_KIND = AnnotationKind.KEYPOINTS

    def __init__(self, parent=None, **kwargs) -> None:
        super().__init__(parent, **kwargs)
        preset = self._config.default_skeleton if self._config is not None else "coco-17"
        self._default_skeleton: Skeleton = default_skeleton(preset)

        self._mode = GestureMode.IDLE
        self._current_keypoint_index: int = 0
        self._selected_point_index: Optional[int] = None

    def available_tools(self) -> List[ToolType]:
        return [ToolType.KEYPOINT, ToolType.SELECT, ToolType.PAN]

    def specific_shortcuts(self) -> ShortcutMap:
        shortcuts = {
            "k": Shortcut(lambda: self.set_tool(ToolType.KEYPOINT), "Keypoint Tool"),
            "v": Shortcut(lambda: self.set_tool(ToolType.SELECT), "Select Tool"),
            "n": Shortcut(self.new_keypoint_instance, "New Instance"),
            "Tab": Shortcut(self.next_keypoint, "Next Keypoint"),
            "t": Shortcut(self.toggle_visibility, "Toggle Visibility"),
        }
        shortcuts.update(delete_shortcuts(self.delete_selected))
        shortcuts.update(class_shortcuts(self.select_class))
        return shortcuts

    # ─── Skeleton ─────────────────────────────────────────────────────────

    def skeleton_for(self, class_id: Any) -> Skeleton:
        """Skeleton of a class, or the default one if the class has none."""
        cls = self.class_by_id(class_id)
        if cls is not None and cls.skeleton is not None:
            return cls.skeleton
        return self._default_skeleton

    @property
    def current_keypoint_index(self) -> int:
        return self._current_keypoint_index

    @property
    def selected_point_index(self) -> Optional[int]:
        return self._selected_point_index

    def _selected_instance(self) -> Optional[Annotation]:
        selected = self.selected_annotation
        if selected is not None and selected.kind == AnnotationKind.KEYPOINTS:
            return selected
        return None

    # ─── Instances and Points ─────────────────────────────────────────────

    def new_keypoint_instance(self) -> Optional[Annotation]:
        """Create an empty instance for the current class and select it."""
        if not self.require_class():
            return None

        skeleton = self.skeleton_for(self._current_class)
        annotation = Annotation(
            AnnotationKind.KEYPOINTS,
            self._current_class,
            KeypointsData.empty(len(skeleton.keypoints)),
        )
        self.add_annotation(annotation)
        self.select_annotation(annotation)
        self._current_keypoint_index = 0
        self._selected_point_index = None
        self.toast(f"New instance: place {len(skeleton.keypoints)} keypoints", "info")
        return annotation

    def place_keypoint(self, pos: QPointF) -> Optional[int]:
        """
        Write the current joint of the selected instance at pos.

        An instance is created first when none is selected.

        Returns:
            Index of the joint that was placed.
        """
        instance = self._selected_instance()
        if instance is None:
            instance = self.new_keypoint_instance()
            if instance is None:
                return None

        data: KeypointsData = instance.data
        joint_count = len(data.points)
        if joint_count == 0:
            self.toast("This skeleton has no keypoints", "warning")
            return None
        index = self._current_keypoint_index % joint_count
        point = data.points[index]
        point.x, point.y = pos.x(), pos.y()
        point.visibility = Visibility.VISIBLE
        data.update_bbox()

        self._selected_point_index = index
        self._current_keypoint_index = (index + 1) % joint_count
        self.mark_dirty()
        self.request_redraw()

        if data.placed_count == joint_count:
            self.toast("All keypoints placed", "success")
        return index

    def next_keypoint(self) -> None:
        instance = self._selected_instance()
        if instance is None or not instance.data.points:
            return
        self._current_keypoint_index = (self._current_keypoint_index + 1) % len(instance.data.points)
        self.request_redraw()

    def toggle_visibility(self) -> Optional[Visibility]:
        """Cycle the selected point visible -> occluded -> unlabeled -> visible."""
        instance = self._selected_instance()
        if instance is None or self._selected_point_index is None:
            return None

        point = instance.data.points[self._selected_point_index]
        if not point.is_placed:
            return None
        point.visibility = point.visibility.cycled()
        instance.data.update_bbox()
        self.mark_dirty()
        self.request_redraw()
        return point.visibility

    def keypoint_progress(self) -> Optional[Dict[str, Any]]:
        """Placement progress of the selected instance for side panels."""
        instance = self._selected_instance()
        if instance is None:
            return None

        skeleton = self.skeleton_for(instance.class_id)
        index = self._current_keypoint_index
        return {
            "placed": instance.data.placed_count,
            "total": len(instance.data.points),
            "next_index": index,
            "next_name": skeleton.keypoints[index] if index < len(skeleton.keypoints) else None,
        }

    # ─── Hit Testing ──────────────────────────────────────────────────────

    def hit_test_point(self, pos: QPointF) -> Optional[Tuple[Annotation, int]]:
        """Topmost labeled point within the grab radius of pos."""
        radius = POINT_HIT_RADIUS / self.zoom
        for annotation in self.owned_annotations_reversed():
            for index, point in enumerate(annotation.data.points):
                if point.is_labeled and distance(QPointF(point.x, point.y), pos) <= radius:
                    return annotation, index
        return None

    def hit_test(self, pos: QPointF) -> Optional[Annotation]:
        """Topmost instance whose derived bbox contains pos."""
        for annotation in self.owned_annotations_reversed():
            bbox = annotation.data.bbox
            if bbox is not None and bbox.contains(pos):
                return annotation
        return None

    # ─── Gestures ─────────────────────────────────────────────────────────

    def handle_draw_start(self, pos: QPointF) -> None:
        if self._current_tool == ToolType.KEYPOINT:
            if not self.require_class():
                return
            self.place_keypoint(pos)
            return

        if self._current_tool != ToolType.SELECT:
            return

        point_hit = self.hit_test_point(pos)
        if point_hit is not None:
            annotation, index = point_hit
            self.select_annotation(annotation)
            self._selected_point_index = index
            self._mode = GestureMode.DRAGGING
            self.begin_annotation_edit(annotation)
            return

        hit = self.hit_test(pos)
        self.select_annotation(hit)
        self._selected_point_index = None

    def handle_draw_move(self, pos: QPointF) -> None:
        if self._mode != GestureMode.DRAGGING:
            return
        instance = self._selected_instance()
        if instance is None or self._selected_point_index is None:
            return

        point = instance.data.points[self._selected_point_index]
        point.x, point.y = pos.x(), pos.y()
        instance.data.update_bbox()
        self.request_redraw()

    def handle_draw_end(self, pos: QPointF) -> None:
        if self._mode == GestureMode.DRAGGING:
            instance = self._selected_instance()
            if instance is not None:
                self.end_annotation_edit(instance)
        self._mode = GestureMode.IDLE

    def select_annotation(self, annotation: Optional[Annotation]) -> None:
        if annotation is None or annotation.id != self._selected_id:
            self._selected_point_index = None
        super().select_annotation(annotation)

    def on_tool_deactivated(self, tool: ToolType) -> None:
        self._mode = GestureMode.IDLE

    def on_image_loaded(self) -> None:
        self._mode = GestureMode.IDLE
        self._current_keypoint_index = 0
        self._selected_point_index = None

    # ─── Rendering ────────────────────────────────────────────────────────

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        if annotation.kind != AnnotationKind.KEYPOINTS:
            return

        data: KeypointsData = annotation.data
        color = self.class_color(annotation.class_id)
        selected = self.is_selected(annotation)
        skeleton = self.skeleton_for(annotation.class_id)

        # Connections between labeled joints
        painter.setPen(QPen(color, 2 / self.zoom))
        for first, second in skeleton.connections:
            if first >= len(data.points) or second >= len(data.points):
                continue
            a, b = data.points[first], data.points[second]
            if a.is_labeled and b.is_labeled:
                painter.drawLine(QPointF(a.x, a.y), QPointF(b.x, b.y))

        # Joints
        radius = (6 if selected else 4) / self.zoom
        for index, point in enumerate(data.points):
            if not point.is_labeled:
                continue
            fill = color if point.visibility == Visibility.VISIBLE else OCCLUDED_COLOR
            outline_width = (3 if selected and index == self._selected_point_index else 1) / self.zoom
            painter.setPen(QPen(QColor(255, 255, 255), outline_width))
            painter.setBrush(fill)
            painter.drawEllipse(QPointF(point.x, point.y), radius, radius)

        if data.bbox is None:
            return

        if selected:
            pen = QPen(color, 1 / self.zoom)
            pen.setStyle(Qt.PenStyle.DashLine)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(data.bbox.to_rect())

        if self.show_labels:
            text = self.label_text(annotation.class_id)
            if text:
                self.draw_label(painter, text, QPointF(data.bbox.x, data.bbox.y), color)
