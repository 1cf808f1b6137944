"""
Raster mask editor for segmentation projects.

Strokes are painted into a full-resolution transparent buffer. Saving
scans the buffer's alpha channel, crops it to the padded tight bounds of
the painted pixels and stores the crop as a PNG data URL. A buffer with
no painted pixels is discarded instead of saved.
"""

import math
import time
from typing import Dict, List, Optional, Tuple

import numpy as np
from PySide6.QtCore import QPointF, Qt, QTimer
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from labelcanvas.editor.annotations import Annotation, AnnotationKind, MaskData
from labelcanvas.editor.canvas_base import AnnotationCanvas
from labelcanvas.editor.geometry import distance
from labelcanvas.editor.shortcuts import (
    Shortcut,
    ShortcutMap,
    class_shortcuts,
    delete_shortcuts,
)
from labelcanvas.editor.tools import GestureMode, ToolType
from labelcanvas.services.config_service import default_section


def alpha_bounds(image: QImage) -> Optional[Tuple[int, int, int, int]]:
    """
    Tight bounds of the non-transparent pixels of an image.

    Returns:
        (left, top, right, bottom) with right/bottom exclusive, or None if
        every pixel is fully transparent.
    """
    width = image.width()
    height = image.height()
    if width == 0 or height == 0:
        return None

    if image.format() != QImage.Format.Format_RGBA8888:
        image = image.convertToFormat(QImage.Format.Format_RGBA8888)

    ptr = image.constBits()
    arr = np.frombuffer(ptr, np.uint8).reshape((height, image.bytesPerLine()))
    alpha = arr[:, : width * 4].reshape((height, width, 4))[:, :, 3]

    ys, xs = np.nonzero(alpha)
    if xs.size == 0:
        return None
    return int(xs.min()), int(ys.min()), int(xs.max()) + 1, int(ys.max()) + 1


class MaskCanvas(AnnotationCanvas):
    """Brush/eraser editor producing cropped raster masks."""

    ANNOTATION_KIND = AnnotationKind.MASK

    def __init__(self, parent=None, **kwargs) -> None:
        super().__init__(parent, **kwargs)

        self._mask_settings = default_section("mask")
        if self._config is not None:
            self._mask_settings.update(self._config.mask)

        self._brush_size: int = self._mask_settings["brush_size"]
        self._mask_opacity: float = self._mask_settings["opacity"]
        self._erase_mode: bool = False

        self._mode = GestureMode.IDLE
        self._mask_buffer: Optional[QImage] = None
        self._mask_class = None
        self._last_paint_pos: Optional[QPointF] = None
        self._cursor_pos: Optional[QPointF] = None

        self._last_click_time: float = 0.0
        self._last_click_id: Optional[str] = None

        # Decoded rasters of committed masks, keyed by annotation id
        self._raster_cache: Dict[str, Tuple[str, QImage]] = {}

        self._autosave_timer = QTimer(self)
        self._autosave_timer.setSingleShot(True)
        self._autosave_timer.setInterval(self._mask_settings["autosave_delay_ms"])
        self._autosave_timer.timeout.connect(self.save_mask)

    def available_tools(self) -> List[ToolType]:
        return [ToolType.MASK, ToolType.SELECT, ToolType.PAN]

    def specific_shortcuts(self) -> ShortcutMap:
        step = self._mask_settings["brush_step"]
        shortcuts = {
            "m": Shortcut(lambda: self.set_tool(ToolType.MASK), "Mask Brush Tool"),
            "v": Shortcut(lambda: self.set_tool(ToolType.SELECT), "Select Tool"),
            "e": Shortcut(lambda: self.set_erase_mode(not self._erase_mode), "Toggle Eraser"),
            "[": Shortcut(lambda: self.set_brush_size(self._brush_size - step), "Smaller Brush"),
            "]": Shortcut(lambda: self.set_brush_size(self._brush_size + step), "Larger Brush"),
            "n": Shortcut(self.new_mask_instance, "New Mask Instance"),
            "Enter": Shortcut(self.finish_current_mask, "Finish Mask"),
        }
        shortcuts.update(delete_shortcuts(self.delete_selected))
        shortcuts.update(class_shortcuts(self.select_class))
        return shortcuts

    # ─── Brush Settings ───────────────────────────────────────────────────

    @property
    def brush_size(self) -> int:
        return self._brush_size

    def set_brush_size(self, size: int) -> None:
        """Set brush diameter, clamped to the configured range."""
        low = self._mask_settings["min_brush_size"]
        high = self._mask_settings["max_brush_size"]
        self._brush_size = int(max(low, min(high, size)))
        self.request_redraw()

    @property
    def erase_mode(self) -> bool:
        return self._erase_mode

    def set_erase_mode(self, enabled: bool) -> None:
        self._erase_mode = enabled
        self._autosave_timer.stop()
        self.toast("Eraser on" if enabled else "Brush on", "info")
        self.request_redraw()

    @property
    def mask_opacity(self) -> float:
        return self._mask_opacity

    def set_mask_opacity(self, opacity: float) -> None:
        self._mask_opacity = max(0.0, min(1.0, opacity))
        self.request_redraw()

    @property
    def mask_buffer(self) -> Optional[QImage]:
        """The uncommitted stroke buffer, if a mask is being painted."""
        return self._mask_buffer

    @property
    def autosave_pending(self) -> bool:
        return self._autosave_timer.isActive()

    # ─── Painting ─────────────────────────────────────────────────────────

    def _ensure_buffer(self) -> QImage:
        if self._mask_buffer is None:
            width, height = self.image_size
            self._mask_buffer = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
            self._mask_buffer.fill(Qt.GlobalColor.transparent)
            self._mask_class = self._current_class
        return self._mask_buffer

    def paint_stroke(self, points: List[QPointF]) -> None:
        """Stamp the brush at each point into the buffer."""
        buffer = self._ensure_buffer()
        radius = self._brush_size / 2

        painter = QPainter(buffer)
        # Aliased stamps so erasing the same footprint leaves no residue
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
        painter.setPen(Qt.PenStyle.NoPen)
        if self._erase_mode:
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_DestinationOut)
            painter.setBrush(QColor(0, 0, 0, 255))
        else:
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)
            painter.setBrush(self.class_color(self._mask_class))

        for point in points:
            painter.drawEllipse(point, radius, radius)
        painter.end()

    def interpolate(self, start: QPointF, end: QPointF) -> List[QPointF]:
        """Points from start (exclusive) to end every brush/4 pixels."""
        step = max(1.0, self._brush_size / 4)
        count = max(1, math.ceil(distance(start, end) / step))
        return [
            QPointF(
                start.x() + (end.x() - start.x()) * i / count,
                start.y() + (end.y() - start.y()) * i / count,
            )
            for i in range(1, count + 1)
        ]

    # ─── Commit / Edit ────────────────────────────────────────────────────

    def save_mask(self) -> Optional[Annotation]:
        """
        Commit the stroke buffer as a mask annotation.

        Returns:
            The new annotation, or None if there was nothing painted.
        """
        self._autosave_timer.stop()
        buffer = self._mask_buffer
        if buffer is None:
            return None

        bounds = alpha_bounds(buffer)
        if bounds is None:
            self._logger.debug("Discarded empty mask buffer")
            self._discard_buffer()
            return None

        pad = math.ceil(self._brush_size / 2)
        left, top, right, bottom = bounds
        left = max(0, left - pad)
        top = max(0, top - pad)
        right = min(buffer.width(), right + pad)
        bottom = min(buffer.height(), bottom + pad)

        crop = buffer.copy(left, top, right - left, bottom - top)
        annotation = Annotation(
            AnnotationKind.MASK,
            self._mask_class if self._mask_class is not None else self._current_class,
            MaskData.from_image(crop, left, top),
        )
        self._discard_buffer()
        self.add_annotation(annotation)
        self.toast("Mask saved", "success")
        return annotation

    def load_mask_for_editing(self, annotation: Annotation) -> None:
        """
        Move a committed mask back into the stroke buffer.

        Raises:
            ValueError: If the stored raster cannot be decoded. Nothing is
                changed in that case.
        """
        raster = annotation.data.to_image()

        # Commit whatever was being painted before checking out another mask
        if self._mask_buffer is not None:
            self.save_mask()

        buffer = self._ensure_buffer()
        self._mask_class = annotation.class_id
        painter = QPainter(buffer)
        painter.drawImage(annotation.data.x, annotation.data.y, raster)
        painter.end()

        self.remove_annotation(annotation)
        self._raster_cache.pop(annotation.id, None)
        self.set_tool(ToolType.MASK)
        self.set_current_class(annotation.class_id)
        self.toast("Mask loaded for editing", "info")

    def new_mask_instance(self) -> None:
        """Commit the current buffer and start an empty one on the next stroke."""
        self.save_mask()
        self._discard_buffer()
        self.toast("New mask instance", "info")

    def finish_current_mask(self) -> Optional[Annotation]:
        return self.save_mask()

    def _discard_buffer(self) -> None:
        self._autosave_timer.stop()
        self._mask_buffer = None
        self._mask_class = None
        self.request_redraw()

    def on_tool_deactivated(self, tool: ToolType) -> None:
        self._mode = GestureMode.IDLE
        self._autosave_timer.stop()
        if tool == ToolType.MASK and self._mask_buffer is not None:
            self.save_mask()

    def on_image_loaded(self) -> None:
        self._mode = GestureMode.IDLE
        self._autosave_timer.stop()
        self._mask_buffer = None
        self._mask_class = None
        self._raster_cache.clear()

    # ─── Gestures ─────────────────────────────────────────────────────────

    def hit_test(self, pos: QPointF) -> Optional[Annotation]:
        for annotation in self.owned_annotations_reversed():
            if annotation.data.contains(pos):
                return annotation
        return None

    def handle_draw_start(self, pos: QPointF) -> None:
        if self._current_tool == ToolType.MASK:
            if not self.require_class():
                return
            self._autosave_timer.stop()
            self._mode = GestureMode.PAINTING
            self._last_paint_pos = pos
            self.paint_stroke([pos])
            self.request_redraw()
            return

        if self._current_tool != ToolType.SELECT:
            return

        now = time.monotonic()
        hit = self.hit_test(pos)
        double_click = (
            hit is not None
            and hit.id == self._last_click_id
            and (now - self._last_click_time) * 1000 <= self._mask_settings["double_click_ms"]
        )
        self._last_click_time = now
        self._last_click_id = hit.id if hit is not None else None

        if double_click:
            self._last_click_id = None
            try:
                self.load_mask_for_editing(hit)
            except ValueError as e:
                self._logger.error(f"Failed to load mask {hit.id}: {e}")
                self.toast("Could not load mask for editing", "error")
            return

        self.select_annotation(hit)

    def handle_draw_move(self, pos: QPointF) -> None:
        self._cursor_pos = pos
        if self._mode == GestureMode.PAINTING and self._last_paint_pos is not None:
            self.paint_stroke(self.interpolate(self._last_paint_pos, pos))
            self._last_paint_pos = pos
        if self._current_tool == ToolType.MASK:
            self.request_redraw()

    def handle_draw_end(self, pos: QPointF) -> None:
        if self._mode != GestureMode.PAINTING:
            return
        self._mode = GestureMode.IDLE
        self._last_paint_pos = None
        if not self._erase_mode:
            self._autosave_timer.start()
        self.request_redraw()

    # ─── Rendering ────────────────────────────────────────────────────────

    def _raster_for(self, annotation: Annotation) -> Optional[QImage]:
        data = annotation.data
        cached = self._raster_cache.get(annotation.id)
        if cached is not None and cached[0] == data.image_data:
            return cached[1]
        try:
            raster = data.to_image()
        except ValueError as e:
            self._logger.warning(f"Skipping undecodable mask {annotation.id}: {e}")
            return None
        self._raster_cache[annotation.id] = (data.image_data, raster)
        return raster

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        if annotation.kind != AnnotationKind.MASK:
            return

        raster = self._raster_for(annotation)
        if raster is None:
            return

        data = annotation.data
        painter.save()
        painter.setOpacity(self._mask_opacity)
        painter.drawImage(QPointF(data.x, data.y), raster)
        painter.restore()

        color = self.class_color(annotation.class_id)
        if self.is_selected(annotation):
            pen = QPen(color, 2 / self.zoom)
            pen.setStyle(Qt.PenStyle.DashLine)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(data.to_rect())

        if self.show_labels:
            text = self.label_text(annotation.class_id)
            if text:
                self.draw_label(painter, text, QPointF(data.x, data.y), color)

    def draw_overlay(self, painter: QPainter) -> None:
        if self._mask_buffer is not None:
            painter.save()
            painter.setOpacity(self._mask_opacity)
            painter.drawImage(0, 0, self._mask_buffer)
            painter.restore()

        if self._current_tool == ToolType.MASK and self._cursor_pos is not None:
            radius = self._brush_size / 2
            color = QColor(255, 255, 255) if self._erase_mode else self.class_color(self._current_class)
            painter.setPen(QPen(color, 1 / self.zoom))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawEllipse(self._cursor_pos, radius, radius)
