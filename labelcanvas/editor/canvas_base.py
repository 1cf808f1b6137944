"""
Base annotation canvas for LabelCanvas.

AnnotationCanvas owns everything the editors share:
- The loaded image and the view transform (zoom, pan, rotation)
- The annotation list and the selected annotation id
- Pointer dispatch: pan and wheel zoom are resolved here, every other
  gesture is mapped to image coordinates and handed to the editor
- The redraw procedure and the keyboard shortcut map

Concrete editors implement draw_annotation, handle_draw_start/move/end,
available_tools and specific_shortcuts.
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from PySide6.QtCore import QPointF, QRectF, QSizeF, Qt, QTimer, Signal
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPen,
    QWheelEvent,
)
from PySide6.QtWidgets import QApplication, QLineEdit, QPlainTextEdit, QTextEdit, QWidget

from labelcanvas.editor.annotations import Annotation, AnnotationKind
from labelcanvas.editor.classes import AnnotationClass
from labelcanvas.editor.geometry import handle_positions
from labelcanvas.editor.shortcuts import Shortcut, ShortcutMap, key_name, merge_shortcuts
from labelcanvas.editor.tools import ToolType, tool_cursor
from labelcanvas.editor.transform import ViewTransform
from labelcanvas.services.config_service import ConfigService, default_section
from labelcanvas.services.logging_service import get_logger, log_feedback

ToastCallback = Callable[[str, str], None]

BACKGROUND_COLOR = QColor(26, 26, 26)
GRID_COLOR = QColor(0, 0, 0, 51)
HANDLE_COLOR = QColor(80, 144, 208)
DEFAULT_CLASS_COLOR = "#ff0000"


class AnnotationCanvas(QWidget):
    """
    Base widget for every annotation editor.

    Signals:
        zoom_changed: Emitted when zoom level changes.
        selection_changed: Emitted with the selected Annotation or None.
        annotations_changed: Emitted after any mutation of the annotation list.
        class_changed: Emitted with the new current class id.
        tool_changed: Emitted with the new ToolType.
        navigate_requested: Emitted with -1/+1 for previous/next image.
        image_changed: Emitted when an image is loaded or cleared.
    """

    zoom_changed = Signal(float)
    selection_changed = Signal(object)
    annotations_changed = Signal()
    class_changed = Signal(object)
    tool_changed = Signal(object)
    navigate_requested = Signal(int)
    image_changed = Signal()

    # Kind of annotation this editor creates and draws
    ANNOTATION_KIND: Optional[AnnotationKind] = None

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        *,
        on_mutation: Optional[Callable[[], None]] = None,
        request_redraw: Optional[Callable[[], None]] = None,
        show_toast: Optional[ToastCallback] = None,
        config: Optional[ConfigService] = None,
        project_type: Optional[str] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        # Collaborators
        self._on_mutation = on_mutation
        self._request_redraw = request_redraw or self.update
        self._show_toast = show_toast
        self._config = config
        self.project_type = project_type

        # Settings
        self._settings: Dict[str, Any] = default_section("canvas")
        if config is not None:
            self._settings.update(config.canvas)

        # Image and view
        self._image: Optional[QImage] = None
        self._view = ViewTransform(self._settings["min_zoom"], self._settings["max_zoom"])
        self._user_zoomed: bool = False
        self.show_grid: bool = self._settings["show_grid"]
        self.show_labels: bool = self._settings["show_labels"]

        # Annotations
        self._annotations: List[Annotation] = []
        self._selected_id: Optional[str] = None
        self._edit_snapshot: Optional[Annotation] = None
        self.has_unsaved_changes: bool = False

        # Classes (read-only view of the project registry)
        self._classes: List[AnnotationClass] = []
        self._current_class: Any = None

        # Tool
        self._current_tool: ToolType = self.available_tools()[0]

        # Interaction state
        self._panning: bool = False
        self._pan_start: Optional[QPointF] = None
        self._pointer_down: bool = False
        self._last_image_pos: Optional[QPointF] = None

        self._shortcuts: Optional[ShortcutMap] = None

        # Debounced re-layout after window resize
        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.setInterval(self._settings["resize_debounce_ms"])
        self._resize_timer.timeout.connect(self._relayout)

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 200)
        self.setCursor(tool_cursor(self._current_tool))

    # ─── Editor Contract ──────────────────────────────────────────────────

    def draw_annotation(self, painter: QPainter, annotation: Annotation) -> None:
        """Draw one annotation. The painter is already in image coordinates."""
        raise NotImplementedError(f"{type(self).__name__} must implement draw_annotation()")

    def handle_draw_start(self, pos: QPointF) -> None:
        """Pointer pressed at pos (image coordinates)."""
        raise NotImplementedError(f"{type(self).__name__} must implement handle_draw_start()")

    def handle_draw_move(self, pos: QPointF) -> None:
        """Pointer moved to pos (image coordinates), pressed or not."""
        raise NotImplementedError(f"{type(self).__name__} must implement handle_draw_move()")

    def handle_draw_end(self, pos: QPointF) -> None:
        """Pointer released at pos (image coordinates)."""
        raise NotImplementedError(f"{type(self).__name__} must implement handle_draw_end()")

    def available_tools(self) -> List[ToolType]:
        """Tools this editor accepts; the first one is the default."""
        raise NotImplementedError(f"{type(self).__name__} must implement available_tools()")

    def specific_shortcuts(self) -> ShortcutMap:
        """Editor shortcuts merged over the general ones."""
        raise NotImplementedError(f"{type(self).__name__} must implement specific_shortcuts()")

    def draw_overlay(self, painter: QPainter) -> None:
        """Draw in-progress previews on top of the committed annotations."""

    def on_tool_deactivated(self, tool: ToolType) -> None:
        """Called when another tool replaces tool."""

    def on_image_loaded(self) -> None:
        """Called after a new image replaced the old one."""

    # ─── Image Management ─────────────────────────────────────────────────

    def set_image(self, image: QImage) -> None:
        """
        Load a new image into the canvas.

        Clears annotations and selection and resets zoom, pan and rotation.

        Raises:
            ValueError: If the image is null.
        """
        if image is None or image.isNull():
            raise ValueError("Cannot load a null image")

        self._image = image
        self._annotations.clear()
        self._selected_id = None
        self._pointer_down = False
        self._panning = False
        self.has_unsaved_changes = False
        self._view.reset(QSizeF(image.width(), image.height()))
        self._user_zoomed = False
        self.on_image_loaded()

        self.fit_image_to_canvas()
        self.image_changed.emit()
        self.request_redraw()

        self._logger.info(f"Image loaded: {image.width()}x{image.height()}")

    def load_image(self, path: Union[str, Path]) -> None:
        """
        Decode an image file and load it.

        Raises:
            ValueError: If the file cannot be decoded. The canvas is unchanged.
        """
        image = QImage(str(path))
        if image.isNull():
            self._logger.error(f"Could not decode image: {path}")
            raise ValueError(f"Could not load image: {path}")
        self.set_image(image)

    def clear_canvas(self) -> None:
        """Drop the image, annotations and view state."""
        self._image = None
        self._annotations.clear()
        self._selected_id = None
        self._view.reset(QSizeF(0, 0))
        self._user_zoomed = False
        self.on_image_loaded()
        self.image_changed.emit()
        self.request_redraw()

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def image_size(self) -> tuple:
        """Return (width, height) of the image."""
        if self._image is not None:
            return (self._image.width(), self._image.height())
        return (0, 0)

    # ─── Annotation Management ────────────────────────────────────────────

    @property
    def annotations(self) -> List[Annotation]:
        """A copy of the committed annotation list, in drawing order."""
        return list(self._annotations)

    def find_annotation(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        if annotation_id is None:
            return None
        for annotation in self._annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    def add_annotation(self, annotation: Annotation) -> None:
        """Append an annotation to the committed list."""
        self._annotations.append(annotation)
        self._logger.debug(f"Annotation added: {annotation}")
        self.mark_dirty()
        self.request_redraw()

    def remove_annotation(self, annotation: Annotation) -> bool:
        """Remove an annotation; clears the selection if it pointed at it."""
        target = self.find_annotation(annotation.id)
        if target is None:
            return False

        self._annotations.remove(target)
        if self._selected_id == target.id:
            self._selected_id = None
            self.selection_changed.emit(None)
        self.mark_dirty()
        self.request_redraw()
        return True

    def clear_annotations(self) -> None:
        self._annotations.clear()
        self._selected_id = None
        self.selection_changed.emit(None)
        self.mark_dirty()
        self.request_redraw()

    def delete_selected(self) -> bool:
        """Delete the selected annotation, if any."""
        selected = self.selected_annotation
        if selected is None:
            return False
        self.remove_annotation(selected)
        self.toast("Annotation deleted", "success")
        return True

    def set_annotations(self, annotations: Iterable[Union[Annotation, Dict[str, Any]]]) -> None:
        """
        Replace the annotation list with stored records.

        Loading does not count as an unsaved change.

        Raises:
            ValueError: If a wire record is malformed. The list is unchanged.
        """
        loaded = [
            item if isinstance(item, Annotation) else Annotation.from_dict(item)
            for item in annotations
        ]
        self._annotations = loaded
        self._selected_id = None
        self.selection_changed.emit(None)
        self.request_redraw()

    def get_annotations(self) -> List[Dict[str, Any]]:
        """Serialize the committed annotations to wire records."""
        return [annotation.to_dict() for annotation in self._annotations]

    def select_annotation(self, annotation: Optional[Annotation]) -> None:
        """Select an annotation by reference to its id, or clear with None."""
        new_id = annotation.id if annotation is not None else None
        if new_id == self._selected_id:
            return
        self._selected_id = new_id
        self.selection_changed.emit(annotation)
        self.request_redraw()

    @property
    def selected_annotation(self) -> Optional[Annotation]:
        return self.find_annotation(self._selected_id)

    def is_selected(self, annotation: Annotation) -> bool:
        return annotation.id == self._selected_id

    def owned_annotations_reversed(self) -> Iterable[Annotation]:
        """This editor's annotations, topmost first (for hit testing)."""
        for annotation in reversed(self._annotations):
            if annotation.kind == self.ANNOTATION_KIND:
                yield annotation

    def begin_annotation_edit(self, annotation: Annotation) -> Annotation:
        """Snapshot an annotation before a drag/resize/rotate gesture."""
        self._edit_snapshot = annotation.clone()
        return self._edit_snapshot

    def end_annotation_edit(self, annotation: Annotation) -> bool:
        """Finish an edit gesture; records a mutation only if geometry changed."""
        snapshot, self._edit_snapshot = self._edit_snapshot, None
        if snapshot is None or snapshot.id != annotation.id:
            return False
        if snapshot.to_dict() == annotation.to_dict():
            return False
        self.mark_dirty()
        return True

    def mark_dirty(self) -> None:
        """Record a mutation and notify the autosave collaborator."""
        self.has_unsaved_changes = True
        self.annotations_changed.emit()
        if self._on_mutation is not None:
            self._on_mutation()

    def clear_unsaved_changes(self) -> None:
        self.has_unsaved_changes = False

    # ─── Classes ──────────────────────────────────────────────────────────

    def set_classes(self, classes: Iterable[AnnotationClass]) -> None:
        """Replace the class list; keeps the current class when still present."""
        self._classes = list(classes)
        if self.class_by_id(self._current_class) is None:
            self._current_class = self._classes[0].id if self._classes else None

    @property
    def classes(self) -> List[AnnotationClass]:
        return list(self._classes)

    @property
    def current_class(self) -> Any:
        return self._current_class

    def set_current_class(self, class_id: Any) -> None:
        self._current_class = class_id
        self.class_changed.emit(class_id)

    def select_class(self, index: int) -> bool:
        """Make the class at list index current (shortcuts 1-9)."""
        if 0 <= index < len(self._classes):
            self.set_current_class(self._classes[index].id)
            return True
        return False

    def class_by_id(self, class_id: Any) -> Optional[AnnotationClass]:
        for cls in self._classes:
            if cls.id == class_id:
                return cls
        return None

    def class_color(self, class_id: Any) -> QColor:
        cls = self.class_by_id(class_id)
        return cls.qcolor if cls else QColor(DEFAULT_CLASS_COLOR)

    def label_text(self, class_id: Any) -> Optional[str]:
        """Label like "[2] person"; the number is shown for the first nine classes."""
        cls = self.class_by_id(class_id)
        if cls is None:
            return None
        index = self._classes.index(cls)
        prefix = f"[{index + 1}] " if index < 9 else ""
        return f"{prefix}{cls.name}"

    def require_class(self) -> bool:
        """Check a class exists before creating an annotation."""
        if not self._classes:
            self.toast("Add at least one class before annotating", "warning")
            return False
        if self.class_by_id(self._current_class) is None:
            self._current_class = self._classes[0].id
        return True

    # ─── Zoom, Pan and Rotation ───────────────────────────────────────────

    @property
    def view(self) -> ViewTransform:
        return self._view

    @property
    def zoom(self) -> float:
        return self._view.zoom

    @property
    def rotation(self) -> float:
        return self._view.rotation

    def canvas_to_image(self, pos: QPointF) -> QPointF:
        return self._view.canvas_to_image(pos)

    def image_to_canvas(self, pos: QPointF) -> QPointF:
        return self._view.image_to_canvas(pos)

    def set_zoom(self, zoom: float, anchor: Optional[QPointF] = None) -> None:
        """
        Set zoom keeping the anchor (widget coordinates) stationary.

        Without an anchor the widget center is used.
        """
        if self._image is None:
            return
        if anchor is None:
            anchor = QPointF(self.width() / 2, self.height() / 2)

        self._view.zoom_at(anchor, zoom)
        self._user_zoomed = True
        self.zoom_changed.emit(self._view.zoom)
        self.request_redraw()

    def zoom_in(self) -> None:
        self.set_zoom(self.zoom * self._settings["button_zoom_factor"])

    def zoom_out(self) -> None:
        self.set_zoom(self.zoom / self._settings["button_zoom_factor"])

    def reset_zoom(self) -> None:
        """Fit the image again and leave manual zoom mode."""
        if self._image is None:
            return
        self._user_zoomed = False
        self.fit_image_to_canvas()
        self.request_redraw()

    def fit_image_to_canvas(self) -> None:
        if self._image is None:
            return
        self._view.fit(self.width(), self.height(), self._settings["fit_margin"])
        self.zoom_changed.emit(self._view.zoom)

    def set_rotation(self, degrees: float) -> None:
        """Set the image-level display rotation (clockwise degrees)."""
        self._view.rotation = degrees
        self.request_redraw()

    def rotate_image(self, delta: float) -> None:
        self.set_rotation(self._view.rotation + delta)

    def toggle_grid(self) -> None:
        self.show_grid = not self.show_grid
        self.request_redraw()

    def toggle_labels(self) -> None:
        self.show_labels = not self.show_labels
        self.request_redraw()

    # ─── Tool Management ──────────────────────────────────────────────────

    @property
    def current_tool(self) -> ToolType:
        return self._current_tool

    def set_tool(self, tool: ToolType) -> bool:
        """
        Switch tool.

        Returns False and warns when the tool does not belong to this editor.
        """
        if tool not in self.available_tools():
            self.toast(f"Tool '{tool.value}' is not available for this project", "warning")
            return False

        previous = self._current_tool
        if previous != tool:
            self.on_tool_deactivated(previous)
        self._current_tool = tool
        self.setCursor(tool_cursor(tool))
        self.tool_changed.emit(tool)
        self.request_redraw()
        return True

    # ─── Pointer Dispatch ─────────────────────────────────────────────────

    def handle_pointer_down(
        self,
        pos: QPointF,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Pointer pressed at pos (widget coordinates)."""
        if self._image is None:
            return

        ctrl = bool(modifiers & Qt.KeyboardModifier.ControlModifier)
        left = button == Qt.MouseButton.LeftButton
        if button == Qt.MouseButton.MiddleButton or (
            left and (ctrl or self._current_tool == ToolType.PAN)
        ):
            self._panning = True
            self._pan_start = QPointF(pos)
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            return

        if not left:
            return

        image_pos = self.canvas_to_image(pos)
        self._pointer_down = True
        self._last_image_pos = image_pos
        self.handle_draw_start(image_pos)

    def handle_pointer_move(
        self,
        pos: QPointF,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Pointer moved to pos (widget coordinates)."""
        if self._image is None:
            return

        if self._panning and self._pan_start is not None:
            self._view.pan_by(pos.x() - self._pan_start.x(), pos.y() - self._pan_start.y())
            self._pan_start = QPointF(pos)
            self.request_redraw()
            return

        image_pos = self.canvas_to_image(pos)
        self._last_image_pos = image_pos
        self.handle_draw_move(image_pos)

    def handle_pointer_up(
        self,
        pos: QPointF,
        button: Qt.MouseButton = Qt.MouseButton.LeftButton,
        modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier,
    ) -> None:
        """Pointer released at pos (widget coordinates)."""
        if self._image is None:
            return

        if self._panning:
            self._end_pan()
            return

        if not self._pointer_down:
            return
        self._pointer_down = False
        self.handle_draw_end(self.canvas_to_image(pos))

    def handle_pointer_leave(self) -> None:
        """
        Pointer left the widget.

        Ends a pan. A pressed gesture is resolved at the last position,
        clamped to the image.
        """
        if self._panning:
            self._end_pan()

        if self._pointer_down and self._image is not None:
            self._pointer_down = False
            last = self._last_image_pos or QPointF(0, 0)
            self.handle_draw_end(self._clamp_to_image(last))

    def handle_wheel(self, pos: QPointF, delta: float) -> None:
        """Zoom toward the pointer: positive delta zooms in."""
        if self._image is None or delta == 0:
            return
        factor = self._settings["wheel_zoom_in"] if delta > 0 else self._settings["wheel_zoom_out"]
        self.set_zoom(self.zoom * factor, QPointF(pos))

    def _end_pan(self) -> None:
        self._panning = False
        self._pan_start = None
        self.setCursor(tool_cursor(self._current_tool))

    def _clamp_to_image(self, pos: QPointF) -> QPointF:
        width, height = self.image_size
        return QPointF(min(max(pos.x(), 0.0), width), min(max(pos.y(), 0.0), height))

    # ─── Shortcuts ────────────────────────────────────────────────────────

    def general_shortcuts(self) -> ShortcutMap:
        return {
            "+": Shortcut(self.zoom_in, "Zoom In"),
            "=": Shortcut(self.zoom_in, "Zoom In"),
            "-": Shortcut(self.zoom_out, "Zoom Out"),
            "0": Shortcut(self.reset_zoom, "Reset Zoom"),
            "g": Shortcut(self.toggle_grid, "Toggle Grid"),
            "l": Shortcut(self.toggle_labels, "Toggle Labels"),
            "ArrowLeft": Shortcut(lambda: self.navigate_requested.emit(-1), "Previous Image"),
            "ArrowRight": Shortcut(lambda: self.navigate_requested.emit(1), "Next Image"),
            "h": Shortcut(lambda: self.set_tool(ToolType.PAN), "Activate Pan Tool"),
        }

    @property
    def shortcuts(self) -> ShortcutMap:
        """General and editor shortcuts, editor bindings winning."""
        if self._shortcuts is None:
            self._shortcuts = merge_shortcuts(self.general_shortcuts(), self.specific_shortcuts())
        return self._shortcuts

    def handle_shortcut(self, key: str) -> bool:
        """
        Run the shortcut bound to key.

        Returns True if a shortcut ran. Keys are ignored while a text
        input has focus.
        """
        if self._text_input_has_focus():
            return False
        shortcut = self.shortcuts.get(key)
        if shortcut is None:
            return False
        shortcut.handler()
        return True

    def _text_input_has_focus(self) -> bool:
        focus = QApplication.focusWidget()
        return isinstance(focus, (QLineEdit, QTextEdit, QPlainTextEdit))

    # ─── Feedback ─────────────────────────────────────────────────────────

    def toast(self, message: str, level: str = "info") -> None:
        """Show user feedback through the injected callback and log it."""
        log_feedback(self._logger, message, level)
        if self._show_toast is not None:
            self._show_toast(message, level)

    def request_redraw(self) -> None:
        self._request_redraw()

    # ─── Rendering ────────────────────────────────────────────────────────

    def paint_scene(self, painter: QPainter) -> None:
        """
        Draw the whole scene: background, image, grid, annotations, overlay.

        The device pixel ratio is applied by Qt for widget and image targets.
        """
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        if self._image is None:
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            return

        painter.save()
        painter.setTransform(self._view.to_qtransform(), True)
        painter.drawImage(0, 0, self._image)

        if self.show_grid:
            self._draw_grid(painter)

        for annotation in self._annotations:
            self.draw_annotation(painter, annotation)

        self.draw_overlay(painter)
        painter.restore()

    def render_to_image(self) -> QImage:
        """Render the widget contents off-screen (used for snapshots)."""
        ratio = self.devicePixelRatioF()
        image = QImage(
            int(self.width() * ratio),
            int(self.height() * ratio),
            QImage.Format.Format_ARGB32_Premultiplied,
        )
        image.setDevicePixelRatio(ratio)
        image.fill(Qt.GlobalColor.transparent)
        painter = QPainter(image)
        self.paint_scene(painter)
        painter.end()
        return image

    def _draw_grid(self, painter: QPainter) -> None:
        width, height = self.image_size
        size = self._settings["grid_size"]

        painter.setPen(QPen(GRID_COLOR, 1 / self.zoom))
        x = size
        while x < width:
            painter.drawLine(QPointF(x, 0), QPointF(x, height))
            x += size
        y = size
        while y < height:
            painter.drawLine(QPointF(0, y), QPointF(width, y))
            y += size

    def draw_label(self, painter: QPainter, text: str, anchor: QPointF, color: QColor) -> None:
        """Draw a filled class tag just above anchor, sized for the current zoom."""
        font = QFont()
        font.setPixelSize(max(1, round(14 / self.zoom)))
        painter.setFont(font)
        metrics = QFontMetricsF(font)

        height = 20 / self.zoom
        padding = 5 / self.zoom
        tag = QRectF(
            anchor.x(), anchor.y() - height, metrics.horizontalAdvance(text) + 2 * padding, height
        )
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(color)
        painter.drawRect(tag)
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(QPointF(anchor.x() + padding, anchor.y() - padding), text)

    def draw_selection_handles(self, painter: QPainter, rect: QRectF) -> None:
        """Draw the eight resize handles of a selected rectangle."""
        painter.setBrush(QColor(255, 255, 255))
        painter.setPen(QPen(HANDLE_COLOR, 1 / self.zoom))

        size = self.handle_size()
        for center in handle_positions(rect).values():
            painter.drawRect(QRectF(center.x() - size / 2, center.y() - size / 2, size, size))

    def handle_size(self) -> float:
        """Handle half-size in image pixels (constant on screen)."""
        return self._settings["handle_size"] / self.zoom

    @property
    def min_box_size(self) -> float:
        return self._settings["min_box_size"]

    # ─── Qt Event Handlers ────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        self.paint_scene(painter)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        self.handle_pointer_down(event.position(), event.button(), event.modifiers())

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        self.handle_pointer_move(event.position(), event.modifiers())

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        self.handle_pointer_up(event.position(), event.button(), event.modifiers())

    def leaveEvent(self, event) -> None:
        self.handle_pointer_leave()
        super().leaveEvent(event)

    def wheelEvent(self, event: QWheelEvent) -> None:
        self.handle_wheel(event.position(), event.angleDelta().y())
        event.accept()

    def contextMenuEvent(self, event) -> None:
        event.accept()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = key_name(event)
        if key is not None and self.handle_shortcut(key):
            event.accept()
            return
        super().keyPressEvent(event)

    def focusNextPrevChild(self, next: bool) -> bool:
        # Keep Tab for editor shortcuts
        return False

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        if self._image is not None:
            self._resize_timer.start()

    def _relayout(self) -> None:
        """Refit after a resize unless the user zoomed manually."""
        if self._image is None:
            return
        if not self._user_zoomed:
            self.fit_image_to_canvas()
        self.request_redraw()
