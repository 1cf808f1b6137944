"""
Time-series annotation adapter.

Turns pointer gestures over an external chart into point and range
annotations in data coordinates. The chart itself (axes, lines,
committed annotation rendering) is external; this module only needs its
axis scales to convert pixels to domain values and back.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
from PySide6.QtCore import QObject, Signal

from labelcanvas.editor.annotations import Annotation, AnnotationKind, PointData, RangeData
from labelcanvas.editor.classes import AnnotationClass
from labelcanvas.editor.tools import ToolType
from labelcanvas.services.logging_service import get_logger, log_feedback

DEFAULT_PROJECT_TYPE = "anomalyDetection"
DEFAULT_SERIES_COLOR = "#667eea"
POINT_HIT_RADIUS = 6
Y_ZOOM_FACTOR = 1.2


class AxisScale(Protocol):
    """Pixel <-> value mapping of one chart axis."""

    def value_for_pixel(self, pixel: float) -> float:
        ...

    def pixel_for_value(self, value: float) -> float:
        ...


class LinearScale:
    """Linear axis mapping [value_min, value_max] onto [pixel_min, pixel_max]."""

    def __init__(self, value_min: float, value_max: float, pixel_min: float, pixel_max: float) -> None:
        if value_min == value_max or pixel_min == pixel_max:
            raise ValueError("Scale ranges must not be empty")
        self.value_min = value_min
        self.value_max = value_max
        self.pixel_min = pixel_min
        self.pixel_max = pixel_max

    def value_for_pixel(self, pixel: float) -> float:
        t = (pixel - self.pixel_min) / (self.pixel_max - self.pixel_min)
        return self.value_min + t * (self.value_max - self.value_min)

    def pixel_for_value(self, value: float) -> float:
        t = (value - self.value_min) / (self.value_max - self.value_min)
        return self.pixel_min + t * (self.pixel_max - self.pixel_min)


@dataclass(frozen=True)
class ProjectConfig:
    """Tools and annotation kinds allowed for a time-series project type."""
    mode: str
    tools: Tuple[ToolType, ...] = field(default_factory=tuple)
    allow_point: bool = False
    allow_range: bool = False
    range_type: Optional[str] = None
    point_type: Optional[str] = None
    description: str = ""


_RANGE_TOOLS = (ToolType.RANGE, ToolType.SELECT, ToolType.PAN, ToolType.ZOOM)
_POINT_TOOLS = (ToolType.POINT, ToolType.SELECT, ToolType.PAN, ToolType.ZOOM)

PROJECT_CONFIGS: Dict[str, ProjectConfig] = {
    "timeSeriesClassification": ProjectConfig(
        mode="global", description="Classify the whole series",
    ),
    "timeSeriesForecasting": ProjectConfig(
        mode="canvas", tools=_RANGE_TOOLS, allow_range=True, range_type="forecast",
        description="Mark history window and forecast horizon",
    ),
    "anomalyDetection": ProjectConfig(
        mode="canvas", tools=_POINT_TOOLS, allow_point=True,
        description="Mark anomalous points",
    ),
    "timeSeriesSegmentation": ProjectConfig(
        mode="canvas", tools=_RANGE_TOOLS, allow_range=True, range_type="segment",
        description="Split the series into labeled regions",
    ),
    "patternRecognition": ProjectConfig(
        mode="canvas", tools=_RANGE_TOOLS, allow_range=True, range_type="pattern",
        description="Mark repeating patterns",
    ),
    "eventDetection": ProjectConfig(
        mode="canvas", tools=_POINT_TOOLS, allow_point=True,
        description="Mark discrete events",
    ),
    "timeSeriesRegression": ProjectConfig(
        mode="canvas", tools=_POINT_TOOLS, allow_point=True, point_type="regression",
        description="Mark points with numeric targets",
    ),
    "clustering": ProjectConfig(
        mode="global", description="Assign a cluster to the whole series",
    ),
    "imputation": ProjectConfig(
        mode="canvas", tools=_RANGE_TOOLS, allow_range=True, range_type="gap",
        description="Mark missing sections to impute",
    ),
}


def project_config(project_type: str) -> ProjectConfig:
    """Config for a project type, falling back to anomaly detection."""
    return PROJECT_CONFIGS.get(project_type, PROJECT_CONFIGS[DEFAULT_PROJECT_TYPE])


class TimeSeriesAnnotator(QObject):
    """
    Point and range annotation over an external chart.

    Signals:
        annotations_changed: Emitted after any mutation.
        tool_changed: Emitted with the new ToolType.
        preview_changed: Emitted when the transient overlay changes.
    """

    annotations_changed = Signal()
    tool_changed = Signal(object)
    preview_changed = Signal()

    def __init__(
        self,
        project_type: str,
        classes: Optional[Iterable[AnnotationClass]] = None,
        *,
        on_mutation: Optional[Callable[[], None]] = None,
        show_toast: Optional[Callable[[str, str], None]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self.project_type = project_type
        self.config = project_config(project_type)
        if project_type not in PROJECT_CONFIGS:
            self._logger.warning(
                f"Unknown time-series project type '{project_type}', "
                f"using {DEFAULT_PROJECT_TYPE}"
            )

        self._on_mutation = on_mutation
        self._show_toast = show_toast

        self._classes: List[AnnotationClass] = list(classes or [])
        self._current_class: Any = self._classes[0].id if self._classes else None

        self._labels: np.ndarray = np.zeros(0)
        self._series: Dict[str, np.ndarray] = {}
        self._x_scale: Optional[AxisScale] = None
        self._y_scale: Optional[AxisScale] = None

        self._annotations: List[Annotation] = []
        self._selected_id: Optional[str] = None
        self.has_unsaved_changes = False

        self._current_tool: Optional[ToolType] = self.config.tools[0] if self.config.tools else None

        self._drawing = False
        self._range_start_pixel: Optional[float] = None
        self._range_start_value: Optional[float] = None
        self._preview_pixel: Optional[Tuple[float, float]] = None

        # View state mirrored into the external chart options
        self.show_grid = True
        self.show_labels = True
        self.show_x_axis_labels = True
        self.scale_y = 1.0

    # ─── Data and Scales ──────────────────────────────────────────────────

    def load_data(
        self,
        labels: Optional[Sequence[float]],
        series: Dict[str, Sequence[float]],
        annotations: Iterable[Union[Annotation, Dict[str, Any]]] = (),
    ) -> None:
        """
        Load sampled series and their stored annotations.

        Args:
            labels: x value of each sample; None means the sample index.
            series: Column name -> sampled values.
            annotations: Stored annotations or wire records.
        """
        lengths = {len(values) for values in series.values()}
        if len(lengths) > 1:
            raise ValueError("All series must have the same length")
        length = lengths.pop() if lengths else 0

        if labels is None:
            self._labels = np.arange(length, dtype=float)
        else:
            self._labels = np.asarray(labels, dtype=float)
            if series and len(self._labels) != length:
                raise ValueError("Labels and series lengths differ")

        self._series = {name: np.asarray(values, dtype=float) for name, values in series.items()}
        self._annotations = [
            a if isinstance(a, Annotation) else Annotation.from_dict(a) for a in annotations
        ]
        self._selected_id = None
        self.has_unsaved_changes = False
        self._cancel_range()
        self._logger.info(
            f"Loaded time series: {len(self._labels)} samples, {len(self._series)} series"
        )

    def set_scales(self, x_scale: AxisScale, y_scale: AxisScale) -> None:
        """Attach the chart's current axis scales."""
        self._x_scale = x_scale
        self._y_scale = y_scale

    @property
    def sample_count(self) -> int:
        return len(self._labels)

    def closest_index(self, x_value: float) -> int:
        """Index of the sample whose x is nearest; ties go to the earlier sample."""
        if len(self._labels) == 0:
            raise ValueError("No samples loaded")
        return int(np.argmin(np.abs(self._labels - x_value)))

    def x_value(self, pixel: float) -> Optional[float]:
        if self._x_scale is None:
            return None
        return self._x_scale.value_for_pixel(pixel)

    def y_value(self, pixel: float) -> Optional[float]:
        if self._y_scale is None:
            return None
        return self._y_scale.value_for_pixel(pixel)

    # ─── Classes and Tools ────────────────────────────────────────────────

    def set_classes(self, classes: Iterable[AnnotationClass]) -> None:
        self._classes = list(classes)
        if not any(c.id == self._current_class for c in self._classes):
            self._current_class = self._classes[0].id if self._classes else None

    @property
    def current_class(self) -> Any:
        return self._current_class

    def set_current_class(self, class_id: Any) -> None:
        self._current_class = class_id

    def class_color(self, class_id: Any) -> str:
        for cls in self._classes:
            if cls.id == class_id:
                return cls.color
        return DEFAULT_SERIES_COLOR

    @property
    def current_tool(self) -> Optional[ToolType]:
        return self._current_tool

    def is_tool_valid(self, tool: ToolType) -> bool:
        return tool in self.config.tools

    def set_tool(self, tool: ToolType) -> bool:
        """Switch tool; tools outside the project config are rejected."""
        if not self.is_tool_valid(tool):
            self.toast(f"Tool '{tool.value}' is not available for this project", "warning")
            return False
        self._current_tool = tool
        self._cancel_range()
        self.tool_changed.emit(tool)
        return True

    # ─── Pointer Handling ─────────────────────────────────────────────────

    def handle_pointer_down(self, x: float, y: float) -> None:
        """Pointer pressed at chart pixel (x, y)."""
        if self._current_tool == ToolType.POINT:
            self.add_point_annotation(x, y)
        elif self._current_tool == ToolType.RANGE:
            start = self.x_value(x)
            if start is None:
                return
            self._drawing = True
            self._range_start_pixel = x
            self._range_start_value = start
            self._preview_pixel = (x, x)
            self.preview_changed.emit()
        elif self._current_tool == ToolType.SELECT:
            self.select_at(x, y)

    def handle_pointer_move(self, x: float, y: float) -> None:
        if self._drawing and self._range_start_pixel is not None:
            self._preview_pixel = (self._range_start_pixel, x)
            self.preview_changed.emit()

    def handle_pointer_up(self, x: float, y: float) -> None:
        if not self._drawing:
            return
        if self._current_tool == ToolType.RANGE:
            self.add_range_annotation(x)
        self._cancel_range()

    def handle_pointer_leave(self) -> None:
        """Leaving the chart abandons an unfinished range."""
        self._cancel_range()

    def range_preview(self) -> Optional[Tuple[float, float]]:
        """Pixel x extent (low, high) of the range being dragged, if any."""
        if self._preview_pixel is None:
            return None
        start, end = self._preview_pixel
        return (min(start, end), max(start, end))

    def _cancel_range(self) -> None:
        had_preview = self._preview_pixel is not None
        self._drawing = False
        self._range_start_pixel = None
        self._range_start_value = None
        self._preview_pixel = None
        if had_preview:
            self.preview_changed.emit()

    # ─── Annotation Creation ──────────────────────────────────────────────

    def _require_class(self) -> bool:
        if not self._classes:
            self.toast("Add at least one class before annotating", "warning")
            return False
        return True

    def add_point_annotation(self, x: float, y: float) -> Optional[Annotation]:
        """Create a point at chart pixel (x, y), snapped to the nearest sample."""
        if not self.config.allow_point:
            self.toast("This project type does not allow point annotations", "warning")
            return None
        if not self._require_class():
            return None

        x_value = self.x_value(x)
        y_value = self.y_value(y)
        if x_value is None or y_value is None or self.sample_count == 0:
            return None

        data = PointData(x_value, y_value, self.closest_index(x_value))
        if self.config.point_type == "regression":
            data.target_value = y_value

        annotation = Annotation(AnnotationKind.POINT, self._current_class, data)
        self._append(annotation)
        return annotation

    def add_range_annotation(self, end_x: float) -> Optional[Annotation]:
        """Finish the dragged range at chart pixel end_x."""
        if not self.config.allow_range:
            self.toast("This project type does not allow range annotations", "warning")
            return None
        if not self._require_class():
            return None

        end_value = self.x_value(end_x)
        if self._range_start_value is None or end_value is None or self.sample_count == 0:
            return None

        start = min(self._range_start_value, end_value)
        end = max(self._range_start_value, end_value)
        data = RangeData(
            start=start,
            end=end,
            start_index=self.closest_index(start),
            end_index=self.closest_index(end),
            range_type=self.config.range_type or "generic",
        )
        annotation = Annotation(AnnotationKind.RANGE, self._current_class, data)
        self._append(annotation)
        return annotation

    def _append(self, annotation: Annotation) -> None:
        self._annotations.append(annotation)
        self._logger.debug(f"Time-series annotation added: {annotation}")
        self._mark_dirty()

    # ─── Selection and Management ─────────────────────────────────────────

    @property
    def annotations(self) -> List[Annotation]:
        return list(self._annotations)

    @property
    def selected_annotation(self) -> Optional[Annotation]:
        for annotation in self._annotations:
            if annotation.id == self._selected_id:
                return annotation
        return None

    def select_at(self, x: float, y: float) -> Optional[Annotation]:
        """Select the topmost point near (x, y) or range spanning x."""
        self._selected_id = None
        if self._x_scale is None or self._y_scale is None:
            return None

        x_value = self._x_scale.value_for_pixel(x)
        for annotation in reversed(self._annotations):
            data = annotation.data
            if annotation.kind == AnnotationKind.POINT:
                px = self._x_scale.pixel_for_value(data.x)
                py = self._y_scale.pixel_for_value(data.y)
                if np.hypot(px - x, py - y) <= POINT_HIT_RADIUS:
                    self._selected_id = annotation.id
                    return annotation
            elif annotation.kind == AnnotationKind.RANGE and data.start <= x_value <= data.end:
                self._selected_id = annotation.id
                return annotation
        return None

    def delete_selected(self) -> bool:
        selected = self.selected_annotation
        if selected is None:
            return False
        self._annotations.remove(selected)
        self._selected_id = None
        self._mark_dirty()
        return True

    def clear_annotations(self) -> None:
        self._annotations = []
        self._selected_id = None
        self._mark_dirty()

    def get_annotations(self) -> List[Dict[str, Any]]:
        return [annotation.to_dict() for annotation in self._annotations]

    def clear_unsaved_changes(self) -> None:
        self.has_unsaved_changes = False

    def _mark_dirty(self) -> None:
        self.has_unsaved_changes = True
        self.annotations_changed.emit()
        if self._on_mutation is not None:
            self._on_mutation()

    def toast(self, message: str, level: str = "info") -> None:
        log_feedback(self._logger, message, level)
        if self._show_toast is not None:
            self._show_toast(message, level)

    # ─── Chart Configuration ──────────────────────────────────────────────

    def chart_annotations(self) -> Dict[str, Dict[str, Any]]:
        """Annotation plugin entries for the external chart."""
        entries: Dict[str, Dict[str, Any]] = {}
        for index, annotation in enumerate(self._annotations):
            color = self.class_color(annotation.class_id)
            data = annotation.data
            if annotation.kind == AnnotationKind.POINT:
                entries[f"point_{index}"] = {
                    "type": "point",
                    "xValue": data.x,
                    "yValue": data.y,
                    "backgroundColor": color,
                    "radius": 6,
                }
            elif annotation.kind == AnnotationKind.RANGE:
                entries[f"range_{index}"] = {
                    "type": "box",
                    "xMin": data.start,
                    "xMax": data.end,
                    "backgroundColor": color + "33",
                    "borderColor": color,
                    "borderWidth": 2,
                }
        return entries

    def toggle_grid(self) -> None:
        self.show_grid = not self.show_grid

    def toggle_labels(self) -> None:
        self.show_labels = not self.show_labels

    def toggle_x_axis_labels(self) -> None:
        self.show_x_axis_labels = not self.show_x_axis_labels

    def zoom_in(self) -> None:
        self.scale_y *= Y_ZOOM_FACTOR

    def zoom_out(self) -> None:
        self.scale_y /= Y_ZOOM_FACTOR

    def reset_zoom(self) -> None:
        self.scale_y = 1.0

    def y_range(self) -> Optional[Tuple[float, float]]:
        """Visible y range around the data center for the current y zoom."""
        if not self._series:
            return None
        values = np.concatenate(list(self._series.values()))
        values = values[np.isfinite(values)]
        if values.size == 0:
            return None

        low, high = float(values.min()), float(values.max())
        center = (low + high) / 2
        half = (high - low) / self.scale_y / 2
        return (center - half, center + half)
