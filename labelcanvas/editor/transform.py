"""
View transform for LabelCanvas.

Maps between canvas (widget) coordinates and image coordinates under
zoom, pan and an optional image-level rotation about the image center.

Forward (image -> canvas): rotate about the image center, scale by zoom,
translate by pan. The inverse applies the same steps in reverse order.
Both directions come from one QTransform so they are exact inverses.
"""

from typing import Optional

from PySide6.QtCore import QPointF, QSizeF
from PySide6.QtGui import QTransform


class ViewTransform:
    """
    Zoom, pan and rotation state of an annotation canvas.

    Attributes are kept private; every mutation goes through a method
    that clamps zoom into [min_zoom, max_zoom].
    """

    def __init__(self, min_zoom: float = 0.1, max_zoom: float = 5.0) -> None:
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._zoom: float = 1.0
        self._pan: QPointF = QPointF(0, 0)
        self._rotation: float = 0.0
        self._image_size: QSizeF = QSizeF(0, 0)

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def zoom(self) -> float:
        return self._zoom

    @zoom.setter
    def zoom(self, value: float) -> None:
        self._zoom = self.clamp_zoom(value)

    @property
    def pan(self) -> QPointF:
        return QPointF(self._pan)

    @pan.setter
    def pan(self, value: QPointF) -> None:
        self._pan = QPointF(value)

    @property
    def rotation(self) -> float:
        """Image rotation in clockwise degrees, wrapped into [0, 360)."""
        return self._rotation

    @rotation.setter
    def rotation(self, degrees: float) -> None:
        self._rotation = degrees % 360.0

    @property
    def image_size(self) -> QSizeF:
        return QSizeF(self._image_size)

    @image_size.setter
    def image_size(self, size: QSizeF) -> None:
        self._image_size = QSizeF(size)

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def reset(self, image_size: Optional[QSizeF] = None) -> None:
        """Restore default zoom, pan and rotation."""
        self._zoom = 1.0
        self._pan = QPointF(0, 0)
        self._rotation = 0.0
        if image_size is not None:
            self._image_size = QSizeF(image_size)

    def pan_by(self, dx: float, dy: float) -> None:
        self._pan = QPointF(self._pan.x() + dx, self._pan.y() + dy)

    # ─── Mapping ──────────────────────────────────────────────────────────

    def to_qtransform(self) -> QTransform:
        """
        Build the image -> canvas transform.

        QTransform operations compose like QPainter calls: the last one
        added is applied to points first.
        """
        transform = QTransform()
        transform.translate(self._pan.x(), self._pan.y())
        transform.scale(self._zoom, self._zoom)
        if self._rotation:
            center_x = self._image_size.width() / 2
            center_y = self._image_size.height() / 2
            transform.translate(center_x, center_y)
            transform.rotate(self._rotation)
            transform.translate(-center_x, -center_y)
        return transform

    def image_to_canvas(self, point: QPointF) -> QPointF:
        """Convert image coordinates to canvas coordinates."""
        return self.to_qtransform().map(QPointF(point))

    def canvas_to_image(self, point: QPointF) -> QPointF:
        """Convert canvas coordinates to image coordinates."""
        inverse, invertible = self.to_qtransform().inverted()
        if not invertible:
            # Only reachable with a zero zoom, which clamp_zoom prevents
            raise ValueError("View transform is not invertible")
        return inverse.map(QPointF(point))

    # ─── Zoom ─────────────────────────────────────────────────────────────

    def zoom_at(self, anchor: QPointF, zoom: float) -> None:
        """
        Change zoom keeping the image point under the anchor stationary.

        Args:
            anchor: Canvas position to keep fixed, usually the cursor.
            zoom: Requested zoom level (clamped).
        """
        image_point = self.canvas_to_image(anchor)
        self._zoom = self.clamp_zoom(zoom)

        # With pan removed, where would the image point land now?
        self._pan = QPointF(0, 0)
        projected = self.image_to_canvas(image_point)
        self._pan = QPointF(anchor.x() - projected.x(), anchor.y() - projected.y())

    def fit(self, canvas_width: float, canvas_height: float, margin: float = 0.9) -> None:
        """
        Fit the image inside a canvas of the given size and center it.

        Does nothing when either size is empty.
        """
        img_w = self._image_size.width()
        img_h = self._image_size.height()
        if img_w <= 0 or img_h <= 0 or canvas_width <= 0 or canvas_height <= 0:
            return

        scale_x = canvas_width / img_w
        scale_y = canvas_height / img_h
        self._zoom = self.clamp_zoom(min(scale_x, scale_y) * margin)

        self._pan = QPointF(
            (canvas_width - img_w * self._zoom) / 2,
            (canvas_height - img_h * self._zoom) / 2,
        )
