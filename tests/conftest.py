"""
Shared fixtures for LabelCanvas tests.

Widgets are created on the offscreen Qt platform so the suite runs
without a display.
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from unittest.mock import Mock

from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication

from labelcanvas.editor.classes import AnnotationClass


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole session."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def test_image():
    """A plain 400x300 image."""
    image = QImage(400, 300, QImage.Format.Format_RGB32)
    image.fill(QColor(128, 128, 128))
    return image


@pytest.fixture
def classes():
    return [
        AnnotationClass(id=0, name="person", color="#ef4444"),
        AnnotationClass(id=1, name="car", color="#10b981"),
    ]


@pytest.fixture
def toast():
    """Mock show_toast collaborator."""
    return Mock()


@pytest.fixture
def on_mutation():
    """Mock autosave collaborator."""
    return Mock()


@pytest.fixture
def make_canvas(qapp, test_image, classes, toast, on_mutation):
    """
    Factory building a canvas with an image and classes loaded.

    The canvas is 800x600, so the 400x300 image is fitted at zoom 1.8.
    """
    created = []

    def _make(canvas_class, with_classes=True, **kwargs):
        canvas = canvas_class(
            show_toast=toast,
            on_mutation=on_mutation,
            request_redraw=Mock(),
            **kwargs,
        )
        canvas.resize(800, 600)
        canvas.set_image(test_image)
        if with_classes:
            canvas.set_classes(classes)
        created.append(canvas)
        return canvas

    yield _make

    for canvas in created:
        canvas.deleteLater()


@pytest.fixture
def drag():
    """Press, move and release on a canvas, with positions in image coordinates."""

    def _drag(canvas, start, end, steps=4):
        start_pos = QPointF(*start)
        end_pos = QPointF(*end)
        canvas.handle_pointer_down(canvas.image_to_canvas(start_pos))
        for i in range(1, steps + 1):
            point = QPointF(
                start_pos.x() + (end_pos.x() - start_pos.x()) * i / steps,
                start_pos.y() + (end_pos.y() - start_pos.y()) * i / steps,
            )
            canvas.handle_pointer_move(canvas.image_to_canvas(point))
        canvas.handle_pointer_up(canvas.image_to_canvas(end_pos))

    return _drag


@pytest.fixture
def click():
    """Press and release at one image position."""

    def _click(canvas, x, y):
        pos = canvas.image_to_canvas(QPointF(x, y))
        canvas.handle_pointer_down(pos)
        canvas.handle_pointer_up(pos)

    return _click
