"""
Tests for the oriented box editor.
"""

import pytest
from PySide6.QtCore import QPointF

from labelcanvas.editor.annotations import Annotation, AnnotationKind, OrientedBoxData
from labelcanvas.editor.canvas_obb import OrientedBoxCanvas
from labelcanvas.editor.geometry import rotate_point, to_local, to_world
from labelcanvas.editor.tools import ToolType


@pytest.fixture
def canvas(make_canvas):
    return make_canvas(OrientedBoxCanvas)


def add_obb(canvas, cx, cy, w, h, angle=0.0):
    annotation = Annotation(AnnotationKind.OBB, 0, OrientedBoxData(cx, cy, w, h, angle))
    canvas.add_annotation(annotation)
    return annotation


class TestLocalFrame:
    """Local-frame geometry."""

    def test_rotated_hit_test(self, canvas):
        """At 90 degrees the box's height axis points along image x."""
        box = OrientedBoxData(100, 100, 40, 20, 90)

        assert canvas.contains(box, QPointF(100, 120))
        assert not canvas.contains(box, QPointF(120, 100))

    def test_hit_test_finds_rotated_box(self, canvas):
        annotation = add_obb(canvas, 100, 100, 40, 20, 90)
        assert canvas.hit_test(QPointF(100, 118)) is annotation
        assert canvas.hit_test(QPointF(118, 100)) is None

    def test_local_world_inverse(self):
        center = QPointF(30, -12)
        for angle in (0, 17, 90, 181, 300):
            world = to_world(to_local(QPointF(77, 5), center, angle), center, angle)
            assert world.x() == pytest.approx(77)
            assert world.y() == pytest.approx(5)

    def test_rotate_point_clockwise(self):
        rotated = rotate_point(QPointF(10, 0), QPointF(0, 0), 90)
        assert rotated.x() == pytest.approx(0, abs=1e-9)
        assert rotated.y() == pytest.approx(10)


class TestObbDrawing:
    """Drawing oriented boxes."""

    def test_draw_unrotated(self, canvas, drag, toast):
        drag(canvas, (100, 100), (160, 120))

        assert len(canvas.annotations) == 1
        box = canvas.annotations[0].data
        assert (box.cx, box.cy) == (pytest.approx(130), pytest.approx(110))
        assert (box.width, box.height) == (pytest.approx(60), pytest.approx(20))
        assert box.angle == 0
        toast.assert_called_with("OBB added", "success")

    def test_draw_on_rotated_image(self, canvas, drag):
        """Angle compensates the display rotation; extents are measured on screen."""
        canvas.set_rotation(90)
        drag(canvas, (100, 100), (160, 120))

        box = canvas.annotations[0].data
        assert box.angle == pytest.approx(270)
        assert box.width == pytest.approx(20)
        assert box.height == pytest.approx(60)
        assert (box.cx, box.cy) == (pytest.approx(130), pytest.approx(110))

    def test_small_obb_discarded(self, canvas, drag):
        drag(canvas, (100, 100), (103, 140))
        assert canvas.annotations == []


class TestObbEditing:
    """Rotate, resize and move gestures."""

    def test_rotation_handle_drag(self, canvas, drag):
        annotation = add_obb(canvas, 200, 150, 100, 40)
        canvas.set_tool(ToolType.SELECT)
        canvas.select_annotation(annotation)

        knob = canvas.rotation_handle_position(annotation.data)
        drag(canvas, (knob.x(), knob.y()), (260, 150))

        assert annotation.data.angle == pytest.approx(90)
        assert (annotation.data.cx, annotation.data.cy) == (200, 150)

    def test_rotation_wraps(self, canvas):
        annotation = add_obb(canvas, 200, 150, 100, 40)
        canvas.select_annotation(annotation)

        assert canvas.handle_shortcut("R")
        assert annotation.data.angle == pytest.approx(345)
        assert canvas.handle_shortcut("r")
        assert canvas.handle_shortcut("r")
        assert annotation.data.angle == pytest.approx(15)

    def test_resize_in_local_frame(self, canvas, drag):
        """Dragging the east handle of a 90-degree box grows it along image y."""
        annotation = add_obb(canvas, 200, 150, 100, 40, 90)
        canvas.set_tool(ToolType.SELECT)
        canvas.select_annotation(annotation)

        drag(canvas, (200, 200), (200, 230))

        box = annotation.data
        assert box.width == pytest.approx(130)
        assert box.height == pytest.approx(40)
        assert box.cx == pytest.approx(200)
        assert box.cy == pytest.approx(165)
        assert box.angle == 90

    def test_move(self, canvas, drag, on_mutation):
        annotation = add_obb(canvas, 200, 150, 100, 40, 30)
        on_mutation.reset_mock()
        canvas.set_tool(ToolType.SELECT)

        drag(canvas, (200, 150), (220, 100))

        assert (annotation.data.cx, annotation.data.cy) == (pytest.approx(220), pytest.approx(100))
        on_mutation.assert_called_once()

    def test_rotate_without_selection(self, canvas):
        assert not canvas.rotate_selected(15)
