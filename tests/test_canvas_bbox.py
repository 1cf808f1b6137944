"""
Tests for the axis-aligned box editor.
"""

import pytest
from PySide6.QtCore import QPointF, QRectF

from labelcanvas.editor.annotations import Annotation, AnnotationKind, BoxData
from labelcanvas.editor.canvas_bbox import BoxCanvas
from labelcanvas.editor.geometry import Handle, hit_test_handle, resize_rect
from labelcanvas.editor.tools import GestureMode, ToolType


@pytest.fixture
def canvas(make_canvas):
    return make_canvas(BoxCanvas)


def add_box(canvas, x, y, w, h, class_id=0):
    annotation = Annotation(AnnotationKind.BBOX, class_id, BoxData(x, y, w, h))
    canvas.add_annotation(annotation)
    return annotation


class TestBoxDrawing:
    """Drawing new boxes."""

    def test_default_tool(self, canvas):
        assert canvas.current_tool == ToolType.BBOX

    def test_box_is_normalized(self, canvas, drag, toast):
        """Dragging up-left still yields positive width and height."""
        drag(canvas, (50, 50), (10, 10))

        assert len(canvas.annotations) == 1
        box = canvas.annotations[0].data
        assert box.x == pytest.approx(10)
        assert box.y == pytest.approx(10)
        assert box.width == pytest.approx(40)
        assert box.height == pytest.approx(40)
        toast.assert_called_with("Bbox added", "success")

    def test_small_box_is_discarded(self, canvas, drag, on_mutation):
        drag(canvas, (0, 0), (3, 3))
        assert canvas.annotations == []
        on_mutation.assert_not_called()

    def test_thin_box_is_discarded(self, canvas, drag):
        drag(canvas, (10, 10), (200, 14))
        assert canvas.annotations == []

    def test_box_uses_current_class(self, canvas, drag):
        canvas.select_class(1)
        drag(canvas, (10, 10), (60, 60))
        assert canvas.annotations[0].class_id == 1

    def test_requires_class(self, make_canvas, drag, toast):
        canvas = make_canvas(BoxCanvas, with_classes=False)
        drag(canvas, (10, 10), (60, 60))

        assert canvas.annotations == []
        toast.assert_called_with("Add at least one class before annotating", "warning")

    def test_mutation_callback(self, canvas, drag, on_mutation):
        drag(canvas, (10, 10), (60, 60))
        on_mutation.assert_called_once()
        assert canvas.has_unsaved_changes

    def test_leave_commits_at_last_position(self, canvas):
        canvas.handle_pointer_down(canvas.image_to_canvas(QPointF(20, 20)))
        canvas.handle_pointer_move(canvas.image_to_canvas(QPointF(80, 90)))
        canvas.handle_pointer_leave()

        assert len(canvas.annotations) == 1
        box = canvas.annotations[0].data
        assert box.width == pytest.approx(60)
        assert box.height == pytest.approx(70)
        assert canvas.mode == GestureMode.IDLE

    def test_draw_preview_not_committed(self, canvas):
        """An in-progress box is not part of the annotation list."""
        canvas.handle_pointer_down(canvas.image_to_canvas(QPointF(20, 20)))
        canvas.handle_pointer_move(canvas.image_to_canvas(QPointF(80, 90)))

        assert canvas.mode == GestureMode.DRAWING
        assert canvas.annotations == []


class TestBoxSelection:
    """Selecting, moving and resizing boxes."""

    def test_select_topmost(self, canvas, click):
        add_box(canvas, 10, 10, 100, 100)
        top = add_box(canvas, 50, 50, 100, 100)
        canvas.set_tool(ToolType.SELECT)

        click(canvas, 75, 75)

        assert canvas.selected_annotation is top

    def test_click_empty_clears_selection(self, canvas, click):
        box = add_box(canvas, 10, 10, 50, 50)
        canvas.set_tool(ToolType.SELECT)
        canvas.select_annotation(box)

        click(canvas, 300, 250)

        assert canvas.selected_annotation is None

    def test_drag_moves_box(self, canvas, drag):
        box = add_box(canvas, 10, 10, 50, 50)
        canvas.set_tool(ToolType.SELECT)

        drag(canvas, (20, 20), (120, 70))

        assert box.data.x == pytest.approx(110)
        assert box.data.y == pytest.approx(60)
        assert box.data.width == pytest.approx(50)

    def test_resize_from_corner(self, canvas, drag):
        box = add_box(canvas, 100, 100, 100, 50)
        canvas.set_tool(ToolType.SELECT)
        canvas.select_annotation(box)

        drag(canvas, (200, 150), (250, 180))

        assert (box.data.x, box.data.y) == (pytest.approx(100), pytest.approx(100))
        assert box.data.width == pytest.approx(150)
        assert box.data.height == pytest.approx(80)

    def test_resize_clamps_instead_of_flipping(self, canvas, drag):
        """Dragging the east edge past the west edge stops at the minimum size."""
        box = add_box(canvas, 100, 100, 100, 50)
        canvas.set_tool(ToolType.SELECT)
        canvas.select_annotation(box)

        drag(canvas, (200, 125), (20, 125))

        assert box.data.x == pytest.approx(100)
        assert box.data.width == pytest.approx(5)
        assert box.data.height == pytest.approx(50)

    def test_unchanged_edit_is_not_a_mutation(self, canvas, click, on_mutation):
        box = add_box(canvas, 10, 10, 50, 50)
        on_mutation.reset_mock()
        canvas.set_tool(ToolType.SELECT)

        click(canvas, 30, 30)

        assert canvas.selected_annotation is box
        on_mutation.assert_not_called()

    def test_escape_rolls_back_drag(self, canvas):
        box = add_box(canvas, 10, 10, 50, 50)
        canvas.set_tool(ToolType.SELECT)
        canvas.handle_pointer_down(canvas.image_to_canvas(QPointF(20, 20)))
        canvas.handle_pointer_move(canvas.image_to_canvas(QPointF(200, 200)))

        canvas.handle_shortcut("Escape")

        assert (box.data.x, box.data.y) == (10, 10)
        assert canvas.mode == GestureMode.IDLE

    def test_delete_selected(self, canvas, toast):
        box = add_box(canvas, 10, 10, 50, 50)
        canvas.select_annotation(box)

        assert canvas.handle_shortcut("Delete")

        assert canvas.annotations == []
        assert canvas.selected_annotation is None
        toast.assert_called_with("Annotation deleted", "success")

    def test_selection_survives_by_id_only(self, canvas):
        """Removing the selected box leaves no dangling selection."""
        box = add_box(canvas, 10, 10, 50, 50)
        canvas.select_annotation(box)
        canvas.remove_annotation(box)
        assert canvas.selected_annotation is None


class TestHandleGeometry:
    """Handle hit testing and resize math."""

    def test_hit_corner_handle(self):
        rect = QRectF(0, 0, 100, 50)
        assert hit_test_handle(rect, QPointF(101, 49), 4) == Handle.SE
        assert hit_test_handle(rect, QPointF(50, -2), 4) == Handle.N
        assert hit_test_handle(rect, QPointF(50, 25), 4) is None

    @pytest.mark.parametrize(
        "handle,point,expected",
        [
            (Handle.NW, QPointF(-10, -10), (-10, -10, 110, 60)),
            (Handle.E, QPointF(130, 999), (0, 0, 130, 50)),
            (Handle.S, QPointF(999, -100), (0, 0, 100, 5)),
            (Handle.W, QPointF(200, 0), (95, 0, 5, 50)),
        ],
    )
    def test_resize_rect(self, handle, point, expected):
        rect = resize_rect(QRectF(0, 0, 100, 50), handle, point, 5)
        assert (rect.x(), rect.y(), rect.width(), rect.height()) == pytest.approx(expected)


class TestTools:
    """Tool switching rules."""

    def test_invalid_tool_rejected(self, canvas, toast):
        assert not canvas.set_tool(ToolType.MASK)
        assert canvas.current_tool == ToolType.BBOX
        toast.assert_called_once()
        assert toast.call_args[0][1] == "warning"

    def test_shortcut_switches_tool(self, canvas):
        assert canvas.handle_shortcut("v")
        assert canvas.current_tool == ToolType.SELECT
        assert canvas.handle_shortcut("b")
        assert canvas.current_tool == ToolType.BBOX

    def test_pan_tool_does_not_draw(self, canvas, drag):
        canvas.set_tool(ToolType.PAN)
        pan_before = canvas.view.pan
        drag(canvas, (10, 10), (100, 100))

        assert canvas.annotations == []
        assert canvas.view.pan != pan_before

    def test_wire_round_trip(self, canvas, drag):
        drag(canvas, (10, 10), (60, 70))
        records = canvas.get_annotations()

        other = BoxCanvas()
        other.set_annotations(records)

        assert other.get_annotations() == records
        assert records[0]["type"] == "bbox"
