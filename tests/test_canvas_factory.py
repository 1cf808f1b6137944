"""
Tests for the editor factory.
"""

import pytest

from labelcanvas.editor.canvas_bbox import BoxCanvas
from labelcanvas.editor.canvas_factory import (
    create_canvas,
    default_tool_for,
    supported_project_types,
)
from labelcanvas.editor.canvas_keypoints import KeypointCanvas
from labelcanvas.editor.canvas_mask import MaskCanvas
from labelcanvas.editor.canvas_obb import OrientedBoxCanvas
from labelcanvas.editor.tools import ToolType


class TestCreateCanvas:
    """Canvas selection by project type."""

    @pytest.mark.parametrize(
        "project_type,expected",
        [
            ("detection", BoxCanvas),
            ("obb", OrientedBoxCanvas),
            ("segmentation", MaskCanvas),
            ("instanceSeg", MaskCanvas),
            ("keypoints", KeypointCanvas),
        ],
    )
    def test_canvas_class(self, qapp, project_type, expected):
        canvas = create_canvas(project_type)
        assert type(canvas) is expected
        assert canvas.project_type == project_type

    def test_default_tool_matches_canvas(self, qapp):
        for project_type in ("detection", "obb", "segmentation", "keypoints", "landmarks"):
            canvas = create_canvas(project_type)
            assert canvas.current_tool == default_tool_for(project_type)

    def test_classification_has_no_canvas(self, qapp):
        assert create_canvas("classification") is None
        assert create_canvas("multiLabel") is None
        assert default_tool_for("classification") is None

    def test_unknown_project_type(self, qapp):
        with pytest.raises(ValueError):
            create_canvas("video")
        with pytest.raises(ValueError):
            default_tool_for("video")

    def test_callbacks_forwarded(self, qapp, toast):
        canvas = create_canvas("detection", show_toast=toast)
        canvas.set_tool(ToolType.MASK)
        toast.assert_called_once()

    def test_supported_types(self):
        types = supported_project_types()
        assert "landmarks" in types
        assert "multiLabel" in types
