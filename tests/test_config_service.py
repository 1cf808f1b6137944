"""
Tests for ConfigService.
"""

import json

import pytest

from labelcanvas.editor.canvas_keypoints import KeypointCanvas
from labelcanvas.editor.canvas_mask import MaskCanvas
from labelcanvas.services.config_service import DEFAULT_CONFIG, ConfigService


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "labelcanvas" / "config.json"


class TestConfigService:
    """Test suite for ConfigService."""

    def test_missing_file_uses_defaults(self, config_path):
        """A missing file is created with the defaults."""
        service = ConfigService(config_path)

        assert service.canvas["min_zoom"] == DEFAULT_CONFIG["canvas"]["min_zoom"]
        assert service.mask["brush_size"] == 20
        assert config_path.exists()
        assert json.loads(config_path.read_text())["default_skeleton"] == "coco-17"

    def test_partial_file_is_merged(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"canvas": {"max_zoom": 8.0}}))

        service = ConfigService(config_path)

        assert service.canvas["max_zoom"] == 8.0
        assert service.canvas["min_zoom"] == 0.1
        assert service.mask["opacity"] == 0.5

    def test_corrupt_file_recreated(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json")

        service = ConfigService(config_path)

        assert service.canvas["max_zoom"] == 5.0
        assert json.loads(config_path.read_text()) == DEFAULT_CONFIG

    def test_non_object_file_recreated(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("[1, 2, 3]")

        assert ConfigService(config_path).canvas["show_labels"] is True

    def test_set_and_save(self, config_path):
        service = ConfigService(config_path)
        service.set("default_skeleton", "mediapipe-hand-21")
        service.save()

        assert ConfigService(config_path).default_skeleton == "mediapipe-hand-21"

    def test_get_default(self, config_path):
        assert ConfigService(config_path).get("missing", 42) == 42


class TestConfiguredCanvases:
    """Canvases read their settings from the service."""

    def test_zoom_limits(self, make_canvas, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"canvas": {"max_zoom": 2.0}}))
        canvas = make_canvas(MaskCanvas, config=ConfigService(config_path))

        canvas.set_zoom(10)
        assert canvas.zoom == 2.0

    def test_brush_settings(self, make_canvas, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"mask": {"brush_size": 40, "max_brush_size": 60}}))
        canvas = make_canvas(MaskCanvas, config=ConfigService(config_path))

        assert canvas.brush_size == 40
        canvas.set_brush_size(80)
        assert canvas.brush_size == 60

    def test_default_skeleton(self, make_canvas, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"default_skeleton": "mediapipe-hand-21"}))
        canvas = make_canvas(KeypointCanvas, config=ConfigService(config_path))

        assert len(canvas.skeleton_for(0).keypoints) == 21

    def test_custom_default_skeleton_falls_back(self, make_canvas, click, config_path):
        service = ConfigService(config_path)
        service.set("default_skeleton", "custom")
        canvas = make_canvas(KeypointCanvas, config=service)

        click(canvas, 10, 10)

        points = canvas.annotations[0].data.points
        assert len(points) == 17
        assert points[0].is_placed
