"""
Tests for the demo entry point helpers.
"""

import pytest

from labelcanvas.app import build_classes, parse_args


class TestCommandLine:
    """Argument parsing and class building."""

    def test_build_classes(self):
        classes = build_classes("person, ,car")

        assert [c.name for c in classes] == ["person", "car"]
        assert [c.id for c in classes] == [0, 1]
        assert classes[0].color != classes[1].color

    def test_defaults(self):
        args = parse_args(["photo.jpg"])
        assert args.project_type == "detection"
        assert args.classes == "object"
        assert not args.debug

    def test_unknown_project_type(self):
        with pytest.raises(SystemExit):
            parse_args(["photo.jpg", "--project-type", "video"])
