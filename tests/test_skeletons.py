"""
Tests for skeleton presets and validation.
"""

import pytest

from labelcanvas.editor.classes import AnnotationClass
from labelcanvas.editor.skeletons import (
    PRESETS,
    Skeleton,
    SkeletonValidationError,
    create_from_preset,
    default_skeleton,
    presets_by_category,
    validate_skeleton,
)


class TestValidation:
    """Skeleton validation rules."""

    def test_out_of_range_connection(self):
        skeleton = Skeleton(["a", "b", "c", "d", "e"], [(0, 99)])
        with pytest.raises(SkeletonValidationError, match=r"\[0, 99\]"):
            validate_skeleton(skeleton)

    def test_negative_index(self):
        with pytest.raises(SkeletonValidationError):
            validate_skeleton(Skeleton(["a", "b"], [(-1, 0)]))

    def test_empty_keypoints(self):
        with pytest.raises(SkeletonValidationError):
            validate_skeleton(Skeleton([], []))

    def test_not_a_pair(self):
        with pytest.raises(SkeletonValidationError):
            validate_skeleton(Skeleton(["a", "b", "c"], [(0, 1, 2)]))

    def test_is_value_error(self):
        assert issubclass(SkeletonValidationError, ValueError)

    def test_from_dict(self):
        skeleton = Skeleton.from_dict({"keypoints": ["a", "b"], "connections": [[0, 1]]})
        assert skeleton.connections == [(0, 1)]
        assert skeleton.preset == "custom"

    def test_from_dict_rejects_bad_structure(self):
        with pytest.raises(SkeletonValidationError):
            Skeleton.from_dict(["a", "b"])


class TestClassSkeletons:
    """Attaching skeletons to classes."""

    def test_rejected_skeleton_keeps_previous(self):
        previous = Skeleton(["a", "b"], [(0, 1)])
        cls = AnnotationClass(id=0, name="hand", skeleton=previous)

        with pytest.raises(SkeletonValidationError):
            cls.attach_skeleton(Skeleton(["a", "b", "c", "d", "e"], [(0, 99)]))

        assert cls.skeleton is previous

    def test_attach_copies(self):
        skeleton = create_from_preset("mediapipe-hand-21")
        cls = AnnotationClass(id=0, name="hand")
        cls.attach_skeleton(skeleton)
        skeleton.keypoints.append("extra")

        assert len(cls.skeleton.keypoints) == 21

    def test_invalid_skeleton_in_constructor(self):
        with pytest.raises(SkeletonValidationError):
            AnnotationClass(id=0, name="x", skeleton=Skeleton(["a"], [(0, 1)]))


class TestPresets:
    """Built-in skeleton presets."""

    @pytest.mark.parametrize("preset_id", [p for p in PRESETS if p != "custom"])
    def test_presets_are_valid(self, preset_id):
        validate_skeleton(create_from_preset(preset_id))

    @pytest.mark.parametrize(
        "preset_id,count",
        [
            ("coco-17", 17),
            ("mediapipe-pose-33", 33),
            ("openpose-body-25", 25),
            ("mediapipe-hand-21", 21),
            ("facial-landmarks-68", 68),
        ],
    )
    def test_keypoint_counts(self, preset_id, count):
        assert len(create_from_preset(preset_id).keypoints) == count

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            create_from_preset("unicorn")

    def test_presets_are_independent(self):
        first = create_from_preset("coco-17")
        first.keypoints[0] = "changed"
        assert create_from_preset("coco-17").keypoints[0] == "nose"

    def test_categories(self):
        assert "mediapipe-hand-21" in presets_by_category("hand")
        assert presets_by_category("vehicle") == []

    def test_default_falls_back_to_coco(self):
        assert default_skeleton("unicorn").preset == "coco-17"

    def test_default_rejects_empty_preset(self):
        """The jointless custom preset cannot serve as a default skeleton."""
        skeleton = default_skeleton("custom")

        assert skeleton.preset == "coco-17"
        assert len(skeleton.keypoints) == 17
