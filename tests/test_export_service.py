"""
Tests for YOLO label export.
"""

import pytest

from labelcanvas.editor.annotations import (
    Annotation,
    AnnotationKind,
    BoxData,
    KeypointsData,
    LandmarkData,
    Visibility,
)
from labelcanvas.services.export_service import (
    classes_txt,
    write_label_file,
    yolo_detection_labels,
    yolo_pose_labels,
)


def box(x, y, w, h, class_id=0):
    return Annotation(AnnotationKind.BBOX, class_id, BoxData(x, y, w, h))


class TestDetectionExport:
    """YOLO detection lines."""

    def test_normalized_line(self):
        labels = yolo_detection_labels([box(0, 0, 50, 50)], 100, 100)
        assert labels == "0 0.250000 0.250000 0.500000 0.500000"

    def test_one_line_per_box(self):
        labels = yolo_detection_labels([box(0, 0, 50, 50), box(100, 50, 100, 100, 1)], 400, 200)
        assert labels.split("\n") == [
            "0 0.062500 0.125000 0.125000 0.250000",
            "1 0.375000 0.500000 0.250000 0.500000",
        ]

    def test_class_ids_mapped_to_positions(self):
        labels = yolo_detection_labels([box(0, 0, 50, 50, "car")], 100, 100, ["person", "car"])
        assert labels.startswith("1 ")

    def test_accepts_wire_records(self):
        labels = yolo_detection_labels([box(0, 0, 50, 50).to_dict()], 100, 100)
        assert labels == "0 0.250000 0.250000 0.500000 0.500000"

    def test_other_kinds_skipped(self):
        landmark = Annotation(AnnotationKind.LANDMARK, 0, LandmarkData(1, 1, "a"))
        assert yolo_detection_labels([landmark], 100, 100) == ""

    @pytest.mark.parametrize("size", [(0, 100), (100, -1)])
    def test_invalid_image_size(self, size):
        with pytest.raises(ValueError):
            yolo_detection_labels([box(0, 0, 1, 1)], *size)


class TestPoseExport:
    """YOLO pose lines."""

    def test_pose_line(self):
        data = KeypointsData.empty(3)
        data.points[0].x, data.points[0].y = 20, 20
        data.points[0].visibility = Visibility.VISIBLE
        data.points[1].x, data.points[1].y = 60, 40
        data.points[1].visibility = Visibility.OCCLUDED
        instance = Annotation(AnnotationKind.KEYPOINTS, 0, data)

        labels = yolo_pose_labels([instance], 100, 100)

        assert labels == (
            "0 0.400000 0.300000 0.400000 0.200000 "
            "0.200000 0.200000 2 0.600000 0.400000 1 0 0 0"
        )

    def test_export_leaves_instances_untouched(self):
        data = KeypointsData.empty(2)
        data.points[0].x, data.points[0].y = 20, 20
        data.points[0].visibility = Visibility.VISIBLE
        instance = Annotation(AnnotationKind.KEYPOINTS, 0, data)

        yolo_pose_labels([instance], 100, 100)

        assert instance.data.bbox is None

    def test_empty_instance_skipped(self):
        instance = Annotation(AnnotationKind.KEYPOINTS, 0, KeypointsData.empty(17))
        assert yolo_pose_labels([instance], 100, 100) == ""


class TestLabelFiles:
    """Label file writing."""

    def test_write_label_file(self, tmp_path):
        path = write_label_file(tmp_path / "labels", "img_001.jpg", "0 0.5 0.5 0.1 0.1")

        assert path.name == "img_001.txt"
        assert path.read_text() == "0 0.5 0.5 0.1 0.1\n"

    def test_empty_file_still_written(self, tmp_path):
        path = write_label_file(tmp_path, "empty.png", "")
        assert path.exists()
        assert path.read_text() == ""

    def test_classes_txt(self, classes):
        assert classes_txt(classes) == "person\ncar"
