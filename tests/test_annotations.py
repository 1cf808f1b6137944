"""
Tests for annotation records and their wire format.
"""

import pytest
from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QImage

from labelcanvas.editor.annotations import (
    Annotation,
    AnnotationKind,
    BoxData,
    KeypointsData,
    MaskData,
    OrientedBoxData,
    PointData,
    RangeData,
    Visibility,
    decode_png_data_url,
)


class TestAnnotation:
    """Test suite for the Annotation record."""

    def test_payload_must_match_kind(self):
        with pytest.raises(TypeError):
            Annotation(AnnotationKind.OBB, 0, BoxData(0, 0, 1, 1))

    def test_ids_are_unique(self):
        first = Annotation(AnnotationKind.BBOX, 0, BoxData(0, 0, 1, 1))
        second = Annotation(AnnotationKind.BBOX, 0, BoxData(0, 0, 1, 1))
        assert first.id != second.id

    def test_wire_format(self):
        annotation = Annotation(
            AnnotationKind.OBB, "car", OrientedBoxData(10, 20, 30, 40, 45), "abc"
        )
        assert annotation.to_dict() == {
            "id": "abc",
            "type": "obb",
            "class": "car",
            "data": {"cx": 10, "cy": 20, "width": 30, "height": 40, "angle": 45},
        }

    def test_camel_case_wire_keys(self):
        mask = Annotation(AnnotationKind.MASK, 0, MaskData("data:image/png;base64,", 1, 2, 3, 4))
        span = Annotation(
            AnnotationKind.RANGE, 0, RangeData(1.0, 4.0, 1, 4, "segment")
        )
        point = Annotation(AnnotationKind.POINT, 0, PointData(2.0, 8.0, 2, 8.0))

        assert set(mask.to_dict()["data"]) == {"imageData", "x", "y", "width", "height"}
        assert span.to_dict()["data"] == {
            "start": 1.0, "end": 4.0, "startIndex": 1, "endIndex": 4, "rangeType": "segment",
        }
        assert point.to_dict()["data"]["targetValue"] == 8.0

    def test_camel_case_records_load(self):
        record = {
            "id": "r1",
            "type": "range",
            "class": 0,
            "data": {"start": 5, "end": 2, "startIndex": 5, "endIndex": 2, "rangeType": "gap"},
        }

        annotation = Annotation.from_dict(record)

        assert (annotation.data.start_index, annotation.data.end_index) == (2, 5)
        assert annotation.data.range_type == "gap"
        assert Annotation.from_dict(annotation.to_dict()).data == annotation.data

    def test_from_dict_unknown_type(self):
        with pytest.raises(ValueError):
            Annotation.from_dict({"id": "x", "type": "polygon", "class": 0, "data": {}})

    def test_from_dict_malformed_payload(self):
        with pytest.raises(ValueError):
            Annotation.from_dict({"id": "x", "type": "bbox", "class": 0, "data": {"x": 1}})

    def test_clone_is_independent(self):
        annotation = Annotation(AnnotationKind.BBOX, 0, BoxData(0, 0, 10, 10))
        snapshot = annotation.clone()
        annotation.data.x = 99

        assert snapshot.id == annotation.id
        assert snapshot.data.x == 0


class TestPayloads:
    """Payload invariants."""

    def test_box_from_corners(self):
        box = BoxData.from_corners(50, 40, 10, 20)
        assert (box.x, box.y, box.width, box.height) == (10, 20, 40, 20)

    def test_range_orders_endpoints(self):
        data = RangeData(start=7.5, end=2.0, start_index=7, end_index=2)
        assert (data.start, data.end) == (2.0, 7.5)
        assert (data.start_index, data.end_index) == (2, 7)

    def test_visibility_cycle(self):
        assert Visibility.VISIBLE.cycled() == Visibility.OCCLUDED
        assert Visibility.OCCLUDED.cycled() == Visibility.UNLABELED
        assert Visibility.UNLABELED.cycled() == Visibility.VISIBLE

    def test_keypoint_bbox_ignores_unlabeled(self):
        data = KeypointsData.empty(3)
        data.points[0].x, data.points[0].y = 5, 5
        data.points[0].visibility = Visibility.VISIBLE
        data.points[2].x, data.points[2].y = 500, 500

        bbox = data.update_bbox()

        assert (bbox.x, bbox.y, bbox.width, bbox.height) == (5, 5, 0, 0)
        assert data.placed_count == 1

    def test_keypoint_bbox_empty(self):
        assert KeypointsData.empty(4).update_bbox() is None


class TestMaskRaster:
    """PNG data URL encoding of mask rasters."""

    def test_round_trip_keeps_alpha(self, qapp):
        image = QImage(8, 6, QImage.Format.Format_ARGB32)
        image.fill(Qt.GlobalColor.transparent)
        image.setPixelColor(3, 2, QColor(16, 185, 129, 255))

        data = MaskData.from_image(image, 40, 50)
        decoded = data.to_image()

        assert (data.x, data.y, data.width, data.height) == (40, 50, 8, 6)
        assert decoded.pixelColor(3, 2).alpha() == 255
        assert decoded.pixelColor(0, 0).alpha() == 0

    @pytest.mark.parametrize(
        "blob",
        [
            "not a data url",
            "data:image/png;base64,@@@",
            "data:image/png;base64,AAAA",
        ],
    )
    def test_bad_blobs_raise(self, qapp, blob):
        with pytest.raises(ValueError):
            decode_png_data_url(blob)

    def test_mask_rect(self):
        data = MaskData("", 10, 10, 20, 20)
        assert data.to_rect().width() == 20
