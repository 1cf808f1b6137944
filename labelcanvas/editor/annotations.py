"""
Annotation models for LabelCanvas.

Every annotation is an Annotation record carrying a kind tag, a class id
and exactly one payload dataclass matching that kind:

- BoxData: axis-aligned box (bbox)
- OrientedBoxData: rotated box around a center (obb)
- MaskData: cropped PNG raster plus its offset (mask)
- KeypointsData: skeleton joints with visibility and derived bbox (keypoints)
- LandmarkData: free named point (landmark)
- PointData / RangeData: time-series labels in data coordinates (point, range)

Records serialize to the wire format {"id", "type", "class", "data"}.
"""

import base64
import copy
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from PySide6.QtCore import QByteArray, QBuffer, QIODevice, QPointF, QRectF
from PySide6.QtGui import QImage

PNG_DATA_URL_PREFIX = "data:image/png;base64,"


class AnnotationKind(Enum):
    """Tag of the annotation union; values are the wire names."""
    BBOX = "bbox"
    OBB = "obb"
    MASK = "mask"
    KEYPOINTS = "keypoints"
    LANDMARK = "landmark"
    POINT = "point"
    RANGE = "range"


class Visibility(IntEnum):
    """Keypoint visibility flag (COCO convention)."""
    UNLABELED = 0
    OCCLUDED = 1
    VISIBLE = 2

    def cycled(self) -> "Visibility":
        """Next state in the toggle cycle visible -> occluded -> unlabeled -> visible."""
        return {
            Visibility.VISIBLE: Visibility.OCCLUDED,
            Visibility.OCCLUDED: Visibility.UNLABELED,
            Visibility.UNLABELED: Visibility.VISIBLE,
        }[self]


# ─── Payloads ─────────────────────────────────────────────────────────────────

@dataclass
class BoxData:
    """Axis-aligned box in image space. Width and height are always positive."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "BoxData":
        """Build a normalized box from two opposite corners in any order."""
        return cls(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))

    def to_rect(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)

    def contains(self, point: QPointF) -> bool:
        return (self.x <= point.x() <= self.x + self.width
                and self.y <= point.y() <= self.y + self.height)


@dataclass
class OrientedBoxData:
    """
    Rotated box.

    (cx, cy) is the center in unrotated image space, width and height are
    measured along the box's own axes and angle is in clockwise degrees.
    """
    cx: float
    cy: float
    width: float
    height: float
    angle: float = 0.0

    @property
    def center(self) -> QPointF:
        return QPointF(self.cx, self.cy)

    def local_rect(self) -> QRectF:
        """The box in its own frame, centered on the origin."""
        return QRectF(-self.width / 2, -self.height / 2, self.width, self.height)


@dataclass
class MaskData:
    """
    Raster mask cropped to the padded tight bounds of its painted pixels.

    image_data is a PNG data URL; (x, y) is where the crop sits in the image.
    """
    image_data: str
    x: int
    y: int
    width: int
    height: int

    def to_rect(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)

    def contains(self, point: QPointF) -> bool:
        return (self.x <= point.x() <= self.x + self.width
                and self.y <= point.y() <= self.y + self.height)

    @classmethod
    def from_image(cls, image: QImage, x: int, y: int) -> "MaskData":
        """Encode a cropped raster as PNG."""
        return cls(encode_png_data_url(image), x, y, image.width(), image.height())

    def to_image(self) -> QImage:
        """
        Decode the stored raster.

        Raises:
            ValueError: If the blob is not a decodable PNG data URL.
        """
        return decode_png_data_url(self.image_data)


@dataclass
class Keypoint:
    """One skeleton joint slot. Unplaced joints have x = y = None."""
    x: Optional[float] = None
    y: Optional[float] = None
    visibility: Visibility = Visibility.UNLABELED

    @property
    def is_placed(self) -> bool:
        return self.x is not None and self.y is not None

    @property
    def is_labeled(self) -> bool:
        return self.is_placed and self.visibility > Visibility.UNLABELED


@dataclass
class KeypointsData:
    """Keypoints indexed by skeleton joint, plus their derived bounding box."""
    points: List[Keypoint] = field(default_factory=list)
    bbox: Optional[BoxData] = None

    @classmethod
    def empty(cls, joint_count: int) -> "KeypointsData":
        return cls(points=[Keypoint() for _ in range(joint_count)], bbox=None)

    def labeled_bounds(self) -> Optional[BoxData]:
        """Tight rectangle over labeled points, without storing it."""
        labeled = [p for p in self.points if p.is_labeled]
        if not labeled:
            return None

        xs = [p.x for p in labeled]
        ys = [p.y for p in labeled]
        return BoxData(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))

    def update_bbox(self) -> Optional[BoxData]:
        """Recompute bbox as the tight rectangle over labeled points."""
        self.bbox = self.labeled_bounds()
        return self.bbox

    @property
    def placed_count(self) -> int:
        return sum(1 for p in self.points if p.is_labeled)


@dataclass
class LandmarkData:
    """Independent named point."""
    x: float
    y: float
    name: str = ""


@dataclass
class PointData:
    """Time-series point in data coordinates, snapped to a sample index."""
    x: float
    y: float
    index: int
    target_value: Optional[float] = None


@dataclass
class RangeData:
    """Time-series interval in data coordinates with start <= end."""
    start: float
    end: float
    start_index: int
    end_index: int
    range_type: str = "generic"

    def __post_init__(self) -> None:
        if self.start > self.end:
            self.start, self.end = self.end, self.start
            self.start_index, self.end_index = self.end_index, self.start_index


AnnotationData = Union[
    BoxData, OrientedBoxData, MaskData, KeypointsData, LandmarkData, PointData, RangeData
]

# Payload attributes whose wire key differs from the attribute name
WIRE_KEYS = {
    "image_data": "imageData",
    "target_value": "targetValue",
    "start_index": "startIndex",
    "end_index": "endIndex",
    "range_type": "rangeType",
}
ATTRIBUTE_KEYS = {wire: attr for attr, wire in WIRE_KEYS.items()}

PAYLOAD_TYPES = {
    AnnotationKind.BBOX: BoxData,
    AnnotationKind.OBB: OrientedBoxData,
    AnnotationKind.MASK: MaskData,
    AnnotationKind.KEYPOINTS: KeypointsData,
    AnnotationKind.LANDMARK: LandmarkData,
    AnnotationKind.POINT: PointData,
    AnnotationKind.RANGE: RangeData,
}


# ─── Annotation Record ────────────────────────────────────────────────────────

class Annotation:
    """
    A single label on an image or series.

    The payload type is fixed by the kind; a mismatch is a programming
    error and raises TypeError.
    """

    def __init__(
        self,
        kind: AnnotationKind,
        class_id: Any,
        data: AnnotationData,
        annotation_id: Optional[str] = None,
    ) -> None:
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(data, expected):
            raise TypeError(
                f"{kind.value} annotation requires {expected.__name__}, "
                f"got {type(data).__name__}"
            )
        self.id: str = annotation_id or str(uuid4())
        self.kind = kind
        self.class_id = class_id
        self._data = data

    @property
    def data(self) -> AnnotationData:
        return self._data

    def __repr__(self) -> str:
        return f"Annotation({self.kind.value}, class={self.class_id!r}, id={self.id[:8]})"

    def clone(self) -> "Annotation":
        """Deep copy keeping the same id (used as an edit snapshot)."""
        return Annotation(self.kind, self.class_id, copy.deepcopy(self._data), self.id)

    # ─── Wire Format ──────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        data = {WIRE_KEYS.get(k, k): v for k, v in asdict(self._data).items()}
        if self.kind == AnnotationKind.KEYPOINTS:
            for point in data["points"]:
                point["visibility"] = int(point["visibility"])
        return {
            "id": self.id,
            "type": self.kind.value,
            "class": self.class_id,
            "data": data,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Annotation":
        """
        Rebuild an annotation from its wire record.

        Raises:
            ValueError: If the type tag is unknown or the payload is malformed.
        """
        try:
            kind = AnnotationKind(record["type"])
        except (KeyError, ValueError) as e:
            raise ValueError(f"Unknown annotation type: {record.get('type')!r}") from e

        raw = {ATTRIBUTE_KEYS.get(k, k): v for k, v in (record.get("data") or {}).items()}
        try:
            if kind == AnnotationKind.KEYPOINTS:
                points = [
                    Keypoint(p.get("x"), p.get("y"), Visibility(int(p.get("visibility", 0))))
                    for p in raw.get("points", [])
                ]
                bbox = BoxData(**raw["bbox"]) if raw.get("bbox") else None
                data = KeypointsData(points, bbox)
            else:
                data = PAYLOAD_TYPES[kind](**raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Malformed {kind.value} payload: {e}") from e

        return cls(kind, record.get("class"), data, record.get("id"))


# ─── Raster Encoding ──────────────────────────────────────────────────────────

def encode_png_data_url(image: QImage) -> str:
    """Encode a QImage as a PNG data URL."""
    byte_array = QByteArray()
    buffer = QBuffer(byte_array)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return PNG_DATA_URL_PREFIX + base64.b64encode(bytes(byte_array.data())).decode("ascii")


def decode_png_data_url(data_url: str) -> QImage:
    """
    Decode a PNG data URL into a QImage.

    Raises:
        ValueError: If the string is not a data URL or the PNG is corrupt.
    """
    if not data_url.startswith(PNG_DATA_URL_PREFIX):
        raise ValueError("Mask data is not a PNG data URL")
    try:
        raw = base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):], validate=True)
    except ValueError as e:
        raise ValueError(f"Mask data is not valid base64: {e}") from e

    image = QImage()
    if not image.loadFromData(raw, "PNG"):
        raise ValueError("Mask raster could not be decoded")
    return image
