"""
YOLO text export for LabelCanvas.

Produces one label file per image: one line per annotation with the class
id followed by geometry normalized to [0, 1] by the image size, formatted
to six decimal places.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from labelcanvas.editor.annotations import Annotation, AnnotationKind, KeypointsData
from labelcanvas.editor.classes import AnnotationClass
from labelcanvas.services.logging_service import get_logger

logger = get_logger(__name__)

AnnotationLike = Union[Annotation, Dict[str, Any]]


def _as_annotations(annotations: Iterable[AnnotationLike]) -> List[Annotation]:
    return [a if isinstance(a, Annotation) else Annotation.from_dict(a) for a in annotations]


def _check_size(image_width: float, image_height: float) -> None:
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Invalid image size: {image_width}x{image_height}")


def _class_index(class_id: Any, class_ids: Optional[Sequence[Any]]) -> Any:
    """YOLO class index: position in class_ids when given, else the id itself."""
    if class_ids is None:
        return class_id
    return class_ids.index(class_id)


def yolo_detection_labels(
    annotations: Iterable[AnnotationLike],
    image_width: float,
    image_height: float,
    class_ids: Optional[Sequence[Any]] = None,
) -> str:
    """
    Export bbox annotations as YOLO detection lines.

    Other annotation kinds are skipped.

    Raises:
        ValueError: If the image size is not positive.
    """
    _check_size(image_width, image_height)

    lines = []
    for annotation in _as_annotations(annotations):
        if annotation.kind != AnnotationKind.BBOX:
            continue
        box = annotation.data
        x_center = (box.x + box.width / 2) / image_width
        y_center = (box.y + box.height / 2) / image_height
        width = box.width / image_width
        height = box.height / image_height
        cls = _class_index(annotation.class_id, class_ids)
        lines.append(f"{cls} {x_center:.6f} {y_center:.6f} {width:.6f} {height:.6f}")

    return "\n".join(lines)


def yolo_pose_labels(
    annotations: Iterable[AnnotationLike],
    image_width: float,
    image_height: float,
    class_ids: Optional[Sequence[Any]] = None,
) -> str:
    """
    Export keypoint annotations as YOLO pose lines.

    Each line is the bbox of the labeled points followed by one
    "x y visibility" triplet per joint; unlabeled joints are "0 0 0".
    Instances with no labeled point are skipped.

    Raises:
        ValueError: If the image size is not positive.
    """
    _check_size(image_width, image_height)

    lines = []
    for annotation in _as_annotations(annotations):
        if annotation.kind != AnnotationKind.KEYPOINTS:
            continue
        data: KeypointsData = annotation.data
        bbox = data.labeled_bounds()
        if bbox is None:
            continue

        x_center = (bbox.x + bbox.width / 2) / image_width
        y_center = (bbox.y + bbox.height / 2) / image_height
        fields = [
            str(_class_index(annotation.class_id, class_ids)),
            f"{x_center:.6f}",
            f"{y_center:.6f}",
            f"{bbox.width / image_width:.6f}",
            f"{bbox.height / image_height:.6f}",
        ]
        for point in data.points:
            if point.is_labeled:
                fields.append(
                    f"{point.x / image_width:.6f} {point.y / image_height:.6f} {int(point.visibility)}"
                )
            else:
                fields.append("0 0 0")
        lines.append(" ".join(fields))

    return "\n".join(lines)


def classes_txt(classes: Iterable[AnnotationClass]) -> str:
    """classes.txt content: one class name per line, in class order."""
    return "\n".join(cls.name for cls in classes)


def write_label_file(directory: Union[str, Path], image_name: str, content: str) -> Path:
    """
    Write the label file for an image.

    The file is named after the image with a .txt suffix and is written
    even when there are no labels.

    Returns:
        Path of the written file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f"{Path(image_name).stem}.txt"
    text = content if not content or content.endswith("\n") else content + "\n"
    path.write_text(text, encoding="utf-8")

    logger.debug(f"Wrote label file: {path}")
    return path
