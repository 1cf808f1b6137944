"""
Annotation classes as seen by the canvases.

Classes are owned by the project layer; canvases only read them. A class
may carry its own skeleton for keypoint projects.
"""

from dataclasses import dataclass
from typing import Any, Optional

from PySide6.QtGui import QColor

from labelcanvas.editor.skeletons import Skeleton, validate_skeleton


@dataclass
class AnnotationClass:
    """A label class: id, display name, color and optional skeleton."""
    id: Any
    name: str
    color: str = "#ff0000"
    skeleton: Optional[Skeleton] = None

    def __post_init__(self) -> None:
        if self.skeleton is not None:
            validate_skeleton(self.skeleton)

    @property
    def qcolor(self) -> QColor:
        return QColor(self.color)

    def attach_skeleton(self, skeleton: Skeleton) -> None:
        """
        Validate and attach a skeleton.

        Raises:
            SkeletonValidationError: If the skeleton is malformed. The
                previous skeleton is kept.
        """
        validate_skeleton(skeleton)
        self.skeleton = skeleton.clone()
