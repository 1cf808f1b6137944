"""
Editor factory: picks the canvas class for a project type.
"""

from typing import Dict, List, Optional, Type

from labelcanvas.editor.canvas_base import AnnotationCanvas
from labelcanvas.editor.canvas_bbox import BoxCanvas
from labelcanvas.editor.canvas_keypoints import KeypointCanvas
from labelcanvas.editor.canvas_landmarks import LandmarkCanvas
from labelcanvas.editor.canvas_mask import MaskCanvas
from labelcanvas.editor.canvas_obb import OrientedBoxCanvas
from labelcanvas.editor.tools import ToolType
from labelcanvas.services.logging_service import get_logger

logger = get_logger(__name__)

# Project types with an image canvas
CANVAS_TYPES: Dict[str, Type[AnnotationCanvas]] = {
    "detection": BoxCanvas,
    "obb": OrientedBoxCanvas,
    "segmentation": MaskCanvas,
    "instanceSeg": MaskCanvas,
    "keypoints": KeypointCanvas,
    "landmarks": LandmarkCanvas,
}

# Project types labeled without a canvas (whole-image labels)
CANVASLESS_TYPES = ("classification", "multiLabel")


def create_canvas(project_type: str, parent=None, **kwargs) -> Optional[AnnotationCanvas]:
    """
    Create the editor for a project type.

    Args:
        project_type: Project type name, e.g. "detection".
        parent: Parent widget.
        **kwargs: Forwarded to the canvas (callbacks, config).

    Returns:
        The canvas, or None for classification-style projects.

    Raises:
        ValueError: If the project type is not supported.
    """
    if project_type in CANVASLESS_TYPES:
        logger.debug(f"Project type '{project_type}' has no canvas")
        return None

    canvas_class = CANVAS_TYPES.get(project_type)
    if canvas_class is None:
        raise ValueError(f"Unsupported project type: {project_type}")

    logger.info(f"Creating {canvas_class.__name__} for '{project_type}' project")
    return canvas_class(parent, project_type=project_type, **kwargs)


def supported_project_types() -> List[str]:
    return list(CANVAS_TYPES) + list(CANVASLESS_TYPES)


def default_tool_for(project_type: str) -> Optional[ToolType]:
    """
    The drawing tool a project type starts with.

    Raises:
        ValueError: If the project type is not supported.
    """
    if project_type in CANVASLESS_TYPES:
        return None
    canvas_class = CANVAS_TYPES.get(project_type)
    if canvas_class is None:
        raise ValueError(f"Unsupported project type: {project_type}")
    return {
        BoxCanvas: ToolType.BBOX,
        OrientedBoxCanvas: ToolType.OBB,
        MaskCanvas: ToolType.MASK,
        KeypointCanvas: ToolType.KEYPOINT,
        LandmarkCanvas: ToolType.LANDMARK,
    }[canvas_class]
