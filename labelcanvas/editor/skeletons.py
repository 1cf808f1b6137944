"""
Skeleton definitions for keypoint annotation.

A skeleton is a list of joint names plus a connection graph between joint
indices. Skeletons attach to annotation classes, so two classes in one
project can use different skeletons (e.g. body pose and hand pose).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from labelcanvas.services.logging_service import get_logger

logger = get_logger(__name__)

Connection = Tuple[int, int]


class SkeletonValidationError(ValueError):
    """Raised when a skeleton definition is malformed."""


@dataclass
class Skeleton:
    """Named joints and the index pairs that connect them."""
    keypoints: List[str]
    connections: List[Connection] = field(default_factory=list)
    preset: str = "custom"

    def clone(self) -> "Skeleton":
        return Skeleton(
            keypoints=list(self.keypoints),
            connections=[(a, b) for a, b in self.connections],
            preset=self.preset,
        )

    def to_dict(self) -> Dict:
        return {
            "keypoints": list(self.keypoints),
            "connections": [[a, b] for a, b in self.connections],
            "preset": self.preset,
        }

    @classmethod
    def from_dict(cls, record: Dict) -> "Skeleton":
        """Build and validate a skeleton from its wire record."""
        if not isinstance(record, dict):
            raise SkeletonValidationError("Invalid skeleton structure")
        skeleton = cls(
            keypoints=list(record.get("keypoints") or []),
            connections=[tuple(c) for c in record.get("connections") or []],
            preset=record.get("preset", "custom"),
        )
        validate_skeleton(skeleton)
        return skeleton


def validate_skeleton(skeleton: Skeleton) -> None:
    """
    Check a skeleton before it is attached to a class.

    Raises:
        SkeletonValidationError: If there are no keypoints, a connection is
            not a pair, or a connection index is out of range.
    """
    if not isinstance(skeleton, Skeleton):
        raise SkeletonValidationError("Invalid skeleton structure")

    if not skeleton.keypoints:
        raise SkeletonValidationError("Keypoints list is required and must not be empty")

    count = len(skeleton.keypoints)
    for connection in skeleton.connections:
        if len(connection) != 2:
            raise SkeletonValidationError(f"Connection must be a pair: {list(connection)}")
        first, second = connection
        if not (0 <= first < count and 0 <= second < count):
            raise SkeletonValidationError(f"Invalid connection: [{first}, {second}]")


# ─── Presets ──────────────────────────────────────────────────────────────────

def _chain(start: int, length: int) -> List[Connection]:
    """Connections linking start, start+1, ... start+length."""
    return [(start + i, start + i + 1) for i in range(length)]


def _numbered(prefix: str, count: int) -> List[str]:
    return [f"{prefix}_{i}" for i in range(count)]


PRESETS: Dict[str, Dict] = {
    "coco-17": {
        "name": "COCO Human Pose (17 points)",
        "category": "human",
        "keypoints": [
            "nose", "left_eye", "right_eye", "left_ear", "right_ear",
            "left_shoulder", "right_shoulder", "left_elbow", "right_elbow",
            "left_wrist", "right_wrist", "left_hip", "right_hip",
            "left_knee", "right_knee", "left_ankle", "right_ankle",
        ],
        "connections": [
            (0, 1), (0, 2), (1, 3), (2, 4),
            (5, 6), (5, 7), (7, 9), (6, 8), (8, 10),
            (5, 11), (6, 12), (11, 12),
            (11, 13), (13, 15), (12, 14), (14, 16),
        ],
    },
    "mediapipe-pose-33": {
        "name": "MediaPipe Pose (33 points)",
        "category": "human",
        "keypoints": [
            "nose", "left_eye_inner", "left_eye", "left_eye_outer",
            "right_eye_inner", "right_eye", "right_eye_outer",
            "left_ear", "right_ear", "mouth_left", "mouth_right",
            "left_shoulder", "right_shoulder", "left_elbow", "right_elbow",
            "left_wrist", "right_wrist", "left_pinky", "right_pinky",
            "left_index", "right_index", "left_thumb", "right_thumb",
            "left_hip", "right_hip", "left_knee", "right_knee",
            "left_ankle", "right_ankle", "left_heel", "right_heel",
            "left_foot_index", "right_foot_index",
        ],
        "connections": [
            (0, 1), (1, 2), (2, 3), (0, 4), (4, 5), (5, 6),
            (2, 7), (5, 8), (0, 9), (0, 10),
            (11, 12),
            (11, 13), (13, 15), (15, 17), (15, 19), (15, 21),
            (12, 14), (14, 16), (16, 18), (16, 20), (16, 22),
            (11, 23), (12, 24), (23, 24),
            (23, 25), (25, 27), (27, 29), (27, 31),
            (24, 26), (26, 28), (28, 30), (28, 32),
        ],
    },
    "openpose-body-25": {
        "name": "OpenPose Body (25 points)",
        "category": "human",
        "keypoints": [
            "nose", "neck",
            "right_shoulder", "right_elbow", "right_wrist",
            "left_shoulder", "left_elbow", "left_wrist",
            "mid_hip", "right_hip", "right_knee", "right_ankle",
            "left_hip", "left_knee", "left_ankle",
            "right_eye", "left_eye", "right_ear", "left_ear",
            "left_big_toe", "left_small_toe", "left_heel",
            "right_big_toe", "right_small_toe", "right_heel",
        ],
        "connections": [
            (0, 1), (0, 15), (0, 16), (15, 17), (16, 18),
            (1, 2), (2, 3), (3, 4),
            (1, 5), (5, 6), (6, 7),
            (1, 8),
            (8, 9), (9, 10), (10, 11),
            (8, 12), (12, 13), (13, 14),
            (11, 22), (11, 23), (11, 24),
            (14, 19), (14, 20), (14, 21),
        ],
    },
    "mediapipe-hand-21": {
        "name": "MediaPipe Hand (21 points)",
        "category": "hand",
        "keypoints": [
            "wrist",
            "thumb_cmc", "thumb_mcp", "thumb_ip", "thumb_tip",
            "index_mcp", "index_pip", "index_dip", "index_tip",
            "middle_mcp", "middle_pip", "middle_dip", "middle_tip",
            "ring_mcp", "ring_pip", "ring_dip", "ring_tip",
            "pinky_mcp", "pinky_pip", "pinky_dip", "pinky_tip",
        ],
        "connections": [
            (0, 1), (0, 5), (0, 9), (0, 13), (0, 17),
            (1, 2), (2, 3), (3, 4),
            (5, 6), (6, 7), (7, 8),
            (9, 10), (10, 11), (11, 12),
            (13, 14), (14, 15), (15, 16),
            (17, 18), (18, 19), (19, 20),
            (5, 9), (9, 13), (13, 17),
        ],
    },
    "mediapipe-face-basic": {
        "name": "Face Basic (10 points)",
        "category": "face",
        "keypoints": [
            "left_eye", "right_eye", "nose_tip", "mouth_left", "mouth_right",
            "left_ear", "right_ear", "chin", "forehead_left", "forehead_right",
        ],
        "connections": [
            (0, 1), (0, 2), (1, 2), (2, 7), (3, 4),
            (0, 5), (1, 6), (0, 8), (1, 9),
        ],
    },
    "facial-landmarks-68": {
        "name": "Facial Landmarks 68",
        "category": "face",
        "keypoints": (
            _numbered("jaw", 17)
            + _numbered("left_eyebrow", 5)
            + _numbered("right_eyebrow", 5)
            + _numbered("nose_bridge", 4)
            + _numbered("nose_tip", 5)
            + _numbered("left_eye", 6)
            + _numbered("right_eye", 6)
            + _numbered("outer_mouth", 12)
            + _numbered("inner_mouth", 8)
        ),
        "connections": (
            _chain(0, 16)
            + _chain(17, 4)
            + _chain(22, 4)
            + _chain(27, 3)
            + _chain(31, 4) + [(31, 35)]
            + _chain(36, 5) + [(36, 41)]
            + _chain(42, 5) + [(42, 47)]
            + _chain(48, 11) + [(48, 59)]
            + _chain(60, 7) + [(60, 67)]
        ),
    },
    "animal-quadruped": {
        "name": "Animal Quadruped",
        "category": "animal",
        "keypoints": [
            "nose", "left_eye", "right_eye", "left_ear", "right_ear",
            "neck", "back", "tail_base", "tail_tip",
            "left_front_shoulder", "left_front_elbow", "left_front_paw",
            "right_front_shoulder", "right_front_elbow", "right_front_paw",
            "left_back_hip", "left_back_knee", "left_back_paw",
            "right_back_hip", "right_back_knee", "right_back_paw",
        ],
        "connections": [
            (0, 1), (0, 2), (1, 3), (2, 4),
            (5, 6), (6, 7), (7, 8),
            (5, 9), (9, 10), (10, 11),
            (5, 12), (12, 13), (13, 14),
            (7, 15), (15, 16), (16, 17),
            (7, 18), (18, 19), (19, 20),
        ],
    },
    "custom": {
        "name": "Custom Skeleton",
        "category": "custom",
        "keypoints": [],
        "connections": [],
    },
}

def create_from_preset(preset_id: str) -> Skeleton:
    """
    Build an independent Skeleton from a preset.

    Raises:
        KeyError: If the preset id is unknown.
    """
    if preset_id not in PRESETS:
        raise KeyError(f"Preset not found: {preset_id}")
    preset = PRESETS[preset_id]
    return Skeleton(
        keypoints=list(preset["keypoints"]),
        connections=[tuple(c) for c in preset["connections"]],
        preset=preset_id,
    )


def presets_by_category(category: str) -> List[str]:
    """Return preset ids belonging to a category."""
    return [pid for pid, preset in PRESETS.items() if preset["category"] == category]


def default_skeleton(preset_id: str = "coco-17") -> Skeleton:
    """
    Skeleton used for classes that do not define one.

    Unknown presets and presets without joints (such as "custom") fall back
    to coco-17.
    """
    try:
        skeleton = create_from_preset(preset_id)
        validate_skeleton(skeleton)
    except KeyError:
        logger.warning(f"Unknown default skeleton '{preset_id}', falling back to coco-17")
        return create_from_preset("coco-17")
    except SkeletonValidationError as e:
        logger.warning(f"Default skeleton '{preset_id}' is unusable ({e}), falling back to coco-17")
        return create_from_preset("coco-17")
    return skeleton
