# detectors/landmarks.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from errors import MalformedLandmarksError


class Point(NamedTuple):
    x: float
    y: float


# Face Mesh indices laid out in the 68-point order:
# mouth = outer lip (48-59) + inner lip (60-67), eyes = 36-41 / 42-47.
# mouth[0] and mouth[6] are the corners, eye[0] and eye[3] are the corners.
MESH_MOUTH_IDXS = [
    61, 40, 37, 0, 267, 270, 291, 321, 314, 17, 84, 91,
    78, 81, 13, 311, 308, 402, 14, 178,
]
MESH_LEFT_EYE_IDXS = [33, 160, 158, 133, 153, 144]
MESH_RIGHT_EYE_IDXS = [362, 385, 387, 263, 373, 380]

MESH_MIN_POINTS = max(MESH_MOUTH_IDXS + MESH_LEFT_EYE_IDXS + MESH_RIGHT_EYE_IDXS) + 1


@dataclass(frozen=True)
class FaceLandmarks:
    """Named landmark groups for a single face, in still-image pixels."""
    mouth_outline: Tuple[Point, ...]
    left_eye: Tuple[Point, ...]
    right_eye: Tuple[Point, ...]
    bbox: Optional[Tuple[int, int, int, int]] = None

    @classmethod
    def from_groups(cls, mouth, left_eye, right_eye, bbox=None) -> "FaceLandmarks":
        def pts(group):
            return tuple(Point(float(x), float(y)) for x, y in group)
        return cls(pts(mouth), pts(left_eye), pts(right_eye), tuple(bbox) if bbox is not None else None)


def landmarks_from_mesh(points: np.ndarray, bbox: Optional[Sequence[int]] = None) -> FaceLandmarks:
    """Pick the named groups out of an Nx2 Face Mesh point array."""
    if points is None or len(points) < MESH_MIN_POINTS:
        n = 0 if points is None else len(points)
        raise MalformedLandmarksError(f"Face Mesh topology needs {MESH_MIN_POINTS} points, got {n}")

    return FaceLandmarks.from_groups(
        [points[i] for i in MESH_MOUTH_IDXS],
        [points[i] for i in MESH_LEFT_EYE_IDXS],
        [points[i] for i in MESH_RIGHT_EYE_IDXS],
        bbox=bbox,
    )


def bbox_area(b) -> float:
    x1, y1, x2, y2 = b
    return max(0, x2 - x1) * max(0, y2 - y1)


def select_face(faces: List[dict]) -> Optional[dict]:
    """
    Largest bounding box wins; max() keeps the first face on ties,
    so identical input always picks the same face.
    """
    candidates = [f for f in faces if f.get("landmarks") is not None]
    if not candidates:
        return None
    return max(candidates, key=lambda f: bbox_area(f["bbox"]))


def mesh_points_to_face(pts: np.ndarray) -> dict:
    """Wrap pixel-space mesh points in the detector face dict."""
    x1, y1 = pts[:, 0].min(), pts[:, 1].min()
    x2, y2 = pts[:, 0].max(), pts[:, 1].max()
    return {
        "bbox": [int(x1), int(y1), int(x2), int(y2)],
        "landmarks": pts,
    }
