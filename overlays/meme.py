import logging
from dataclasses import dataclass
from typing import List, Tuple

import cv2

from errors import MalformedLandmarksError
from .base_overlay import BaseOverlay

logger = logging.getLogger(__name__)

# BGR
MUSTACHE_COLOR = (51, 51, 51)     # #333333
SCLERA_COLOR = (255, 255, 255)
PUPIL_COLOR = (0, 0, 0)

MUSTACHE_AXES = (25, 10)
MUSTACHE_SPREAD = 5
MUSTACHE_LIFT = 10
SCLERA_RADIUS = 15
PUPIL_RADIUS = 5


@dataclass(frozen=True)
class Ellipse:
    center: Tuple[float, float]
    axes: Tuple[int, int]
    angle: float
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class Circle:
    center: Tuple[float, float]
    radius: int
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class MemeFeatures:
    mustache: Tuple[Ellipse, Ellipse]
    # draw order: both whites, then both pupils
    eyes: Tuple[Circle, ...]


def _require(group, n, name):
    if group is None or len(group) < n:
        got = 0 if group is None else len(group)
        raise MalformedLandmarksError(f"{name} needs at least {n} points, got {got}")


def eye_center(eye) -> Tuple[float, float]:
    return ((eye[0].x + eye[3].x) / 2, (eye[0].y + eye[3].y) / 2)


def compute_features(landmarks) -> MemeFeatures:
    """Place the mustache and eyes relative to the mouth corners and eye corners."""
    mouth = landmarks.mouth_outline
    _require(mouth, 7, "mouth_outline")
    _require(landmarks.left_eye, 4, "left_eye")
    _require(landmarks.right_eye, 4, "right_eye")

    mid_y = (mouth[0].y + mouth[6].y) / 2 - MUSTACHE_LIFT
    mustache = (
        Ellipse((mouth[0].x - MUSTACHE_SPREAD, mid_y), MUSTACHE_AXES, 0, MUSTACHE_COLOR),
        Ellipse((mouth[6].x + MUSTACHE_SPREAD, mid_y), MUSTACHE_AXES, 0, MUSTACHE_COLOR),
    )

    centers = [eye_center(landmarks.left_eye), eye_center(landmarks.right_eye)]
    eyes = tuple(Circle(c, SCLERA_RADIUS, SCLERA_COLOR) for c in centers) + \
        tuple(Circle(c, PUPIL_RADIUS, PUPIL_COLOR) for c in centers)

    return MemeFeatures(mustache=mustache, eyes=eyes)


# fractional bits of the cv2 fixed-point centres, axes and radii
DRAW_SHIFT = 4
_ONE = 1 << DRAW_SHIFT


def _fixed(v) -> int:
    return int(round(v * _ONE))


def _pt(p) -> Tuple[int, int]:
    return _fixed(p[0]), _fixed(p[1])


def draw_features(image_bgr, features: MemeFeatures):
    """Fill the primitives in place, mustache first then eyes."""
    has_alpha = image_bgr.ndim == 3 and image_bgr.shape[2] == 4
    shapes: List = list(features.mustache) + list(features.eyes)
    for s in shapes:
        color = s.color + (255,) if has_alpha else s.color
        if isinstance(s, Ellipse):
            axes = (_fixed(s.axes[0]), _fixed(s.axes[1]))
            cv2.ellipse(image_bgr, _pt(s.center), axes, s.angle, 0, 360, color, -1, cv2.LINE_AA, DRAW_SHIFT)
        else:
            cv2.circle(image_bgr, _pt(s.center), _fixed(s.radius), color, -1, cv2.LINE_AA, DRAW_SHIFT)
    return image_bgr


class MemeFeatureOverlay(BaseOverlay):
    def apply(self, image, landmarks):
        """
        Draw a mustache and googly eyes on a copy of the image.

        No landmarks, or landmarks the geometry cannot index, give back an
        unmodified copy.
        """
        out = image.copy()
        if landmarks is None:
            return out

        try:
            features = compute_features(landmarks)
        except MalformedLandmarksError as e:
            logger.warning("Malformed landmarks from detector, using unmodified image: %s", e)
            return out

        return draw_features(out, features)
