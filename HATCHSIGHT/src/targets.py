"""
Target shape primitives.

Oriented boxes produced by blob detection, the left/right handedness rule for
the two tilted strips of a vision target, and extraction of the eight ordered
image corners used for pose solving.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

import cv2
import numpy as np


class TargetSide(Enum):
    """Handedness of one strip of a target."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class OrientedBox:
    """Minimum-area rotated rectangle around a detected blob."""

    center: Tuple[float, float]
    size: Tuple[float, float]  # (width, height)
    angle: float  # degrees

    @classmethod
    def from_rotated_rect(cls, rect) -> OrientedBox:
        """Build from the ``((cx, cy), (w, h), angle)`` tuple OpenCV returns."""
        (cx, cy), (w, h), angle = rect
        return cls(center=(float(cx), float(cy)), size=(float(w), float(h)), angle=float(angle))

    @classmethod
    def from_contour(cls, contour: np.ndarray) -> OrientedBox:
        return cls.from_rotated_rect(cv2.minAreaRect(contour.astype(np.float32)))

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    @property
    def area(self) -> float:
        return self.size[0] * self.size[1]

    def to_rotated_rect(self):
        return (self.center, self.size, self.angle)

    def corners(self) -> np.ndarray:
        """Return the four corner points as a 4x2 float array."""
        return cv2.boxPoints(self.to_rotated_rect()).astype(np.float64)


def classify_box(box: OrientedBox) -> TargetSide:
    """Decide whether a box is the left or right strip of a target.

    The strips are mirror-image rectangles tilted in opposite directions, so
    handedness follows from the tilt and the aspect ratio alone.
    """
    if math.tan(math.radians(box.angle)) > 0:
        is_left = box.width <= box.height
    else:
        is_left = box.width > box.height
    return TargetSide.LEFT if is_left else TargetSide.RIGHT


def _corners_top_to_bottom(box: OrientedBox) -> np.ndarray:
    corners = box.corners()
    order = np.argsort(corners[:, 1], kind="stable")
    return corners[order]


def extract_corners(left: OrientedBox, right: OrientedBox) -> np.ndarray:
    """Interleave the corners of a left/right box pair into an 8x2 array.

    Each box's corners are sorted top to bottom and emitted as
    left[0], right[0], left[1], right[1], ... which matches the point order of
    ``pose.TARGET_MODEL_POINTS``.
    """
    left_pts = _corners_top_to_bottom(left)
    right_pts = _corners_top_to_bottom(right)
    points = np.empty((8, 2), dtype=np.float64)
    points[0::2] = left_pts
    points[1::2] = right_pts
    return points


def filter_by_area(boxes: Sequence[OrientedBox], min_area: float) -> list:
    """Keep boxes whose area is at least ``min_area``."""
    return [box for box in boxes if box.area >= min_area]
