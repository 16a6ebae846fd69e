"""
Retro-reflective marker detection module.

This module thresholds a frame in HSV space, cleans up the mask, and turns
each external contour into an oriented box (for pose pipelines) or an upright
bounding rectangle (for the skew pipeline).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from targets import OrientedBox, filter_by_area
from utils import FrameBufferPool

LOGGER = logging.getLogger(__name__)

MORPH_KERNEL = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (5, 5))


@dataclass
class DetectionResult:
    """Blobs found in one frame."""

    contours: List[np.ndarray]
    mask: np.ndarray

    def oriented_boxes(self, min_area: float = 0.0) -> List[OrientedBox]:
        boxes = [OrientedBox.from_contour(contour) for contour in self.contours]
        return filter_by_area(boxes, min_area)

    def bounding_rects(self, min_area: float = 0.0) -> List[Tuple[int, int, int, int]]:
        rects = [tuple(int(v) for v in cv2.boundingRect(contour)) for contour in self.contours]
        return [r for r in rects if r[2] * r[3] >= min_area]


class MarkerDetector:
    """Handles marker blob detection in video frames."""

    def __init__(self, pool: Optional[FrameBufferPool] = None):
        """Initialize marker detector.

        Args:
            pool: Working buffer pool; a private one is created if omitted
        """
        self.pool = pool or FrameBufferPool()

    def detect(self, frame: np.ndarray, lower_bound, upper_bound) -> DetectionResult:
        """Detect marker blobs whose HSV colour lies within the given bounds.

        Args:
            frame: BGR frame
            lower_bound: Three-channel inclusive lower HSV bound
            upper_bound: Three-channel inclusive upper HSV bound

        Returns:
            DetectionResult with external contours and a copy of the filtered mask
        """
        height, width = frame.shape[:2]
        lower = tuple(float(v) for v in lower_bound)
        upper = tuple(float(v) for v in upper_bound)

        with self.pool.acquire(
            hsv=((height, width, 3), np.uint8),
            mask=((height, width), np.uint8),
        ) as bufs:
            cv2.cvtColor(frame, cv2.COLOR_BGR2HSV, dst=bufs["hsv"])
            cv2.inRange(bufs["hsv"], lower, upper, dst=bufs["mask"])
            cv2.erode(bufs["mask"], MORPH_KERNEL, dst=bufs["mask"])
            cv2.dilate(bufs["mask"], MORPH_KERNEL, dst=bufs["mask"])
            mask = bufs["mask"].copy()

        # findContours may modify its input on older OpenCV releases
        found = cv2.findContours(mask.copy(), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        contours = list(found[-2])

        LOGGER.debug("Detected %d blobs", len(contours))
        return DetectionResult(contours=contours, mask=mask)
