"""
Skew pair pipeline.

Lightweight alternative to the pose pipeline: takes the two blobs closest to
the crosshairs and reports their midpoint error and a skew value derived from
the ratio of their heights (positive when the left strip appears taller).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from marker_detect import MarkerDetector
from preferences import PreferencesSet
from video import StreamSink

LOGGER = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]  # x, y, width, height

MARKER_COLOR = (0, 0, 255)
MARKER_SCALE = 20.0


@dataclass(frozen=True)
class SkewVisionResult:
    x_error: float
    y_error: float
    x_absolute: float
    y_absolute: float
    skew: float
    found_target: bool

    def as_telemetry(self) -> Dict[str, float]:
        return {
            "x_error": self.x_error,
            "y_error": self.y_error,
            "skew": self.skew,
        }


NO_TARGET = SkewVisionResult(0.0, 0.0, 0.0, 0.0, 0.0, False)


def _as_supplier(value: Union[int, Callable[[], int]]) -> Callable[[], int]:
    if callable(value):
        return value
    return lambda: value


def rect_center(rect: Rect) -> Tuple[float, float]:
    x, y, w, h = rect
    return x + w / 2.0, y + h / 2.0


class SkewPairTargetProcessor:
    """Turns a list of upright rectangles into a ``SkewVisionResult``."""

    def __init__(self, x_crosshairs, y_crosshairs):
        """
        Args:
            x_crosshairs: Crosshair x in pixels, or a callable returning it
            y_crosshairs: Crosshair y in pixels, or a callable returning it
        """
        self.x_crosshairs = _as_supplier(x_crosshairs)
        self.y_crosshairs = _as_supplier(y_crosshairs)

    def _target_distance(self, rect: Rect) -> float:
        cx, cy = rect_center(rect)
        dx = cx - self.x_crosshairs()
        dy = cy - self.y_crosshairs()
        return dx * dx + dy * dy

    def _pair_to_result(self, r1: Rect, r2: Rect) -> SkewVisionResult:
        if r1[0] > r2[0]:
            r1, r2 = r2, r1
        h1 = float(r1[3])
        h2 = float(r2[3])
        skew = h1 / h2 - h2 / h1
        c1 = rect_center(r1)
        c2 = rect_center(r2)
        center_x = (c1[0] + c2[0]) / 2.0
        center_y = (c1[1] + c2[1]) / 2.0
        return SkewVisionResult(
            x_error=center_x - self.x_crosshairs(),
            y_error=center_y - self.y_crosshairs(),
            x_absolute=center_x,
            y_absolute=center_y,
            skew=skew,
            found_target=True,
        )

    def compute_result(self, targets: Sequence[Rect]) -> SkewVisionResult:
        closest = sorted(targets, key=self._target_distance)[:2]
        if len(closest) < 2:
            return NO_TARGET
        return self._pair_to_result(closest[0], closest[1])


class SkewPairPipeline:
    """Pipeline variant publishing a single ``SkewVisionResult`` per frame."""

    def __init__(
        self,
        name: str = "Skew Pipeline",
        config: Optional[Dict] = None,
        processor: Optional[SkewPairTargetProcessor] = None,
    ):
        self.name = name
        config = config if config is not None else {}
        store = config.setdefault("preferences", {})

        self.prefs = PreferencesSet(name, store)
        self.lower_bound = self.prefs.add_scalar("LowerBound", "HSV", 30, 200, 100)
        self.upper_bound = self.prefs.add_scalar("UpperBound", "HSV", 80, 255, 255)
        self.min_area = self.prefs.add_double("MinArea", 20)

        if processor is None:
            vision = PreferencesSet("Vision", store)
            x_cross = vision.add_int("Crosshairs X", 200)
            y_cross = vision.add_int("Crosshairs Y", 200)
            processor = SkewPairTargetProcessor(x_cross.get, y_cross.get)
        self.processor = processor

        self.detector = MarkerDetector()
        self._last_result = NO_TARGET
        self.filter_stream: Optional[StreamSink] = None
        self.initialized = False

    def initialize(self, width: int, height: int):
        self.filter_stream = StreamSink(f"{self.name} debug stream (filter)", width, height)
        self.initialized = True
        LOGGER.info("%s initialized for %sx%s frames", self.name, width, height)

    def streams(self) -> List[StreamSink]:
        return [self.filter_stream] if self.filter_stream is not None else []

    @property
    def last_result(self) -> SkewVisionResult:
        return self._last_result

    def telemetry(self) -> List[Dict[str, float]]:
        result = self._last_result
        return [result.as_telemetry()] if result.found_target else []

    def process(self, frame: np.ndarray) -> SkewVisionResult:
        if not self.initialized:
            raise RuntimeError(f"{self.name} must be initialized before processing frames")

        detection = self.detector.detect(frame, self.lower_bound.get(), self.upper_bound.get())
        self.filter_stream.put_frame(detection.mask)
        rects = detection.bounding_rects(self.min_area.get())
        result = self.processor.compute_result(rects)
        self._last_result = result
        return result

    def write_output(self, frame: np.ndarray) -> np.ndarray:
        result = self._last_result
        if result.found_target:
            center = (int(round(result.x_absolute)), int(round(result.y_absolute)))
            marker = (int(round(result.x_absolute + result.skew * MARKER_SCALE)), center[1])
            cv2.circle(frame, center, 6, MARKER_COLOR)
            cv2.line(frame, center, marker, MARKER_COLOR)
        return frame
