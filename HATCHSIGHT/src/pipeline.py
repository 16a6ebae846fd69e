"""
Frame pipelines.

A pipeline is anything exposing ``initialize(width, height)``,
``process(frame)``, ``write_output(frame)``, ``streams()`` and
``telemetry()``. The runner
drives whichever pipeline it is given through that interface.

``TargetPosePipeline`` finds every two-strip target in a frame, solves each
one's pose and publishes the results as an immutable snapshot ordered from
the most peripheral target to the most central.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import numpy as np

from marker_detect import MarkerDetector
from overlay import TargetOverlayRenderer
from pairing import TargetPair, pair_targets
from pose import CalibrationData, PoseEstimator, PoseResult
from preferences import PreferencesSet
from utils import FrameBufferPool
from video import StreamSink

LOGGER = logging.getLogger(__name__)

FrameSnapshot = Tuple[PoseResult, ...]


class VisionPipeline(Protocol):
    """Capability interface shared by all pipeline variants."""

    name: str

    def initialize(self, width: int, height: int) -> None:
        ...

    def process(self, frame: np.ndarray):
        ...

    def write_output(self, frame: np.ndarray) -> np.ndarray:
        ...

    def streams(self) -> List[StreamSink]:
        ...

    def telemetry(self) -> List[Dict[str, float]]:
        ...


def rank_results(results: Iterable[PoseResult]) -> FrameSnapshot:
    """Order results by descending ``abs(x)``, most peripheral first."""
    return tuple(sorted(results, key=lambda result: -abs(result.x)))


class TargetPosePipeline:
    """Detects vision targets and estimates the 3D pose of each one."""

    def __init__(self, name: str = "Model3D Pipeline", config: Optional[Dict] = None):
        """
        Args:
            name: Name of the preference table and prefix of the debug streams
            config: Full configuration dictionary (``preferences`` and ``overhead`` are used)
        """
        self.name = name
        config = config if config is not None else {}

        self.prefs = PreferencesSet(name, config.setdefault("preferences", {}))
        self.lower_bound = self.prefs.add_scalar("LowerBound", "HSV", 30, 200, 100)
        self.upper_bound = self.prefs.add_scalar("UpperBound", "HSV", 80, 255, 255)
        self.min_area = self.prefs.add_double("MinArea", 20)
        self.focal_length = self.prefs.add_double("FocalLength", 100)

        self.pool = FrameBufferPool()
        self.detector = MarkerDetector(self.pool)
        self.estimator = PoseEstimator()
        self.renderer = TargetOverlayRenderer(config.get("overhead"))

        # Snapshot and the camera model it was solved with, swapped together.
        self._published: Tuple[FrameSnapshot, Optional[CalibrationData]] = ((), None)

        self.filter_stream: Optional[StreamSink] = None
        self.overhead_stream: Optional[StreamSink] = None
        self._overhead_image: Optional[np.ndarray] = None
        self.initialized = False

    def initialize(self, width: int, height: int):
        """Create the debug streams sized for the incoming frames."""
        self.filter_stream = StreamSink(f"{self.name} debug stream (filter)", width, height)
        self._overhead_image = self.renderer.new_overhead_image()
        self.overhead_stream = StreamSink(
            f"{self.name} debug stream (overhead)",
            self._overhead_image.shape[1],
            self._overhead_image.shape[0],
        )
        self.initialized = True
        LOGGER.info("%s initialized for %sx%s frames", self.name, width, height)

    def streams(self) -> List[StreamSink]:
        return [s for s in (self.filter_stream, self.overhead_stream) if s is not None]

    @property
    def last_result(self) -> FrameSnapshot:
        """The most recently published snapshot; never None."""
        return self._published[0]

    def telemetry(self) -> List[Dict[str, float]]:
        """Telemetry fields of each target in the latest snapshot, in rank order."""
        return [result.as_telemetry() for result in self.last_result]

    @property
    def last_calibration(self) -> Optional[CalibrationData]:
        return self._published[1]

    def find_pairs(self, frame: np.ndarray) -> List[TargetPair]:
        detection = self.detector.detect(frame, self.lower_bound.get(), self.upper_bound.get())
        self.filter_stream.put_frame(detection.mask)
        boxes = detection.oriented_boxes(self.min_area.get())
        return pair_targets(boxes)

    def _solve(self, pair: TargetPair, width: int, height: int):
        calibration = CalibrationData.from_focal_length(self.focal_length.get(), width, height)
        corners = pair.corners()
        result = self.estimator.estimate(corners, calibration)
        if result is None:
            LOGGER.debug("Dropping target pair: no pose solution")
        elif LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "Target at (%.1f, %.1f, %.1f), reprojection error %.2fpx",
                result.x, result.y, result.z,
                self.estimator.reprojection_error(corners, result, calibration),
            )
        return result, calibration

    def process(self, frame: np.ndarray) -> FrameSnapshot:
        """Run one frame and publish its snapshot.

        Raises:
            RuntimeError: if ``initialize`` has not been called
        """
        if not self.initialized:
            raise RuntimeError(f"{self.name} must be initialized before processing frames")

        height, width = frame.shape[:2]
        pairs = self.find_pairs(frame)

        results: List[PoseResult] = []
        calibration = CalibrationData.from_focal_length(self.focal_length.get(), width, height)
        for pair in pairs:
            result, calibration = self._solve(pair, width, height)
            if result is not None:
                results.append(result)

        snapshot = rank_results(results)
        self._published = (snapshot, calibration)
        LOGGER.debug("%s: %d pairs, %d targets published", self.name, len(pairs), len(snapshot))
        return snapshot

    def write_output(self, frame: np.ndarray) -> np.ndarray:
        """Draw the latest snapshot onto ``frame`` and refresh the overhead stream."""
        snapshot, calibration = self._published
        self.renderer.draw_targets(frame, snapshot, calibration)
        if self._overhead_image is not None:
            self.renderer.draw_overhead(self._overhead_image, snapshot)
            self.overhead_stream.put_frame(self._overhead_image)
        return frame


class CrosshairsPipeline:
    """Draws the operator crosshairs at the ``Vision`` preference position."""

    def __init__(
        self,
        name: str = "Crosshairs",
        config: Optional[Dict] = None,
        color: Tuple[int, int, int] = (100, 100, 100),
    ):
        self.name = name
        config = config if config is not None else {}

        vision = PreferencesSet("Vision", config.setdefault("preferences", {}))
        self.x_crosshairs = vision.add_int("Crosshairs X", 200)
        self.y_crosshairs = vision.add_int("Crosshairs Y", 200)
        self.color = color
        self.renderer = TargetOverlayRenderer(config.get("overhead"))
        self._last_result: Tuple[int, int] = (self.x_crosshairs.get(), self.y_crosshairs.get())
        self.initialized = False

    def initialize(self, width: int, height: int):
        self.initialized = True
        LOGGER.info("%s initialized for %sx%s frames", self.name, width, height)

    def streams(self) -> List[StreamSink]:
        return []

    @property
    def last_result(self) -> Tuple[int, int]:
        return self._last_result

    def telemetry(self) -> List[Dict[str, float]]:
        return []

    def process(self, frame: np.ndarray) -> Tuple[int, int]:
        """Latch the crosshair position for this frame."""
        if not self.initialized:
            raise RuntimeError(f"{self.name} must be initialized before processing frames")
        self._last_result = (self.x_crosshairs.get(), self.y_crosshairs.get())
        return self._last_result

    def write_output(self, frame: np.ndarray) -> np.ndarray:
        x, y = self._last_result
        return self.renderer.draw_crosshairs(frame, x, y, color=self.color)
