"""
Target overlay rendering module.

Draws detected targets back onto camera frames (projected model corners and
an outline quad) and renders a top-down overhead map of all targets.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from pose import TARGET_MODEL_POINTS, CalibrationData, PoseEstimator, PoseResult

LOGGER = logging.getLogger(__name__)

# Outline around both strips, target frame, inches.
QUAD_POINTS = np.array(
    [
        [-8.0, -6.0, 0.0],
        [8.0, -6.0, 0.0],
        [-8.0, 1.0, 0.0],
        [8.0, 1.0, 0.0],
    ],
    dtype=np.float64,
)


@dataclass
class OverlayConfiguration:
    """Colours and scales for target overlays."""

    quad_color: Tuple[int, int, int] = (0, 255, 255)
    corner_color: Tuple[int, int, int] = (0, 255, 255)
    overhead_color: Tuple[int, int, int] = (255, 255, 255)
    crosshair_color: Tuple[int, int, int] = (0, 0, 255)
    corner_radius: int = 4
    overhead_width: int = 640
    overhead_height: int = 480
    pix_per_inch: int = 2
    inches_per_tick: int = 20
    target_half_width: float = 8.0  # inches


class TargetOverlayRenderer:
    """Renders published target poses for a human operator."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize overlay renderer.

        Args:
            config: ``overhead`` section of the configuration dictionary
        """
        cfg = config or {}
        self.config = OverlayConfiguration(
            overhead_width=cfg.get("width", 640),
            overhead_height=cfg.get("height", 480),
            pix_per_inch=cfg.get("pix_per_inch", 2),
            inches_per_tick=cfg.get("inches_per_tick", 20),
        )

    def new_overhead_image(self) -> np.ndarray:
        return np.zeros((self.config.overhead_height, self.config.overhead_width, 3), dtype=np.uint8)

    # ------------------------------------------------------------------ #
    # Camera view
    # ------------------------------------------------------------------ #
    def draw_target_indicator(
        self, frame: np.ndarray, pose: PoseResult, calibration: CalibrationData
    ) -> np.ndarray:
        """Draw the reprojected model corners and outline quad for one target."""
        try:
            corners = PoseEstimator.project_points(TARGET_MODEL_POINTS, pose, calibration)
            quad = PoseEstimator.project_points(QUAD_POINTS, pose, calibration)
        except cv2.error as e:
            LOGGER.debug("Projection failed: %s", e)
            return frame

        if not (np.all(np.isfinite(corners)) and np.all(np.isfinite(quad))):
            return frame

        for x, y in corners:
            cv2.circle(frame, (int(round(x)), int(round(y))), self.config.corner_radius, self.config.corner_color)

        q = [(int(round(x)), int(round(y))) for x, y in quad]
        for a, b in ((0, 1), (1, 3), (3, 2), (2, 0)):
            cv2.line(frame, q[a], q[b], self.config.quad_color)
        return frame

    def draw_targets(
        self, frame: np.ndarray, targets: Sequence[PoseResult], calibration: Optional[CalibrationData]
    ) -> np.ndarray:
        if calibration is None:
            return frame
        for target in targets:
            self.draw_target_indicator(frame, target, calibration)
        return frame

    def draw_crosshairs(
        self, frame: np.ndarray, x: int, y: int, size: int = 10, color: Optional[Tuple[int, int, int]] = None
    ) -> np.ndarray:
        color = self.config.crosshair_color if color is None else color
        cv2.line(frame, (x - size, y), (x + size, y), color)
        cv2.line(frame, (x, y - size), (x, y + size), color)
        return frame

    # ------------------------------------------------------------------ #
    # Overhead map
    # ------------------------------------------------------------------ #
    def draw_overhead(self, image: np.ndarray, targets: Sequence[PoseResult]) -> np.ndarray:
        """Redraw the top-down map in place: camera at the centre, +z up."""
        cfg = self.config
        cx = image.shape[1] // 2
        cy = image.shape[0] // 2
        image[:] = 0

        for i in range(-4, 5):
            t = i * cfg.inches_per_tick
            cv2.putText(
                image, str(t), (cx, cy - t * cfg.pix_per_inch),
                cv2.FONT_HERSHEY_PLAIN, 1.0, cfg.overhead_color,
            )

        for target in targets:
            # TODO: correct for camera tilt once the mount angle is configurable
            x = cx + target.x * cfg.pix_per_inch
            y = cy - target.z * cfg.pix_per_inch
            angle = math.atan2(-target.x, target.z) - math.radians(target.top_down_angle())

            s = math.sin(angle) * cfg.target_half_width * cfg.pix_per_inch
            c = math.cos(angle) * cfg.target_half_width * cfg.pix_per_inch
            if not all(math.isfinite(v) for v in (x, y, s, c)):
                continue
            cv2.line(
                image,
                (int(round(x + c)), int(round(y - s))),
                (int(round(x - c)), int(round(y + s))),
                cfg.overhead_color,
            )
        return image
