"""
Target pose estimation module.

Holds the fixed 3D model of the two-strip vision target, the per-frame camera
model, and the immutable pose result derived from a perspective-n-point solve.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)

# Strip tilt, in degrees from vertical.
STRIP_TILT_DEG = 14.5
_S = math.sin(math.radians(STRIP_TILT_DEG))
_C = math.cos(math.radians(STRIP_TILT_DEG))

# Target geometry in inches, target-local frame (+y down). Points alternate
# left strip / right strip from top to bottom: outer top, inner upper,
# outer lower, inner bottom.
TARGET_MODEL_POINTS = np.array(
    [
        [-4 - 2 * _C, -5 * _C - 2 * _S, 0.0],
        [4 + 2 * _C, -5 * _C - 2 * _S, 0.0],
        [-4.0, -5 * _C, 0.0],
        [4.0, -5 * _C, 0.0],
        [-4 - 5 * _S - 2 * _C, -2 * _S, 0.0],
        [4 + 5 * _S + 2 * _C, -2 * _S, 0.0],
        [-4 - 5 * _S, 0.0, 0.0],
        [4 + 5 * _S, 0.0, 0.0],
    ],
    dtype=np.float64,
)
TARGET_MODEL_POINTS.setflags(write=False)


@dataclass
class CalibrationData:
    """Container for camera intrinsics."""

    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray = field(default_factory=lambda: np.zeros((4, 1), dtype=np.float64))

    @classmethod
    def from_focal_length(cls, focal_length: float, width: int, height: int) -> CalibrationData:
        """Pinhole model with the principal point at the frame centre."""
        f = float(focal_length)
        camera_matrix = np.array(
            [
                [f, 0.0, width / 2.0],
                [0.0, f, height / 2.0],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )
        return cls(camera_matrix=camera_matrix)


def _as_vector3(value, name: str) -> Tuple[float, float, float]:
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be numeric: {exc}") from exc
    if arr.ndim == 0 or arr.ndim > 2 or arr.size != 3:
        raise ValueError(f"{name} is not a 3-component vector (shape {arr.shape})")
    if arr.ndim == 2 and 1 not in arr.shape:
        raise ValueError(f"{name} is not a 3-component vector (shape {arr.shape})")
    return tuple(float(v) for v in arr.reshape(3))


@dataclass(frozen=True)
class PoseResult:
    """Position and orientation of a vision target in camera space.

    ``translation_vector`` is in inches, ``rotation_vector`` is a Rodrigues
    vector, both as given by ``cv2.solvePnP``. Construction fails with
    ``ValueError`` unless each is exactly three components.
    """

    translation_vector: Tuple[float, float, float]
    rotation_vector: Tuple[float, float, float]

    def __post_init__(self):
        object.__setattr__(self, "translation_vector", _as_vector3(self.translation_vector, "tvec"))
        object.__setattr__(self, "rotation_vector", _as_vector3(self.rotation_vector, "rvec"))

    def translation(self) -> np.ndarray:
        """Return a fresh 3x1 copy of the translation vector."""
        return np.array(self.translation_vector, dtype=np.float64).reshape(3, 1)

    def rotation(self) -> np.ndarray:
        """Return a fresh 3x1 copy of the rotation vector."""
        return np.array(self.rotation_vector, dtype=np.float64).reshape(3, 1)

    def rotation_matrix(self) -> np.ndarray:
        matrix, _ = cv2.Rodrigues(self.rotation())
        return matrix

    @property
    def x(self) -> float:
        """Inches; positive is right of the camera."""
        return self.translation_vector[0]

    @property
    def y(self) -> float:
        """Inches; positive is below the camera."""
        return self.translation_vector[1]

    @property
    def z(self) -> float:
        """Inches; positive is in front of the camera."""
        return self.translation_vector[2]

    def top_down_angle(self) -> float:
        """Bearing of the camera as seen from the target, in degrees.

        Positive means the camera is to the left of the target, negative to the
        right. Depends only on the camera position relative to the target and
        the target orientation, not on camera tilt, height or heading.
        """
        camera_in_target = -1.0 * (self.rotation_matrix().T @ self.translation())
        x = camera_in_target[0, 0]
        z = camera_in_target[2, 0]
        return math.degrees(math.atan2(x, -z))

    def as_matrix(self) -> np.ndarray:
        """Return the 4x4 target-to-camera transform."""
        transform = np.eye(4, dtype=np.float64)
        transform[:3, :3] = self.rotation_matrix()
        transform[:3, 3] = self.translation_vector
        return transform

    def as_telemetry(self) -> Dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "angle": self.top_down_angle(),
        }


class PoseEstimator:
    """Solves target pose from image corners against ``TARGET_MODEL_POINTS``."""

    def __init__(self, object_points: Optional[np.ndarray] = None):
        points = TARGET_MODEL_POINTS if object_points is None else object_points
        self.object_points = np.asarray(points, dtype=np.float64).reshape(-1, 3)

    def estimate(self, image_points: np.ndarray, calibration: CalibrationData) -> Optional[PoseResult]:
        """Run PnP on the given corners.

        Returns:
            PoseResult, or None when the solver reports no solution
        """
        image_points = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
        if image_points.shape[0] != self.object_points.shape[0]:
            raise ValueError(
                f"Expected {self.object_points.shape[0]} image points, got {image_points.shape[0]}"
            )

        try:
            success, rvec, tvec = cv2.solvePnP(
                self.object_points,
                image_points,
                calibration.camera_matrix,
                calibration.dist_coeffs,
            )
        except cv2.error as exc:
            LOGGER.debug("solvePnP failed: %s", exc)
            return None

        if not success or rvec is None or tvec is None:
            LOGGER.debug("solvePnP returned no solution")
            return None
        if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            LOGGER.debug("solvePnP returned a non-finite pose")
            return None

        return PoseResult(translation_vector=tvec, rotation_vector=rvec)

    @staticmethod
    def project_points(
        points_3d: np.ndarray, pose: PoseResult, calibration: CalibrationData
    ) -> np.ndarray:
        """Project 3D target-frame points into the image using the provided pose."""
        image_points, _ = cv2.projectPoints(
            np.asarray(points_3d, dtype=np.float64).reshape(-1, 3),
            pose.rotation(),
            pose.translation(),
            calibration.camera_matrix,
            calibration.dist_coeffs,
        )
        return image_points.reshape(-1, 2)

    def reprojection_error(
        self, image_points: np.ndarray, pose: PoseResult, calibration: CalibrationData
    ) -> float:
        """Mean pixel distance between observed corners and this estimator's reprojected model."""
        projected = self.project_points(self.object_points, pose, calibration)
        observed = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
        return float(np.linalg.norm(projected - observed, axis=1).mean())
