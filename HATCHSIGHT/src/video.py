"""
Video input and output stream utilities.

This module handles frame sources (camera, video file, or a still image
replayed as a live feed) and named output streams for debug images.
"""

import logging
import platform
import threading
from typing import List, Optional

import cv2
import numpy as np


class VideoProcessor:
    """Handles video input capture."""

    def __init__(self, config=None):
        """Initialize video processor.

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}
        self.cap: Optional[cv2.VideoCapture] = None
        self.still_image: Optional[np.ndarray] = None
        self.logger = logging.getLogger(__name__)

        self.camera_id = self.config.get('camera_id', 0)
        self.width = self.config.get('video_width', 640)
        self.height = self.config.get('video_height', 480)
        self.fps = self.config.get('video_fps', 30)

        self.backend_priority = self._resolve_backend_priority(
            self.config.get('camera_backend_priority')
        )
        self.selected_backend: Optional[int] = None

        self.max_init_attempts = self.config.get('camera_init_attempts', 10)

    @staticmethod
    def _resolve_backend_priority(user_priority: Optional[List[int]]) -> List[int]:
        """Determine backend priority order based on platform and config."""
        if user_priority:
            return user_priority

        system = platform.system()
        backends: List[int] = []

        def add_backend(name: str):
            value = getattr(cv2, name, None)
            if value is not None:
                backends.append(value)

        if system == 'Darwin':
            add_backend('CAP_AVFOUNDATION')
        elif system == 'Windows':
            add_backend('CAP_DSHOW')
            add_backend('CAP_MSMF')
        else:
            add_backend('CAP_V4L2')
            add_backend('CAP_GSTREAMER')

        add_backend('CAP_ANY')
        return backends or [cv2.CAP_ANY]

    @staticmethod
    def _backend_name(backend: Optional[int]) -> str:
        """Return human-readable name for backend constant."""
        if backend is None:
            return "Unknown"

        for attr in dir(cv2):
            if attr.startswith("CAP_") and getattr(cv2, attr) == backend:
                return attr
        return f"Backend({backend})"

    def initialize(self):
        """Open the camera, trying each backend in priority order.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        self.cleanup()

        for backend in self.backend_priority:
            self.logger.info(
                "Attempting to initialize camera %s using backend %s",
                self.camera_id,
                self._backend_name(backend),
            )
            cap = cv2.VideoCapture(self.camera_id, backend)

            if not cap.isOpened():
                self.logger.warning(
                    "Failed to open camera %s with backend %s",
                    self.camera_id,
                    self._backend_name(backend),
                )
                cap.release()
                continue

            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            cap.set(cv2.CAP_PROP_FPS, self.fps)

            if self._warmup_camera(cap) is None:
                self.logger.warning(
                    "Camera opened but failed to provide frames (backend %s)",
                    self._backend_name(backend),
                )
                cap.release()
                continue

            self.cap = cap
            self.selected_backend = backend
            self.logger.info(
                "Camera initialized with backend %s: %sx%s",
                self._backend_name(backend),
                int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            )
            return True

        self.logger.error(
            "Unable to initialize camera %s with available backends: %s",
            self.camera_id,
            [self._backend_name(b) for b in self.backend_priority],
        )
        return False

    def _warmup_camera(self, cap: cv2.VideoCapture) -> Optional[np.ndarray]:
        """Capture a few frames to allow camera to warm up."""
        for attempt in range(1, self.max_init_attempts + 1):
            ret, frame = cap.read()
            if ret and frame is not None and frame.size > 0:
                if frame.mean() == 0:
                    self.logger.debug(
                        "Warmup frame %s captured but appears black; retrying...", attempt
                    )
                    continue
                return frame
        return None

    def load_video_file(self, filepath):
        """Load a video file instead of camera.

        Returns:
            bool: True if load successful, False otherwise
        """
        self.cleanup()
        self.cap = cv2.VideoCapture(filepath)

        if not self.cap.isOpened():
            self.logger.error(f"Failed to open video file: {filepath}")
            self.cap = None
            return False

        self.logger.info(f"Video file loaded: {filepath}")
        return True

    def load_image_file(self, filepath):
        """Use a still image as the frame source; every capture returns it.

        Returns:
            bool: True if load successful, False otherwise
        """
        self.cleanup()
        image = cv2.imread(filepath)
        if image is None or image.size == 0:
            self.logger.error(f"Could not load image {filepath}")
            return False

        self.still_image = image
        self.logger.info(f"Image file loaded: {filepath} ({image.shape[1]}x{image.shape[0]})")
        return True

    def capture_frame(self):
        """Capture a frame from the video source.

        Returns:
            np.ndarray or None: Captured frame or None if failed
        """
        if self.still_image is not None:
            return self.still_image.copy()

        if self.cap is None or not self.cap.isOpened():
            return None

        ret, frame = self.cap.read()
        if not ret:
            self.logger.warning("Failed to capture frame")
            return None
        return frame

    def cleanup(self):
        """Clean up video resources."""
        self.still_image = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            self.logger.info("Video processor cleaned up")


class StreamSink:
    """Named output stream holding the most recent frame pushed to it.

    The stream's dimensions are fixed when it is created; frames of any other
    size are resized to fit.
    """

    def __init__(self, name: str, width: int, height: int):
        self.name = name
        self.width = width
        self.height = height
        self._frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        logging.getLogger(__name__).info("Stream '%s' created at %sx%s", name, width, height)

    def put_frame(self, frame: np.ndarray):
        if frame.shape[0] != self.height or frame.shape[1] != self.width:
            copy = cv2.resize(frame, (self.width, self.height))
        else:
            copy = frame.copy()
        with self._lock:
            self._frame = copy

    def latest(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._frame
