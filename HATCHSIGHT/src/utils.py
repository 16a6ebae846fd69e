"""
Shared helper functions and utilities.

This module contains logging setup, configuration loading/validation and the
per-frame working buffer pool used across the project.
"""

import copy
import json
import logging
import os
import threading
from contextlib import contextmanager

import numpy as np


def setup_logging(level=logging.INFO):
    """Set up logging configuration.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")


DEFAULT_CONFIG = {
    # Video settings
    'camera_id': 0,
    'video_width': 640,
    'video_height': 480,
    'video_fps': 30,
    'camera_backend_priority': None,
    'camera_init_attempts': 10,
    'image_file': None,  # Still image replayed as every frame
    'video_file': None,

    # Tunable pipeline preferences, read fresh every frame
    'preferences': {
        'Model3D Pipeline': {
            'LowerBound': [30, 200, 100],  # HSV
            'UpperBound': [80, 255, 255],  # HSV
            'MinArea': 20.0,
            'FocalLength': 100.0,
        },
        'Vision': {
            'Crosshairs X': 200,
            'Crosshairs Y': 200,
        },
    },

    # Overhead map
    'overhead': {
        'width': 640,
        'height': 480,
        'pix_per_inch': 2,
        'inches_per_tick': 20,
    },

    # Display
    'display_width': 640,
    'display_height': 480,
    'show_debug_streams': True,
}


def get_config(config_path=None):
    """Load configuration from file or return defaults.

    Nested sections in the file are merged into the defaults one level deep,
    so a file may override a single preference without restating the rest.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded_config = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"Failed to load config from {config_path}: {e}")
            return config

        for key, value in loaded_config.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                for section, entries in value.items():
                    if isinstance(entries, dict) and isinstance(config[key].get(section), dict):
                        config[key][section].update(entries)
                    else:
                        config[key][section] = entries
            else:
                config[key] = value
        logging.info(f"Configuration loaded from {config_path}")
    elif config_path:
        logging.warning(f"Config file {config_path} not found, using defaults")

    return config


def save_config(config, config_path):
    """Save configuration to file.

    Args:
        config: Configuration dictionary
        config_path: Path to save configuration file

    Returns:
        bool: True if save successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)
        logging.info(f"Configuration saved to {config_path}")
        return True
    except (OSError, TypeError) as e:
        logging.error(f"Failed to save config to {config_path}: {e}")
        return False


def validate_config(config):
    """Validate configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, False otherwise
    """
    required_keys = ['camera_id', 'video_width', 'video_height', 'preferences']

    for key in required_keys:
        if key not in config:
            logging.error(f"Missing required config key: {key}")
            return False

    if config['video_width'] <= 0 or config['video_height'] <= 0:
        logging.error("Video dimensions must be positive")
        return False

    model3d = config['preferences'].get('Model3D Pipeline', {})
    for bound in ('LowerBound', 'UpperBound'):
        value = model3d.get(bound)
        if value is not None and len(value) != 3:
            logging.error(f"{bound} must have exactly three channels")
            return False

    if model3d.get('MinArea', 0) < 0:
        logging.error("MinArea must not be negative")
        return False

    if model3d.get('FocalLength', 1) <= 0:
        logging.error("FocalLength must be positive")
        return False

    logging.info("Configuration validated successfully")
    return True


class FrameBufferPool:
    """Pool of named working arrays handed out for the duration of one frame.

    Buffers are only a reuse optimisation: every buffer is fully overwritten by
    the OpenCV call that receives it as ``dst`` before it is read, and a buffer
    whose shape or dtype does not match the request is replaced.
    """

    def __init__(self):
        self._free = {}
        self._lock = threading.Lock()
        self.allocations = 0

    def _take(self, name, shape, dtype):
        with self._lock:
            buf = self._free.pop(name, None)
        if buf is None or buf.shape != tuple(shape) or buf.dtype != np.dtype(dtype):
            buf = np.empty(shape, dtype=dtype)
            self.allocations += 1
        return buf

    def _give_back(self, name, buf):
        with self._lock:
            self._free[name] = buf

    @contextmanager
    def acquire(self, **specs):
        """Check out buffers by name, e.g. ``acquire(hsv=((h, w, 3), np.uint8))``.

        Yields:
            dict mapping each name to an array of the requested shape/dtype
        """
        taken = {name: self._take(name, shape, dtype) for name, (shape, dtype) in specs.items()}
        try:
            yield taken
        finally:
            for name, buf in taken.items():
                self._give_back(name, buf)
