"""
Live tunable preferences.

A ``PreferencesSet`` is a named table inside the shared configuration dict.
Each registered preference reads its current value on every ``get()`` so that
changes made while the pipeline is running apply to the next frame.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Sequence, Tuple

LOGGER = logging.getLogger(__name__)


class Preference:
    """Handle to one value in a ``PreferencesSet``."""

    def __init__(self, prefs: PreferencesSet, key: str, convert):
        self._prefs = prefs
        self.key = key
        self._convert = convert

    def get(self):
        return self._convert(self._prefs.read(self.key))

    def set(self, value):
        self._prefs.write(self.key, self._convert(value))


class PreferencesSet:
    """Named group of preferences backed by a plain dict."""

    def __init__(self, name: str, store: Optional[Dict] = None):
        self.name = name
        store = store if store is not None else {}
        self._values = store.setdefault(name, {})
        self._lock = threading.Lock()

    def read(self, key: str):
        with self._lock:
            return self._values[key]

    def write(self, key: str, value):
        with self._lock:
            self._values[key] = list(value) if isinstance(value, tuple) else value
        LOGGER.debug("%s/%s set to %s", self.name, key, value)

    def _register(self, key: str, default, convert) -> Preference:
        with self._lock:
            if key not in self._values:
                self._values[key] = default
        return Preference(self, key, convert)

    def add_double(self, key: str, default: float) -> Preference:
        return self._register(key, float(default), float)

    def add_int(self, key: str, default: int) -> Preference:
        return self._register(key, int(default), int)

    def add_scalar(self, key: str, description: str, *default: float) -> Preference:
        """Register a three-channel scalar, e.g. an HSV bound.

        ``description`` names the channels and is only used for logging.
        """
        if len(default) != 3:
            raise ValueError(f"{key} default must have three channels, got {len(default)}")
        LOGGER.debug("Registering scalar preference %s/%s (%s)", self.name, key, description)
        return self._register(key, [float(v) for v in default], _to_scalar)


def _to_scalar(value: Sequence[float]) -> Tuple[float, float, float]:
    values = tuple(float(v) for v in value)
    if len(values) != 3:
        raise ValueError(f"Scalar preference must have three channels, got {len(values)}")
    return values
