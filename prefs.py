"""
Panel Blur - Preferences
========================
In-memory settings store read by the panel blur on every decision.

Values start from built-in defaults and may be seeded from a JSON file
(same flat ``{"KEY": value}`` layout as ``settings.json``).  The file is
only read, never written back.

Usage
-----
>>> prefs = Prefs.from_file("settings.json")
>>> prefs.get(STATIC_BLUR)
False
>>> prefs.changed.connect(lambda key: print("changed", key))
>>> prefs.set(HACKS_LEVEL, 2)
changed HACKS_LEVEL
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from PyQt6.QtCore import QObject, pyqtSignal

log = logging.getLogger("PanelBlur.Prefs")

# ─────────────────────────────────────────────────────────────
#  Keys & defaults
# ─────────────────────────────────────────────────────────────
STATIC_BLUR = "STATIC_BLUR"
HACKS_LEVEL = "HACKS_LEVEL"
SIGMA       = "SIGMA"
BRIGHTNESS  = "BRIGHTNESS"

DEFAULTS: dict[str, Any] = {
    STATIC_BLUR: False,
    HACKS_LEVEL: 1,
    SIGMA:       30,
    BRIGHTNESS:  0.6,
}


def _validate(key: str, value: Any) -> Any:
    """Return *value* normalised for *key*, or raise ``ValueError``."""
    if key == STATIC_BLUR:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a bool, got {value!r}")
        return value

    if key == HACKS_LEVEL:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 2:
            raise ValueError(f"{key} must be 0, 1 or 2, got {value!r}")
        return value

    if key == SIGMA:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError(f"{key} must be a non-negative number, got {value!r}")
        return int(value)

    if key == BRIGHTNESS:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
            raise ValueError(f"{key} must be within [0, 1], got {value!r}")
        return float(value)

    raise ValueError(f"Unknown preference key: {key!r}")


# ═════════════════════════════════════════════════════════════
#  Prefs
# ═════════════════════════════════════════════════════════════
class Prefs(QObject):
    """
    Key/value preference store with change notification.

    Signals
    -------
    changed(str)
        Emitted with the key name whenever ``set()`` stores a new value.
    """

    changed = pyqtSignal(str)

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        super().__init__()
        self._values: dict[str, Any] = dict(DEFAULTS)
        for key, value in (initial or {}).items():
            if key not in DEFAULTS:
                log.warning("Ignoring unknown preference %r.", key)
                continue
            self._values[key] = _validate(key, value)

    @classmethod
    def from_file(cls, path: str) -> "Prefs":
        """
        Build a store seeded from the JSON file at *path*.

        A missing or unreadable file yields the defaults.
        """
        if not os.path.exists(path):
            log.info("No settings file at %s, using defaults.", path)
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            log.error("Failed to read settings %s: %s", path, exc)
            return cls()

        if not isinstance(data, dict):
            log.error("Settings file %s does not hold an object.", path)
            return cls()

        return cls(data)

    # ─────────────────────────────────────────────────────────
    #  Public API
    # ─────────────────────────────────────────────────────────
    def get(self, key: str) -> Any:
        return self._values[key]

    def set(self, key: str, value: Any) -> None:
        value = _validate(key, value)
        if self._values.get(key) == value:
            return
        self._values[key] = value
        log.debug("Preference %s = %r", key, value)
        self.changed.emit(key)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)
