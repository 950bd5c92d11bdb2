"""
Panel Blur - Extension Entry Point
==================================
Top-level enable / disable for the panel blur.

Creates the subscription registry and the ``PanelBlur`` on enable, feeds
it preference changes while enabled, and tears both down on disable.

Usage
-----
>>> ext = PanelBlurExtension(host, Prefs.from_file("settings.json"))
>>> ext.enable()
>>> ext.disable()
"""

from __future__ import annotations

import logging
from typing import Optional

from connections import Connections
from panel_blur import PanelBlur
from prefs import BRIGHTNESS, HACKS_LEVEL, SIGMA, STATIC_BLUR, Prefs
from shell_host import ShellHost

log = logging.getLogger("PanelBlur.Extension")


class PanelBlurExtension:
    """
    Wires ``Prefs`` to a ``PanelBlur`` for the lifetime of one activation.

    Parameters
    ----------
    host : ShellHost
    prefs : Prefs
    **blur_kwargs
        Forwarded to ``PanelBlur`` (e.g. ``after`` / ``after_cancel``).
    """

    def __init__(self, host: ShellHost, prefs: Prefs, **blur_kwargs) -> None:
        self.host = host
        self.prefs = prefs
        self._blur_kwargs = blur_kwargs
        self.connections: Optional[Connections] = None
        self.panel_blur: Optional[PanelBlur] = None

    @property
    def is_enabled(self) -> bool:
        return self.panel_blur is not None

    def enable(self) -> None:
        if self.panel_blur is not None:
            log.warning("enable() called but already enabled, skipping.")
            return

        log.info("Enabling panel blur extension.")
        self.connections = Connections()
        self.panel_blur = PanelBlur(
            self.connections, self.prefs, self.host, **self._blur_kwargs,
        )
        self.panel_blur.set_sigma(self.prefs.get(SIGMA))
        self.panel_blur.set_brightness(self.prefs.get(BRIGHTNESS))
        self.panel_blur.enable()

        self.connections.connect(self.prefs, "changed", self._on_pref_changed)

    def disable(self) -> None:
        """Idempotent."""
        if self.panel_blur is None:
            return

        log.info("Disabling panel blur extension.")
        self.panel_blur.disable()
        self.connections.disconnect_all()
        self.panel_blur = None
        self.connections = None

    def _on_pref_changed(self, key: str) -> None:
        blur = self.panel_blur
        if blur is None:
            return

        if key in (STATIC_BLUR, HACKS_LEVEL):
            blur.change_blur_type()
        elif key == SIGMA:
            blur.set_sigma(self.prefs.get(SIGMA))
        elif key == BRIGHTNESS:
            blur.set_brightness(self.prefs.get(BRIGHTNESS))
