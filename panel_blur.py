"""
Panel Blur - Top Panel Backdrop
===============================
Draws a blurred backdrop behind the shell's top panel.

Two modes, selected by the ``STATIC_BLUR`` preference:

* **static**  - a frozen copy of the primary monitor's wallpaper, clipped
  to the panel's rectangle.
* **dynamic** - a live blur of whatever the stage paints beneath the panel.

The backdrop follows monitor, panel-height and wallpaper changes, and an
optional "hack level" adds extra repaint triggers to hide artefacts left
by panel button shadows under the live blur.

Usage
-----
>>> blur = PanelBlur(Connections(), prefs, host)
>>> blur.enable()
>>> blur.set_sigma(40)
>>> blur.disable()
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from PyQt6.QtCore import QTimer

from blur_effect import DEFAULT_BRIGHTNESS, DEFAULT_SIGMA, BlurEffect, BlurMode
from connections import Connection, Connections
from prefs import HACKS_LEVEL, STATIC_BLUR, Prefs
from shell_host import ExtensionInfo, ExtensionState, Monitor, ShellHost
from stage import Actor, BackgroundActor

log = logging.getLogger("PanelBlur")

DASH_TO_PANEL_UUID = "dash-to-panel@jderose9.github.com"

RESET_DELAY_MS     = 500   # re-insert after a conflicting extension loads
WALLPAPER_DELAY_MS = 100   # let the new wallpaper finish loading

HACK_EVENTS = ("entered", "left", "pressed")

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]


def _qt_after(delay_ms: int, callback: Callable[[], None]) -> QTimer:
    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(callback)
    timer.start(delay_ms)
    return timer


def _qt_after_cancel(timer: QTimer) -> None:
    timer.stop()


class HackLevel(enum.IntEnum):
    NONE             = 0
    REPAINT_ON_INPUT = 1
    PAINT_HOOK       = 2   # reserved, installs nothing


# ─────────────────────────────────────────────────────────────
#  Backdrop content
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class StaticContent:
    """Frozen wallpaper copy; never carries the blur effect."""
    actor: BackgroundActor


@dataclass(frozen=True)
class DynamicContent:
    """Plain sized node the blur effect is attached to."""
    actor: Actor


BackdropContent = Union[StaticContent, DynamicContent]


# ═════════════════════════════════════════════════════════════
#  PanelBlur
# ═════════════════════════════════════════════════════════════
class PanelBlur:
    """
    Owns the panel backdrop: effect, container, content node and every
    subscription it makes.

    Parameters
    ----------
    connections : Connections
        Registry all subscriptions go through.
    prefs : Prefs
        Read on every decision, never cached.
    host : ShellHost
        Layout, panel, wallpaper layer and extension manager.
    after, after_cancel : callable
        One-shot deferred execution (defaults to ``QTimer``).

    Raises ``RuntimeError`` when the host has no primary monitor.
    """

    def __init__(
        self,
        connections: Connections,
        prefs: Prefs,
        host: ShellHost,
        *,
        after: AfterFn = _qt_after,
        after_cancel: AfterCancelFn = _qt_after_cancel,
    ) -> None:
        self.connections = connections
        self.prefs = prefs
        self.host = host
        self._after = after
        self._after_cancel = after_cancel

        self._enabled = False
        self._connections: list[Connection] = []
        self._hack_connections: list[Connection] = []
        self._timers: dict[str, object] = {}

        monitor = self.monitor
        is_static = self.is_static

        self.effect = BlurEffect(
            sigma=DEFAULT_SIGMA,
            brightness=DEFAULT_BRIGHTNESS,
            mode=BlurMode.STATIC if is_static else BlurMode.DYNAMIC,
        )
        self.background_parent = Actor(
            style_class="topbar-blurred-background-parent",
            x=monitor.x,
            y=monitor.y,
            width=monitor.width,
            height=0,
        )
        self.content: BackdropContent = self._build_content(is_static)
        self._attach_content(self.content)

    # ─────────────────────────────────────────────────────────
    #  Properties
    # ─────────────────────────────────────────────────────────
    @property
    def monitor(self) -> Monitor:
        """The primary monitor, queried fresh every time."""
        return self.host.layout.primary_monitor

    @property
    def background(self) -> Actor:
        return self.content.actor

    @property
    def is_static(self) -> bool:
        return bool(self.prefs.get(STATIC_BLUR))

    @property
    def hack_level(self) -> HackLevel:
        value = self.prefs.get(HACKS_LEVEL)
        try:
            return HackLevel(value)
        except ValueError:
            log.warning("Unknown hack level %r, treating as none.", value)
            return HackLevel.NONE

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    # ─────────────────────────────────────────────────────────
    #  Public API
    # ─────────────────────────────────────────────────────────
    def enable(self) -> None:
        if self._enabled:
            log.warning("enable() called but panel blur already enabled, skipping.")
            return

        log.info("blurring top panel")
        self._enabled = True
        panel = self.host.panel

        self._track(self.connections.connect(
            self.host.extension_manager, "extensionStateChanged",
            self._on_extension_state_changed,
        ))

        # behind the panel's own content
        panel.get_parent().insert_child_at_index(self.background_parent, 0)

        # corners can't be styled to match the backdrop
        panel.left_corner.hide()
        panel.right_corner.hide()

        self.change_blur_type()

        self._track(self.connections.connect(
            panel, "heightChanged", self._on_panel_height_changed,
        ))
        self._track(self.connections.connect(
            self.host.layout, "monitorsChanged", self._on_monitors_changed,
        ))
        self._track(self.connections.connect(
            self.host.background_settings, "changed", self._on_background_changed,
        ))

    def disable(self) -> None:
        """Detach the backdrop and release subscriptions.  Idempotent."""
        log.info("removing blur from top panel")

        panel = self.host.panel
        panel.left_corner.show()
        panel.right_corner.show()

        for key in list(self._timers):
            self._cancel_timer(key)
        self._remove_hacks()
        for conn in self._connections:
            conn.disconnect()
        self._connections.clear()
        self._enabled = False

        container = self.background_parent.get_parent()
        if container is None:
            log.debug("Backdrop already detached.")
            return
        container.remove_child(self.background_parent)

    def change_blur_type(self) -> None:
        """Rebuild the content node for the current mode."""
        is_static = self.is_static

        self._remove_hacks()

        old = self.content.actor
        old.remove_effect(self.effect)
        self.background_parent.remove_child(old)
        old.destroy()

        self.content = self._build_content(is_static)
        self._attach_content(self.content)

        self.update_wallpaper(is_static)
        self.update_size(is_static)
        log.info("Panel blur mode: %s", "static" if is_static else "dynamic")

        if not is_static and self._enabled:
            self._install_hacks(self.hack_level)

    def update_wallpaper(self, is_static: bool) -> None:
        if not is_static:
            return
        bg = self.host.layout.background_group.get_child_at_index(self.monitor.index)
        self.background.set_content(bg.get_content())

    def update_size(self, is_static: bool) -> None:
        monitor = self.monitor
        panel = self.host.panel
        if is_static:
            self.background.set_clip(monitor.x, monitor.y, panel.width, panel.height)
        else:
            self.background.height = panel.height
            self.background.width = monitor.width
            # parent height stays 0; only the content node is visible
            self.background_parent.width = monitor.width

    def set_sigma(self, sigma: int) -> None:
        self.effect.sigma = sigma

    def set_brightness(self, brightness: float) -> None:
        self.effect.brightness = brightness

    def show(self) -> None:
        self.background_parent.show()

    def hide(self) -> None:
        self.background_parent.hide()

    # ─────────────────────────────────────────────────────────
    #  Internals: content
    # ─────────────────────────────────────────────────────────
    def _build_content(self, is_static: bool) -> BackdropContent:
        if is_static:
            return StaticContent(BackgroundActor(
                self.monitor.index, style_class="topbar-blurred-background",
            ))
        return DynamicContent(Actor(
            style_class="topbar-blurred-background",
            x=0,
            y=0,
            width=self.monitor.width,
            height=self.host.panel.height,
        ))

    def _attach_content(self, content: BackdropContent) -> None:
        if isinstance(content, DynamicContent):
            self.effect.set_mode(BlurMode.DYNAMIC)
            content.actor.add_effect(self.effect)
        else:
            self.effect.set_mode(BlurMode.STATIC)
        self.background_parent.add_child(content.actor)

    # ─────────────────────────────────────────────────────────
    #  Internals: hack levels
    # ─────────────────────────────────────────────────────────
    # The live blur does not repaint when a shadow beneath it changes.
    # Level 1 forces a repaint on the panel interactions that toggle
    # button shadows.  Level 2 used to hook every paint and is kept
    # selectable but inert.
    def _install_hacks(self, level: HackLevel) -> None:
        if level == HackLevel.REPAINT_ON_INPUT:
            log.info("panel hack level 1")
            panel = self.host.panel
            for actor in [panel, *panel.get_children()]:
                for event_name in HACK_EVENTS:
                    self._hack_connections.append(self.connections.connect(
                        actor, event_name, self._queue_repaint,
                    ))
        elif level == HackLevel.PAINT_HOOK:
            log.info("panel hack level 2")

    def _remove_hacks(self) -> None:
        for conn in self._hack_connections:
            conn.disconnect()
        self._hack_connections.clear()

    def _queue_repaint(self, *_args) -> None:
        self.effect.queue_repaint()

    # ─────────────────────────────────────────────────────────
    #  Internals: event handlers
    # ─────────────────────────────────────────────────────────
    def _on_extension_state_changed(self, info: ExtensionInfo) -> None:
        if info.uuid == DASH_TO_PANEL_UUID and info.state == ExtensionState.ENABLED:
            # best effort: not guaranteed to end up above the other panel
            log.info("Dash to Panel detected, resetting panel blur")
            self._schedule("reset", RESET_DELAY_MS, self._reset)

    def _reset(self) -> None:
        self.disable()
        self.enable()

    def _on_panel_height_changed(self, *_args) -> None:
        self.update_size(self.is_static)

    def _on_monitors_changed(self) -> None:
        is_static = self.is_static
        self.update_wallpaper(is_static)
        self.update_size(is_static)

    def _on_background_changed(self, *_args) -> None:
        self._schedule(
            "wallpaper", WALLPAPER_DELAY_MS,
            lambda: self.update_wallpaper(self.is_static),
        )

    # ─────────────────────────────────────────────────────────
    #  Internals: bookkeeping
    # ─────────────────────────────────────────────────────────
    def _track(self, conn: Connection) -> None:
        self._connections.append(conn)

    def _schedule(self, key: str, delay_ms: int, callback: Callable[[], None]) -> None:
        """Run *callback* once after *delay_ms*, replacing any pending run."""
        self._cancel_timer(key)

        def _run() -> None:
            # local ref keeps the timer alive until its own callback returns
            handle = self._timers.pop(key, None)  # noqa: F841
            callback()

        self._timers[key] = self._after(delay_ms, _run)

    def _cancel_timer(self, key: str) -> None:
        handle: Optional[object] = self._timers.pop(key, None)
        if handle is not None:
            self._after_cancel(handle)
