"""
Panel Blur - Shell Host
=======================
The desktop-shell side the panel blur plugs into: monitor layout, the
per-monitor wallpaper layer, the top panel and the extension manager.

Everything lives on a ``Stage`` actor tree::

    stage.root
      ├── background_group        (one BackgroundActor per monitor)
      └── panel_box               (panel container, placed on the primary monitor)
            └── panel             (TopPanel: left/center/right boxes + corners)

Usage
-----
>>> host = ShellHost(monitors=[Monitor(0, 0, 0, 1920, 1080)])
>>> host.attach_to(stage)
>>> host.layout.primary_monitor
Monitor(index=0, x=0, y=0, width=1920, height=1080)
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import Optional

from PyQt6.QtCore import QObject, QPointF, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QColor, QGuiApplication, QLinearGradient, QPainter, QPixmap

from stage import Actor, BackgroundActor, Stage

log = logging.getLogger("PanelBlur.Shell")

PANEL_HEIGHT  = 32
CORNER_RADIUS = 6


# ─────────────────────────────────────────────────────────────
#  Monitors
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Monitor:
    index: int
    x: int
    y: int
    width: int
    height: int


# ═════════════════════════════════════════════════════════════
#  BackgroundSettings: which wallpaper to show
# ═════════════════════════════════════════════════════════════
class BackgroundSettings(QObject):
    """
    Desktop background setting.

    ``changed(str)`` fires with the key name whenever the wallpaper
    changes.  Rendering falls back to a gradient when no picture is set
    or the file cannot be loaded.
    """

    changed = pyqtSignal(str)

    def __init__(self, picture_path: Optional[str] = None) -> None:
        super().__init__()
        self._picture_path = picture_path

    @property
    def picture_path(self) -> Optional[str]:
        return self._picture_path

    def set_picture(self, path: Optional[str]) -> None:
        if path == self._picture_path:
            return
        self._picture_path = path
        log.info("Wallpaper set to %s", path)
        self.changed.emit("picture-uri")

    def render(self, width: int, height: int) -> QPixmap:
        """Wallpaper scaled to cover *width* x *height*."""
        path = self._picture_path
        if path and os.path.exists(path):
            pix = QPixmap(path)
            if not pix.isNull():
                scaled = pix.scaled(
                    width, height,
                    Qt.AspectRatioMode.KeepAspectRatioByExpanding,
                    Qt.TransformationMode.SmoothTransformation,
                )
                return scaled.copy(
                    (scaled.width() - width) // 2,
                    (scaled.height() - height) // 2,
                    width, height,
                )
            log.warning("Could not load wallpaper %s, using gradient.", path)

        return _gradient(width, height)


def _gradient(w: int, h: int) -> QPixmap:
    """Diagonal red -> purple -> blue fill."""
    pix = QPixmap(max(1, w), max(1, h))
    grad = QLinearGradient(QPointF(0, 0), QPointF(w, h))
    grad.setColorAt(0.0, QColor("#e74c3c"))   # red
    grad.setColorAt(0.5, QColor("#8e44ad"))   # purple
    grad.setColorAt(1.0, QColor("#2980b9"))   # blue
    painter = QPainter(pix)
    painter.fillRect(0, 0, w, h, QBrush(grad))
    painter.end()
    return pix


# ═════════════════════════════════════════════════════════════
#  BackgroundGroup: the wallpaper layer
# ═════════════════════════════════════════════════════════════
class BackgroundGroup(Actor):
    """Holds one ``BackgroundActor`` per monitor, in monitor-index order."""

    def __init__(self, settings: BackgroundSettings) -> None:
        super().__init__(style_class="background-group")
        self._settings = settings
        self._monitors: list[Monitor] = []
        settings.changed.connect(self.reload)

    def rebuild(self, monitors: list[Monitor]) -> None:
        for child in self.get_children():
            child.destroy()

        self._monitors = list(monitors)
        for mon in self._monitors:
            actor = BackgroundActor(
                mon.index, x=mon.x, y=mon.y, width=mon.width, height=mon.height,
            )
            actor.set_content(self._settings.render(mon.width, mon.height))
            self.add_child(actor)
        log.debug("Background group rebuilt for %d monitor(s).", len(self._monitors))

    def reload(self, *_args) -> None:
        """Re-render every monitor's wallpaper from the settings."""
        for actor, mon in zip(self.get_children(), self._monitors):
            actor.set_content(self._settings.render(mon.width, mon.height))
        log.debug("Wallpaper content reloaded.")


# ═════════════════════════════════════════════════════════════
#  LayoutManager: monitor geometry
# ═════════════════════════════════════════════════════════════
class LayoutManager(QObject):
    """
    Tracks monitors and the primary monitor.

    ``monitorsChanged`` is emitted after the wallpaper layer has been
    rebuilt for the new layout.
    """

    monitorsChanged = pyqtSignal()

    def __init__(
        self,
        background_settings: BackgroundSettings,
        monitors: Optional[list[Monitor]] = None,
        primary_index: int = 0,
    ) -> None:
        super().__init__()
        self.background_group = BackgroundGroup(background_settings)
        self._monitors: list[Monitor] = []
        self._primary_index = primary_index
        if monitors:
            self._monitors = list(monitors)
            self.background_group.rebuild(self._monitors)

    @property
    def monitors(self) -> list[Monitor]:
        return list(self._monitors)

    @property
    def primary_index(self) -> int:
        return self._primary_index

    @property
    def primary_monitor(self) -> Monitor:
        """
        The current primary monitor.

        Raises ``RuntimeError`` when no monitor is known.
        """
        if not 0 <= self._primary_index < len(self._monitors):
            raise RuntimeError("No primary monitor available.")
        return self._monitors[self._primary_index]

    def set_monitors(self, monitors: list[Monitor], primary_index: int = 0) -> None:
        self._monitors = list(monitors)
        self._primary_index = primary_index
        self.background_group.rebuild(self._monitors)
        log.info(
            "Monitors changed: %d monitor(s), primary=%d.",
            len(self._monitors), primary_index,
        )
        self.monitorsChanged.emit()

    # ── Qt screens ──────────────────────────────────────────
    def refresh_from_screens(self, *_args) -> None:
        """Rebuild the monitor list from ``QGuiApplication.screens()``."""
        screens = QGuiApplication.screens()
        primary = QGuiApplication.primaryScreen()

        monitors = []
        for idx, screen in enumerate(screens):
            geo = screen.geometry()
            monitors.append(Monitor(idx, geo.x(), geo.y(), geo.width(), geo.height()))

        primary_index = screens.index(primary) if primary in screens else -1
        self.set_monitors(monitors, primary_index)


# ═════════════════════════════════════════════════════════════
#  TopPanel
# ═════════════════════════════════════════════════════════════
class TopPanel(Actor):
    """
    The shell's top bar.

    Direct children: left/center/right boxes and the two rounded corner
    decorations that hang below the panel.
    """

    def __init__(self, width: int, height: int = PANEL_HEIGHT) -> None:
        super().__init__(
            width=width, height=height, style_class="panel",
            color=QColor(0, 0, 0, 70), reactive=True,
        )
        self.left_box   = Actor(style_class="panel-left-box", reactive=True)
        self.center_box = Actor(style_class="panel-center-box", reactive=True)
        self.right_box  = Actor(style_class="panel-right-box", reactive=True)
        self.left_corner  = Actor(style_class="panel-corner", color=QColor(0, 0, 0, 70))
        self.right_corner = Actor(style_class="panel-corner", color=QColor(0, 0, 0, 70))

        for child in (
            self.left_box, self.center_box, self.right_box,
            self.left_corner, self.right_corner,
        ):
            self.add_child(child)

        self.widthChanged.connect(self._relayout)
        self.heightChanged.connect(self._relayout)
        self._relayout()

    def _relayout(self, *_args) -> None:
        w, h = self.width, self.height
        third = w // 3
        self.left_box.set_position(0, 0)
        self.left_box.set_size(third, h)
        self.center_box.set_position(third, 0)
        self.center_box.set_size(w - 2 * third, h)
        self.right_box.set_position(w - third, 0)
        self.right_box.set_size(third, h)

        self.left_corner.set_position(0, h)
        self.left_corner.set_size(CORNER_RADIUS, CORNER_RADIUS)
        self.right_corner.set_position(w - CORNER_RADIUS, h)
        self.right_corner.set_size(CORNER_RADIUS, CORNER_RADIUS)


# ═════════════════════════════════════════════════════════════
#  Extensions
# ═════════════════════════════════════════════════════════════
class ExtensionState(enum.IntEnum):
    ENABLED      = 1
    DISABLED     = 2
    ERROR        = 3
    OUT_OF_DATE  = 4
    DOWNLOADING  = 5
    INITIALIZED  = 6


@dataclass(frozen=True)
class ExtensionInfo:
    uuid: str
    state: ExtensionState


class ExtensionManager(QObject):
    """Announces state changes of the other shell extensions."""

    extensionStateChanged = pyqtSignal(object)  # ExtensionInfo

    def __init__(self) -> None:
        super().__init__()
        self._states: dict[str, ExtensionState] = {}

    def set_state(self, uuid: str, state: ExtensionState) -> None:
        self._states[uuid] = ExtensionState(state)
        log.info("Extension %s -> %s", uuid, ExtensionState(state).name)
        self.extensionStateChanged.emit(ExtensionInfo(uuid, ExtensionState(state)))

    def get_state(self, uuid: str) -> Optional[ExtensionState]:
        return self._states.get(uuid)


# ═════════════════════════════════════════════════════════════
#  ShellHost: everything the panel blur talks to
# ═════════════════════════════════════════════════════════════
class ShellHost:
    """
    Bundles layout, wallpaper layer, panel and extension manager.

    Parameters
    ----------
    monitors : list[Monitor], optional
        Initial layout.  When omitted the layout starts empty; call
        ``layout.refresh_from_screens()`` or ``layout.set_monitors()``.
    picture_path : str, optional
        Wallpaper image file.
    """

    def __init__(
        self,
        monitors: Optional[list[Monitor]] = None,
        primary_index: int = 0,
        picture_path: Optional[str] = None,
        panel_height: int = PANEL_HEIGHT,
    ) -> None:
        self.background_settings = BackgroundSettings(picture_path)
        self.layout = LayoutManager(self.background_settings, monitors, primary_index)
        self.extension_manager = ExtensionManager()

        self.panel_box = Actor(style_class="panel-box")
        self.panel = TopPanel(0, panel_height)
        self.panel_box.add_child(self.panel)

        # placed before any other monitorsChanged subscriber
        self.layout.monitorsChanged.connect(self._place_panel)
        if monitors:
            self._place_panel()

    def _place_panel(self) -> None:
        try:
            mon = self.layout.primary_monitor
        except RuntimeError:
            log.warning("No primary monitor, panel left in place.")
            return
        self.panel_box.set_position(mon.x, mon.y)
        self.panel.width = mon.width

    def attach_to(self, stage: Stage) -> None:
        """Add the wallpaper layer and the panel container to *stage*."""
        stage.root.add_child(self.layout.background_group)
        stage.root.add_child(self.panel_box)
