"""
Panel Blur - Demo
=================
Quick visual test: a shell window with a wallpaper, a top panel and the
blurred backdrop behind it.

Usage:
    python demo.py [wallpaper.png] [settings.json]

Controls:
    S        toggle static / dynamic blur
    H        cycle hack level 0 -> 1 -> 2
    Up/Down  change blur sigma
    D        simulate Dash to Panel being enabled
    Ctrl+C  or close the window to exit cleanly.
"""

import logging
import signal
import sys

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import QApplication

from extension import PanelBlurExtension
from panel_blur import DASH_TO_PANEL_UUID
from prefs import HACKS_LEVEL, SIGMA, STATIC_BLUR, Prefs
from shell_host import ExtensionState, Monitor, ShellHost
from stage import Actor, Stage

# ── Logging ─────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s  %(name)-18s  %(levelname)-5s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("demo")

DEMO_WIDTH  = 1280
DEMO_HEIGHT = 720


class DemoStage(Stage):
    """Stage window with keyboard shortcuts bound to the preferences."""

    def __init__(self, host: ShellHost, prefs: Prefs) -> None:
        super().__init__(DEMO_WIDTH, DEMO_HEIGHT)
        self.setWindowTitle("Panel Blur demo")
        self._host = host
        self._prefs = prefs

    def keyPressEvent(self, event) -> None:  # noqa: N802
        key = event.key()
        if key == Qt.Key.Key_S:
            self._prefs.set(STATIC_BLUR, not self._prefs.get(STATIC_BLUR))
        elif key == Qt.Key.Key_H:
            self._prefs.set(HACKS_LEVEL, (self._prefs.get(HACKS_LEVEL) + 1) % 3)
        elif key == Qt.Key.Key_Up:
            self._prefs.set(SIGMA, self._prefs.get(SIGMA) + 5)
        elif key == Qt.Key.Key_Down:
            self._prefs.set(SIGMA, max(0, self._prefs.get(SIGMA) - 5))
        elif key == Qt.Key.Key_D:
            self._host.extension_manager.set_state(
                DASH_TO_PANEL_UUID, ExtensionState.ENABLED,
            )
        else:
            super().keyPressEvent(event)


def _add_panel_buttons(host: ShellHost) -> None:
    """A few coloured blocks so the blur has something to show."""
    for i, box in enumerate((host.panel.left_box, host.panel.right_box)):
        button = Actor(
            x=8 + i * 4, y=4, width=90, height=24,
            color=QColor(255, 255, 255, 40), reactive=True,
        )
        box.add_child(button)


# ── Main ────────────────────────────────────────────────────
def main() -> None:
    app = QApplication(sys.argv)

    picture = sys.argv[1] if len(sys.argv) > 1 else None
    prefs = Prefs.from_file(sys.argv[2]) if len(sys.argv) > 2 else Prefs()

    host = ShellHost(
        monitors=[Monitor(0, 0, 0, DEMO_WIDTH, DEMO_HEIGHT)],
        picture_path=picture,
    )
    _add_panel_buttons(host)

    stage = DemoStage(host, prefs)
    host.attach_to(stage)

    ext = PanelBlurExtension(host, prefs)

    # ── Clean exit on Ctrl+C ────────────────────────────────
    def _shutdown(*_):
        log.info("Shutting down…")
        ext.disable()
        app.quit()

    signal.signal(signal.SIGINT, _shutdown)

    ext.enable()
    stage.show()

    log.info("Panel blur demo is running.  Press Ctrl+C to exit.")

    app.aboutToQuit.connect(ext.disable)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
