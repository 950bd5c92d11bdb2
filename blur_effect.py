"""
Panel Blur - Blur Effect
========================
A long-lived blur effect handle that can be attached to one ``Actor`` at a
time.

The blur itself is Qt's ``QGraphicsBlurEffect``; this handle only carries
the tunables (sigma, brightness, mode) and knows which actor to repaint.

Modes
-----
``BlurMode.STATIC``  (0) blurs the actor's own content.
``BlurMode.DYNAMIC`` (1) blurs whatever the stage painted beneath the actor.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Optional

from PyQt6.QtCore import QObject, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QImage, QPainter, QPixmap
from PyQt6.QtWidgets import QGraphicsBlurEffect, QGraphicsPixmapItem, QGraphicsScene

if TYPE_CHECKING:
    from stage import Actor

log = logging.getLogger("PanelBlur.Effect")

DEFAULT_SIGMA      = 30
DEFAULT_BRIGHTNESS = 0.6


class BlurMode(enum.IntEnum):
    STATIC  = 0
    DYNAMIC = 1


# ═════════════════════════════════════════════════════════════
#  BlurEffect
# ═════════════════════════════════════════════════════════════
class BlurEffect(QObject):
    """
    Blur + dim effect handle.

    Parameters
    ----------
    sigma : int
        Blur radius handed to ``QGraphicsBlurEffect``.
    brightness : float
        ``1.0`` leaves the blurred image untouched, ``0.0`` paints it black.
    mode : BlurMode
        See module docstring.

    Signals
    -------
    repaintQueued
        Emitted by ``queue_repaint()``.
    """

    repaintQueued = pyqtSignal()

    def __init__(
        self,
        sigma: int = DEFAULT_SIGMA,
        brightness: float = DEFAULT_BRIGHTNESS,
        mode: BlurMode = BlurMode.DYNAMIC,
    ) -> None:
        super().__init__()
        self._sigma = sigma
        self._brightness = brightness
        self._mode = BlurMode(mode)
        self._actor: Optional[Actor] = None

    # ── Tunables ────────────────────────────────────────────
    @property
    def sigma(self) -> int:
        return self._sigma

    @sigma.setter
    def sigma(self, value: int) -> None:
        self._sigma = value
        self.queue_repaint()

    @property
    def brightness(self) -> float:
        return self._brightness

    @brightness.setter
    def brightness(self, value: float) -> None:
        self._brightness = value
        self.queue_repaint()

    @property
    def mode(self) -> BlurMode:
        return self._mode

    def set_mode(self, mode: BlurMode) -> None:
        self._mode = BlurMode(mode)
        self.queue_repaint()

    # ── Attachment ──────────────────────────────────────────
    @property
    def actor(self) -> Optional["Actor"]:
        """The actor this effect is attached to, or None."""
        return self._actor

    def _set_actor(self, actor: Optional["Actor"]) -> None:
        # only called by Actor.add_effect / Actor.remove_effect
        self._actor = actor

    def queue_repaint(self) -> None:
        """Ask the attached actor (if any) to redraw on the next frame."""
        if self._actor is not None:
            self._actor.queue_redraw()
        self.repaintQueued.emit()

    # ── Rendering ───────────────────────────────────────────
    def process(self, image: QImage) -> QImage:
        """Return a blurred, dimmed copy of *image*."""
        if image.isNull():
            return image

        w, h = image.width(), image.height()

        blur = QGraphicsBlurEffect()
        blur.setBlurRadius(float(self._sigma))
        blur.setBlurHints(QGraphicsBlurEffect.BlurHint.QualityHint)

        item = QGraphicsPixmapItem(QPixmap.fromImage(image))
        item.setGraphicsEffect(blur)

        scene = QGraphicsScene()
        scene.addItem(item)

        out = QImage(w, h, QImage.Format.Format_ARGB32_Premultiplied)
        out.fill(Qt.GlobalColor.transparent)
        painter = QPainter(out)
        try:
            scene.render(painter, QRectF(0, 0, w, h), QRectF(0, 0, w, h))

            alpha = int(round((1.0 - max(0.0, min(1.0, self._brightness))) * 255))
            if alpha:
                painter.setCompositionMode(
                    QPainter.CompositionMode.CompositionMode_SourceAtop
                )
                painter.fillRect(0, 0, w, h, QColor(0, 0, 0, alpha))
        finally:
            painter.end()

        return out
