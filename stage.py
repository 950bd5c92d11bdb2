"""
Panel Blur - Stage
==================
A small retained-mode scene graph rendered by a single Qt widget.

``Actor`` nodes carry geometry relative to their parent, an optional clip
rectangle, optional pixmap content, a fill colour and attached effects.
Unlike ``QWidget`` children, child actors are *not* clipped to their
parent's bounds, so a zero-height container can hold visible children.

``Stage`` paints the tree in child order (first child is bottom-most) into
a cached frame and dispatches pointer crossing / press events to actors.

Rendering pipeline
------------------
1. Any ``queue_redraw()`` bubbles to the root and drops the frame cache.
2. On the next paintEvent the tree is rendered into a fresh ``QImage``.
3. An attached dynamic ``BlurEffect`` blurs what is already in the frame
   beneath its actor; a static one blurs the actor's own content.
4. Subsequent paintEvent calls blit the cached frame.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QObject, QPoint, QRect, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QImage, QPainter, QPixmap
from PyQt6.QtWidgets import QWidget

from blur_effect import BlurEffect, BlurMode

log = logging.getLogger("PanelBlur.Stage")


# ═════════════════════════════════════════════════════════════
#  Actor
# ═════════════════════════════════════════════════════════════
class Actor(QObject):
    """
    A node of the stage tree.

    Signals
    -------
    widthChanged(int), heightChanged(int)
        Emitted when the corresponding size changes.
    entered, left, pressed
        Pointer crossing / button press, delivered by ``Stage``.
    redrawRequested
        Bubbles from any descendant up to the root.
    """

    widthChanged    = pyqtSignal(int)
    heightChanged   = pyqtSignal(int)
    entered         = pyqtSignal()
    left            = pyqtSignal()
    pressed         = pyqtSignal()
    redrawRequested = pyqtSignal()

    def __init__(
        self,
        *,
        x: int = 0,
        y: int = 0,
        width: int = 0,
        height: int = 0,
        style_class: str = "",
        color: Optional[QColor] = None,
        reactive: bool = False,
    ) -> None:
        super().__init__()
        self._x = x
        self._y = y
        self._width = width
        self._height = height
        self.style_class = style_class
        self.color = color
        self.reactive = reactive

        self._visible = True
        self._clip: Optional[QRect] = None
        self._content: Optional[QPixmap] = None
        self._effects: list[BlurEffect] = []
        self._children: list[Actor] = []
        self._parent: Optional[Actor] = None
        self._destroyed = False

    def __repr__(self) -> str:
        name = self.style_class or type(self).__name__
        return f"<{name} {self._x},{self._y} {self._width}x{self._height}>"

    # ─────────────────────────────────────────────────────────
    #  Geometry
    # ─────────────────────────────────────────────────────────
    @property
    def x(self) -> int:
        return self._x

    @x.setter
    def x(self, value: int) -> None:
        self._x = int(value)
        self.queue_redraw()

    @property
    def y(self) -> int:
        return self._y

    @y.setter
    def y(self, value: int) -> None:
        self._y = int(value)
        self.queue_redraw()

    @property
    def width(self) -> int:
        return self._width

    @width.setter
    def width(self, value: int) -> None:
        value = int(value)
        if value == self._width:
            return
        self._width = value
        self.widthChanged.emit(value)
        self.queue_redraw()

    @property
    def height(self) -> int:
        return self._height

    @height.setter
    def height(self, value: int) -> None:
        value = int(value)
        if value == self._height:
            return
        self._height = value
        self.heightChanged.emit(value)
        self.queue_redraw()

    def set_position(self, x: int, y: int) -> None:
        self._x, self._y = int(x), int(y)
        self.queue_redraw()

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def stage_position(self) -> tuple[int, int]:
        """Absolute position obtained by walking up the parents."""
        x, y = self._x, self._y
        parent = self._parent
        while parent is not None:
            x += parent._x
            y += parent._y
            parent = parent._parent
        return x, y

    # ── Clip ────────────────────────────────────────────────
    @property
    def clip(self) -> Optional[QRect]:
        """Clip rectangle in the actor's own coordinates, or None."""
        return QRect(self._clip) if self._clip is not None else None

    @property
    def has_clip(self) -> bool:
        return self._clip is not None

    def set_clip(self, x: int, y: int, width: int, height: int) -> None:
        self._clip = QRect(int(x), int(y), int(width), int(height))
        self.queue_redraw()

    def remove_clip(self) -> None:
        self._clip = None
        self.queue_redraw()

    # ── Visibility ──────────────────────────────────────────
    @property
    def visible(self) -> bool:
        return self._visible

    def show(self) -> None:
        if not self._visible:
            self._visible = True
            self.queue_redraw()

    def hide(self) -> None:
        if self._visible:
            self._visible = False
            self.queue_redraw()

    # ── Content ─────────────────────────────────────────────
    def set_content(self, pixmap: Optional[QPixmap]) -> None:
        self._content = pixmap
        self.queue_redraw()

    def get_content(self) -> Optional[QPixmap]:
        return self._content

    # ─────────────────────────────────────────────────────────
    #  Tree
    # ─────────────────────────────────────────────────────────
    def get_parent(self) -> Optional["Actor"]:
        return self._parent

    def get_children(self) -> list["Actor"]:
        return list(self._children)

    def get_child_at_index(self, index: int) -> "Actor":
        if index < 0:
            raise IndexError(f"child index out of range: {index}")
        return self._children[index]

    def get_n_children(self) -> int:
        return len(self._children)

    def add_child(self, child: "Actor") -> None:
        self.insert_child_at_index(child, len(self._children))

    def insert_child_at_index(self, child: "Actor", index: int) -> None:
        """Insert *child* so that it is painted after ``index`` siblings."""
        if child._parent is not None:
            raise ValueError(f"{child!r} already has a parent ({child._parent!r})")
        if child is self:
            raise ValueError("an actor cannot be its own child")

        index = max(0, min(index, len(self._children)))
        self._children.insert(index, child)
        child._parent = self
        child.redrawRequested.connect(self.queue_redraw)
        self.queue_redraw()

    def remove_child(self, child: "Actor") -> None:
        if child._parent is not self:
            raise ValueError(f"{child!r} is not a child of {self!r}")

        self._children.remove(child)
        child._parent = None
        child.redrawRequested.disconnect(self.queue_redraw)
        self.queue_redraw()

    def destroy(self) -> None:
        """Detach from the parent, drop effects and destroy children."""
        if self._destroyed:
            return
        self._destroyed = True

        if self._parent is not None:
            self._parent.remove_child(self)
        for effect in list(self._effects):
            self.remove_effect(effect)
        for child in list(self._children):
            child.destroy()
        self._content = None
        self.deleteLater()

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ── Effects ─────────────────────────────────────────────
    def add_effect(self, effect: BlurEffect) -> None:
        if effect in self._effects:
            return
        if effect.actor is not None:
            raise ValueError(f"effect already attached to {effect.actor!r}")
        self._effects.append(effect)
        effect._set_actor(self)
        self.queue_redraw()

    def remove_effect(self, effect: BlurEffect) -> None:
        if effect not in self._effects:
            return
        self._effects.remove(effect)
        effect._set_actor(None)
        self.queue_redraw()

    def get_effects(self) -> list[BlurEffect]:
        return list(self._effects)

    def queue_redraw(self) -> None:
        self.redrawRequested.emit()

    # ── Picking ─────────────────────────────────────────────
    def pick(self, x: int, y: int) -> Optional["Actor"]:
        """
        Deepest visible reactive actor under (*x*, *y*), given in the
        parent's coordinates.  Later children sit on top.
        """
        if not self._visible:
            return None

        lx, ly = x - self._x, y - self._y
        for child in reversed(self._children):
            hit = child.pick(lx, ly)
            if hit is not None:
                return hit

        if self.reactive and 0 <= lx < self._width and 0 <= ly < self._height:
            return self
        return None


# ═════════════════════════════════════════════════════════════
#  BackgroundActor: wallpaper / frozen capture node
# ═════════════════════════════════════════════════════════════
class BackgroundActor(Actor):
    """
    Draws a wallpaper pixmap.

    Used both by the shell's background layer (one per monitor) and by the
    panel blur in static mode, where it receives a copy of a monitor's
    wallpaper content and is clipped down to the panel's rectangle.
    """

    def __init__(self, monitor_index: int = -1, **kwargs) -> None:
        kwargs.setdefault("style_class", "background-actor")
        super().__init__(**kwargs)
        self.monitor_index = monitor_index


# ═════════════════════════════════════════════════════════════
#  Stage: the Qt widget that paints the actor tree
# ═════════════════════════════════════════════════════════════
class Stage(QWidget):
    """
    Frameless surface painting a tree of ``Actor`` objects.

    The frame is cached and only re-rendered after a redraw request or a
    resize, the same way a static wallpaper surface is.
    """

    def __init__(self, width: int, height: int) -> None:
        super().__init__()
        self.root = Actor(width=width, height=height, style_class="stage")
        self.root.redrawRequested.connect(self.invalidate)

        self._frame: Optional[QImage] = None
        self._hovered: list[Actor] = []

        self.setMouseTracking(True)
        self.resize(width, height)

    # ── Cache management ────────────────────────────────────
    def invalidate(self) -> None:
        """Force a full re-render on the next paintEvent."""
        self._frame = None
        self.update()

    def resizeEvent(self, event) -> None:  # noqa: N802
        self.root.set_size(self.width(), self.height())
        self.invalidate()
        super().resizeEvent(event)

    # ── Rendering ───────────────────────────────────────────
    def render_frame(self) -> QImage:
        """Render the whole tree into a new image."""
        frame = QImage(
            max(1, self.width()), max(1, self.height()),
            QImage.Format.Format_ARGB32_Premultiplied,
        )
        frame.fill(QColor(0, 0, 0))
        self._render_actor(frame, self.root, 0, 0)
        return frame

    def _render_actor(self, frame: QImage, actor: Actor, ox: int, oy: int) -> None:
        if not actor.visible:
            return

        ax, ay = ox + actor.x, oy + actor.y
        content = actor.get_content()
        w = actor.width or (content.width() if content is not None else 0)
        h = actor.height or (content.height() if content is not None else 0)
        rect = QRect(ax, ay, w, h)

        clip = actor.clip
        clip_rect = clip.translated(ax, ay) if clip is not None else None

        effect = next(iter(actor.get_effects()), None)

        if not rect.isEmpty():
            if effect is not None and effect.mode == BlurMode.DYNAMIC:
                # blur what has already been painted beneath the actor
                layer = effect.process(frame.copy(rect))
            elif effect is not None:
                layer = effect.process(self._own_layer(actor, w, h))
            else:
                layer = self._own_layer(actor, w, h)

            painter = QPainter(frame)
            try:
                if clip_rect is not None:
                    painter.setClipRect(clip_rect)
                painter.drawImage(QPoint(ax, ay), layer)
            finally:
                painter.end()

        for child in actor.get_children():
            self._render_actor(frame, child, ax, ay)

    @staticmethod
    def _own_layer(actor: Actor, w: int, h: int) -> QImage:
        layer = QImage(w, h, QImage.Format.Format_ARGB32_Premultiplied)
        layer.fill(Qt.GlobalColor.transparent)
        painter = QPainter(layer)
        try:
            if actor.color is not None:
                painter.fillRect(0, 0, w, h, actor.color)
            content = actor.get_content()
            if content is not None:
                painter.drawPixmap(QRect(0, 0, w, h), content)
        finally:
            painter.end()
        return layer

    def paintEvent(self, event) -> None:  # noqa: N802
        if self._frame is None:
            self._frame = self.render_frame()
        painter = QPainter(self)
        painter.drawImage(0, 0, self._frame)
        painter.end()

    # ─────────────────────────────────────────────────────────
    #  Pointer dispatch
    # ─────────────────────────────────────────────────────────
    def _chain_at(self, pos: QPoint) -> list[Actor]:
        """Picked actor followed by its ancestors."""
        target = self.root.pick(pos.x(), pos.y())
        chain: list[Actor] = []
        while target is not None:
            chain.append(target)
            target = target.get_parent()
        return chain

    def update_hover(self, pos: QPoint) -> None:
        chain = self._chain_at(pos)
        for actor in self._hovered:
            if actor not in chain:
                actor.left.emit()
        for actor in chain:
            if actor not in self._hovered:
                actor.entered.emit()
        self._hovered = chain

    def press_at(self, pos: QPoint) -> None:
        for actor in self._chain_at(pos):
            actor.pressed.emit()

    def mouseMoveEvent(self, event) -> None:  # noqa: N802
        self.update_hover(event.position().toPoint())

    def mousePressEvent(self, event) -> None:  # noqa: N802
        self.press_at(event.position().toPoint())

    def leaveEvent(self, event) -> None:  # noqa: N802
        for actor in self._hovered:
            actor.left.emit()
        self._hovered = []
