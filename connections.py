"""
Panel Blur - Connections
========================
Registry of Qt signal subscriptions with explicit, releasable handles.

Every subscription made through ``Connections.connect`` returns a
``Connection`` that can be released on its own; ``disconnect_all()``
releases whatever is still live.

Usage
-----
>>> registry = Connections()
>>> handle = registry.connect(panel, "heightChanged", on_height)
>>> handle.disconnect()          # idempotent
>>> registry.disconnect_all()
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QMetaObject, QObject, pyqtBoundSignal

log = logging.getLogger("PanelBlur.Connections")


class Connection:
    """A single live signal subscription."""

    def __init__(
        self,
        registry: "Connections",
        source: QObject,
        event_name: str,
        signal: pyqtBoundSignal,
        handle: QMetaObject.Connection,
    ) -> None:
        self._registry = registry
        self.source = source
        self.event_name = event_name
        self._signal: Optional[pyqtBoundSignal] = signal
        self._handle = handle

    @property
    def active(self) -> bool:
        return self._signal is not None

    def disconnect(self) -> None:
        """Release the subscription.  Safe to call more than once."""
        signal, self._signal = self._signal, None
        if signal is None:
            return
        try:
            signal.disconnect(self._handle)
        except (RuntimeError, TypeError):
            # source already destroyed, nothing left to release
            log.debug("Source of %r gone before disconnect.", self.event_name)
        self._registry._forget(self)

    def __repr__(self) -> str:
        state = "active" if self.active else "released"
        return f"<Connection {type(self.source).__name__}.{self.event_name} {state}>"


# ═════════════════════════════════════════════════════════════
#  Connections
# ═════════════════════════════════════════════════════════════
class Connections:
    """
    Owns a set of signal subscriptions.

    ``event_name`` is the attribute name of a Qt signal on *source*
    (e.g. ``"heightChanged"``).  The handler receives the signal's
    arguments unchanged.
    """

    def __init__(self) -> None:
        self._live: list[Connection] = []

    def connect(
        self,
        source: QObject,
        event_name: str,
        handler: Callable[..., object],
    ) -> Connection:
        signal = getattr(source, event_name, None)
        if not isinstance(signal, pyqtBoundSignal):
            raise AttributeError(
                f"{type(source).__name__} has no signal named {event_name!r}"
            )

        handle = signal.connect(handler)
        conn = Connection(self, source, event_name, signal, handle)
        self._live.append(conn)
        log.debug("Connected %s.%s", type(source).__name__, event_name)
        return conn

    def disconnect_all(self) -> None:
        """Release every live subscription.  Idempotent."""
        for conn in list(self._live):
            conn.disconnect()
        self._live.clear()

    def _forget(self, conn: Connection) -> None:
        try:
            self._live.remove(conn)
        except ValueError:
            pass

    def __len__(self) -> int:
        return len(self._live)

    def __iter__(self):
        return iter(list(self._live))
