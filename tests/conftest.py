from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from prefs import HACKS_LEVEL, STATIC_BLUR, Prefs  # noqa: E402
from shell_host import Monitor, ShellHost  # noqa: E402


@pytest.fixture(scope="session")
def qt_app():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class AfterHarness:
    """Records deferred callbacks instead of starting real timers."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[str, int, object]] = []
        self.cancelled: list[object] = []

    def after(self, ms: int, cb) -> str:
        handle = f"h{len(self.scheduled) + 1}"
        self.scheduled.append((handle, ms, cb))
        return handle

    def cancel(self, handle: object) -> None:
        self.cancelled.append(handle)

    def pending(self) -> list[tuple[str, int, object]]:
        return [entry for entry in self.scheduled if entry[0] not in self.cancelled]

    def run(self, handle: str) -> None:
        for h, _ms, cb in list(self.scheduled):
            if h == handle:
                cb()
                return
        raise AssertionError(f"Handle {handle} not found")


@pytest.fixture
def harness() -> AfterHarness:
    return AfterHarness()


@pytest.fixture
def host(qt_app) -> ShellHost:
    return ShellHost(monitors=[Monitor(0, 0, 0, 1920, 1080)], panel_height=32)


@pytest.fixture
def prefs(qt_app) -> Prefs:
    return Prefs({STATIC_BLUR: False, HACKS_LEVEL: 1})
