from __future__ import annotations

import logging

import pytest
from PyQt6.QtCore import QRect

from blur_effect import BlurMode
from connections import Connections
from panel_blur import (
    DASH_TO_PANEL_UUID,
    RESET_DELAY_MS,
    WALLPAPER_DELAY_MS,
    DynamicContent,
    HackLevel,
    PanelBlur,
    StaticContent,
)
from prefs import HACKS_LEVEL, STATIC_BLUR
from shell_host import ExtensionState, Monitor, ShellHost


@pytest.fixture
def registry() -> Connections:
    return Connections()


@pytest.fixture
def make_blur(registry, prefs, host, harness):
    def _make() -> PanelBlur:
        return PanelBlur(
            registry, prefs, host,
            after=harness.after, after_cancel=harness.cancel,
        )
    return _make


def expected_hack_count(host: ShellHost) -> int:
    return (len(host.panel.get_children()) + 1) * 3


# ─────────────────────────────────────────────────────────────
#  Construction
# ─────────────────────────────────────────────────────────────
def test_constructor_builds_tree_without_subscriptions(make_blur, registry) -> None:
    blur = make_blur()

    parent = blur.background_parent
    assert (parent.x, parent.y, parent.width, parent.height) == (0, 0, 1920, 0)
    assert parent.get_children() == [blur.background]
    assert parent.get_parent() is None
    assert len(registry) == 0


def test_constructor_attaches_effect_for_dynamic_content(make_blur) -> None:
    blur = make_blur()

    assert isinstance(blur.content, DynamicContent)
    assert blur.effect.actor is blur.background
    assert blur.effect.mode == BlurMode.DYNAMIC


def test_constructor_without_primary_monitor_raises(qt_app, prefs, registry) -> None:
    with pytest.raises(RuntimeError):
        PanelBlur(registry, prefs, ShellHost())


def test_monitor_is_queried_fresh(make_blur, host) -> None:
    blur = make_blur()
    host.layout.set_monitors([Monitor(0, 10, 20, 1280, 1024)])

    assert blur.monitor == Monitor(0, 10, 20, 1280, 1024)


# ─────────────────────────────────────────────────────────────
#  enable()
# ─────────────────────────────────────────────────────────────
def test_dynamic_scenario(make_blur, host, registry) -> None:
    blur = make_blur()
    blur.enable()

    assert host.panel_box.get_child_at_index(0) is blur.background_parent
    assert blur.background_parent.get_children() == [blur.background]
    assert (blur.background.width, blur.background.height) == (1920, 32)
    assert blur.background_parent.width == 1920
    assert blur.background_parent.height == 0
    assert blur.effect.actor is blur.background
    assert blur.effect.mode == BlurMode.DYNAMIC
    assert len(blur._hack_connections) == expected_hack_count(host) == 18
    # extension state, panel height, monitors, wallpaper + hacks
    assert len(registry) == 4 + 18


def test_static_scenario(make_blur, host, prefs) -> None:
    prefs.set(STATIC_BLUR, True)
    blur = make_blur()
    blur.enable()

    assert isinstance(blur.content, StaticContent)
    assert blur.background.clip == QRect(0, 0, 1920, 32)
    assert blur.background.get_effects() == []
    assert blur.effect.actor is None
    assert blur.effect.mode == BlurMode.STATIC
    wallpaper = host.layout.background_group.get_child_at_index(0)
    assert blur.background.get_content() is wallpaper.get_content()
    assert blur._hack_connections == []


def test_enable_hides_corners(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()

    assert not host.panel.left_corner.visible
    assert not host.panel.right_corner.visible


def test_enable_twice_is_noop(make_blur, host, registry) -> None:
    blur = make_blur()
    blur.enable()
    count = len(registry)

    blur.enable()

    assert len(registry) == count
    assert host.panel_box.get_children().count(blur.background_parent) == 1


# ─────────────────────────────────────────────────────────────
#  Size & wallpaper sync
# ─────────────────────────────────────────────────────────────
def test_panel_height_change_resizes_dynamic_background(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()

    host.panel.height = 48

    assert blur.background.height == 48
    assert blur.background_parent.height == 0


def test_panel_height_change_updates_static_clip(make_blur, host, prefs) -> None:
    prefs.set(STATIC_BLUR, True)
    blur = make_blur()
    blur.enable()

    host.panel.height = 40

    assert blur.background.clip == QRect(0, 0, 1920, 40)


def test_monitor_change_updates_dynamic_geometry(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()

    host.layout.set_monitors([Monitor(0, 0, 0, 2560, 1440)])

    assert blur.background.width == 2560
    assert blur.background_parent.width == 2560
    assert blur.background.height == 32


def test_monitor_change_recopies_static_wallpaper(make_blur, host, prefs) -> None:
    prefs.set(STATIC_BLUR, True)
    blur = make_blur()
    blur.enable()

    host.layout.set_monitors([Monitor(0, 0, 0, 1280, 800), Monitor(1, 1280, 0, 1920, 1080)], 1)

    wallpaper = host.layout.background_group.get_child_at_index(1)
    assert blur.background.get_content() is wallpaper.get_content()
    assert blur.background.clip == QRect(1280, 0, 1920, 32)


def test_wallpaper_change_is_debounced(make_blur, host, prefs, harness) -> None:
    prefs.set(STATIC_BLUR, True)
    blur = make_blur()
    blur.enable()

    host.background_settings.set_picture("/nonexistent/first.png")
    host.background_settings.set_picture("/nonexistent/second.png")

    pending = harness.pending()
    assert len(pending) == 1
    handle, delay, _cb = pending[0]
    assert delay == WALLPAPER_DELAY_MS
    assert harness.cancelled == [harness.scheduled[0][0]]

    harness.run(handle)

    wallpaper = host.layout.background_group.get_child_at_index(0)
    assert blur.background.get_content() is wallpaper.get_content()


def test_wallpaper_change_in_dynamic_mode_leaves_content_alone(make_blur, host, harness) -> None:
    blur = make_blur()
    blur.enable()

    host.background_settings.set_picture("/nonexistent/other.png")
    harness.run(harness.pending()[0][0])

    assert blur.background.get_content() is None


# ─────────────────────────────────────────────────────────────
#  Mode switching
# ─────────────────────────────────────────────────────────────
def test_effect_attached_only_in_dynamic_mode(make_blur, prefs) -> None:
    blur = make_blur()
    blur.enable()

    for static in (True, False, True, False):
        prefs.set(STATIC_BLUR, static)
        blur.change_blur_type()
        assert (blur.effect.actor is blur.background) is (not static)
        assert blur.background.get_effects() == ([] if static else [blur.effect])


def test_toggle_round_trip_restores_static_state(make_blur, prefs) -> None:
    prefs.set(STATIC_BLUR, True)
    blur = make_blur()
    blur.enable()
    first = blur.background
    before = (first.clip, first.get_effects(), blur.effect.mode, first.get_content())

    prefs.set(STATIC_BLUR, False)
    blur.change_blur_type()
    prefs.set(STATIC_BLUR, True)
    blur.change_blur_type()

    after = blur.background
    assert after is not first
    assert (after.clip, after.get_effects(), blur.effect.mode, after.get_content()) == before


def test_mode_switch_keeps_single_child(make_blur, prefs) -> None:
    blur = make_blur()
    blur.enable()
    old = blur.background

    prefs.set(STATIC_BLUR, True)
    blur.change_blur_type()

    assert blur.background_parent.get_children() == [blur.background]
    assert old.get_parent() is None
    assert old.is_destroyed


# ─────────────────────────────────────────────────────────────
#  Hack levels
# ─────────────────────────────────────────────────────────────
def test_hack_level_zero_installs_nothing(make_blur, prefs) -> None:
    prefs.set(HACKS_LEVEL, 0)
    blur = make_blur()
    blur.enable()

    assert blur.hack_level == HackLevel.NONE
    assert blur._hack_connections == []


def test_hack_level_two_is_selectable_but_inert(make_blur, prefs, caplog) -> None:
    caplog.set_level(logging.INFO, logger="PanelBlur")
    prefs.set(HACKS_LEVEL, 2)
    blur = make_blur()
    blur.enable()

    assert blur.hack_level == HackLevel.PAINT_HOOK
    assert blur._hack_connections == []
    assert "panel hack level 2" in caplog.text


def test_switching_to_static_removes_hack_wiring(make_blur, prefs, registry) -> None:
    blur = make_blur()
    blur.enable()
    assert len(blur._hack_connections) == 18

    prefs.set(STATIC_BLUR, True)
    blur.change_blur_type()

    assert blur._hack_connections == []
    assert len(registry) == 4


def test_reapplying_dynamic_mode_does_not_duplicate_hacks(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()

    blur.change_blur_type()
    blur.change_blur_type()

    assert len(blur._hack_connections) == expected_hack_count(host)


def test_hover_and_press_queue_repaint(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()
    repaints: list[bool] = []
    blur.effect.repaintQueued.connect(lambda: repaints.append(True))

    host.panel.entered.emit()
    host.panel.right_box.pressed.emit()
    host.panel.left_box.left.emit()

    assert len(repaints) == 3


def test_hack_handlers_follow_current_children(make_blur, host) -> None:
    from stage import Actor

    host.panel.add_child(Actor(style_class="extra"))
    blur = make_blur()
    blur.enable()

    assert len(blur._hack_connections) == expected_hack_count(host) == 21


# ─────────────────────────────────────────────────────────────
#  Conflicting extension workaround
# ─────────────────────────────────────────────────────────────
def test_dash_to_panel_triggers_delayed_reset(make_blur, host, registry, harness) -> None:
    blur = make_blur()
    blur.enable()
    count = len(registry)

    host.extension_manager.set_state(DASH_TO_PANEL_UUID, ExtensionState.ENABLED)

    pending = harness.pending()
    assert [delay for _h, delay, _cb in pending] == [RESET_DELAY_MS]

    harness.run(pending[0][0])

    assert blur.is_enabled
    assert len(registry) == count
    assert host.panel_box.get_child_at_index(0) is blur.background_parent
    assert host.panel_box.get_children().count(blur.background_parent) == 1


def test_repeated_dash_to_panel_events_queue_one_reset(make_blur, host, harness) -> None:
    blur = make_blur()
    blur.enable()

    host.extension_manager.set_state(DASH_TO_PANEL_UUID, ExtensionState.ENABLED)
    host.extension_manager.set_state(DASH_TO_PANEL_UUID, ExtensionState.ENABLED)

    assert len(harness.pending()) == 1


def test_other_extension_events_are_ignored(make_blur, host, harness) -> None:
    blur = make_blur()
    blur.enable()

    host.extension_manager.set_state("other@example.com", ExtensionState.ENABLED)
    host.extension_manager.set_state(DASH_TO_PANEL_UUID, ExtensionState.DISABLED)

    assert harness.scheduled == []


# ─────────────────────────────────────────────────────────────
#  disable(), show(), hide(), tunables
# ─────────────────────────────────────────────────────────────
def test_disable_restores_panel_and_releases_everything(make_blur, host, registry) -> None:
    blur = make_blur()
    blur.enable()

    blur.disable()

    assert host.panel.left_corner.visible
    assert host.panel.right_corner.visible
    assert blur.background_parent.get_parent() is None
    assert blur.background_parent not in host.panel_box.get_children()
    assert len(registry) == 0
    assert not blur.is_enabled


def test_disable_twice_does_not_raise(make_blur) -> None:
    blur = make_blur()
    blur.enable()

    blur.disable()
    blur.disable()


def test_disable_without_enable_does_not_raise(make_blur) -> None:
    make_blur().disable()


def test_disable_cancels_pending_timers(make_blur, host, harness) -> None:
    blur = make_blur()
    blur.enable()
    host.extension_manager.set_state(DASH_TO_PANEL_UUID, ExtensionState.ENABLED)
    host.background_settings.set_picture("/nonexistent/wall.png")

    blur.disable()

    assert harness.pending() == []


def test_enable_disable_cycles_do_not_leak(make_blur, host, registry) -> None:
    blur = make_blur()
    for _ in range(3):
        blur.enable()
        blur.disable()
    blur.enable()

    assert len(registry) == 4 + expected_hack_count(host)
    assert host.panel_box.get_children().count(blur.background_parent) == 1
    assert blur.background_parent.get_children() == [blur.background]


def test_show_hide_toggle_visibility_only(make_blur, host) -> None:
    blur = make_blur()
    blur.enable()

    blur.hide()
    assert not blur.background_parent.visible
    assert blur.background_parent.get_parent() is host.panel_box

    blur.show()
    assert blur.background_parent.visible


def test_sigma_and_brightness_pass_through(make_blur) -> None:
    blur = make_blur()

    blur.set_sigma(55)
    blur.set_brightness(0.25)

    assert blur.effect.sigma == 55
    assert blur.effect.brightness == 0.25
