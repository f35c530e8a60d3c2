import math

import pytest

from gear_geometry import advance, orientation_from_spin, pen_tip
from spirogears_core import GearRegistry
from spirogears_math import FixedStepClock, KinematicsEngine, preview_path, set_backend, step, step_gear


def _scene():
    registry = GearRegistry()
    fixed = registry.add_fixed((0.0, 20.0), radius=150.0)
    gear = registry.add_rotating(fixed.handle, speed=0.1, radius=55.0, pen_offset=20.0)
    return registry, fixed, gear


def test_step_follows_the_rolling_relation():
    registry, fixed, gear = _scene()
    step(registry)

    assert gear.angle == 0.1
    spin, (ox, oy) = advance(0.1, 150.0, 55.0)
    assert gear.position == (0.0 + ox, 20.0 + oy)
    assert gear.orientation == orientation_from_spin(spin)
    assert gear.pen_position == pen_tip(gear.position, gear.orientation, 20.0)


def test_trace_grows_by_one_with_fresh_pen_position():
    registry, _, gear = _scene()
    engine = KinematicsEngine()
    for n in range(1, 6):
        engine.step(registry)
        assert len(gear.trace) == n
        assert gear.trace[-1] == gear.pen_position


def test_paused_gear_is_frozen():
    registry, _, gear = _scene()
    step(registry)
    registry.set_paused(gear.handle, True)
    before = (gear.angle, gear.position, gear.orientation, gear.pen_position, len(gear.trace))

    report = step(registry)

    assert report.paused == 1 and report.advanced == 0
    assert (gear.angle, gear.position, gear.orientation, gear.pen_position, len(gear.trace)) == before


def test_engine_does_not_touch_user_parameters():
    registry, fixed, gear = _scene()
    for _ in range(10):
        step(registry)
    assert (gear.speed, gear.radius, gear.pen_offset) == (0.1, 55.0, 20.0)
    assert (fixed.position, fixed.radius) == ((0.0, 20.0), 150.0)


def test_pen_uses_the_transform_of_the_same_tick():
    registry, fixed, gear = _scene()
    step(registry)
    registry.move_fixed(fixed.handle, (100.0, 100.0))
    step(registry)
    _, (ox, oy) = advance(gear.angle, 150.0, 55.0)
    assert gear.position == (100.0 + ox, 100.0 + oy)
    assert gear.trace[-1] == pen_tip(gear.position, gear.orientation, gear.pen_offset)


def test_zero_and_negative_speed_are_tolerated():
    registry, fixed, gear = _scene()
    still = registry.add_rotating(fixed.handle, speed=0.0)
    backwards = registry.add_rotating(fixed.handle, speed=-0.2)
    for _ in range(3):
        step(registry)
    assert still.angle == 0.0
    assert len(still.trace) == 3
    assert math.isclose(backwards.angle, -0.6)


def test_zero_fixed_radius_skips_children_and_warns_once(caplog):
    registry, fixed, gear = _scene()
    fixed.radius = 0.0
    engine = KinematicsEngine()

    with caplog.at_level("WARNING"):
        first = engine.step(registry)
        second = engine.step(registry)

    assert first.skipped == 1 and second.skipped == 1
    assert gear.angle == 0.0
    assert gear.trace == []
    assert caplog.text.count("zero radius") == 1


def test_removed_degenerate_gears_are_forgotten(caplog):
    registry, fixed, _ = _scene()
    other = registry.add_fixed((300.0, 0.0))
    registry.add_rotating(other.handle)
    fixed.radius = other.radius = 0.0
    engine = KinematicsEngine()
    engine.step(registry)
    assert engine._degenerate == {fixed.handle, other.handle}

    registry.remove(other.handle)
    fixed.radius = 150.0
    engine.step(registry)
    assert engine._degenerate == set()

    fixed.radius = 0.0
    with caplog.at_level("WARNING"):
        engine.step(registry)
    assert caplog.text.count("zero radius") == 1


def test_step_gear_without_recording():
    registry, fixed, gear = _scene()
    assert step_gear(fixed, gear, record=False)
    assert gear.angle == 0.1
    assert gear.trace == []


def test_python_preview_matches_future_trace():
    set_backend("python")
    registry, fixed, gear = _scene()
    for _ in range(3):
        step(registry)
    angle = gear.angle

    preview = preview_path(fixed, gear, 25)

    assert gear.angle == angle
    for _ in range(25):
        step(registry)
    assert gear.trace[3:] == preview


def test_clock_accumulates_whole_ticks():
    clock = FixedStepClock(time_step=0.25, max_ticks_per_frame=8)
    assert clock.advance(0.5) == 2
    assert clock.advance(0.125) == 0
    assert clock.alpha == 0.5
    assert clock.advance(0.125) == 1
    assert clock.advance(-1.0) == 0


def test_clock_caps_ticks_per_frame():
    clock = FixedStepClock(time_step=0.25, max_ticks_per_frame=3)
    assert clock.advance(10.0) == 3
    assert clock.advance(0.0) == 0
    clock.reset()
    assert clock.alpha == 0.0


def test_clock_rejects_bad_time_step():
    with pytest.raises(ValueError):
        FixedStepClock(time_step=0.0)
