import pytest

from spirogears_core import GearRegistry
from spirogears_dragging import (
    IDLE,
    Camera2D,
    CursorIcon,
    DragController,
    Dragging,
    Hovering,
    PointerFrame,
    hit_test,
    snap_target,
)


CAMERA = Camera2D()


def screen(x, y):
    """World point to the default 1000x1000 viewport."""
    return (x + 500.0, 500.0 - y)


def pointer(x=None, y=None, *, pressed=False, released=False):
    position = None if x is None else screen(x, y)
    return PointerFrame(position, just_pressed=pressed, just_released=released)


@pytest.fixture
def scene():
    registry = GearRegistry()
    fixed = registry.add_fixed((0.0, 0.0), radius=150.0)
    gear = registry.add_rotating(fixed.handle)
    return registry, fixed, gear


def test_camera_projection():
    assert CAMERA.viewport_to_world((500.0, 500.0)) == (0.0, 0.0)
    assert CAMERA.viewport_to_world(screen(10.0, 5.0)) == (10.0, 5.0)
    assert CAMERA.world_to_viewport((10.0, 5.0)) == (510.0, 495.0)
    assert CAMERA.viewport_to_world((-1.0, 10.0)) is None
    assert CAMERA.viewport_to_world(None) is None
    assert Camera2D(viewport=(0, 0)).viewport_to_world((0.0, 0.0)) is None

    zoomed = Camera2D(center=(100.0, 0.0), zoom=2.0)
    assert zoomed.viewport_to_world((520.0, 480.0)) == (110.0, 10.0)


def test_hover_records_offset(scene):
    registry, fixed, _ = scene
    controller = DragController()

    state = controller.update(registry, pointer(10.0, 5.0), CAMERA)

    assert state == Hovering(fixed.handle, (-10.0, -5.0))
    assert controller.hovered == fixed.handle
    assert controller.cursor_icon is CursorIcon.GRAB


def test_leaving_the_gear_returns_to_idle(scene):
    registry, _, _ = scene
    controller = DragController()
    controller.update(registry, pointer(10.0, 5.0), CAMERA)
    assert controller.update(registry, pointer(400.0, 400.0), CAMERA) is IDLE
    controller.update(registry, pointer(10.0, 5.0), CAMERA)
    assert controller.update(registry, pointer(), CAMERA) is IDLE
    assert controller.cursor_icon is CursorIcon.NONE


def test_overlapping_gears_first_created_wins():
    registry = GearRegistry()
    first = registry.add_fixed((0.0, 0.0), radius=150.0)
    second = registry.add_fixed((100.0, 0.0), radius=150.0)
    assert hit_test(registry, (50.0, 0.0)) is first

    first.draggable = False
    assert hit_test(registry, (50.0, 0.0)) is second
    assert hit_test(registry, (-100.0, 0.0)) is None


def test_boundary_is_not_a_hit(scene):
    registry, _, _ = scene
    assert hit_test(registry, (150.0, 0.0)) is None
    assert hit_test(registry, (149.0, 0.0)) is not None


def test_press_starts_drag_and_pauses_children(scene):
    registry, fixed, gear = scene
    controller = DragController()
    controller.update(registry, pointer(10.0, 5.0), CAMERA)

    state = controller.update(registry, pointer(10.0, 5.0, pressed=True), CAMERA)

    assert isinstance(state, Dragging)
    assert state.target == fixed.handle
    assert controller.dragging == fixed.handle
    assert controller.cursor_icon is CursorIcon.GRABBING
    assert gear.paused is True


def test_press_without_prior_hover_frame_still_grabs(scene):
    registry, fixed, _ = scene
    controller = DragController()
    state = controller.update(registry, pointer(10.0, 5.0, pressed=True), CAMERA)
    assert isinstance(state, Dragging)
    assert state.offset == (-10.0, -5.0)


def test_press_on_empty_space_does_nothing(scene):
    registry, fixed, _ = scene
    controller = DragController()
    assert controller.update(registry, pointer(400.0, 400.0, pressed=True), CAMERA) is IDLE
    assert fixed.position == (0.0, 0.0)


def test_drag_keeps_grab_offset(scene):
    registry, fixed, gear = scene
    controller = DragController()
    controller.update(registry, pointer(10.0, 5.0, pressed=True), CAMERA)

    controller.update(registry, pointer(110.0, 55.0), CAMERA)

    assert fixed.position == (100.0, 50.0)
    assert gear.paused is True


def test_drag_coasts_while_cursor_is_outside(scene):
    registry, fixed, _ = scene
    controller = DragController()
    controller.update(registry, pointer(10.0, 5.0, pressed=True), CAMERA)
    controller.update(registry, pointer(110.0, 55.0), CAMERA)

    state = controller.update(registry, pointer(), CAMERA)

    assert isinstance(state, Dragging)
    assert fixed.position == (100.0, 50.0)


def test_release_resumes_every_child(scene):
    registry, fixed, gear = scene
    user_paused = registry.add_rotating(fixed.handle, paused=True)
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)
    assert user_paused.paused is True

    state = controller.update(registry, pointer(50.0, 0.0, released=True), CAMERA)

    assert state is IDLE
    assert fixed.position == (50.0, 0.0)
    assert gear.paused is False
    assert user_paused.paused is False


def test_release_can_restore_user_pause(scene):
    registry, fixed, gear = scene
    user_paused = registry.add_rotating(fixed.handle, paused=True)
    controller = DragController(restore_user_pause=True)
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)

    controller.update(registry, pointer(50.0, 0.0, released=True), CAMERA)

    assert gear.paused is False
    assert user_paused.paused is True


def test_release_outside_window_ends_drag(scene):
    registry, fixed, gear = scene
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)
    controller.update(registry, pointer(30.0, 0.0), CAMERA)

    assert controller.update(registry, pointer(released=True), CAMERA) is IDLE
    assert fixed.position == (30.0, 0.0)
    assert gear.paused is False


def test_release_snaps_onto_close_gear():
    registry = GearRegistry()
    dragged = registry.add_fixed((0.0, 0.0))
    anchor = registry.add_fixed((200.0, 0.0))
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)

    controller.update(registry, pointer(195.0, 3.0, released=True), CAMERA)

    assert dragged.position == anchor.position == (200.0, 0.0)


def test_release_far_away_does_not_snap():
    registry = GearRegistry()
    dragged = registry.add_fixed((0.0, 0.0))
    registry.add_fixed((200.0, 0.0))
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)

    controller.update(registry, pointer(180.0, 0.0, released=True), CAMERA)

    assert dragged.position == (180.0, 0.0)


def test_snap_threshold_is_strict():
    registry = GearRegistry()
    dragged = registry.add_fixed((0.0, 0.0))
    registry.add_fixed((10.0, 0.0))
    assert snap_target(registry, dragged.handle, 10.0) is None
    assert snap_target(registry, dragged.handle, 10.5) is not None


def test_snap_tie_goes_to_first_created():
    registry = GearRegistry()
    dragged = registry.add_fixed((205.0, 0.0))
    first = registry.add_fixed((200.0, 0.0))
    registry.add_fixed((210.0, 0.0))
    assert snap_target(registry, dragged.handle) is first


def test_missing_camera_means_no_cursor(scene):
    registry, fixed, _ = scene
    controller = DragController()
    assert controller.update(registry, PointerFrame((500.0, 500.0), just_pressed=True), None) is IDLE
    assert controller.cursor_world is None
    assert fixed.position == (0.0, 0.0)


def test_drag_cancelled_when_target_disappears(scene):
    registry, fixed, _ = scene
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)
    registry.remove(fixed.handle)

    assert controller.update(registry, pointer(10.0, 0.0), CAMERA) is IDLE
    assert controller.dragging is None


def test_paused_children_hold_still_until_release(scene):
    registry, fixed, gear = scene
    before = (gear.position, gear.pen_position, gear.orientation)
    controller = DragController()
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)
    controller.update(registry, pointer(40.0, 10.0), CAMERA)

    assert fixed.position == (40.0, 10.0)
    assert (gear.position, gear.pen_position, gear.orientation) == before

    controller.update(registry, pointer(40.0, 10.0, released=True), CAMERA)

    assert gear.position == (135.0, 10.0)
    assert gear.trace == []


def test_user_paused_child_is_not_settled_on_release(scene):
    registry, fixed, gear = scene
    user_paused = registry.add_rotating(fixed.handle, paused=True)
    before = user_paused.position
    controller = DragController(restore_user_pause=True)
    controller.update(registry, pointer(0.0, 0.0, pressed=True), CAMERA)

    controller.update(registry, pointer(40.0, 10.0, released=True), CAMERA)

    assert user_paused.paused is True
    assert user_paused.position == before
    assert gear.position == (135.0, 10.0)
