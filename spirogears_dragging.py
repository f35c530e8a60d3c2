from __future__ import annotations

from dataclasses import dataclass, field
import enum
import logging
from typing import Dict, Optional, Tuple, Union

from gear_geometry import Point, distance
from spirogears_core import FixedGear, GearRegistry

_LOGGER = logging.getLogger(__name__)

SNAP_THRESHOLD = 10.0


class CursorIcon(enum.Enum):
    NONE = "none"
    GRAB = "grab"
    GRABBING = "grabbing"


@dataclass
class Camera2D:
    """
    Orthographic 2D camera.

    World y points up, viewport y points down; the world ``center`` is shown
    in the middle of the viewport, ``zoom`` pixels per world unit.
    """

    center: Point = (0.0, 0.0)
    zoom: float = 1.0
    viewport: Tuple[int, int] = (1000, 1000)

    def viewport_to_world(self, screen: Optional[Point]) -> Optional[Point]:
        if screen is None:
            return None
        width, height = self.viewport
        if width <= 0 or height <= 0 or self.zoom <= 0:
            return None
        sx, sy = screen
        if not (0.0 <= sx <= width and 0.0 <= sy <= height):
            return None
        return (
            self.center[0] + (sx - width / 2.0) / self.zoom,
            self.center[1] - (sy - height / 2.0) / self.zoom,
        )

    def world_to_viewport(self, world: Point) -> Point:
        width, height = self.viewport
        return (
            (world[0] - self.center[0]) * self.zoom + width / 2.0,
            height / 2.0 - (world[1] - self.center[1]) * self.zoom,
        )


@dataclass(frozen=True)
class PointerFrame:
    """Pointer input sampled once per frame. ``screen_position`` is None outside the window."""

    screen_position: Optional[Point] = None
    just_pressed: bool = False
    just_released: bool = False


# ----- States -----

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Hovering:
    target: int
    offset: Point  # gear position - cursor


@dataclass(frozen=True)
class Dragging:
    target: int
    offset: Point
    # pause flags of the children before the drag started
    user_paused: Dict[int, bool] = field(default_factory=dict, compare=False)


DragState = Union[Idle, Hovering, Dragging]

IDLE = Idle()


def cursor_icon(state: DragState) -> CursorIcon:
    if isinstance(state, Dragging):
        return CursorIcon.GRABBING
    if isinstance(state, Hovering):
        return CursorIcon.GRAB
    return CursorIcon.NONE


def hit_test(registry: GearRegistry, cursor: Point) -> Optional[FixedGear]:
    """First draggable fixed gear (creation order) whose disc contains ``cursor``."""
    for gear in registry.fixed_gears():
        if gear.draggable and distance(cursor, gear.position) < gear.radius:
            return gear
    return None


def snap_target(registry: GearRegistry, handle: int, threshold: float = SNAP_THRESHOLD) -> Optional[FixedGear]:
    """
    Nearest other fixed gear strictly closer than ``threshold``.

    On equal distances the first one encountered (creation order) wins.
    """
    dragged = registry.get_fixed(handle)
    best: Optional[FixedGear] = None
    best_dist = threshold
    for other in registry.fixed_gears():
        if other.handle == handle:
            continue
        d = distance(dragged.position, other.position)
        if d < best_dist:
            best = other
            best_dist = d
    return best


class DragController:
    """
    Pointer state machine: Idle -> Hovering -> Dragging -> Idle.

    ``update`` is called once per frame, before the kinematics step, so a
    drag started this frame already pauses the dragged spirograph for the
    same tick.
    """

    def __init__(self, snap_threshold: float = SNAP_THRESHOLD, restore_user_pause: bool = False):
        self.snap_threshold = snap_threshold
        # False reproduces the historical behaviour: every child resumes on release
        self.restore_user_pause = restore_user_pause
        self.state: DragState = IDLE
        self.cursor_world: Optional[Point] = None

    @property
    def cursor_icon(self) -> CursorIcon:
        return cursor_icon(self.state)

    @property
    def dragging(self) -> Optional[int]:
        return self.state.target if isinstance(self.state, Dragging) else None

    @property
    def hovered(self) -> Optional[int]:
        return self.state.target if isinstance(self.state, Hovering) else None

    def reset(self) -> None:
        self.state = IDLE
        self.cursor_world = None

    def update(
        self,
        registry: GearRegistry,
        pointer: PointerFrame,
        camera: Optional[Camera2D],
    ) -> DragState:
        cursor = camera.viewport_to_world(pointer.screen_position) if camera is not None else None
        self.cursor_world = cursor

        if isinstance(self.state, Dragging) and not registry.is_fixed(self.state.target):
            _LOGGER.info("Dragged gear %d disappeared, drag cancelled", self.state.target)
            self.state = IDLE

        if not isinstance(self.state, Dragging):
            self.state = self._resolve_hover(registry, cursor)
            if pointer.just_pressed and isinstance(self.state, Hovering):
                self._start_drag(registry, self.state)

        if isinstance(self.state, Dragging):
            if cursor is not None:
                ox, oy = self.state.offset
                registry.move_fixed(self.state.target, (cursor[0] + ox, cursor[1] + oy))
            if pointer.just_released:
                self._end_drag(registry, self.state)

        return self.state

    def _resolve_hover(self, registry: GearRegistry, cursor: Optional[Point]) -> DragState:
        if cursor is None:
            return IDLE
        gear = hit_test(registry, cursor)
        if gear is None:
            return IDLE
        return Hovering(
            target=gear.handle,
            offset=(gear.position[0] - cursor[0], gear.position[1] - cursor[1]),
        )

    def _start_drag(self, registry: GearRegistry, hover: Hovering) -> None:
        children = registry.children_of(hover.target)
        user_paused = {gear.handle: gear.paused for gear in children}
        for gear in children:
            registry.set_paused(gear.handle, True)
        self.state = Dragging(hover.target, hover.offset, user_paused)
        _LOGGER.debug("Drag start on fixed gear %d (offset %s)", hover.target, hover.offset)

    def _end_drag(self, registry: GearRegistry, drag: Dragging) -> None:
        for gear in registry.children_of(drag.target):
            paused = drag.user_paused.get(gear.handle, False) if self.restore_user_pause else False
            registry.set_paused(gear.handle, paused)

        target = snap_target(registry, drag.target, self.snap_threshold)
        if target is not None:
            registry.move_fixed(drag.target, target.position)
            _LOGGER.debug("Fixed gear %d snapped onto %d", drag.target, target.handle)

        # resumed gears jump to the anchor before the next step
        registry.settle_children(drag.target)

        self.state = IDLE
        _LOGGER.debug("Drag end on fixed gear %d", drag.target)


__all__ = [
    "Camera2D",
    "CursorIcon",
    "DragController",
    "DragState",
    "Dragging",
    "Hovering",
    "IDLE",
    "Idle",
    "PointerFrame",
    "SNAP_THRESHOLD",
    "cursor_icon",
    "hit_test",
    "snap_target",
]
