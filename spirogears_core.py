from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
from typing import Dict, Iterator, List, Tuple, Union

from gear_geometry import Point, advance, orientation_from_spin, pen_tip
from spirogears_colors import PALETTE_600, normalize_color_string

_LOGGER = logging.getLogger(__name__)

# ----- Default parameters -----
DEFAULT_FIXED_RADIUS = 150.0
DEFAULT_FIXED_COLOR = PALETTE_600["amber"]
DEFAULT_SPEED = 0.1             # radians per tick
DEFAULT_ROTATING_RADIUS = 55.0
DEFAULT_PEN_OFFSET = 20.0
DEFAULT_LINE_COLOR = PALETTE_600["pink"]
DEFAULT_GEAR_COLOR = PALETTE_600["purple"]

ROTATING_FIELDS = ("speed", "radius", "pen_offset", "line_color", "gear_color", "paused")
FIXED_FIELDS = ("radius", "color", "draggable")
_COLOR_FIELDS = ("color", "line_color", "gear_color")


class UnknownGearError(KeyError):
    """A handle does not (or no longer) refer to a gear of the expected kind."""


@dataclass
class FixedGear:
    handle: int
    position: Point = (0.0, 0.0)
    radius: float = DEFAULT_FIXED_RADIUS
    color: str = DEFAULT_FIXED_COLOR
    draggable: bool = True
    children: List[int] = field(default_factory=list)  # handles, draw order


@dataclass
class RotatingGear:
    handle: int
    parent: int                      # back reference, never changes
    angle: float = 0.0               # accumulated roll angle (rad)
    speed: float = DEFAULT_SPEED
    radius: float = DEFAULT_ROTATING_RADIUS
    pen_offset: float = DEFAULT_PEN_OFFSET
    position: Point = (0.0, 0.0)
    orientation: float = 0.0         # world rotation (rad)
    pen_position: Point = (0.0, 0.0)
    trace: List[Point] = field(default_factory=list)
    line_color: str = DEFAULT_LINE_COLOR
    gear_color: str = DEFAULT_GEAR_COLOR
    paused: bool = False


Gear = Union[FixedGear, RotatingGear]


def _checked_color(value: str) -> str:
    norm = normalize_color_string(value)
    if norm is None:
        raise ValueError(f"Invalid color: {value!r}")
    return norm


def place_on_rolling_circle(fixed: FixedGear, gear: RotatingGear) -> None:
    """Put ``gear`` where its current angle says it is, without touching the trace."""
    if fixed.radius == 0:
        gear.position = fixed.position
        gear.pen_position = pen_tip(gear.position, gear.orientation, gear.pen_offset)
        return
    spin, (ox, oy) = advance(gear.angle, fixed.radius, gear.radius)
    gear.position = (fixed.position[0] + ox, fixed.position[1] + oy)
    gear.orientation = orientation_from_spin(spin)
    gear.pen_position = pen_tip(gear.position, gear.orientation, gear.pen_offset)


class GearRegistry:
    """
    Arena of fixed and rotating gears.

    Handles are integers issued in creation order and never reused, so
    iterating by handle gives a stable total order (draw order and hit-test
    order). Each fixed gear owns the handles of its rotating gears; each
    rotating gear keeps a non-owning reference to its parent.
    """

    def __init__(self) -> None:
        self._fixed: Dict[int, FixedGear] = {}
        self._rotating: Dict[int, RotatingGear] = {}
        self._handles = itertools.count(1)

    # ----- Creation / destruction -----

    def add_fixed(
        self,
        position: Point = (0.0, 0.0),
        *,
        radius: float = DEFAULT_FIXED_RADIUS,
        color: str = DEFAULT_FIXED_COLOR,
        draggable: bool = True,
    ) -> FixedGear:
        if radius <= 0:
            raise ValueError(f"Fixed gear radius must be positive, got {radius}")
        gear = FixedGear(
            handle=next(self._handles),
            position=(float(position[0]), float(position[1])),
            radius=float(radius),
            color=_checked_color(color),
            draggable=draggable,
        )
        self._fixed[gear.handle] = gear
        _LOGGER.debug("Added fixed gear %d at %s", gear.handle, gear.position)
        return gear

    def add_rotating(
        self,
        parent: int,
        *,
        speed: float = DEFAULT_SPEED,
        radius: float = DEFAULT_ROTATING_RADIUS,
        pen_offset: float = DEFAULT_PEN_OFFSET,
        line_color: str = DEFAULT_LINE_COLOR,
        gear_color: str = DEFAULT_GEAR_COLOR,
        paused: bool = False,
        angle: float = 0.0,
    ) -> RotatingGear:
        fixed = self.get_fixed(parent)
        if radius <= 0:
            raise ValueError(f"Rotating gear radius must be positive, got {radius}")
        gear = RotatingGear(
            handle=next(self._handles),
            parent=fixed.handle,
            angle=float(angle),
            speed=float(speed),
            radius=float(radius),
            pen_offset=float(pen_offset),
            line_color=_checked_color(line_color),
            gear_color=_checked_color(gear_color),
            paused=bool(paused),
        )
        place_on_rolling_circle(fixed, gear)
        self._rotating[gear.handle] = gear
        fixed.children.append(gear.handle)
        _LOGGER.debug("Added rotating gear %d under fixed gear %d", gear.handle, fixed.handle)
        return gear

    def remove_fixed(self, handle: int) -> List[int]:
        """Remove a fixed gear and all of its rotating gears. Returns the removed handles."""
        fixed = self.get_fixed(handle)
        removed = [handle]
        for child in fixed.children:
            if self._rotating.pop(child, None) is not None:
                removed.append(child)
        del self._fixed[handle]
        _LOGGER.debug("Removed fixed gear %d (%d children)", handle, len(removed) - 1)
        return removed

    def remove_rotating(self, handle: int) -> None:
        gear = self.get_rotating(handle)
        parent = self._fixed.get(gear.parent)
        if parent is not None and handle in parent.children:
            parent.children.remove(handle)
        del self._rotating[handle]
        _LOGGER.debug("Removed rotating gear %d", handle)

    def remove(self, handle: int) -> List[int]:
        if handle in self._fixed:
            return self.remove_fixed(handle)
        self.remove_rotating(handle)
        return [handle]

    def clear(self) -> None:
        self._fixed.clear()
        self._rotating.clear()

    # ----- Lookup -----

    def __contains__(self, handle: object) -> bool:
        return handle in self._fixed or handle in self._rotating

    def __len__(self) -> int:
        return len(self._fixed) + len(self._rotating)

    def get(self, handle: int) -> Gear:
        if handle in self._fixed:
            return self._fixed[handle]
        return self.get_rotating(handle)

    def get_fixed(self, handle: int) -> FixedGear:
        try:
            return self._fixed[handle]
        except KeyError:
            raise UnknownGearError(f"No fixed gear with handle {handle}") from None

    def get_rotating(self, handle: int) -> RotatingGear:
        try:
            return self._rotating[handle]
        except KeyError:
            raise UnknownGearError(f"No rotating gear with handle {handle}") from None

    def is_fixed(self, handle: int) -> bool:
        return handle in self._fixed

    def fixed_gears(self) -> List[FixedGear]:
        return [self._fixed[h] for h in sorted(self._fixed)]

    def children_of(self, fixed: Union[FixedGear, int]) -> List[RotatingGear]:
        if not isinstance(fixed, FixedGear):
            fixed = self.get_fixed(fixed)
        return [self._rotating[h] for h in fixed.children if h in self._rotating]

    def spirographs(self) -> Iterator[Tuple[FixedGear, List[RotatingGear]]]:
        for fixed in self.fixed_gears():
            yield fixed, self.children_of(fixed)

    def rotating_gears(self) -> List[RotatingGear]:
        return [
            self._rotating[h]
            for h in sorted(self._rotating)
            if self._rotating[h].parent in self._fixed
        ]

    def orphans(self) -> List[RotatingGear]:
        return [g for g in self._rotating.values() if g.parent not in self._fixed]

    def compact(self) -> int:
        """Drop rotating gears whose parent is gone. Returns how many were dropped."""
        orphans = self.orphans()
        for gear in orphans:
            del self._rotating[gear.handle]
        if orphans:
            _LOGGER.warning(
                "Reclaimed %d orphan rotating gear(s): %s",
                len(orphans),
                ", ".join(str(g.handle) for g in orphans),
            )
        return len(orphans)

    # ----- Mutation -----

    def move_fixed(self, handle: int, position: Point) -> None:
        """Move a fixed gear. Rotating gears keep their transforms until stepped or settled."""
        self.get_fixed(handle).position = (float(position[0]), float(position[1]))

    def settle_children(self, handle: int) -> int:
        """Re-place the running rotating gears of a fixed gear on their rolling circle.

        Paused gears are left alone. Traces are never touched.
        """
        fixed = self.get_fixed(handle)
        settled = 0
        for gear in self.children_of(fixed):
            if not gear.paused:
                place_on_rolling_circle(fixed, gear)
                settled += 1
        return settled

    def set_paused(self, handle: int, paused: bool) -> None:
        self.get_rotating(handle).paused = bool(paused)

    def update_fixed(self, handle: int, **changes) -> FixedGear:
        gear = self.get_fixed(handle)
        self._apply_changes(gear, FIXED_FIELDS, changes)
        return gear

    def update_rotating(self, handle: int, **changes) -> RotatingGear:
        gear = self.get_rotating(handle)
        self._apply_changes(gear, ROTATING_FIELDS, changes)
        return gear

    @staticmethod
    def _apply_changes(gear: Gear, allowed: Tuple[str, ...], changes: dict) -> None:
        unknown = sorted(set(changes) - set(allowed))
        if unknown:
            raise ValueError(f"Cannot edit {', '.join(unknown)} on gear {gear.handle}")
        if "radius" in changes and changes["radius"] <= 0:
            raise ValueError(f"Radius must be positive, got {changes['radius']}")
        for key, value in changes.items():
            if key in _COLOR_FIELDS:
                value = _checked_color(value)
            elif key in ("paused", "draggable"):
                value = bool(value)
            else:
                value = float(value)
            setattr(gear, key, value)

    def clear_trace(self, handle: int) -> None:
        self.get_rotating(handle).trace = []

    def clear_all_traces(self) -> None:
        for gear in self._rotating.values():
            gear.trace = []


__all__ = [
    "DEFAULT_FIXED_COLOR",
    "DEFAULT_FIXED_RADIUS",
    "DEFAULT_GEAR_COLOR",
    "DEFAULT_LINE_COLOR",
    "DEFAULT_PEN_OFFSET",
    "DEFAULT_ROTATING_RADIUS",
    "DEFAULT_SPEED",
    "FixedGear",
    "Gear",
    "GearRegistry",
    "RotatingGear",
    "UnknownGearError",
    "place_on_rolling_circle",
]
