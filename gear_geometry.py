from __future__ import annotations

import math
from typing import Tuple

Point = Tuple[float, float]

QUARTER_TURN = math.pi / 2.0


def _rotate(x: float, y: float, cos_a: float, sin_a: float) -> Tuple[float, float]:
    return (x * cos_a - y * sin_a, x * sin_a + y * cos_a)


def add(a: Point, b: Point) -> Point:
    return (a[0] + b[0], a[1] + b[1])


def distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def unit_vector(angle: float) -> Point:
    return (math.cos(angle), math.sin(angle))


def rotation_by(angle: float) -> Tuple[float, float]:
    """Return the ``(cos, sin)`` pair of a 2D rotation of ``angle`` radians."""
    return math.cos(angle), math.sin(angle)


def advance(
    prev_angle: float,
    fixed_radius: float,
    rotating_radius: float,
) -> Tuple[float, Point]:
    """
    Rolling relation of a gear of radius ``rotating_radius`` inside a fixed
    gear of radius ``fixed_radius``.

    ``prev_angle`` is the accumulated roll angle of the small gear.
    Returns ``(spin, center_offset)``:
      - spin: total angle of the small gear (own rotation + rolling),
      - center_offset: position of its center relative to the fixed center.

    ``fixed_radius`` must not be 0 (ZeroDivisionError).
    """
    # Arc length covered on the rim of the rotating gear
    distance_traveled = prev_angle * rotating_radius

    # Angle swept around the fixed gear for that arc length
    angle_large_circle = distance_traveled / fixed_radius

    spin = prev_angle + angle_large_circle

    ux, uy = unit_vector(angle_large_circle)
    arm = fixed_radius - rotating_radius
    return spin, (arm * ux, arm * uy)


def orientation_from_spin(spin: float) -> float:
    # The gear turns against its rolling direction
    return -spin


def pen_tip(position: Point, orientation: float, pen_offset: float) -> Point:
    """Pen location, ``pen_offset`` away from the center along the gear's local +y."""
    ux, uy = unit_vector(orientation + QUARTER_TURN)
    return (position[0] + ux * pen_offset, position[1] + uy * pen_offset)


def local_axes(orientation: float, length: float = 1.0) -> Tuple[Point, Point]:
    """Local x and y axes of a gear, scaled to ``length`` (used by the debug guides)."""
    cos_a, sin_a = rotation_by(orientation)
    x_axis = _rotate(length, 0.0, cos_a, sin_a)
    y_axis = _rotate(0.0, length, cos_a, sin_a)
    return x_axis, y_axis


__all__ = [
    "Point",
    "QUARTER_TURN",
    "add",
    "advance",
    "distance",
    "local_axes",
    "orientation_from_spin",
    "pen_tip",
    "rotation_by",
    "unit_vector",
]
