from __future__ import annotations

from typing import List, Tuple

from gear_geometry import Point, advance, orientation_from_spin, pen_tip


def preview_pen_path(
    fixed_position: Point,
    fixed_radius: float,
    angle: float,
    speed: float,
    radius: float,
    pen_offset: float,
    steps: int,
) -> List[Point]:
    """
    Pen positions of the next ``steps`` ticks of a rotating gear.

    Same arithmetic, in the same order, as the kinematics engine with a
    one-tick step, so the points are exactly the ones that will be traced.
    """
    if steps <= 0 or fixed_radius == 0:
        return []
    fx, fy = fixed_position
    points: List[Tuple[float, float]] = []
    for _ in range(steps):
        angle += speed * 1.0
        spin, (ox, oy) = advance(angle, fixed_radius, radius)
        points.append(pen_tip((fx + ox, fy + oy), orientation_from_spin(spin), pen_offset))
    return points
