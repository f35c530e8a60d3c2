from __future__ import annotations

import importlib.util
import math
from typing import List

from gear_geometry import Point
from math_backends import python_backend

NUMBA_AVAILABLE = importlib.util.find_spec("numba") is not None
if NUMBA_AVAILABLE:
    import numba
    import numpy as np


if NUMBA_AVAILABLE:

    @numba.njit(cache=True)
    def _pen_path_numba(
        fx: float,
        fy: float,
        fixed_radius: float,
        angle: float,
        speed: float,
        radius: float,
        pen_offset: float,
        steps: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        out_x = np.empty(steps, dtype=np.float64)
        out_y = np.empty(steps, dtype=np.float64)
        arm = fixed_radius - radius
        for i in range(steps):
            angle += speed
            angle_large = angle * radius / fixed_radius
            spin = angle + angle_large
            cx = fx + arm * math.cos(angle_large)
            cy = fy + arm * math.sin(angle_large)
            pen_angle = -spin + math.pi / 2.0
            out_x[i] = cx + math.cos(pen_angle) * pen_offset
            out_y[i] = cy + math.sin(pen_angle) * pen_offset
        return out_x, out_y


def preview_pen_path(
    fixed_position: Point,
    fixed_radius: float,
    angle: float,
    speed: float,
    radius: float,
    pen_offset: float,
    steps: int,
) -> List[Point]:
    if not NUMBA_AVAILABLE:
        return python_backend.preview_pen_path(
            fixed_position, fixed_radius, angle, speed, radius, pen_offset, steps
        )
    if steps <= 0 or fixed_radius == 0:
        return []
    xs, ys = _pen_path_numba(
        float(fixed_position[0]),
        float(fixed_position[1]),
        float(fixed_radius),
        float(angle),
        float(speed),
        float(radius),
        float(pen_offset),
        int(steps),
    )
    return [(float(x), float(y)) for x, y in zip(xs, ys)]
