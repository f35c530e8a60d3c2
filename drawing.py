from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF
from PySide6.QtGui import QColor, QPainter, QPen

from gear_geometry import Point, add, local_axes
from spirogears_colors import CENTER_MARK, PALETTE_600, hex_to_rgba
from spirogears_dragging import Camera2D
from spirogears_sim import Simulation

AXIS_LENGTH = 10.0


def qcolor(color: str, alpha: Optional[int] = None) -> QColor:
    # QColor reads 8-digit hex as #aarrggbb, gear colors are #rrggbbaa
    r, g, b, a = hex_to_rgba(color)
    return QColor(r, g, b, a if alpha is None else alpha)


def compute_view_zoom(points: Sequence[Point], width: int, height: int, margin_ratio: float = 0.45) -> float:
    """Compute a uniform zoom so that ``points`` (centred on the origin) fit the viewport.

    The returned zoom keeps aspect ratio, applies the requested margin, and
    returns ``1.0`` when there is nothing to draw.
    """

    if not points:
        return 1.0

    max_x = max(abs(x) for x, _ in points) or 1.0
    max_y = max(abs(y) for _, y in points) or 1.0
    sx = (width * margin_ratio) / max_x
    sy = (height * margin_ratio) / max_y
    return min(sx, sy)


def _map_points(points: Iterable[Point], camera: Camera2D) -> List[QPointF]:
    return [QPointF(*camera.world_to_viewport(p)) for p in points]


def draw_polyline(
    painter: QPainter,
    points: Sequence[Point],
    camera: Camera2D,
    *,
    color: str = "#606060",
    width: float = 0.0,
) -> None:
    """Draw a simple polyline with cosmetic width by default."""

    if len(points) < 2:
        return
    pen = QPen(qcolor(color))
    pen.setWidthF(width)
    painter.setPen(pen)
    painter.drawPolyline(_map_points(points, camera))


def draw_marker(
    painter: QPainter,
    point: Point,
    camera: Camera2D,
    *,
    radius: float = 1.5,
    color: str = "#e62739",
) -> None:
    """Draw a small marker using a cosmetic pen (radius in pixels)."""

    pen = QPen(qcolor(color))
    pen.setWidthF(0)
    painter.setPen(pen)
    painter.drawEllipse(QPointF(*camera.world_to_viewport(point)), radius, radius)


def draw_gear(
    painter: QPainter,
    camera: Camera2D,
    *,
    center: Point,
    radius: float,
    color: str,
    highlight: bool = False,
) -> None:
    """Draw a gear outline (radius in world units) and its center mark."""

    pen = QPen(qcolor(color))
    pen.setWidthF(2.0 if highlight else 0.0)
    painter.setPen(pen)
    painter.drawEllipse(
        QPointF(*camera.world_to_viewport(center)),
        radius * camera.zoom,
        radius * camera.zoom,
    )
    draw_marker(painter, center, camera, radius=1.0, color=CENTER_MARK)


def draw_axes(painter: QPainter, camera: Camera2D, center: Point, orientation: float) -> None:
    """Local x (red) and y (green) axes of a rotating gear."""

    x_axis, y_axis = local_axes(orientation, AXIS_LENGTH)
    draw_polyline(painter, [center, add(center, x_axis)], camera, color=PALETTE_600["red"])
    draw_polyline(painter, [center, add(center, y_axis)], camera, color=PALETTE_600["green"])


def draw_simulation(
    painter: QPainter,
    sim: Simulation,
    camera: Camera2D,
    *,
    previews: Optional[Sequence[Tuple[object, Sequence[Point]]]] = None,
) -> None:
    """Paint traces, and the gears and guides when the debug guides are on."""

    guides = sim.settings.draw_debug_guides
    hovered = sim.controller.hovered
    dragging = sim.controller.dragging

    for fixed, children in sim.registry.spirographs():
        for gear in children:
            draw_polyline(painter, gear.trace, camera, color=gear.line_color, width=1.2)

        if not guides:
            continue

        draw_gear(
            painter,
            camera,
            center=fixed.position,
            radius=fixed.radius,
            color=fixed.color,
            highlight=fixed.handle in (hovered, dragging),
        )
        for gear in children:
            draw_gear(painter, camera, center=gear.position, radius=gear.radius, color=gear.gear_color)
            draw_axes(painter, camera, gear.position, gear.orientation)
            draw_marker(painter, gear.pen_position, camera, radius=1.0, color=PALETTE_600["pink"])

    if guides and previews:
        for gear, points in previews:
            pen = QPen(qcolor(gear.line_color, alpha=70))
            pen.setWidthF(0)
            painter.setPen(pen)
            if len(points) >= 2:
                painter.drawPolyline(_map_points(points, camera))
