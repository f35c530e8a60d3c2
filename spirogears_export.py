from __future__ import annotations

from typing import List, Sequence, Tuple

from gear_geometry import Point
from spirogears_colors import BACKGROUND
from spirogears_core import GearRegistry


def _path_d(points: Sequence[Point]) -> str:
    x0, y0 = points[0]
    cmds = [f"M {x0:.3f} {y0:.3f}"]
    for (x, y) in points[1:]:
        cmds.append(f"L {x:.3f} {y:.3f}")
    return " ".join(cmds)


def traces_to_svg(
    registry: GearRegistry,
    width: int = 1000,
    height: int = 1000,
    bg_color: str = BACKGROUND,
    stroke_width: float = 1.2,
    show_gears: bool = False,
    fill_ratio: float = 0.8,
) -> str:
    """
    Export every non-empty trace as an SVG ``<path>`` in its line color.

    One ``<g>`` per fixed gear. The drawing is centred and scaled so its
    bounding box takes ``fill_ratio`` of the canvas; y is flipped (math
    frame to SVG frame). Gear outlines are added when ``show_gears`` is set.
    """
    groups: List[Tuple[int, List[Tuple[str, List[Point]]], List[Tuple[Point, float, str]]]] = []
    all_points: List[Point] = []

    for fixed, children in registry.spirographs():
        traces = []
        circles = []
        for gear in children:
            if len(gear.trace) >= 2:
                traces.append((gear.line_color, gear.trace))
                all_points.extend(gear.trace)
        if show_gears:
            circles.append((fixed.position, fixed.radius, fixed.color))
            for gear in children:
                circles.append((gear.position, gear.radius, gear.gear_color))
            for (cx, cy), r, _ in circles:
                all_points.extend([(cx - r, cy - r), (cx + r, cy + r)])
        if traces or circles:
            groups.append((fixed.handle, traces, circles))

    svg_parts = [
        '<?xml version="1.0" standalone="no"?>',
        f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}"',
        '     xmlns="http://www.w3.org/2000/svg" version="1.1">',
        f'  <rect x="0" y="0" width="{width}" height="{height}" fill="{bg_color}"/>',
    ]

    if not all_points:
        svg_parts.append("</svg>")
        return "\n".join(svg_parts) + "\n"

    xs = [p[0] for p in all_points]
    ys = [p[1] for p in all_points]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    dx = (max_x - min_x) or 1.0
    dy = (max_y - min_y) or 1.0

    scale = fill_ratio * min(width / dx, height / dy)
    cx = (min_x + max_x) / 2.0
    cy = (min_y + max_y) / 2.0

    def transform(p: Point) -> Point:
        x, y = p
        return (x - cx) * scale + width / 2.0, (cy - y) * scale + height / 2.0

    for handle, traces, circles in groups:
        svg_parts.append(f'  <g id="spirograph-{handle}">')
        for (px, py), r, color in circles:
            tx, ty = transform((px, py))
            svg_parts.append(
                f'    <circle cx="{tx:.3f}" cy="{ty:.3f}" r="{r * scale:.3f}" '
                f'fill="none" stroke="{color}" stroke-width="1"/>'
            )
        for color, points in traces:
            path_d = _path_d([transform(p) for p in points])
            svg_parts.append(
                f'    <path d="{path_d}" fill="none" stroke="{color}" stroke-width="{stroke_width}"/>'
            )
        svg_parts.append("  </g>")

    svg_parts.append("</svg>")
    return "\n".join(svg_parts) + "\n"


__all__ = ["traces_to_svg"]
