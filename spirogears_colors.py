from __future__ import annotations

import colorsys
import re
from typing import Dict, Optional, Tuple

# Tailwind "600" shades used for gears and lines.
PALETTE_600: Dict[str, str] = {
    "slate": "#475569",
    "gray": "#4b5563",
    "zinc": "#52525b",
    "neutral": "#525252",
    "stone": "#57534e",
    "red": "#dc2626",
    "orange": "#ea580c",
    "amber": "#d97706",
    "yellow": "#ca8a04",
    "lime": "#65a30d",
    "green": "#16a34a",
    "emerald": "#059669",
    "teal": "#0d9488",
    "cyan": "#0891b2",
    "sky": "#0284c7",
    "blue": "#2563eb",
    "indigo": "#4f46e5",
    "violet": "#7c3aed",
    "purple": "#9333ea",
    "fuchsia": "#c026d3",
    "pink": "#db2777",
    "rose": "#e11d48",
}

BACKGROUND = "#000000"
CENTER_MARK = PALETTE_600["red"]

COLOR_NAME_TO_HEX: Dict[str, str] = {
    "black": "#000000",
    "white": "#ffffff",
}
COLOR_NAME_TO_HEX.update({f"{name}600": hexv for name, hexv in PALETTE_600.items()})
COLOR_NAME_TO_HEX.update(PALETTE_600)


def normalize_color_name(name: str) -> str:
    return re.sub(r"[\s\-_]+", "", name.strip().lower())


def normalize_color_string(s: Optional[str]) -> Optional[str]:
    """
    Return the color as lowercase ``#rrggbb`` (or ``#rrggbbaa``), or None.

    Accepted forms:
      - hex: ``#rgb``, ``#rgba``, ``#rrggbb``, ``#rrggbbaa``
      - HSL tuple: ``(H, S, L)`` with H in degrees, S and L in [0, 1]
      - a palette name: ``amber``, ``amber-600``, ``black``...
    """
    if s is None:
        return None
    s = s.strip()
    if not s:
        return None

    if s.startswith("#"):
        m = re.fullmatch(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})", s)
        if not m:
            return None
        digits = m.group(1).lower()
        if len(digits) in (3, 4):
            digits = "".join(c * 2 for c in digits)
        return f"#{digits}"

    m = re.fullmatch(
        r"\(\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*\)",
        s,
    )
    if m:
        h = float(m.group(1)) % 360.0
        sat = max(0.0, min(1.0, float(m.group(2))))
        lum = max(0.0, min(1.0, float(m.group(3))))
        # colorsys expects (h, l, s) with h in [0, 1]
        r_f, g_f, b_f = colorsys.hls_to_rgb(h / 360.0, lum, sat)
        return "#{:02x}{:02x}{:02x}".format(
            int(round(r_f * 255)),
            int(round(g_f * 255)),
            int(round(b_f * 255)),
        )

    return COLOR_NAME_TO_HEX.get(normalize_color_name(s))


def hex_to_rgba(hexv: str) -> Tuple[int, int, int, int]:
    norm = normalize_color_string(hexv)
    if norm is None:
        raise ValueError(f"Invalid color: {hexv!r}")
    digits = norm[1:]
    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    a = int(digits[6:8], 16) if len(digits) == 8 else 255
    return r, g, b, a


__all__ = [
    "BACKGROUND",
    "CENTER_MARK",
    "COLOR_NAME_TO_HEX",
    "PALETTE_600",
    "hex_to_rgba",
    "normalize_color_name",
    "normalize_color_string",
]
