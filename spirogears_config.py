from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from spirogears_colors import normalize_color_string
from spirogears_core import (
    DEFAULT_FIXED_COLOR,
    DEFAULT_FIXED_RADIUS,
    DEFAULT_GEAR_COLOR,
    DEFAULT_LINE_COLOR,
    DEFAULT_PEN_OFFSET,
    DEFAULT_ROTATING_RADIUS,
    DEFAULT_SPEED,
)
from spirogears_dragging import SNAP_THRESHOLD
from spirogears_math import TIME_STEP

_LOGGER = logging.getLogger(__name__)

CONFIG_VERSION = 1
CONFIG_FILE_NAME = "spirogears_config.json"


@dataclass
class FixedGearDefaults:
    radius: float = DEFAULT_FIXED_RADIUS
    color: str = DEFAULT_FIXED_COLOR
    startup_position: tuple = (0.0, 20.0)
    spawn_position: tuple = (200.0, 0.0)   # "Add" button


@dataclass
class RotatingGearDefaults:
    speed: float = DEFAULT_SPEED
    radius: float = DEFAULT_ROTATING_RADIUS
    pen_offset: float = DEFAULT_PEN_OFFSET
    line_color: str = DEFAULT_LINE_COLOR
    gear_color: str = DEFAULT_GEAR_COLOR


@dataclass
class SimulationConfig:
    time_step: float = TIME_STEP
    max_ticks_per_frame: int = 8
    snap_threshold: float = SNAP_THRESHOLD
    restore_user_pause: bool = False
    preview_steps: int = 600
    math_backend: str = "python"
    language: str = "en"
    show_sidebar: bool = True
    draw_debug_guides: bool = True
    fixed_defaults: FixedGearDefaults = field(default_factory=FixedGearDefaults)
    rotating_defaults: RotatingGearDefaults = field(default_factory=RotatingGearDefaults)
    window_geometry: Optional[str] = None  # base64 from QWidget.saveGeometry


def _checked_color(value: Any, section: str) -> str:
    norm = normalize_color_string(value) if isinstance(value, str) else None
    if norm is None:
        raise ValueError(f"{section}: invalid color {value!r}")
    return norm


def validate_config(config: SimulationConfig) -> SimulationConfig:
    """Reject values the simulation cannot start with. Colors come back normalised."""
    if not config.time_step > 0:
        raise ValueError(f"time_step must be positive, got {config.time_step}")
    if int(config.max_ticks_per_frame) < 1:
        raise ValueError(f"max_ticks_per_frame must be at least 1, got {config.max_ticks_per_frame}")
    if config.snap_threshold < 0:
        raise ValueError(f"snap_threshold must not be negative, got {config.snap_threshold}")
    if int(config.preview_steps) < 0:
        raise ValueError(f"preview_steps must not be negative, got {config.preview_steps}")

    fixed = config.fixed_defaults
    if not fixed.radius > 0:
        raise ValueError(f"fixed_defaults: radius must be positive, got {fixed.radius}")
    fixed.color = _checked_color(fixed.color, "fixed_defaults")

    rotating = config.rotating_defaults
    if not rotating.radius > 0:
        raise ValueError(f"rotating_defaults: radius must be positive, got {rotating.radius}")
    rotating.line_color = _checked_color(rotating.line_color, "rotating_defaults")
    rotating.gear_color = _checked_color(rotating.gear_color, "rotating_defaults")
    return config


def config_to_dict(config: SimulationConfig) -> Dict[str, Any]:
    data = asdict(config)
    data["fixed_defaults"]["startup_position"] = list(config.fixed_defaults.startup_position)
    data["fixed_defaults"]["spawn_position"] = list(config.fixed_defaults.spawn_position)
    data["version"] = CONFIG_VERSION
    return data


def _known_values(cls, data: Dict[str, Any], section: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{section} must be a JSON object")
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - names - {"version"})
    if unknown:
        _LOGGER.warning("Ignoring unknown %s setting(s): %s", section, ", ".join(unknown))
    return {k: v for k, v in data.items() if k in names}


def config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    values = _known_values(SimulationConfig, data, "config")

    fixed = _known_values(FixedGearDefaults, values.pop("fixed_defaults", None) or {}, "fixed_defaults")
    for key in ("startup_position", "spawn_position"):
        if key in fixed:
            x, y = fixed[key]
            fixed[key] = (float(x), float(y))
    rotating = _known_values(
        RotatingGearDefaults, values.pop("rotating_defaults", None) or {}, "rotating_defaults"
    )

    return validate_config(
        SimulationConfig(
            fixed_defaults=FixedGearDefaults(**fixed),
            rotating_defaults=RotatingGearDefaults(**rotating),
            **values,
        )
    )


def load_config(path: Union[str, Path]) -> SimulationConfig:
    """Read a config file; missing or unreadable files give the defaults."""
    path = Path(path)
    if not path.exists():
        return SimulationConfig()
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value is not an object")
        return config_from_dict(data)
    except (OSError, ValueError, TypeError) as exc:
        _LOGGER.warning("Could not read config %s (%s), using defaults", path, exc)
        return SimulationConfig()


def save_config(config: SimulationConfig, path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(config_to_dict(config), handle, indent=2, ensure_ascii=False)


__all__ = [
    "CONFIG_FILE_NAME",
    "CONFIG_VERSION",
    "FixedGearDefaults",
    "RotatingGearDefaults",
    "SimulationConfig",
    "config_from_dict",
    "config_to_dict",
    "load_config",
    "save_config",
    "validate_config",
]
