from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, List, Set

from gear_geometry import Point, advance, orientation_from_spin, pen_tip
from math_backends import numba_backend, python_backend
from spirogears_core import FixedGear, GearRegistry, RotatingGear

_LOGGER = logging.getLogger(__name__)

TIME_STEP = 1.0 / 60.0


# ----- Math backends (path preview) -----

@dataclass(frozen=True)
class MathBackend:
    name: str
    label: str
    available: bool
    generator: Callable


_BACKENDS: dict[str, MathBackend] = {}
_ACTIVE_BACKEND = "python"


def register_backend(backend: MathBackend) -> None:
    _BACKENDS[backend.name] = backend


def list_backends(*, available_only: bool = False) -> list[MathBackend]:
    backends = list(_BACKENDS.values())
    if available_only:
        backends = [b for b in backends if b.available]
    return sorted(backends, key=lambda b: b.name)


def get_backend_name() -> str:
    return _ACTIVE_BACKEND


def set_backend(name: str) -> None:
    backend = _BACKENDS.get(name)
    if backend is None:
        raise ValueError(f"Unknown math backend: {name}")
    if not backend.available:
        raise ValueError(f"Math backend not available: {name}")
    global _ACTIVE_BACKEND
    _ACTIVE_BACKEND = backend.name


def preview_path(fixed: FixedGear, gear: RotatingGear, steps: int) -> List[Point]:
    """Pen positions the gear will trace over the next ``steps`` ticks. Read only."""
    backend = _BACKENDS.get(_ACTIVE_BACKEND)
    if backend is None:
        raise ValueError(f"Unknown math backend: {_ACTIVE_BACKEND}")
    return backend.generator(
        fixed.position,
        fixed.radius,
        gear.angle,
        gear.speed,
        gear.radius,
        gear.pen_offset,
        steps,
    )


# ----- Kinematics -----

@dataclass
class StepReport:
    advanced: int = 0
    paused: int = 0
    skipped: int = 0


def step_gear(fixed: FixedGear, gear: RotatingGear, dt: float = 1.0, *, record: bool = True) -> bool:
    """
    Advance one rotating gear by ``dt`` ticks around ``fixed``.

    Returns False (and leaves the gear untouched) when the gear is paused.
    The caller guarantees ``fixed.radius != 0``.
    """
    if gear.paused:
        return False

    gear.angle += gear.speed * dt

    spin, (ox, oy) = advance(gear.angle, fixed.radius, gear.radius)
    gear.position = (fixed.position[0] + ox, fixed.position[1] + oy)
    gear.orientation = orientation_from_spin(spin)

    # Pen from the transform just written
    gear.pen_position = pen_tip(gear.position, gear.orientation, gear.pen_offset)

    if record and not gear.paused:
        gear.trace.append(gear.pen_position)
    return True


class KinematicsEngine:
    """Steps every spirograph of a registry; warns once per degenerate fixed gear."""

    def __init__(self) -> None:
        self._degenerate: Set[int] = set()

    def step(self, registry: GearRegistry, dt: float = 1.0, *, record: bool = True) -> StepReport:
        report = StepReport()
        # rebuilt every step so removed gears drop out
        degenerate: Set[int] = set()
        for fixed, children in registry.spirographs():
            if fixed.radius == 0:
                degenerate.add(fixed.handle)
                if fixed.handle not in self._degenerate:
                    _LOGGER.warning(
                        "Fixed gear %d has a zero radius; its %d rotating gear(s) are not updated",
                        fixed.handle,
                        len(children),
                    )
                report.skipped += len(children)
                continue

            for gear in children:
                if step_gear(fixed, gear, dt, record=record):
                    report.advanced += 1
                else:
                    report.paused += 1
        self._degenerate = degenerate
        return report


def step(registry: GearRegistry, dt: float = 1.0, *, record: bool = True) -> StepReport:
    return KinematicsEngine().step(registry, dt, record=record)


class FixedStepClock:
    """
    Fixed timestep accumulator.

    ``advance(elapsed)`` adds wall-clock seconds and returns how many whole
    simulation ticks are due. At most ``max_ticks_per_frame`` ticks are
    returned per call; the surplus is dropped.
    """

    def __init__(self, time_step: float = TIME_STEP, max_ticks_per_frame: int = 8):
        if time_step <= 0:
            raise ValueError(f"time_step must be positive, got {time_step}")
        self.time_step = time_step
        self.max_ticks_per_frame = max(1, int(max_ticks_per_frame))
        self._accumulator = 0.0

    def advance(self, elapsed: float) -> int:
        self._accumulator += max(0.0, elapsed)
        ticks = int(self._accumulator // self.time_step)
        self._accumulator -= ticks * self.time_step
        if ticks > self.max_ticks_per_frame:
            _LOGGER.debug(
                "Dropping %d simulation tick(s), host is running late",
                ticks - self.max_ticks_per_frame,
            )
            ticks = self.max_ticks_per_frame
        return ticks

    @property
    def alpha(self) -> float:
        return self._accumulator / self.time_step

    def reset(self) -> None:
        self._accumulator = 0.0


register_backend(
    MathBackend(
        name="python",
        label="Python",
        available=True,
        generator=python_backend.preview_pen_path,
    )
)
register_backend(
    MathBackend(
        name="numba",
        label="Numba",
        available=numba_backend.NUMBA_AVAILABLE,
        generator=numba_backend.preview_pen_path,
    )
)


__all__ = [
    "FixedStepClock",
    "KinematicsEngine",
    "MathBackend",
    "StepReport",
    "TIME_STEP",
    "get_backend_name",
    "list_backends",
    "preview_path",
    "register_backend",
    "set_backend",
    "step",
    "step_gear",
]
