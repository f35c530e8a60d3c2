from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import logging
from typing import Deque, List, Optional, Tuple, Union

from gear_geometry import Point
from spirogears_config import SimulationConfig
from spirogears_core import FixedGear, GearRegistry, RotatingGear, UnknownGearError
from spirogears_dragging import Camera2D, CursorIcon, DragController, DragState, PointerFrame
from spirogears_math import FixedStepClock, KinematicsEngine, StepReport, preview_path, set_backend

_LOGGER = logging.getLogger(__name__)


@dataclass
class Settings:
    draw_debug_guides: bool = True
    show_sidebar: bool = True
    line_enabled: bool = True
    paused: bool = False


# ----- Commands (applied at the end of a tick) -----

@dataclass(frozen=True)
class AddFixedGear:
    position: Optional[Point] = None   # None: configured spawn position
    with_rotating: bool = True


@dataclass(frozen=True)
class AddRotatingGear:
    parent: int


@dataclass(frozen=True)
class RemoveGear:
    handle: int


@dataclass(frozen=True)
class ClearTrace:
    handle: int


@dataclass(frozen=True)
class ClearAllTraces:
    pass


Command = Union[AddFixedGear, AddRotatingGear, RemoveGear, ClearTrace, ClearAllTraces]


@dataclass
class FrameResult:
    state: DragState
    ticks: int = 0
    reports: List[StepReport] = field(default_factory=list)


class Simulation:
    """
    Owns the gear registry, the drag controller and the kinematics engine.

    Per frame: pointer/drag handling, then the kinematics ticks, then the
    queued commands. Structural changes requested by the UI go through
    ``submit`` so they never happen while the registry is being iterated.
    """

    def __init__(self, config: Optional[SimulationConfig] = None, registry: Optional[GearRegistry] = None):
        self.config = config or SimulationConfig()
        self.registry = registry if registry is not None else GearRegistry()
        self.settings = Settings(
            draw_debug_guides=self.config.draw_debug_guides,
            show_sidebar=self.config.show_sidebar,
        )
        self.controller = DragController(
            snap_threshold=self.config.snap_threshold,
            restore_user_pause=self.config.restore_user_pause,
        )
        self.engine = KinematicsEngine()
        self.clock = FixedStepClock(self.config.time_step, self.config.max_ticks_per_frame)
        self.camera: Optional[Camera2D] = None
        self._commands: Deque[Command] = deque()
        self.tick_count = 0
        if self.config.math_backend != "python":
            try:
                set_backend(self.config.math_backend)
            except ValueError as exc:
                _LOGGER.warning("%s, keeping the python backend", exc)

    @classmethod
    def with_default_scene(cls, config: Optional[SimulationConfig] = None) -> "Simulation":
        sim = cls(config)
        sim.apply(AddFixedGear(sim.config.fixed_defaults.startup_position))
        return sim

    # ----- Commands -----

    def submit(self, command: Command) -> None:
        self._commands.append(command)

    @property
    def pending_commands(self) -> int:
        return len(self._commands)

    def drain_commands(self) -> int:
        count = 0
        while self._commands:
            self.apply(self._commands.popleft())
            count += 1
        return count

    def apply(self, command: Command) -> Optional[Union[FixedGear, RotatingGear]]:
        try:
            if isinstance(command, AddFixedGear):
                return self._add_fixed(command)
            if isinstance(command, AddRotatingGear):
                return self.spawn_rotating(command.parent)
            if isinstance(command, RemoveGear):
                self.registry.remove(command.handle)
            elif isinstance(command, ClearTrace):
                self.registry.clear_trace(command.handle)
            elif isinstance(command, ClearAllTraces):
                self.registry.clear_all_traces()
            else:
                raise TypeError(f"Unknown command: {command!r}")
        except UnknownGearError as exc:
            _LOGGER.warning("Ignoring %s: %s", type(command).__name__, exc)
        return None

    def _add_fixed(self, command: AddFixedGear) -> FixedGear:
        defaults = self.config.fixed_defaults
        position = command.position if command.position is not None else defaults.spawn_position
        fixed = self.registry.add_fixed(position, radius=defaults.radius, color=defaults.color)
        if command.with_rotating:
            self.spawn_rotating(fixed.handle)
        return fixed

    def spawn_rotating(self, parent: int) -> RotatingGear:
        d = self.config.rotating_defaults
        # children of the dragged gear stay paused until the drag ends
        return self.registry.add_rotating(
            parent,
            speed=d.speed,
            radius=d.radius,
            pen_offset=d.pen_offset,
            line_color=d.line_color,
            gear_color=d.gear_color,
            paused=self.controller.dragging == parent,
        )

    # ----- Parameter editing -----

    def edit_rotating(self, handle: int, **changes) -> RotatingGear:
        return self.registry.update_rotating(handle, **changes)

    def edit_fixed(self, handle: int, **changes) -> FixedGear:
        return self.registry.update_fixed(handle, **changes)

    def toggle_sidebar(self) -> bool:
        self.settings.show_sidebar = not self.settings.show_sidebar
        return self.settings.show_sidebar

    # ----- Frame pipeline -----

    @property
    def cursor_icon(self) -> CursorIcon:
        return self.controller.cursor_icon

    def _kinematics(self) -> StepReport:
        if self.settings.paused:
            return StepReport()
        self.tick_count += 1
        return self.engine.step(self.registry, 1.0, record=self.settings.line_enabled)

    def tick(self, pointer: PointerFrame = PointerFrame()) -> FrameResult:
        """One fixed step: pointer handling, one kinematics step, queued commands."""
        state = self.controller.update(self.registry, pointer, self.camera)
        result = FrameResult(state=state, ticks=1, reports=[self._kinematics()])
        self.drain_commands()
        return result

    def update(self, pointer: PointerFrame, elapsed: float) -> FrameResult:
        """Variable-rate frame: pointer handling once, then as many fixed steps as are due."""
        state = self.controller.update(self.registry, pointer, self.camera)
        ticks = self.clock.advance(elapsed)
        result = FrameResult(state=state, ticks=ticks)
        for _ in range(ticks):
            result.reports.append(self._kinematics())
        self.drain_commands()
        return result

    def preview_paths(self, steps: Optional[int] = None) -> List[Tuple[RotatingGear, List[Point]]]:
        if not self.settings.draw_debug_guides:
            return []
        steps = self.config.preview_steps if steps is None else steps
        previews = []
        for fixed, children in self.registry.spirographs():
            if fixed.radius == 0:
                continue
            for gear in children:
                previews.append((gear, preview_path(fixed, gear, steps)))
        return previews


__all__ = [
    "AddFixedGear",
    "AddRotatingGear",
    "ClearAllTraces",
    "ClearTrace",
    "Command",
    "FrameResult",
    "RemoveGear",
    "Settings",
    "Simulation",
]
