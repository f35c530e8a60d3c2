import argparse
import logging
import os
import sys
import time
from functools import partial
from typing import Callable, Dict, Optional, Tuple

from PySide6.QtCore import QByteArray, QStandardPaths, Qt, QTimer
from PySide6.QtGui import QAction, QColor, QPainter
from PySide6.QtWidgets import (
    QApplication,
    QColorDialog,
    QDoubleSpinBox,
    QFileDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMenu,
    QMenuBar,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

import localisation
from drawing import compute_view_zoom, draw_simulation, qcolor
from localisation import tr
from spirogears_colors import BACKGROUND
from spirogears_config import CONFIG_FILE_NAME, SimulationConfig, load_config, save_config
from spirogears_dragging import Camera2D, CursorIcon, PointerFrame
from spirogears_export import traces_to_svg
from spirogears_sim import (
    AddFixedGear,
    AddRotatingGear,
    ClearAllTraces,
    ClearTrace,
    RemoveGear,
    Simulation,
)

_LOGGER = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16
SIDEBAR_WIDTH = 260

# Edit ranges of the side panel (the core itself does not clamp)
SPEED_RANGE = (0.01, 1.0, 0.01)
RADIUS_RANGE = (1.0, 128.0, 0.1)
PEN_RANGE = (1.0, 128.0, 0.1)
FIXED_RADIUS_RANGE = (1.0, 512.0, 0.1)

_CURSOR_SHAPES = {
    CursorIcon.NONE: Qt.CursorShape.ArrowCursor,
    CursorIcon.GRAB: Qt.CursorShape.OpenHandCursor,
    CursorIcon.GRABBING: Qt.CursorShape.ClosedHandCursor,
}


def _config_file_path() -> str:
    base_dir = QStandardPaths.writableLocation(QStandardPaths.AppConfigLocation)
    if not base_dir:
        base_dir = os.path.expanduser("~")
    return os.path.join(base_dir, CONFIG_FILE_NAME)


def _spin(value: float, bounds: Tuple[float, float, float], on_change: Callable[[float], None]) -> QDoubleSpinBox:
    lo, hi, step = bounds
    spin = QDoubleSpinBox()
    spin.setRange(lo, hi)
    spin.setSingleStep(step)
    spin.setDecimals(2)
    spin.setValue(value)
    spin.valueChanged.connect(on_change)
    return spin


class SpiroCanvas(QWidget):
    """Drawing surface. Collects pointer input between two frames."""

    def __init__(self, sim: Simulation, parent=None):
        super().__init__(parent)
        self.sim = sim
        self.camera = Camera2D(center=(0.0, 0.0), zoom=1.0, viewport=(self.width(), self.height()))
        self._cursor: Optional[Tuple[float, float]] = None
        self._pressed = False
        self._released = False
        self.setMouseTracking(True)
        self.setMinimumSize(200, 200)

    def take_pointer_frame(self) -> PointerFrame:
        frame = PointerFrame(self._cursor, self._pressed, self._released)
        self._pressed = False
        self._released = False
        return frame

    def fit_view(self) -> None:
        extents = []
        for fixed, _ in self.sim.registry.spirographs():
            x, y = fixed.position
            r = fixed.radius
            extents.extend([(x - r, y - r), (x + r, y + r)])
        self.camera.zoom = min(1.0, compute_view_zoom(extents, self.width(), self.height()))

    # ----- Qt events -----

    def resizeEvent(self, event):
        self.camera.viewport = (self.width(), self.height())
        super().resizeEvent(event)

    def mouseMoveEvent(self, event):
        pos = event.position()
        self._cursor = (pos.x(), pos.y())

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._cursor = (pos.x(), pos.y())
            self._pressed = True

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._released = True

    def leaveEvent(self, event):
        self._cursor = None
        super().leaveEvent(event)

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.Antialiasing, True)
            painter.fillRect(self.rect(), QColor(BACKGROUND))
            draw_simulation(painter, self.sim, self.camera, previews=self.sim.preview_paths())
        finally:
            painter.end()


class SidePanel(QScrollArea):
    """Parameter editing panel. Rebuilt when gears are added or removed."""

    def __init__(self, window: "SpiroWindow"):
        super().__init__()
        self.main_window = window
        self.setWidgetResizable(True)
        self.setFixedWidth(SIDEBAR_WIDTH)
        self.setFrameShape(QFrame.NoFrame)
        self._layout_key: Tuple = ()
        self._pause_buttons: Dict[int, QPushButton] = {}

    @property
    def sim(self) -> Simulation:
        return self.main_window.sim

    def _t(self, key: str, **fields) -> str:
        return tr(self.main_window.language, key, **fields)

    def structure_key(self) -> Tuple:
        return tuple(
            (fixed.handle, tuple(g.handle for g in children))
            for fixed, children in self.sim.registry.spirographs()
        )

    def refresh(self, force: bool = False) -> None:
        key = self.structure_key()
        if force or key != self._layout_key:
            self._layout_key = key
            self._rebuild()
        # drag start/end toggles pause flags behind our back
        for handle, btn in self._pause_buttons.items():
            gear = self.sim.registry.get_rotating(handle)
            if btn.isChecked() != gear.paused:
                btn.blockSignals(True)
                btn.setChecked(gear.paused)
                btn.blockSignals(False)

    def _rebuild(self) -> None:
        self._pause_buttons = {}
        content = QWidget()
        layout = QVBoxLayout(content)
        layout.setContentsMargins(10, 10, 10, 10)

        for i_fixed, (fixed, children) in enumerate(self.sim.registry.spirographs(), start=1):
            layout.addWidget(QLabel(self._t("fixed_gear", index=i_fixed)))
            grid = QGridLayout()
            grid.addWidget(QLabel(self._t("label_radius")), 0, 0)
            grid.addWidget(
                _spin(fixed.radius, FIXED_RADIUS_RANGE, partial(self._edit_fixed, fixed.handle, "radius")),
                0,
                1,
            )
            grid.addWidget(QLabel(self._t("label_gear_color")), 1, 0)
            grid.addWidget(self._color_button(fixed.color, partial(self._edit_fixed, fixed.handle, "color")), 1, 1)
            layout.addLayout(grid)
            layout.addWidget(self._separator())

            for i, gear in enumerate(children, start=1):
                layout.addWidget(QLabel(self._t("rotating_gear", index=i)))
                layout.addLayout(self._rotating_grid(gear))
                layout.addLayout(self._rotating_controls(gear))
                layout.addWidget(self._separator())

            row = QHBoxLayout()
            btn_add = QPushButton(self._t("btn_add_gear"))
            btn_add.clicked.connect(self._submit_slot(AddRotatingGear(fixed.handle)))
            btn_remove = QPushButton(self._t("btn_remove_spirograph"))
            btn_remove.clicked.connect(self._submit_slot(RemoveGear(fixed.handle)))
            row.addWidget(btn_add)
            row.addWidget(btn_remove)
            layout.addLayout(row)
            layout.addWidget(self._separator())

        # ----- Global controls -----
        row = QHBoxLayout()
        btn_gizmos = QPushButton(self._t("btn_enable_gizmos"))
        btn_gizmos.setCheckable(True)
        btn_gizmos.setChecked(self.sim.settings.draw_debug_guides)
        btn_gizmos.toggled.connect(self._set_guides)
        btn_clear = QPushButton(self._t("btn_clear_all"))
        btn_clear.clicked.connect(self._submit_slot(ClearAllTraces()))
        btn_add = QPushButton(self._t("btn_add"))
        btn_add.clicked.connect(self._submit_slot(AddFixedGear()))
        btn_pause_all = QPushButton(self._t("btn_pause_all"))
        btn_pause_all.setCheckable(True)
        btn_pause_all.setChecked(self.sim.settings.paused)
        btn_pause_all.toggled.connect(self._set_global_pause)
        row.addWidget(btn_gizmos)
        row.addWidget(btn_clear)
        row.addWidget(btn_add)
        row.addWidget(btn_pause_all)
        layout.addLayout(row)
        layout.addWidget(self._separator())
        layout.addWidget(QLabel(self._t("hint_toggle_sidebar")))
        layout.addStretch(1)

        self.setWidget(content)

    def _rotating_grid(self, gear) -> QGridLayout:
        grid = QGridLayout()
        rows = [
            ("label_speed", _spin(gear.speed, SPEED_RANGE, partial(self._edit_rotating, gear.handle, "speed"))),
            ("label_radius", _spin(gear.radius, RADIUS_RANGE, partial(self._edit_rotating, gear.handle, "radius"))),
            ("label_pen", _spin(gear.pen_offset, PEN_RANGE, partial(self._edit_rotating, gear.handle, "pen_offset"))),
            (
                "label_line_color",
                self._color_button(gear.line_color, partial(self._edit_rotating, gear.handle, "line_color")),
            ),
            (
                "label_gear_color",
                self._color_button(gear.gear_color, partial(self._edit_rotating, gear.handle, "gear_color")),
            ),
        ]
        for row, (key, widget) in enumerate(rows):
            grid.addWidget(QLabel(self._t(key)), row, 0)
            grid.addWidget(widget, row, 1)
        return grid

    def _rotating_controls(self, gear) -> QHBoxLayout:
        row = QHBoxLayout()
        btn_clear = QPushButton(self._t("btn_clear_line"))
        btn_clear.clicked.connect(self._submit_slot(ClearTrace(gear.handle)))
        btn_remove = QPushButton(self._t("btn_remove_gear"))
        btn_remove.clicked.connect(self._submit_slot(RemoveGear(gear.handle)))
        btn_pause = QPushButton(self._t("btn_pause"))
        btn_pause.setCheckable(True)
        btn_pause.setChecked(gear.paused)
        btn_pause.toggled.connect(partial(self._edit_rotating, gear.handle, "paused"))
        self._pause_buttons[gear.handle] = btn_pause
        row.addWidget(btn_clear)
        row.addWidget(btn_remove)
        row.addWidget(btn_pause)
        return row

    def _color_button(self, color: str, on_pick: Callable[[str], None]) -> QPushButton:
        btn = QPushButton()
        btn.setFixedWidth(48)
        btn.setStyleSheet(f"background-color: {qcolor(color).name()};")

        def pick():
            nonlocal color
            chosen = QColorDialog.getColor(qcolor(color), self, self._t("dlg_pick_color"))
            if chosen.isValid():
                color = chosen.name()
                on_pick(color)
                btn.setStyleSheet(f"background-color: {color};")

        btn.clicked.connect(pick)
        return btn

    def _submit_slot(self, command) -> Callable[..., None]:
        # clicked(bool) passes the checked state, which the command does not take
        return lambda *_: self.sim.submit(command)

    @staticmethod
    def _separator() -> QFrame:
        line = QFrame()
        line.setFrameShape(QFrame.HLine)
        return line

    def _edit_rotating(self, handle: int, key: str, value) -> None:
        if handle in self.sim.registry:
            self.sim.edit_rotating(handle, **{key: value})

    def _edit_fixed(self, handle: int, key: str, value) -> None:
        if handle in self.sim.registry:
            self.sim.edit_fixed(handle, **{key: value})

    def _set_guides(self, checked: bool) -> None:
        self.sim.settings.draw_debug_guides = bool(checked)

    def _set_global_pause(self, checked: bool) -> None:
        self.sim.settings.paused = bool(checked)


class SpiroWindow(QWidget):
    def __init__(self, config: SimulationConfig, config_path: str):
        super().__init__()
        self.config = config
        self.config_path = config_path
        self.language = localisation.resolve_language(config.language)
        self._geometry_restored = False

        self.sim = Simulation.with_default_scene(config)

        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ----- Menu bar -----
        menubar = QMenuBar()
        self.menu_file = QMenu(menubar)
        menubar.addMenu(self.menu_file)
        self.act_export_svg = QAction(menubar)
        self.act_export_svg.triggered.connect(self.export_svg)
        self.menu_file.addAction(self.act_export_svg)

        self.menu_options = QMenu(menubar)
        menubar.addMenu(self.menu_options)
        self.menu_lang = QMenu(menubar)
        self.menu_options.addMenu(self.menu_lang)
        self._lang_actions: Dict[str, QAction] = {}
        for code in localisation.available_languages():
            act = QAction(localisation.language_display_name(code), menubar)
            act.setCheckable(True)
            act.triggered.connect(lambda _checked=False, code=code: self.set_language(code))
            self.menu_lang.addAction(act)
            self._lang_actions[code] = act
        main_layout.addWidget(menubar)

        # ----- Sidebar + canvas -----
        body = QHBoxLayout()
        body.setContentsMargins(0, 0, 0, 0)
        body.setSpacing(0)
        self.canvas = SpiroCanvas(self.sim)
        self.sim.camera = self.canvas.camera
        self.side_panel = SidePanel(self)
        body.addWidget(self.side_panel)
        body.addWidget(self.canvas, stretch=1)
        main_layout.addLayout(body, stretch=1)

        # ----- Frame timer -----
        self._last_frame_time: Optional[float] = None
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_frame)

        self._restore_geometry()
        self.apply_language()
        self.side_panel.setVisible(self.sim.settings.show_sidebar)
        self.setFocusPolicy(Qt.StrongFocus)
        self._timer.start(FRAME_INTERVAL_MS)

    # ----- Language -----

    def set_language(self, lang: str):
        self.language = localisation.resolve_language(lang)
        self.apply_language()

    def apply_language(self):
        self.setWindowTitle(tr(self.language, "app_title"))
        self.menu_file.setTitle(tr(self.language, "menu_file"))
        self.act_export_svg.setText(tr(self.language, "menu_file_export_svg"))
        self.menu_options.setTitle(tr(self.language, "menu_options"))
        self.menu_lang.setTitle(tr(self.language, "menu_language"))
        for code, act in self._lang_actions.items():
            act.setChecked(code == self.language)
        self.side_panel.refresh(force=True)

    # ----- Frame loop -----

    def _on_frame(self):
        now = time.monotonic()
        elapsed = 0.0 if self._last_frame_time is None else now - self._last_frame_time
        self._last_frame_time = now

        self.sim.update(self.canvas.take_pointer_frame(), elapsed)

        self.canvas.setCursor(_CURSOR_SHAPES[self.sim.cursor_icon])
        if self.side_panel.isVisible() != self.sim.settings.show_sidebar:
            self.side_panel.setVisible(self.sim.settings.show_sidebar)
        if self.side_panel.isVisible():
            self.side_panel.refresh()
        self.canvas.update()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key_Escape:
            self.sim.toggle_sidebar()
            return
        super().keyPressEvent(event)

    # ----- Export -----

    def export_svg(self):
        filename, _ = QFileDialog.getSaveFileName(
            self,
            tr(self.language, "menu_file_export_svg"),
            "",
            "SVG (*.svg)",
        )
        if not filename:
            return
        svg_data = traces_to_svg(self.sim.registry, self.canvas.width(), self.canvas.height())
        try:
            with open(filename, "w", encoding="utf-8") as f:
                f.write(svg_data)
        except OSError as e:
            _LOGGER.error("SVG export to %s failed: %s", filename, e)
            QMessageBox.critical(self, tr(self.language, "error_title"), str(e))

    # ----- Preferences -----

    def _restore_geometry(self):
        geom_b64 = self.config.window_geometry
        if not geom_b64:
            return
        geom = QByteArray.fromBase64(geom_b64.encode("ascii"))
        if geom.isEmpty() or not self.restoreGeometry(geom):
            _LOGGER.warning("Ignoring unusable window geometry in config")
            return
        self._geometry_restored = True

    def _save_preferences(self):
        self.config.language = self.language
        self.config.show_sidebar = self.sim.settings.show_sidebar
        self.config.draw_debug_guides = self.sim.settings.draw_debug_guides
        self.config.window_geometry = bytes(self.saveGeometry().toBase64()).decode("ascii")
        try:
            save_config(self.config, self.config_path)
        except OSError as e:
            _LOGGER.warning("Could not save preferences to %s: %s", self.config_path, e)

    def showEvent(self, event):
        super().showEvent(event)
        self.canvas.fit_view()

    def closeEvent(self, event):
        try:
            self._timer.stop()
            self._save_preferences()
        finally:
            super().closeEvent(event)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive spirograph simulator.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the preferences file (defaults to the per-user config location).",
    )
    return parser.parse_args(argv)


def main():
    args = parse_args(sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(sys.argv[:1])
    app.setApplicationName("SpiroGears")
    config_path = args.config or _config_file_path()
    window = SpiroWindow(load_config(config_path), config_path)
    if not window._geometry_restored:
        window.resize(1000, 1000)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
