#!/usr/bin/env python3
"""
Physics Lab application entry point and UI/renderer coordination.

What this module does
- Starts two event loops: a Pygame rendering thread (viewport) and the Dear PyGui UI
  (running on the main thread).
- Maintains a shared LabController that owns one engine per simulation (projectile,
  balance, buoyancy, pressure gauge, density column) and the frame scheduler that drives
  them; all access is guarded by a re-entrant lock for thread-safety.
- Provides the fixed-scale drawings for every simulation and a Dear PyGui panel with
  range-checked controls, launch/step/reset buttons, solvers, presets and the run history.

Threading model
- PygameRenderer runs in a background thread and performs: input handling (for the viewport),
  pumping the FrameScheduler once per frame, and drawing. It locks the LabController around
  short critical sections to read/update shared state.
- The UI class runs in the main thread via Dear PyGui. It refreshes controls on a periodic
  frame callback and invokes LabController methods, which are lock-protected.

Units and conventions
- SI units throughout: meters [m], kilograms [kg], seconds [s], pascals [Pa].
- Each view maps meters to pixels with a constant factor (simlab.camera.ViewTransform).
- Colors are RGB tuples in 0..255.

Running
1) Install: `pip install -e .`
2) Run: `physics-lab --simulation balance` (or `python physics_lab.py`)
"""

import argparse
import logging
import math
import sys
import threading
import time
from typing import Dict, List, Optional, Tuple

# GUI and Rendering libs
import pygame
from pygame import gfxdraw
import dearpygui.dearpygui as dpg

from simlab import physics
from simlab.balance import BalanceSimulation
from simlab.camera import ViewTransform, safe_point
from simlab.constants import (
    BACKGROUND_COLOR,
    BALANCE_SCALE,
    BEAM_COLOR,
    BUOYANCY_TANK_DEPTH,
    COLUMN_HEIGHT_PX,
    FLUID_COLOR,
    GRID_COLOR,
    GROUND_COLOR,
    GROUND_DARK_COLOR,
    LEFT_MASS_COLOR,
    PROJECTILE_COLOR,
    PROJECTILE_SCALE,
    RIGHT_MASS_COLOR,
    SKY_BOTTOM_COLOR,
    SKY_TOP_COLOR,
    TANK_SCALE,
    TEXT_COLOR,
    TRAIL_COLOR,
    VELOCITY_VECTOR_COLOR,
    VIEW_HEIGHT,
    VIEW_WIDTH,
)
from simlab.data_models import (
    BalanceParameters,
    BuoyancyParameters,
    HistoryEntry,
    PressureParameters,
    ProjectileParameters,
)
from simlab.engine import AnimationEngine, ParameterModel, Phase
from simlab.errors import SimulationError
from simlab.fluids import BuoyancySimulation, DensityColumn, PressureLab
from simlab.presets_loader import list_templates, load_catalog, load_template
from simlab.projectile import ProjectileSimulation
from simlab.scheduler import FrameScheduler
from simlab.utils import parse_control_value, try_float
from simlab.vector_utils import lerp, vec_len

logger = logging.getLogger("physics_lab")

SIMULATIONS = ("projectile", "balance", "pressure", "buoyancy", "density")

SOLVER_LABELS = {
    "projectile": "Target range (m)",
    "pressure": "Target pressure (kPa)",
    "buoyancy": "Target buoyant force (N)",
}

HUD_TEXT_COLOR = (230, 230, 230)

# ============================================================
# Lab Controller (Shared State)
# ============================================================

class LabController:
    """
    Shared state between UI thread (DearPyGui) and rendering thread (Pygame).
    Every engine call goes through self.lock, so each engine still has one caller at a time.
    """
    def __init__(self, initial: str = "projectile"):
        self.lock = threading.RLock()
        self.running = True  # app running
        self.last_message: Optional[str] = None

        self.scheduler = FrameScheduler()
        self.models: Dict[str, ParameterModel] = {
            "projectile": ProjectileSimulation(self.scheduler, ProjectileParameters(), on_settle=self._on_settle),
            "balance": BalanceSimulation(self.scheduler, BalanceParameters(), on_settle=self._on_settle),
            "pressure": PressureLab(self.scheduler, PressureParameters()),
            "buoyancy": BuoyancySimulation(self.scheduler, BuoyancyParameters(), on_settle=self._on_settle),
        }
        self.density = DensityColumn()
        self.materials = load_catalog("materials")
        self.fluids = load_catalog("fluids")
        self.active = initial if initial in SIMULATIONS else "projectile"

    def _on_settle(self, entry: HistoryEntry):
        self.last_message = f"{entry.simulation}: {entry.result_label} = {entry.result:.2f} {entry.unit}"

    def pop_message(self) -> Optional[str]:
        with self.lock:
            msg = self.last_message
            self.last_message = None
            return msg

    def model(self, name: Optional[str] = None) -> Optional[ParameterModel]:
        return self.models.get(name or self.active)

    def animation(self) -> AnimationEngine:
        engine = self.models.get(self.active)
        if not isinstance(engine, AnimationEngine):
            raise SimulationError(f"{self.active} has no animation to run")
        return engine

    def select(self, name: str):
        """Switch the visible simulation; the one being left is stopped like an unmounted view."""
        if name not in SIMULATIONS:
            raise SimulationError(f"Unknown simulation '{name}'")
        with self.lock:
            if name == self.active:
                return
            leaving = self.models.get(self.active)
            if isinstance(leaving, AnimationEngine):
                leaving.reset()
            elif leaving is not None:
                leaving.close()
            self.active = name
        logger.info("Switched to %s", name)

    def pump(self, now: float) -> int:
        with self.lock:
            return self.scheduler.run_frame(now)

    # -----------------------
    # Parameters
    # -----------------------

    def set_parameter(self, simulation: str, name: str, value: float):
        with self.lock:
            m = self.models[simulation]
            m.parameters_changed(m.parameters.with_values(**{name: value}))

    def restore_defaults(self):
        with self.lock:
            m = self.model()
            if m is None:
                self.density = DensityColumn(catalog=self.density.catalog)
            else:
                m.restore_defaults()

    def load_template(self, file_name: str) -> str:
        simulation, params, display_name = load_template(file_name)
        self.select(simulation)
        with self.lock:
            self.models[simulation].parameters_changed(params)
        return display_name

    # -----------------------
    # Runs
    # -----------------------

    def launch(self):
        with self.lock:
            self.animation().launch()

    def step(self) -> bool:
        with self.lock:
            engine = self.animation()
            if engine.phase is Phase.IDLE:
                engine.launch()
                engine.hold()
                return True
            # Manual stepping takes over from the frame loop
            engine.hold()
            return engine.step()

    def resume(self):
        with self.lock:
            self.animation().resume()

    def reset(self):
        with self.lock:
            m = self.model()
            if isinstance(m, AnimationEngine):
                m.reset()
            elif m is not None:
                m.close()

    def replay(self, entry_id: int):
        with self.lock:
            m = self.model()
            entry = m.history.find(entry_id) if m is not None else None
            if entry is None:
                raise SimulationError(f"History entry #{entry_id} is no longer available")
            m.replay(entry)

    def clear_history(self):
        with self.lock:
            m = self.model()
            if m is None:
                raise SimulationError(f"{self.active} keeps no history")
            m.clear_history()

    def choose_material(self, key: str):
        with self.lock:
            self.models["buoyancy"].use_material(self._catalog_entry(self.materials, "materials", key))

    def choose_fluid(self, key: str):
        with self.lock:
            self.models["buoyancy"].use_fluid(self._catalog_entry(self.fluids, "fluids", key))

    @staticmethod
    def _catalog_entry(catalog, kind: str, key: str):
        try:
            return catalog[key]
        except KeyError:
            raise SimulationError(f"'{key}' is not in the {kind} catalog") from None

    def solve(self, target: float) -> str:
        with self.lock:
            m = self.model()
            if isinstance(m, ProjectileSimulation):
                angle = m.aim_for_range(target)
                return f"Aim at {angle:.1f}° to land at {target:g} m"
            if isinstance(m, PressureLab):
                required, _entry = m.solve_depth(target)
                return f"{target:g} kPa is reached at {required:.2f} m"
            if isinstance(m, BuoyancySimulation):
                required = m.solve_volume(target)
                return f"{target:g} N of lift needs V = {required:.5f} m³"
        raise SimulationError(f"{self.active} has no solver")

    def close(self):
        with self.lock:
            for m in self.models.values():
                m.close()

# ============================================================
# Drawing helpers
# ============================================================

_cached_font = None

def draw_text(surface, text, x, y, color=TEXT_COLOR):
    global _cached_font
    if not pygame.font.get_init():
        pygame.font.init()
    if _cached_font is None:
        try:
            _cached_font = pygame.font.SysFont("consolas", 16)
        except (OSError, RuntimeError):
            _cached_font = pygame.font.Font(None, 16)
    img = _cached_font.render(text, True, color)
    surface.blit(img, (x, y))

def draw_vertical_gradient(surface, rect, top_color, bottom_color):
    x, y, w, h = rect
    for i in range(max(h, 1)):
        t = i / max(h - 1, 1)
        color = tuple(int(lerp(a, b, t)) for a, b in zip(top_color, bottom_color))
        pygame.draw.line(surface, color, (x, y + i), (x + w - 1, y + i))

def draw_arrow_head(surface, tip, tail, color):
    # Small triangle for arrow head
    tip_s = safe_point(tip)
    tail_s = safe_point(tail)
    if tip_s is None or tail_s is None:
        return
    dx = tip_s[0] - tail_s[0]
    dy = tip_s[1] - tail_s[1]
    ang = math.atan2(dy, dx)
    size = 8
    left = (tip_s[0] - size * math.cos(ang - math.pi / 6), tip_s[1] - size * math.sin(ang - math.pi / 6))
    right = (tip_s[0] - size * math.cos(ang + math.pi / 6), tip_s[1] - size * math.sin(ang + math.pi / 6))
    left_s = safe_point(left)
    right_s = safe_point(right)
    if left_s and right_s:
        pygame.draw.polygon(surface, color, [tip_s, left_s, right_s])

def draw_polyline(surface, color, transform: ViewTransform, world_points, width=2):
    pts = []
    for p in world_points:
        sp = safe_point(transform.world_to_screen(p))
        if sp:
            pts.append(sp)
    if len(pts) > 1:
        pygame.draw.lines(surface, color, False, pts, width)

# ============================================================
# Pygame Renderer Thread
# ============================================================

class PygameRenderer(threading.Thread):
    """
    Pygame loop: pumps the frame scheduler, then draws the active simulation and its HUD.

    Keys: Space launch | S step | R reset | 1-5 switch simulation
    """
    def __init__(self, lab: LabController, fps: int = 60):
        super().__init__(daemon=True)
        self.lab = lab
        self.fps = fps
        self.surface = None
        self.clock = None
        self.running = True
        self.viewport_size = (VIEW_WIDTH, VIEW_HEIGHT)
        self.message: Optional[str] = None

    def run(self):
        pygame.init()
        pygame.display.set_caption("Physics Lab - Viewport")
        self.surface = pygame.display.set_mode((VIEW_WIDTH, VIEW_HEIGHT), pygame.RESIZABLE)
        self.clock = pygame.time.Clock()

        while self.running and self.lab.running:
            self.handle_events()

            # Advance every engine waiting on a frame
            self.lab.pump(time.perf_counter())

            self.draw()

            # Limit FPS
            self.clock.tick(self.fps)

        pygame.quit()

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.lab.running = False
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.surface = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                self.viewport_size = (event.w, event.h)

            elif event.type == pygame.KEYDOWN:
                try:
                    if event.key == pygame.K_SPACE:
                        self.lab.launch()
                    elif event.key == pygame.K_s:
                        self.lab.step()
                    elif event.key == pygame.K_r:
                        self.lab.reset()
                    elif pygame.K_1 <= event.key <= pygame.K_5:
                        self.lab.select(SIMULATIONS[event.key - pygame.K_1])
                except SimulationError as exc:
                    self.message = str(exc)

    def draw(self):
        surf = self.surface
        surf.fill(BACKGROUND_COLOR)
        with self.lab.lock:
            active = self.lab.active
            model = self.lab.model()
            if active == "projectile":
                self._draw_projectile(surf, model)
            elif active == "balance":
                self._draw_balance(surf, model)
            elif active == "pressure":
                self._draw_pressure(surf, model)
            elif active == "buoyancy":
                self._draw_buoyancy(surf, model)
            else:
                self._draw_density(surf, self.lab.density)
            self._draw_hud(surf, active, model)
        pygame.display.flip()

    # -----------------------
    # Views
    # -----------------------

    def _draw_projectile(self, surf, engine: ProjectileSimulation):
        w, h = self.viewport_size
        ground_y = h - 60
        draw_vertical_gradient(surf, (0, 0, w, ground_y), SKY_TOP_COLOR, SKY_BOTTOM_COLOR)
        pygame.draw.rect(surf, GROUND_COLOR, (0, ground_y, w, h - ground_y))
        pygame.draw.line(surf, GROUND_DARK_COLOR, (0, ground_y), (w, ground_y), 3)
        view = ViewTransform((60, ground_y), PROJECTILE_SCALE, self.viewport_size)

        # Range markers every 10 m
        for metres in range(0, int((w - 60) / PROJECTILE_SCALE[0]) + 1, 10):
            sx, sy = view.world_to_screen((metres, 0))
            pygame.draw.line(surf, GROUND_DARK_COLOR, (sx, sy), (sx, sy + 6), 1)

        # Predicted path for the current controls
        p = engine.parameters
        flight = physics.time_of_flight(p.velocity, p.angle, p.gravity)
        preview = [physics.position(p.velocity, p.angle, p.gravity, flight * i / 40) for i in range(41)]
        draw_polyline(surf, GRID_COLOR, view, preview, 1)

        run = engine.state if engine.state is not None else engine.last_run
        if run is not None:
            draw_polyline(surf, TRAIL_COLOR, view, list(run.trail), 2)
        sample = engine.render_sample()
        if sample is not None:
            pos = view.world_to_screen(sample)
            pos_s = safe_point(pos)
            if pos_s:
                gfxdraw.filled_circle(surf, pos_s[0], pos_s[1], 8, PROJECTILE_COLOR)
                gfxdraw.aacircle(surf, pos_s[0], pos_s[1], 8, (0, 0, 0))
                if engine.state is not None and vec_len((engine.state.vx, engine.state.vy)) > 0:
                    tip = (pos_s[0] + engine.state.vx * 2.0, pos_s[1] - engine.state.vy * 2.0)
                    tip_s = safe_point(tip)
                    if tip_s:
                        pygame.draw.line(surf, VELOCITY_VECTOR_COLOR, pos_s, tip_s, 2)
                        draw_arrow_head(surf, tip_s, pos_s, VELOCITY_VECTOR_COLOR)

    def _draw_balance(self, surf, engine: BalanceSimulation):
        w, h = self.viewport_size
        pivot = (w // 2, h // 2 + 40)
        p = engine.parameters
        angle = math.radians(engine.beam_angle)
        half = 4.5 * BALANCE_SCALE

        # Fulcrum
        pygame.draw.polygon(surf, GRID_COLOR, [pivot, (pivot[0] - 30, pivot[1] + 60), (pivot[0] + 30, pivot[1] + 60)])

        def along(d):
            # Positive angle tips the right end down (screen y grows downward)
            return (pivot[0] + d * math.cos(angle), pivot[1] + d * math.sin(angle))

        left_end, right_end = along(-half), along(half)
        pygame.draw.line(surf, BEAM_COLOR, safe_point(left_end), safe_point(right_end), 8)
        gfxdraw.filled_circle(surf, pivot[0], pivot[1], 6, BEAM_COLOR)

        for mass, dist, sign, color in ((p.left_mass, p.left_position, -1, LEFT_MASS_COLOR),
                                        (p.right_mass, p.right_position, 1, RIGHT_MASS_COLOR)):
            hook = safe_point(along(sign * dist * BALANCE_SCALE))
            size = int(12 + 3 * math.sqrt(mass))
            pygame.draw.line(surf, GRID_COLOR, hook, (hook[0], hook[1] + 20), 1)
            pygame.draw.rect(surf, color, (hook[0] - size // 2, hook[1] + 20, size, size))
            draw_text(surf, f"{mass:g} kg @ {dist:g} m", hook[0] - 50, hook[1] + 26 + size, HUD_TEXT_COLOR)

    def _draw_pressure(self, surf, lab: PressureLab):
        w, h = self.viewport_size
        p = lab.parameters
        top = 80
        deepest = PressureParameters.spec("depth").maximum
        view = ViewTransform((80, top), (1.0, TANK_SCALE), self.viewport_size)
        surface_y = view.world_to_screen((0, 0))[1]
        bottom_y = view.world_to_screen((0, -deepest))[1]
        pygame.draw.rect(surf, FLUID_COLOR, (80, surface_y, 160, bottom_y - surface_y))
        pygame.draw.rect(surf, GRID_COLOR, (80, surface_y, 160, bottom_y - surface_y), 2)

        gauge_y = view.world_to_screen((0, -p.depth))[1]
        gfxdraw.filled_circle(surf, 160, gauge_y, 7, PROJECTILE_COLOR)
        draw_text(surf, f"h = {p.depth:.1f} m", 250, gauge_y - 8, HUD_TEXT_COLOR)

        # Pressure profile plot
        profile = lab.pressure_profile(step=0.5)
        px0, py0, pw, ph = w // 2, top, w // 2 - 60, bottom_y - top
        pmin, pmax = profile[0][1], profile[-1][1]
        span = max(pmax - pmin, 1.0)
        pygame.draw.rect(surf, GRID_COLOR, (px0, py0, pw, ph), 1)
        pts = [(px0 + int(d / deepest * pw), py0 + ph - int((pr - pmin) / span * ph)) for d, pr in profile]
        pygame.draw.lines(surf, TRAIL_COLOR, False, pts, 2)
        marker = (px0 + int(p.depth / deepest * pw), py0 + ph - int((lab.pressure - pmin) / span * ph))
        gfxdraw.filled_circle(surf, marker[0], marker[1], 5, PROJECTILE_COLOR)
        draw_text(surf, f"{pmax / 1000:.0f} kPa", px0 + 4, py0 + 4, HUD_TEXT_COLOR)
        draw_text(surf, f"{pmin / 1000:.0f} kPa", px0 + 4, py0 + ph - 20, HUD_TEXT_COLOR)
        draw_text(surf, f"0 m  depth  {deepest:g} m", px0, py0 + ph + 6, HUD_TEXT_COLOR)

    def _draw_buoyancy(self, surf, engine: BuoyancySimulation):
        w, h = self.viewport_size
        p = engine.parameters
        top = 80
        tank_px = h - 160
        scale = tank_px / BUOYANCY_TANK_DEPTH
        left = w // 2 - 150
        pygame.draw.rect(surf, engine.fluid_color or FLUID_COLOR, (left, top, 300, tank_px))
        pygame.draw.rect(surf, GRID_COLOR, (left, top, 300, tank_px), 2)

        sample = engine.render_sample()
        depth = sample[0] if sample is not None else 0.5 * BUOYANCY_TANK_DEPTH
        side = max(10, int(p.volume ** (1.0 / 3.0) * scale))
        cy = top + int(depth * scale)
        net = engine.current_summary.quantities["net_force"]
        color = {"floating": RIGHT_MASS_COLOR, "sinking": LEFT_MASS_COLOR}.get(physics.buoyancy_status(net), BEAM_COLOR)
        if engine.material_color is not None:
            color = engine.material_color
        pygame.draw.rect(surf, color, (w // 2 - side // 2, cy - side // 2, side, side))
        draw_text(surf, f"depth {depth:.2f} m", left + 310, cy - 8, HUD_TEXT_COLOR)

    def _draw_density(self, surf, column: DensityColumn):
        w, h = self.viewport_size
        top = 80
        left = w // 2 - 80
        colors = {s.name: s.color for s in column.substances}
        for layer in column.layers(column_height=1.0):
            y_top = top + int((1.0 - layer.top) * COLUMN_HEIGHT_PX)
            y_bottom = top + int((1.0 - layer.bottom) * COLUMN_HEIGHT_PX)
            pygame.draw.rect(surf, colors.get(layer.name, FLUID_COLOR), (left, y_top, 160, max(y_bottom - y_top, 1)))
            draw_text(surf, f"{layer.name}  {layer.density:.0f} kg/m³  {layer.mass * 1000:.1f} g",
                      left + 175, (y_top + y_bottom) // 2 - 8, HUD_TEXT_COLOR)
        pygame.draw.rect(surf, GRID_COLOR, (left, top, 160, COLUMN_HEIGHT_PX), 2)
        draw_text(surf, f"T = {column.temperature:.0f} °C   total {column.total_mass * 1000:.1f} g",
                  left, top + COLUMN_HEIGHT_PX + 10, HUD_TEXT_COLOR)

    def _draw_hud(self, surf, active: str, model: Optional[ParameterModel]):
        draw_text(surf, "Space: launch | S: step | R: reset | 1-5: switch simulation", 10, 10, HUD_TEXT_COLOR)
        line = active.capitalize()
        if isinstance(model, AnimationEngine):
            line += f"  [{model.phase.value}]"
            if model.held:
                line += " (held, S to step)"
            if model.state is not None:
                line += f"  t = {model.state.t:.2f} s"
        if model is not None and model.replaying:
            line += "  replaying..."
        draw_text(surf, line, 10, 30, HUD_TEXT_COLOR)
        if model is not None:
            summary = model.current_summary if isinstance(model, AnimationEngine) else None
            if isinstance(model, PressureLab):
                draw_text(surf, f"P = {model.pressure:.0f} Pa", 10, 50, HUD_TEXT_COLOR)
            elif summary is not None:
                draw_text(surf, summary.formula, 10, 50, HUD_TEXT_COLOR)
        if self.message:
            draw_text(surf, self.message, 10, self.viewport_size[1] - 24, (255, 120, 120))

# ============================================================
# Dear PyGui UI
# ============================================================

def _slider_format(step: float) -> str:
    if step < 0.001:
        return "%.4f"
    if step < 1:
        return "%.2f"
    return "%.0f"

class UI:
    """
    Dear PyGui interface: simulation picker, parameter controls, run controls, solvers,
    presets and the newest-first history list.
    """
    def __init__(self, lab: LabController, renderer: PygameRenderer):
        self.lab = lab
        self.renderer = renderer

        self.status_msg_id = None
        self.phase_id = None
        self.formula_id = None
        self.history_id = None
        self.solver_group_id = None
        self.solver_input_id = None
        self.template_combo_id = None

        self._template_map: Dict[str, str] = {}
        self._history_ids: Dict[str, int] = {}
        self._history_key: Tuple[int, ...] = ()
        self._shown_values: Dict[Tuple[str, str], float] = {}
        self._shown_simulation = None
        self._text_inputs: List[int] = []

        self._build_ui()

        dpg.set_frame_callback(1, self._post_setup)
        self._schedule_sync()

    def _post_setup(self):
        self._show_simulation(self.lab.active)

    def _schedule_sync(self):
        """Reschedule the periodic sync callback using frame callbacks (approx ~10Hz)."""
        current = dpg.get_frame_count()
        dpg.set_frame_callback(current + 6, self._sync_ui_with_lab)

    # -----------------------
    # UI Construction
    # -----------------------

    def _build_ui(self):
        dpg.create_context()
        dpg.create_viewport(title='Physics Lab - Controls', width=540, height=860)

        with dpg.window(label="Controls", width=520, height=840, pos=(10, 10), tag="main_window"):
            with dpg.group(horizontal=True):
                dpg.add_text("Simulation:")
                dpg.add_combo(list(SIMULATIONS), default_value=self.lab.active, width=200,
                              callback=lambda s, a, u: self._on_select(a), tag="simulation_combo")
            with dpg.group(horizontal=True):
                dpg.add_text("Preset:")
                self.template_combo_id = dpg.add_combo([], width=260)
                dpg.add_button(label="Load", callback=lambda: self._on_load_template(dpg.get_value(self.template_combo_id)))

            dpg.add_separator()

            for name, model in self.lab.models.items():
                with dpg.group(tag=f"group_{name}", show=False):
                    if name == "buoyancy":
                        self._build_catalog_pickers()
                    for spec in model.parameters_type.specs():
                        self._add_control(name, spec)
            self._build_density_controls()

            dpg.add_separator()

            with dpg.group(horizontal=True, tag="run_controls"):
                dpg.add_button(label="Launch", callback=lambda: self._guarded(self.lab.launch))
                dpg.add_button(label="Resume", callback=lambda: self._guarded(self.lab.resume))
                dpg.add_button(label="Step ▶", callback=lambda: self._guarded(self.lab.step))
                dpg.add_button(label="Reset", callback=lambda: self._guarded(self.lab.reset))
            dpg.add_button(label="Restore defaults", callback=lambda: self._guarded(self.lab.restore_defaults))

            with dpg.group(horizontal=True, show=False) as self.solver_group_id:
                self.solver_input_id = dpg.add_input_text(label="", default_value="", width=120, on_enter=True,
                                                           callback=lambda s, a, u: self._on_solve())
                self._text_inputs.append(self.solver_input_id)
                dpg.add_button(label="Solve", callback=self._on_solve)
                dpg.add_text("", tag="solver_label")

            self.phase_id = dpg.add_text("")
            self.formula_id = dpg.add_text("", wrap=500)
            self.status_msg_id = dpg.add_text("")

            dpg.add_separator()
            dpg.add_text("History (newest first, select to replay)")
            self.history_id = dpg.add_listbox([], num_items=10, width=500,
                                              callback=lambda s, a, u: self._on_history_selected(a))
            dpg.add_button(label="Clear history", callback=lambda: self._on_clear_history())

        dpg.setup_dearpygui()
        dpg.show_viewport()
        dpg.set_primary_window("main_window", True)

    def _add_control(self, simulation: str, spec):
        unit = f" ({spec.unit})" if spec.unit else ""
        with dpg.group(horizontal=True):
            dpg.add_slider_float(label=f"{spec.label}{unit}", min_value=spec.minimum, max_value=spec.maximum,
                                 default_value=spec.default, width=220, format=_slider_format(spec.step),
                                 callback=lambda s, a, u: self._on_control(u[0], u[1], a),
                                 user_data=(simulation, spec.name), tag=f"slider_{simulation}_{spec.name}")
            text_id = dpg.add_input_text(default_value=f"{spec.default:g}", width=80, on_enter=True,
                                         callback=lambda s, a, u: self._on_control_text(u[0], u[1], a),
                                         user_data=(simulation, spec), tag=f"text_{simulation}_{spec.name}")
            self._text_inputs.append(text_id)

    def _build_catalog_pickers(self):
        with dpg.group(horizontal=True):
            dpg.add_combo(sorted(self.lab.materials), label="Material", width=140,
                          callback=lambda s, a, u: self._guarded(self.lab.choose_material, a))
            dpg.add_combo(sorted(self.lab.fluids), label="Fluid", width=140,
                          callback=lambda s, a, u: self._guarded(self.lab.choose_fluid, a))

    def _build_density_controls(self):
        keys = sorted(self.lab.density.catalog)
        with dpg.group(tag="group_density", show=False):
            for index, substance in enumerate(self.lab.density.substances):
                with dpg.group(horizontal=True):
                    dpg.add_combo(keys, default_value=substance.key, width=140,
                                  callback=lambda s, a, u: self._guarded(self._set_density_substance, u, a),
                                  user_data=index)
                    dpg.add_slider_float(label="mL", min_value=0.0, max_value=500.0,
                                         default_value=self.lab.density.volumes_ml[index], width=200,
                                         callback=lambda s, a, u: self._guarded(self._set_density_volume, u, a),
                                         user_data=index)
            dpg.add_slider_float(label="Temperature (°C)", min_value=0.0, max_value=100.0,
                                 default_value=self.lab.density.temperature, width=220,
                                 callback=lambda s, a, u: self._set_density_temperature(a))

    # -----------------------
    # UI Callbacks
    # -----------------------

    def typing(self) -> bool:
        """True while a text input has keyboard focus."""
        return any(dpg.is_item_focused(item) for item in self._text_inputs)

    def _set_status(self, msg: str, color=(180, 220, 180)):
        dpg.set_value(self.status_msg_id, msg)
        dpg.configure_item(self.status_msg_id, color=color)

    def _set_error(self, msg: str):
        dpg.set_value(self.status_msg_id, msg)
        dpg.configure_item(self.status_msg_id, color=(255, 120, 120))

    def _guarded(self, fn, *args):
        try:
            return fn(*args)
        except SimulationError as exc:
            logger.warning("%s", exc)
            self._set_error(str(exc))
            return None

    def _on_select(self, name: str):
        self._guarded(self.lab.select, name)
        self._show_simulation(self.lab.active)

    def _show_simulation(self, name: str):
        for sim in SIMULATIONS:
            dpg.configure_item(f"group_{sim}", show=(sim == name))
        animated = isinstance(self.lab.model(name), AnimationEngine)
        dpg.configure_item("run_controls", show=animated)
        dpg.configure_item(self.solver_group_id, show=name in SOLVER_LABELS)
        dpg.set_value("solver_label", SOLVER_LABELS.get(name, ""))
        dpg.set_value("simulation_combo", name)

        self._template_map = {display: fn for fn, display in list_templates(name)}
        items = list(self._template_map.keys())
        dpg.configure_item(self.template_combo_id, items=items)
        dpg.set_value(self.template_combo_id, items[0] if items else "")

        self._history_key = ()
        self._shown_simulation = name

    def _on_control(self, simulation: str, name: str, value):
        self._guarded(self.lab.set_parameter, simulation, name, float(value))

    def _on_control_text(self, simulation: str, spec, text: str):
        value = parse_control_value(text, spec)
        if value is None:
            self._set_error(f"{spec.label} must be a number in [{spec.minimum:g}, {spec.maximum:g}]")
            # Controls keep their previous value
            self._shown_values.pop((simulation, spec.name), None)
            return
        self._guarded(self.lab.set_parameter, simulation, spec.name, value)

    def _on_load_template(self, display: str):
        fn = self._template_map.get(display)
        if fn is None:
            self._set_error("No preset selected.")
            return
        loaded = self._guarded(self.lab.load_template, fn)
        if loaded is not None:
            self._show_simulation(self.lab.active)
            self._set_status(f"Loaded preset: {loaded}")

    def _on_solve(self, *args):
        target = try_float(dpg.get_value(self.solver_input_id))
        if target is None:
            self._set_error("Enter a numeric target.")
            return
        msg = self._guarded(self.lab.solve, target)
        if msg:
            self._set_status(msg)

    def _on_clear_history(self):
        try:
            self.lab.clear_history()
        except SimulationError as exc:
            self._set_error(str(exc))
            return
        self._set_status("History cleared.")

    def _on_history_selected(self, label: str):
        entry_id = self._history_ids.get(label)
        if entry_id is None:
            return
        self._guarded(self.lab.replay, entry_id)

    def _set_density_substance(self, index: int, key: str):
        with self.lab.lock:
            self.lab.density.set_substance(index, key)

    def _set_density_volume(self, index: int, volume_ml: float):
        with self.lab.lock:
            self.lab.density.set_volume(index, float(volume_ml))

    def _set_density_temperature(self, value: float):
        with self.lab.lock:
            self.lab.density.temperature = float(value)

    # -----------------------
    # Periodic sync
    # -----------------------

    def _sync_ui_with_lab(self):
        """
        Periodic UI update: follow keyboard switches from the viewport, mirror parameter
        changes made by replay or solvers into the controls, and refresh history and result text.
        """
        with self.lab.lock:
            active = self.lab.active
            model = self.lab.model()
            params = model.parameters.as_dict() if model is not None else {}
            entries = model.history.newest_first() if model is not None else []
            phase = model.phase.value if isinstance(model, AnimationEngine) else ""
            summary = model.current_summary if isinstance(model, AnimationEngine) else None
            pressure = model.pressure if isinstance(model, PressureLab) else None

        if active != self._shown_simulation:
            self._show_simulation(active)

        for name, value in params.items():
            key = (active, name)
            if self._shown_values.get(key) != value:
                dpg.set_value(f"slider_{active}_{name}", value)
                dpg.set_value(f"text_{active}_{name}", f"{value:g}")
                self._shown_values[key] = value

        key = tuple(e.entry_id for e in entries)
        if key != self._history_key:
            self._history_ids = {e.summary(): e.entry_id for e in entries}
            dpg.configure_item(self.history_id, items=list(self._history_ids.keys()))
            self._history_key = key

        dpg.set_value(self.phase_id, f"Phase: {phase}" if phase else "")
        if summary is not None:
            dpg.set_value(self.formula_id, summary.formula)
        elif pressure is not None:
            dpg.set_value(self.formula_id, f"P = {pressure:.0f} Pa")
        else:
            dpg.set_value(self.formula_id, "")

        msg = self.lab.pop_message()
        if msg:
            self._set_status(msg)
        if self.renderer.message:
            self._set_error(self.renderer.message)
            self.renderer.message = None

        self._schedule_sync()

# ============================================================
# CLI and Application Entry
# ============================================================

def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Physics Lab - interactive projectile, balance and fluid simulations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage Examples:
    # Start on the projectile launcher
    physics-lab

    # Start on the balance with debug logging written to a file
    physics-lab --simulation balance --log-level DEBUG --log-file lab.log
""",
    )

    simulation_group = parser.add_argument_group('Simulation Options')
    simulation_group.add_argument(
        "--simulation",
        choices=SIMULATIONS,
        default="projectile",
        help="Simulation shown at startup (default: projectile)"
    )
    simulation_group.add_argument(
        "--fps",
        type=int,
        default=60,
        help="Viewport frame rate cap (default: 60)"
    )

    logging_group = parser.add_argument_group('Logging Options')
    logging_group.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Log verbosity (default: INFO)"
    )
    logging_group.add_argument(
        "--log-file",
        default=None,
        help="Also write the log to this file"
    )
    return parser

def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )

def main(argv=None):
    args = create_argument_parser().parse_args(argv)
    if args.fps < 1:
        args.fps = 60
    configure_logging(args.log_level, args.log_file)

    lab = LabController(initial=args.simulation)
    renderer = PygameRenderer(lab, fps=args.fps)

    # Start Pygame renderer thread
    renderer.start()

    ui = UI(lab, renderer)

    # Keyboard shortcut in UI window to launch (Space)
    with dpg.handler_registry():
        def key_down(sender, app_data):
            if app_data == dpg.mvKey_Spacebar and not ui.typing():
                ui._guarded(lab.launch)
        dpg.add_key_press_handler(callback=key_down)

    # Run Dear PyGui event loop
    try:
        dpg.start_dearpygui()
    finally:
        lab.running = False
        renderer.running = False
        renderer.join(timeout=2.0)
        lab.close()
        dpg.destroy_context()

if __name__ == "__main__":
    main()
