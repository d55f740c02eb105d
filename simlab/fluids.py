#!/usr/bin/env python3
"""
Fluid simulations: buoyancy tank, hydrostatic pressure gauge and density column.

Units and conventions
- Depth is measured downward from the fluid surface in meters [m].
- Buoyancy velocity is the rate of change of depth [m/s], so positive means sinking.
- Density column volumes are entered in milliliters [mL] and converted to m^3.
"""
import logging
from typing import Dict, List, Optional, Tuple

from . import physics
from .constants import (
    ATMOSPHERIC_PRESSURE,
    BUOYANCY_DAMPING,
    BUOYANCY_RELEASE_DEPTH,
    BUOYANCY_SETTLE_SPEED,
    BUOYANCY_TANK_DEPTH,
    PRESSURE_DENSITY_THRESHOLD,
    PRESSURE_DEPTH_THRESHOLD,
    REFERENCE_TEMPERATURE,
)
from .data_models import BuoyancyParameters, BuoyancyState, HistoryEntry, PressureParameters
from .engine import AnimationEngine, ParameterModel, RunSummary
from .errors import CatalogError, InvalidParameterError, NoActiveParametersError
from .presets_loader import CatalogItem, load_catalog
from .vector_utils import clamp

logger = logging.getLogger(__name__)

ML_TO_M3 = 1e-6


# ============================================================
# Buoyancy
# ============================================================

def buoyancy_summary(p: BuoyancyParameters) -> RunSummary:
    mass = p.object_density * p.volume
    lift = physics.buoyant_force(p.fluid_density, p.gravity, p.volume)
    w = physics.weight(mass, p.gravity)
    net = lift - w
    status = physics.buoyancy_status(net)
    formula = (f"F_b = ρ·g·V = {p.fluid_density:g} × {p.gravity:g} × {p.volume:g} = {lift:.2f} N; "
               f"W = {w:.2f} N ({status})")
    return RunSummary(
        result=lift,
        result_label="Buoyant force",
        unit="N",
        formula=formula,
        quantities={
            "weight": w,
            "net_force": net,
            "mass": mass,
            "submerged_fraction": physics.submerged_fraction(p.object_density, p.fluid_density),
        },
    )


class BuoyancySimulation(AnimationEngine):
    """
    A block released mid-tank rises or sinks under its net force with light damping.

    The run settles when the block rests against the surface or the bottom with the
    net force pushing it there, or hangs in neutral buoyancy. Like the balance, it
    follows parameter changes while moving.
    """

    name = "buoyancy"
    parameters_type = BuoyancyParameters

    def __init__(self, *args, **kwargs):
        self.material: Optional[CatalogItem] = None
        self.fluid: Optional[CatalogItem] = None
        super().__init__(*args, **kwargs)

    def use_material(self, item: CatalogItem) -> None:
        """Make the block out of a catalog material by taking on its density."""
        self.parameters_changed(self._current().with_values(object_density=item.density))
        self.material = item

    def use_fluid(self, item: CatalogItem) -> None:
        self.parameters_changed(self._current().with_values(fluid_density=item.density))
        self.fluid = item

    def _current(self) -> BuoyancyParameters:
        return self.parameters if self.parameters is not None else BuoyancyParameters()

    @property
    def material_color(self) -> Optional[Tuple[int, int, int]]:
        """Colour of the chosen material while the block still has its density."""
        if self.material is None or self.parameters is None:
            return None
        if self.parameters.object_density != self.material.density:
            return None
        return self.material.color

    @property
    def fluid_color(self) -> Optional[Tuple[int, int, int]]:
        if self.fluid is None or self.parameters is None:
            return None
        if self.parameters.fluid_density != self.fluid.density:
            return None
        return self.fluid.color

    def _apply_parameters(self, parameters: BuoyancyParameters, user_change: bool) -> None:
        summary = buoyancy_summary(parameters)
        if self.running:
            self._summary = summary
            self.run_parameters = parameters

    def _summarize(self, params: BuoyancyParameters) -> RunSummary:
        return buoyancy_summary(params)

    def _start_state(self, params: BuoyancyParameters) -> BuoyancyState:
        state = BuoyancyState(depth=BUOYANCY_RELEASE_DEPTH, velocity=0.0)
        state.add_trail_point()
        return state

    def _net_force(self, params: BuoyancyParameters) -> float:
        mass = params.object_density * params.volume
        return (physics.buoyant_force(params.fluid_density, params.gravity, params.volume)
                - physics.weight(mass, params.gravity))

    def _advance(self, state: BuoyancyState, params: BuoyancyParameters) -> None:
        mass = params.object_density * params.volume
        # Upward net force reduces depth
        accel = -self._net_force(params) / mass
        state.velocity = (state.velocity + accel * self.dt) * BUOYANCY_DAMPING
        depth = state.depth + state.velocity * self.dt
        if depth <= 0.0 or depth >= BUOYANCY_TANK_DEPTH:
            state.velocity = 0.0
        state.depth = clamp(depth, 0.0, BUOYANCY_TANK_DEPTH)

    def _terminated(self, state: BuoyancyState, params: BuoyancyParameters) -> bool:
        net = self._net_force(params)
        if state.depth <= 0.0 and net >= 0.0:
            return True
        if state.depth >= BUOYANCY_TANK_DEPTH and net <= 0.0:
            return True
        return physics.buoyancy_status(net) == "equilibrium" and abs(state.velocity) < BUOYANCY_SETTLE_SPEED

    def _clamp_terminal(self, state: BuoyancyState, params: BuoyancyParameters) -> None:
        state.depth = clamp(state.depth, 0.0, BUOYANCY_TANK_DEPTH)
        state.velocity = 0.0

    def _sample(self, state: BuoyancyState):
        return (state.depth,)

    def solve_volume(self, target_force: float) -> float:
        """
        Resize the block so it would feel target_force newtons of lift.

        The applied volume is clamped to the control range; the unclamped requirement is
        returned so the UI can show it.
        """
        p = self.parameters
        if p is None:
            raise NoActiveParametersError("buoyancy: cannot solve before parameters are set")
        required = physics.volume_for_buoyant_force(target_force, p.fluid_density, p.gravity)
        spec = BuoyancyParameters.spec("volume")
        self.parameters_changed(p.with_values(volume=clamp(required, spec.minimum, spec.maximum)))
        return required


# ============================================================
# Hydrostatic pressure
# ============================================================

def pressure_summary(p: PressureParameters) -> RunSummary:
    pressure = physics.hydrostatic_pressure(p.fluid_density, p.gravity, p.depth)
    gauge = pressure - ATMOSPHERIC_PRESSURE
    formula = (f"P = {p.fluid_density:g} × {p.gravity:g} × {p.depth:.1f} + 101325"
               f" = {pressure:.0f} Pa")
    return RunSummary(
        result=pressure,
        result_label="Pressure",
        unit="Pa",
        formula=formula,
        quantities={"gauge_pressure": gauge},
    )


class PressureLab(ParameterModel):
    """
    Pressure gauge at a chosen depth.

    There is no run to animate: every user change that moves the depth by more than
    0.1 m or the density by more than 50 kg/m^3 from the latest entry is recorded
    straight away. Replay steps and solver moves are not auto-recorded.
    """

    name = "pressure"
    parameters_type = PressureParameters

    def _apply_parameters(self, parameters: PressureParameters, user_change: bool) -> None:
        summary = pressure_summary(parameters)
        if user_change and self._differs_from_latest(parameters):
            self._record(parameters, summary)

    def _differs_from_latest(self, p: PressureParameters) -> bool:
        latest = self.history.latest
        if latest is None:
            return True
        previous = latest.parameters
        return (abs(previous.depth - p.depth) > PRESSURE_DEPTH_THRESHOLD
                or abs(previous.fluid_density - p.fluid_density) > PRESSURE_DENSITY_THRESHOLD)

    def _record(self, p: PressureParameters, summary: RunSummary, formula: Optional[str] = None) -> HistoryEntry:
        return self.history.record(self.name, p, summary.result, summary.result_label,
                                   summary.unit, formula or summary.formula, summary.quantities)

    @property
    def pressure(self) -> Optional[float]:
        if self.parameters is None:
            return None
        return pressure_summary(self.parameters).result

    def solve_depth(self, target_kpa: float) -> Tuple[float, HistoryEntry]:
        """
        Move the gauge to the depth where the pressure reads target_kpa.

        The applied depth is clamped to the control range and recorded with a formula
        naming the target.

        Returns:
            (required depth before clamping, the recorded entry)
        """
        p = self.parameters
        if p is None:
            raise NoActiveParametersError("pressure: cannot solve before parameters are set")
        required = physics.depth_for_pressure(target_kpa * 1000.0, p.fluid_density, p.gravity)
        spec = PressureParameters.spec("depth")
        moved = p.with_values(depth=clamp(required, spec.minimum, spec.maximum))
        self._update_parameters(moved, user_change=False)
        entry = self._record(moved, pressure_summary(moved),
                             formula=f"Target {target_kpa:g} kPa → h = {required:.2f} m")
        logger.info("pressure: %.1f kPa needs %.2f m", target_kpa, required)
        return required, entry

    def pressure_profile(self, step: float = 1.0) -> List[Tuple[float, float]]:
        """(depth, pressure) pairs from the surface to the deepest control value."""
        p = self.parameters
        if p is None:
            raise NoActiveParametersError("pressure: no parameters set")
        if step <= 0:
            raise ValueError("step must be positive")
        deepest = PressureParameters.spec("depth").maximum
        profile = []
        depth = 0.0
        while depth <= deepest + 1e-9:
            profile.append((depth, physics.hydrostatic_pressure(p.fluid_density, p.gravity, depth)))
            depth += step
        return profile


# ============================================================
# Density column
# ============================================================

class DensityColumn:
    """Two immiscible substances poured into one container, stratified by density."""

    def __init__(self, first: str = "water", second: str = "oil",
                 first_volume_ml: float = 100.0, second_volume_ml: float = 100.0,
                 temperature: float = REFERENCE_TEMPERATURE,
                 catalog: Optional[Dict[str, CatalogItem]] = None):
        self.catalog = catalog if catalog is not None else load_catalog("substances")
        self.substances = [self._lookup(first), self._lookup(second)]
        self.volumes_ml = [float(first_volume_ml), float(second_volume_ml)]
        self.temperature = float(temperature)

    def _lookup(self, key: str) -> CatalogItem:
        try:
            return self.catalog[key]
        except KeyError:
            raise CatalogError(f"'{key}' is not in the substances catalog") from None

    def set_substance(self, index: int, key: str) -> None:
        self.substances[index] = self._lookup(key)

    def set_volume(self, index: int, volume_ml: float) -> None:
        if volume_ml < 0:
            raise InvalidParameterError("volume", volume_ml, "must not be negative")
        self.volumes_ml[index] = float(volume_ml)

    def densities(self) -> List[float]:
        return [physics.adjusted_density(s.density, self.temperature) for s in self.substances]

    def layers(self, column_height: float = 1.0) -> List[physics.StratumLayer]:
        """Layers bottom-up, thickness proportional to volume share of column_height."""
        return physics.stratify(
            [(s.name, rho, v * ML_TO_M3)
             for s, rho, v in zip(self.substances, self.densities(), self.volumes_ml)],
            column_height,
        )

    @property
    def total_mass(self) -> float:
        """Combined mass in kg."""
        return sum(rho * v * ML_TO_M3 for rho, v in zip(self.densities(), self.volumes_ml))
