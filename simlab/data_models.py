#!/usr/bin/env python3
"""
Data models for Physics Lab.

This module defines the parameter snapshots, run states and history records shared
between the physics model, the engine, the renderer and the UI.

Units and usage
- Parameter snapshots are immutable; the UI builds a new one on every control change and
  hands it to the engine through parameters_changed().
- Run states (KinematicState, BeamState, BuoyancyState) are owned by exactly one engine and
  mutated only by its ticks. trail stores recent samples for drawing; it is a bounded deque
  so the oldest sample is dropped first.
- HistoryEntry is immutable once created.
"""
from collections import deque
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from types import MappingProxyType
from typing import Deque, Dict, List, Mapping, Tuple

from .constants import STANDARD_GRAVITY, TRAIL_CAPACITY


@dataclass(frozen=True)
class ParameterSpec:
    """
    Declared range of one control.

    Fields:
    - name: Field name on the parameter dataclass
    - label: Human-readable label for the control
    - unit: Display unit
    - minimum, maximum: Inclusive valid range
    - step: Slider increment
    - default: Value used when a simulation is reset
    """
    label: str
    unit: str
    minimum: float
    maximum: float
    step: float
    default: float
    name: str = ""

    def accepts(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


def control(label: str, unit: str, minimum: float, maximum: float, step: float, default: float):
    """Dataclass field carrying its ParameterSpec in the field metadata."""
    spec = ParameterSpec(label, unit, minimum, maximum, step, default)
    return field(default=default, metadata={"spec": spec})


class SimulationParameters:
    """Mixin for the frozen parameter dataclasses; every field is a scalar float."""

    @classmethod
    def specs(cls) -> List[ParameterSpec]:
        return [replace(f.metadata["spec"], name=f.name) for f in fields(cls)]

    @classmethod
    def spec(cls, name: str) -> ParameterSpec:
        for spec in cls.specs():
            if spec.name == name:
                return spec
        raise KeyError(name)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def with_values(self, **changes: float) -> "SimulationParameters":
        return replace(self, **changes)


@dataclass(frozen=True)
class ProjectileParameters(SimulationParameters):
    velocity: float = control("Initial speed", "m/s", 1.0, 50.0, 0.1, 9.0)
    angle: float = control("Launch angle", "deg", 0.0, 90.0, 1.0, 45.0)
    gravity: float = control("Gravity", "m/s^2", 1.0, 25.0, 0.01, STANDARD_GRAVITY)
    mass: float = control("Mass", "kg", 0.1, 10.0, 0.1, 3.0)
    diameter: float = control("Diameter", "m", 0.01, 1.0, 0.01, 0.1)
    drag_coefficient: float = control("Drag coefficient", "", 0.0, 2.0, 0.01, 0.06)
    altitude: float = control("Altitude", "m", 0.0, 5000.0, 10.0, 1600.0)


@dataclass(frozen=True)
class BalanceParameters(SimulationParameters):
    left_mass: float = control("Left mass", "kg", 1.0, 50.0, 1.0, 10.0)
    left_position: float = control("Left distance", "m", 0.5, 4.0, 0.1, 2.0)
    right_mass: float = control("Right mass", "kg", 1.0, 50.0, 1.0, 10.0)
    right_position: float = control("Right distance", "m", 0.5, 4.0, 0.1, 2.0)
    gravity: float = control("Gravity", "m/s^2", 1.0, 25.0, 0.01, STANDARD_GRAVITY)


@dataclass(frozen=True)
class PressureParameters(SimulationParameters):
    depth: float = control("Depth", "m", 0.1, 10.0, 0.1, 5.0)
    fluid_density: float = control("Fluid density", "kg/m^3", 500.0, 2000.0, 50.0, 1000.0)
    gravity: float = control("Gravity", "m/s^2", 1.0, 25.0, 0.01, STANDARD_GRAVITY)


@dataclass(frozen=True)
class BuoyancyParameters(SimulationParameters):
    volume: float = control("Object volume", "m^3", 0.0001, 0.005, 0.0001, 0.001)
    object_density: float = control("Object density", "kg/m^3", 100.0, 12000.0, 10.0, 600.0)
    fluid_density: float = control("Fluid density", "kg/m^3", 500.0, 14000.0, 10.0, 1000.0)
    gravity: float = control("Gravity", "m/s^2", 1.0, 25.0, 0.01, STANDARD_GRAVITY)


@dataclass
class KinematicState:
    """
    State of one projectile launch.

    Fields:
    - x, y: Position in meters relative to the launch point (y upward)
    - vx, vy: Velocity in m/s
    - t: Seconds since launch
    - trail: Recent (x, y) samples, oldest first
    """
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    t: float = 0.0
    trail: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=TRAIL_CAPACITY))

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def add_trail_point(self) -> None:
        """Append the current position to the trail."""
        self.trail.append(self.position)


@dataclass
class BeamState:
    """Tilt of the balance beam in degrees (positive = right side down)."""
    angle: float = 0.0
    target_angle: float = 0.0
    t: float = 0.0
    trail: Deque[float] = field(default_factory=lambda: deque(maxlen=TRAIL_CAPACITY))

    def add_trail_point(self) -> None:
        self.trail.append(self.angle)


@dataclass
class BuoyancyState:
    """Depth of the object's centre below the fluid surface (m) and its sinking speed (m/s)."""
    depth: float = 0.0
    velocity: float = 0.0
    t: float = 0.0
    trail: Deque[float] = field(default_factory=lambda: deque(maxlen=TRAIL_CAPACITY))

    def add_trail_point(self) -> None:
        self.trail.append(self.depth)


@dataclass(frozen=True)
class HistoryEntry:
    """
    Immutable record of one finished run or calculation.

    Fields:
    - entry_id: Sequence number, unique per log
    - simulation: Name of the simulation that produced it
    - parameters: Parameter snapshot in effect
    - result: Primary derived quantity (range, pressure, net torque, ...)
    - result_label, unit: How to display result
    - formula: Human-readable worked formula
    - timestamp: Creation time
    - quantities: Secondary derived quantities, read-only
    """
    entry_id: int
    simulation: str
    parameters: SimulationParameters
    result: float
    result_label: str
    unit: str
    formula: str
    timestamp: datetime
    quantities: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "quantities", MappingProxyType(dict(self.quantities)))

    def summary(self) -> str:
        return f"#{self.entry_id} {self.timestamp:%H:%M:%S}  {self.result_label} = {self.result:.1f} {self.unit}"
