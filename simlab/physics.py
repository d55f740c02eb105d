#!/usr/bin/env python3
"""
Physics model for Physics Lab

Responsibilities
- Closed-form projectile kinematics (range, apex height, time of flight, position and
  velocity at time t) on flat ground with no drag.
- Lever balance torques and the tilt the beam settles at.
- Hydrostatic pressure, buoyant force and density stratification.
- Inverse helpers used by the "solve for" controls (angle for a range, depth for a
  pressure, volume for a buoyant force).

Units and conventions
- Lengths in meters [m], masses in kilograms [kg], times in seconds [s].
- Angles are given in degrees at the API and converted to radians internally.
- Projectile y is measured upward from the launch point, which is the origin.
- Positive net torque tips the beam clockwise (right side down).

Error policy
- Every function is pure. Inputs that would produce NaN or Infinity (non-finite numbers,
  g <= 0, negative volumes, ...) raise InvalidParameterError instead of leaking a NaN
  into the engine's state or trail.
"""

import math
from typing import Iterable, List, NamedTuple, Tuple

from .constants import (
    ATMOSPHERIC_PRESSURE,
    BALANCE_MAX_ANGLE,
    BALANCE_TOLERANCE,
    BALANCE_TORQUE_TO_ANGLE,
    BUOYANCY_EQUILIBRIUM_FORCE,
    REFERENCE_TEMPERATURE,
    THERMAL_DENSITY_COEFF,
)
from .errors import InvalidParameterError
from .vector_utils import clamp


def _finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(name, value, "not a number") from None
    if not math.isfinite(value):
        raise InvalidParameterError(name, value, "must be finite")
    return value


def _positive(name: str, value: float) -> float:
    value = _finite(name, value)
    if value <= 0.0:
        raise InvalidParameterError(name, value, "must be greater than zero")
    return value


def _non_negative(name: str, value: float) -> float:
    value = _finite(name, value)
    if value < 0.0:
        raise InvalidParameterError(name, value, "must not be negative")
    return value


def _launch_components(v0: float, angle: float) -> Tuple[float, float]:
    """Split a launch speed into (vx, vy) for an angle in degrees."""
    v0 = _finite("velocity", v0)
    rad = math.radians(_finite("angle", angle))
    return v0 * math.cos(rad), v0 * math.sin(rad)


# ============================================================
# Projectile motion
# ============================================================

def projectile_range(v0: float, angle: float, g: float) -> float:
    """
    Horizontal distance travelled before returning to launch height.

        R = v0^2 * sin(2 * angle) / g

    Complementary angles give the same range because sin(2a) = sin(180deg - 2a).

    Args:
        v0: Launch speed in m/s
        angle: Launch angle in degrees above the horizontal
        g: Gravitational acceleration in m/s^2 (must be > 0)

    Returns:
        Range in meters
    """
    g = _positive("gravity", g)
    v0 = _finite("velocity", v0)
    rad = math.radians(_finite("angle", angle))
    return v0 * v0 * math.sin(2.0 * rad) / g


def max_height(v0: float, angle: float, g: float) -> float:
    """
    Apex height above the launch point: h = (v0 * sin(angle))^2 / (2g).
    """
    g = _positive("gravity", g)
    _, vy = _launch_components(v0, angle)
    return vy * vy / (2.0 * g)


def time_of_flight(v0: float, angle: float, g: float) -> float:
    """
    Time until the projectile returns to launch height: T = 2 * v0 * sin(angle) / g.
    """
    g = _positive("gravity", g)
    _, vy = _launch_components(v0, angle)
    return 2.0 * vy / g


def position(v0: float, angle: float, g: float, t: float) -> Tuple[float, float]:
    """
    Position at time t relative to the launch point.

        x = v0 * cos(angle) * t
        y = v0 * sin(angle) * t - g * t^2 / 2

    Args:
        v0: Launch speed in m/s
        angle: Launch angle in degrees
        g: Gravitational acceleration in m/s^2 (must be > 0)
        t: Elapsed time in seconds (must be >= 0)

    Returns:
        (x, y) in meters, y measured upward
    """
    g = _positive("gravity", g)
    t = _non_negative("time", t)
    vx, vy = _launch_components(v0, angle)
    return vx * t, vy * t - 0.5 * g * t * t


def velocity(v0: float, angle: float, g: float, t: float) -> Tuple[float, float]:
    """Velocity (vx, vy) at time t; vx is constant, vy loses g every second."""
    g = _positive("gravity", g)
    t = _non_negative("time", t)
    vx, vy = _launch_components(v0, angle)
    return vx, vy - g * t


def angle_for_range(target_range: float, v0: float, g: float) -> float:
    """
    Lower of the two launch angles that reach target_range: asin(R * g / v0^2) / 2.

    Raises:
        InvalidParameterError: if the target is negative or beyond the maximum range
            v0^2 / g for this speed.
    """
    g = _positive("gravity", g)
    v0 = _positive("velocity", v0)
    target_range = _non_negative("target range", target_range)
    ratio = target_range * g / (v0 * v0)
    if ratio > 1.0:
        raise InvalidParameterError(
            "target range", target_range,
            f"unreachable at {v0:g} m/s (maximum {v0 * v0 / g:.1f} m)")
    return math.degrees(math.asin(ratio) / 2.0)


# ============================================================
# Lever balance
# ============================================================

def torque(mass: float, distance: float, g: float) -> float:
    """Torque of a hanging mass about the pivot: tau = m * g * d."""
    g = _positive("gravity", g)
    return _non_negative("mass", mass) * g * _non_negative("distance", distance)


def net_torque(m1: float, d1: float, m2: float, d2: float, g: float) -> float:
    """
    Net torque on the beam: tau = m2 * g * d2 - m1 * g * d1.

    Side 1 is the left arm and side 2 the right arm; positive values tip the
    beam to the right.
    """
    return torque(m2, d2, g) - torque(m1, d1, g)


def is_balanced(tau: float) -> bool:
    """True when |tau| is below the fixed 1 N*m tolerance."""
    return abs(_finite("torque", tau)) < BALANCE_TOLERANCE


def balance_target_angle(tau: float) -> float:
    """Tilt in degrees the beam settles at for a given net torque."""
    tau = _finite("torque", tau)
    return clamp(tau * BALANCE_TORQUE_TO_ANGLE, -BALANCE_MAX_ANGLE, BALANCE_MAX_ANGLE)


# ============================================================
# Fluids
# ============================================================

def hydrostatic_pressure(rho: float, g: float, h: float) -> float:
    """
    Absolute pressure at depth h: P = rho * g * h + P_atm, with P_atm = 101325 Pa.
    """
    rho = _non_negative("fluid density", rho)
    g = _positive("gravity", g)
    h = _non_negative("depth", h)
    return rho * g * h + ATMOSPHERIC_PRESSURE


def depth_for_pressure(target_pressure: float, rho: float, g: float) -> float:
    """
    Depth at which the absolute pressure equals target_pressure (in Pa).

    The result is negative when the target is below atmospheric pressure; callers
    clamp it to their depth range.
    """
    target_pressure = _finite("target pressure", target_pressure)
    rho = _positive("fluid density", rho)
    g = _positive("gravity", g)
    return (target_pressure - ATMOSPHERIC_PRESSURE) / (rho * g)


def buoyant_force(rho_fluid: float, g: float, volume: float) -> float:
    """Archimedes: F = rho_fluid * g * V for a fully submerged volume V."""
    rho_fluid = _non_negative("fluid density", rho_fluid)
    g = _positive("gravity", g)
    volume = _non_negative("volume", volume)
    return rho_fluid * g * volume


def volume_for_buoyant_force(target_force: float, rho_fluid: float, g: float) -> float:
    """Volume that must be submerged to produce target_force newtons of lift."""
    target_force = _non_negative("target force", target_force)
    rho_fluid = _positive("fluid density", rho_fluid)
    g = _positive("gravity", g)
    return target_force / (rho_fluid * g)


def weight(mass: float, g: float) -> float:
    return _non_negative("mass", mass) * _positive("gravity", g)


def submerged_fraction(object_density: float, fluid_density: float) -> float:
    """Fraction of a floating body below the surface, clamped to [0, 1]."""
    object_density = _non_negative("object density", object_density)
    fluid_density = _positive("fluid density", fluid_density)
    return clamp(object_density / fluid_density, 0.0, 1.0)


def buoyancy_status(net_force: float) -> str:
    """Classify a net vertical force as "equilibrium", "floating" or "sinking"."""
    net_force = _finite("net force", net_force)
    if abs(net_force) < BUOYANCY_EQUILIBRIUM_FORCE:
        return "equilibrium"
    return "floating" if net_force > 0 else "sinking"


def adjusted_density(density: float, temperature: float) -> float:
    """Linear thermal correction of a catalog density quoted at 20 degC."""
    density = _non_negative("density", density)
    temperature = _finite("temperature", temperature)
    return density * (1.0 - (temperature - REFERENCE_TEMPERATURE) * THERMAL_DENSITY_COEFF)


class StratumLayer(NamedTuple):
    name: str
    density: float  # kg/m^3
    volume: float  # m^3
    mass: float  # kg
    bottom: float  # height of the lower boundary in the column
    top: float


def stratify(layers: Iterable[Tuple[str, float, float]],
             column_height: float = 1.0) -> List[StratumLayer]:
    """
    Stack immiscible layers by density, heaviest at the bottom.

    Each layer's thickness is its share of the total volume times column_height.

    Args:
        layers: (name, density, volume) triples; volumes in m^3
        column_height: Height of the filled column in whatever unit the caller draws in

    Returns:
        StratumLayer list ordered bottom-up
    """
    column_height = _positive("column height", column_height)
    checked = [
        (name, _non_negative("density", density), _non_negative("volume", volume))
        for name, density, volume in layers
    ]
    total = sum(volume for _, _, volume in checked)
    if total <= 0.0:
        raise InvalidParameterError("volume", total, "total volume must be greater than zero")

    result: List[StratumLayer] = []
    bottom = 0.0
    for name, density, volume in sorted(checked, key=lambda item: item[1], reverse=True):
        thickness = column_height * volume / total
        result.append(StratumLayer(name, density, volume, density * volume, bottom, bottom + thickness))
        bottom += thickness
    return result
