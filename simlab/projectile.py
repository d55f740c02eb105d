#!/usr/bin/env python3
"""
Projectile launch simulation.

Each tick evaluates the closed-form trajectory at the new time instead of integrating,
so positions carry no accumulated error. A run ends on the first tick at or below
launch height; the body is then snapped to the exact impact point (range, 0).

Parameters are captured at launch: moving the sliders mid-flight changes the preview
but not the body already in the air.
"""
import logging

from . import physics
from .data_models import KinematicState, ProjectileParameters
from .engine import AnimationEngine, RunSummary
from .errors import NoActiveParametersError

logger = logging.getLogger(__name__)


def projectile_summary(p: ProjectileParameters) -> RunSummary:
    rng = physics.projectile_range(p.velocity, p.angle, p.gravity)
    height = physics.max_height(p.velocity, p.angle, p.gravity)
    flight = physics.time_of_flight(p.velocity, p.angle, p.gravity)
    formula = (f"R = v²·sin(2θ)/g = {p.velocity:g}²·sin({2 * p.angle:.0f}°)/{p.gravity:g}"
               f" = {rng:.1f} m")
    return RunSummary(
        result=rng,
        result_label="Range",
        unit="m",
        formula=formula,
        quantities={"max_height": height, "time_of_flight": flight},
    )


class ProjectileSimulation(AnimationEngine):
    name = "projectile"
    parameters_type = ProjectileParameters

    def _summarize(self, params: ProjectileParameters) -> RunSummary:
        return projectile_summary(params)

    def _start_state(self, params: ProjectileParameters) -> KinematicState:
        vx, vy = physics.velocity(params.velocity, params.angle, params.gravity, 0.0)
        state = KinematicState(x=0.0, y=0.0, vx=vx, vy=vy, t=0.0)
        state.add_trail_point()
        return state

    def _advance(self, state: KinematicState, params: ProjectileParameters) -> None:
        state.x, state.y = physics.position(params.velocity, params.angle, params.gravity, state.t)
        state.vx, state.vy = physics.velocity(params.velocity, params.angle, params.gravity, state.t)

    def _terminated(self, state: KinematicState, params: ProjectileParameters) -> bool:
        return state.t > 0.0 and state.y <= 0.0

    def _clamp_terminal(self, state: KinematicState, params: ProjectileParameters) -> None:
        # t stays at the tick that detected contact so it never runs backwards
        flight = physics.time_of_flight(params.velocity, params.angle, params.gravity)
        state.x = physics.projectile_range(params.velocity, params.angle, params.gravity)
        state.y = 0.0
        state.vx, state.vy = physics.velocity(params.velocity, params.angle, params.gravity, flight)

    def _sample(self, state: KinematicState):
        return (state.x, state.y)

    def aim_for_range(self, target_range: float) -> float:
        """
        Set the launch angle that lands at target_range with the current speed and gravity.

        Returns:
            The new angle in degrees
        """
        p = self.parameters
        if p is None:
            raise NoActiveParametersError("projectile: cannot aim before parameters are set")
        angle = physics.angle_for_range(target_range, p.velocity, p.gravity)
        logger.info("projectile: aiming for %.1f m needs %.1f deg", target_range, angle)
        self.parameters_changed(p.with_values(angle=angle))
        return angle
