#!/usr/bin/env python3
"""
Lever balance simulation.

The beam eases towards the tilt implied by the net torque, closing a fixed fraction of
the remaining gap every tick, and settles once it is within SETTLE_EPSILON degrees.
Unlike the projectile, the balance follows parameter changes while it is moving: a new
snapshot retargets the beam and the settled entry records the final masses.
"""
from . import physics
from .constants import BALANCE_SMOOTHING, SETTLE_EPSILON
from .data_models import BalanceParameters, BeamState
from .engine import AnimationEngine, RunSummary


def balance_summary(p: BalanceParameters) -> RunSummary:
    left = physics.torque(p.left_mass, p.left_position, p.gravity)
    right = physics.torque(p.right_mass, p.right_position, p.gravity)
    net = physics.net_torque(p.left_mass, p.left_position, p.right_mass, p.right_position, p.gravity)
    balanced = physics.is_balanced(net)
    formula = (f"τ_left = {p.left_mass:g} kg × {p.gravity:g} m/s² × {p.left_position:g} m = {left:.1f} N·m; "
               f"τ_right = {p.right_mass:g} kg × {p.gravity:g} m/s² × {p.right_position:g} m = {right:.1f} N·m; "
               f"τ_net = {net:.1f} N·m ({'balanced' if balanced else 'unbalanced'})")
    return RunSummary(
        result=net,
        result_label="Net torque",
        unit="N·m",
        formula=formula,
        quantities={
            "left_torque": left,
            "right_torque": right,
            "balanced": 1.0 if balanced else 0.0,
            "target_angle": physics.balance_target_angle(net),
        },
    )


class BalanceSimulation(AnimationEngine):
    name = "balance"
    parameters_type = BalanceParameters

    @property
    def beam_angle(self) -> float:
        """Angle to draw: the moving beam, else where the last run settled, else level."""
        if self.state is not None:
            return self.state.angle
        if self.last_run is not None:
            return self.last_run.angle
        return 0.0

    def _apply_parameters(self, parameters: BalanceParameters, user_change: bool) -> None:
        summary = balance_summary(parameters)
        if self.running:
            self._summary = summary
            self.run_parameters = parameters
            self.state.target_angle = summary.quantities["target_angle"]

    def _summarize(self, params: BalanceParameters) -> RunSummary:
        return balance_summary(params)

    def _start_state(self, params: BalanceParameters) -> BeamState:
        state = BeamState(
            angle=self.beam_angle,
            target_angle=physics.balance_target_angle(
                physics.net_torque(params.left_mass, params.left_position,
                                   params.right_mass, params.right_position, params.gravity)),
        )
        state.add_trail_point()
        return state

    def _advance(self, state: BeamState, params: BalanceParameters) -> None:
        state.angle += (state.target_angle - state.angle) * BALANCE_SMOOTHING

    def _terminated(self, state: BeamState, params: BalanceParameters) -> bool:
        return abs(state.target_angle - state.angle) <= SETTLE_EPSILON

    def _clamp_terminal(self, state: BeamState, params: BalanceParameters) -> None:
        state.angle = state.target_angle

    def _sample(self, state: BeamState):
        return (state.angle,)
