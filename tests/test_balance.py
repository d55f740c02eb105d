"""Lever balance engine."""
import pytest

from simlab.balance import BalanceSimulation, balance_summary
from simlab.data_models import BalanceParameters, PressureParameters
from simlab.engine import Phase

from conftest import run_to_settle


def test_summary_of_unequal_arms():
  summary = balance_summary(BalanceParameters(left_position=3.0))
  assert summary.result == pytest.approx(-98.1)
  assert summary.unit == "N·m"
  assert summary.quantities["left_torque"] == pytest.approx(294.3)
  assert summary.quantities["right_torque"] == pytest.approx(196.2)
  assert summary.quantities["balanced"] == 0.0
  assert "unbalanced" in summary.formula


def test_equal_arms_settle_level_on_first_tick(scheduler, history):
  engine = BalanceSimulation(scheduler, BalanceParameters(), history=history)
  engine.launch()
  assert run_to_settle(engine) == 1
  assert engine.last_run.angle == 0.0
  assert history.latest.result == 0.0
  assert history.latest.quantities["balanced"] == 1.0


def test_beam_eases_to_target_and_snaps(balance, history):
  balance.launch()
  angles = []
  while balance.step():
    angles.append(balance.state.angle)
  # Monotonic approach towards the negative target
  assert all(b < a for a, b in zip(angles, angles[1:]))
  assert balance.phase is Phase.IDLE
  assert balance.last_run.angle == pytest.approx(-29.43)
  assert balance.beam_angle == pytest.approx(-29.43)
  assert history.latest.result == pytest.approx(-98.1)


def test_parameter_change_retargets_moving_beam(balance, history):
  balance.launch()
  for _ in range(5):
    balance.step()
  balance.parameters_changed(BalanceParameters())
  assert balance.state.target_angle == 0.0
  run_to_settle(balance)
  assert balance.last_run.angle == 0.0
  assert history.latest.parameters == BalanceParameters()
  assert history.latest.result == 0.0


def test_next_launch_starts_from_settled_tilt(balance):
  balance.launch()
  run_to_settle(balance)
  balance.parameters_changed(BalanceParameters())
  state = balance.launch()
  assert state.angle == pytest.approx(-29.43)
  assert state.target_angle == 0.0


def test_reset_levels_the_beam(balance):
  balance.launch()
  run_to_settle(balance)
  balance.reset()
  assert balance.beam_angle == 0.0


def test_restore_defaults(balance):
  balance.restore_defaults()
  assert balance.parameters == BalanceParameters()


def test_parameters_of_wrong_type_are_rejected(balance):
  with pytest.raises(TypeError):
    balance.parameters_changed(PressureParameters())
