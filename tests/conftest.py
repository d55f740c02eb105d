"""Test fixtures for the Physics Lab core.

Provides a shared frame scheduler, one engine per simulation and a deterministic
history clock. Nothing here imports the GUI module.
"""
from datetime import datetime, timedelta

import pytest

from simlab.balance import BalanceSimulation
from simlab.data_models import (
    BalanceParameters,
    BuoyancyParameters,
    PressureParameters,
    ProjectileParameters,
)
from simlab.fluids import BuoyancySimulation, PressureLab
from simlab.history import HistoryLog
from simlab.projectile import ProjectileSimulation
from simlab.scheduler import FrameScheduler


class FixedClock:
  """Returns timestamps one second apart, starting at noon."""

  def __init__(self):
    self.now = datetime(2024, 1, 1, 12, 0, 0)

  def __call__(self):
    stamp = self.now
    self.now += timedelta(seconds=1)
    return stamp


def run_to_settle(engine, limit=10000):
  """Step an engine until its run settles; returns the number of ticks taken."""
  ticks = 0
  while engine.step():
    ticks += 1
    assert ticks < limit, "run never settled"
  return ticks + 1


@pytest.fixture
def scheduler():
  return FrameScheduler()


@pytest.fixture
def history():
  return HistoryLog(clock=FixedClock())


@pytest.fixture
def projectile(scheduler, history):
  """Projectile engine with v0=20 m/s, 45 deg, g=10 m/s^2."""
  return ProjectileSimulation(scheduler, ProjectileParameters(velocity=20.0, angle=45.0, gravity=10.0),
                              history=history)


@pytest.fixture
def balance(scheduler, history):
  """Balance engine with the left arm one meter longer (10 kg @ 3 m vs 10 kg @ 2 m)."""
  return BalanceSimulation(scheduler, BalanceParameters(left_position=3.0), history=history)


@pytest.fixture
def buoyancy(scheduler, history):
  """Wood block (600 kg/m^3) in water."""
  return BuoyancySimulation(scheduler, BuoyancyParameters(), history=history)


@pytest.fixture
def pressure(scheduler, history):
  return PressureLab(scheduler, PressureParameters(), history=history)
