"""Projectile engine lifecycle: launch, ticks, settle, reset and relaunch."""
import math

import pytest

from simlab import physics
from simlab.constants import FIXED_DT
from simlab.data_models import ProjectileParameters
from simlab.engine import Phase
from simlab.errors import InvalidParameterError, NoActiveParametersError
from simlab.projectile import ProjectileSimulation

from conftest import run_to_settle


def test_launch_without_parameters_raises(scheduler):
  engine = ProjectileSimulation(scheduler)
  with pytest.raises(NoActiveParametersError):
    engine.launch()
  assert engine.phase is Phase.IDLE
  assert scheduler.pending == 0


def test_launch_seeds_state_and_schedules_one_frame(projectile, scheduler):
  state = projectile.launch()
  assert projectile.phase is Phase.RUNNING
  assert state.t == 0.0
  assert list(state.trail) == [(0.0, 0.0)]
  assert scheduler.pending == 1


def test_zero_gravity_launch_is_rejected_without_side_effects(scheduler, history):
  engine = ProjectileSimulation(scheduler, ProjectileParameters(gravity=0.0), history=history)
  with pytest.raises(InvalidParameterError):
    engine.launch()
  assert engine.phase is Phase.IDLE
  assert engine.state is None
  assert scheduler.pending == 0


def test_run_settles_at_exact_range_and_records_history(projectile, history):
  projectile.launch()
  ticks = run_to_settle(projectile)
  flight = 2 * math.sqrt(2)
  assert ticks == math.ceil(flight / FIXED_DT)
  assert projectile.phase is Phase.IDLE
  assert projectile.state is None
  run = projectile.last_run
  assert run.position == (pytest.approx(40.0), 0.0)
  assert run.trail[-1] == run.position
  assert run.t >= flight

  assert len(history) == 1
  entry = history.latest
  assert entry.simulation == "projectile"
  assert entry.result == pytest.approx(40.0)
  assert entry.unit == "m"
  assert entry.quantities["max_height"] == pytest.approx(10.0)
  assert entry.quantities["time_of_flight"] == pytest.approx(flight)
  assert "40.0 m" in entry.formula


def test_settle_callback_receives_entry(scheduler, history):
  settled = []
  engine = ProjectileSimulation(scheduler, ProjectileParameters(velocity=5.0), history=history,
                                on_settle=settled.append)
  engine.launch()
  run_to_settle(engine)
  assert settled == [history.latest]


def test_trail_keeps_most_recent_hundred_samples(scheduler, history):
  params = ProjectileParameters(velocity=50.0, angle=90.0, gravity=9.81)
  engine = ProjectileSimulation(scheduler, params, history=history)
  engine.launch()
  for _ in range(150):
    assert engine.step()
  trail = list(engine.state.trail)
  assert len(trail) == 100
  for (x, y), tick in zip(trail, range(51, 151)):
    ex, ey = physics.position(50.0, 90.0, 9.81, tick * FIXED_DT)
    assert x == pytest.approx(ex, abs=1e-9)
    assert y == pytest.approx(ey, rel=1e-9)


def test_first_frame_advances_exactly_one_tick(projectile, scheduler):
  projectile.launch()
  scheduler.run_frame(100.0)
  assert projectile.state.t == pytest.approx(FIXED_DT)


def test_thirty_hz_frames_advance_two_ticks(projectile, scheduler):
  projectile.launch()
  scheduler.run_frame(0.0)
  scheduler.run_frame(1 / 30)
  assert projectile.state.t == pytest.approx(3 * FIXED_DT)
  scheduler.run_frame(2 / 30)
  assert projectile.state.t == pytest.approx(5 * FIXED_DT)


def test_physical_time_does_not_depend_on_frame_rate(scheduler, history):
  results = []
  for fps in (30, 60, 144):
    engine = ProjectileSimulation(scheduler, ProjectileParameters(velocity=20.0, angle=45.0, gravity=10.0),
                                  history=history)
    engine.launch()
    frame = 0
    while engine.running:
      scheduler.run_frame(frame / fps)
      frame += 1
    results.append(engine.last_run.t)
  assert results[0] == pytest.approx(results[1], abs=FIXED_DT * 1.01)
  assert results[2] == pytest.approx(results[1], abs=FIXED_DT * 1.01)


def test_stalled_frame_is_capped(projectile, scheduler):
  projectile.launch()
  scheduler.run_frame(0.0)
  scheduler.run_frame(10.0)
  assert projectile.state.t == pytest.approx(31 * FIXED_DT)


def test_reset_stops_ticking_and_discards_run(projectile, scheduler, history):
  projectile.launch()
  for frame in range(5):
    scheduler.run_frame(frame / 60)
  projectile.reset()
  assert projectile.phase is Phase.IDLE
  assert projectile.state is None
  assert projectile.last_run is None
  assert scheduler.pending == 0
  assert scheduler.run_frame(1.0) == 0
  assert len(history) == 0


def test_relaunch_cancels_running_run_without_history(projectile, scheduler, history):
  projectile.launch()
  for _ in range(10):
    projectile.step()
  state = projectile.launch()
  assert state.t == 0.0
  assert len(state.trail) == 1
  assert scheduler.pending == 1
  assert len(history) == 0


def test_parameters_are_captured_at_launch(projectile, history):
  projectile.launch()
  projectile.step()
  projectile.parameters_changed(projectile.parameters.with_values(velocity=5.0))
  run_to_settle(projectile)
  assert history.latest.parameters.velocity == 20.0
  assert history.latest.result == pytest.approx(40.0)


def test_step_when_idle_is_a_no_op(projectile):
  assert projectile.step() is False
  assert projectile.state is None


def test_hold_and_resume(projectile, scheduler):
  projectile.launch()
  scheduler.run_frame(0.0)
  projectile.hold()
  assert projectile.held
  assert scheduler.run_frame(1.0) == 0
  assert projectile.step()
  assert projectile.state.t == pytest.approx(2 * FIXED_DT)
  projectile.resume()
  scheduler.run_frame(5.0)
  assert projectile.state.t == pytest.approx(3 * FIXED_DT)
  assert not projectile.held


def test_render_sample_interpolates_between_ticks(projectile, scheduler):
  assert projectile.render_sample() is None
  projectile.launch()
  scheduler.run_frame(0.0)
  scheduler.run_frame(1.5 / 60)
  x, _ = projectile.render_sample()
  vx = 20 * math.cos(math.radians(45))
  assert projectile.render_alpha == pytest.approx(0.5)
  assert x == pytest.approx(vx * 1.5 * FIXED_DT)


def test_render_sample_after_settle_is_terminal(projectile):
  projectile.launch()
  run_to_settle(projectile)
  assert projectile.render_sample() == (pytest.approx(40.0), 0.0)


def test_history_keeps_last_twenty_runs(scheduler, history):
  engine = ProjectileSimulation(scheduler, ProjectileParameters(velocity=1.0, gravity=25.0), history=history)
  for _ in range(25):
    engine.launch()
    run_to_settle(engine)
  assert len(history) == 20
  assert [e.entry_id for e in history] == list(range(6, 26))


def test_replay_moves_parameters_without_recording(projectile, scheduler, history):
  projectile.launch()
  run_to_settle(projectile)
  entry = history.latest
  projectile.parameters_changed(ProjectileParameters(velocity=9.0, angle=30.0, gravity=9.81))

  projectile.replay(entry)
  assert projectile.replaying
  assert projectile.selected_entry_id == entry.entry_id
  for frame in range(20):
    scheduler.run_frame(frame / 60)
  assert projectile.parameters == entry.parameters
  assert not projectile.replaying
  assert len(history) == 1


def test_replay_of_foreign_entry_is_rejected(projectile, balance, history):
  balance.launch()
  run_to_settle(balance)
  with pytest.raises(TypeError):
    projectile.replay(history.latest)


def test_aim_for_range_sets_angle(projectile):
  angle = projectile.aim_for_range(30.0)
  assert projectile.parameters.angle == pytest.approx(angle)
  assert physics.projectile_range(20.0, angle, 10.0) == pytest.approx(30.0)


def test_reset_cancels_replay(projectile, scheduler, history):
  projectile.launch()
  run_to_settle(projectile)
  projectile.parameters_changed(ProjectileParameters())
  projectile.replay(history.latest)
  scheduler.run_frame(0.0)
  projectile.reset()
  assert not projectile.replaying
  assert scheduler.pending == 0


def test_held_run_draws_latest_tick(projectile):
  projectile.launch()
  projectile.hold()
  projectile.step()
  projectile.step()
  assert projectile.render_sample() == projectile.state.position
  assert projectile.state.t == pytest.approx(2 * FIXED_DT)


def test_clear_history_drops_entries_and_stops_replay(projectile, scheduler, history):
  projectile.launch()
  run_to_settle(projectile)
  entry = history.latest
  projectile.parameters_changed(ProjectileParameters())
  projectile.replay(entry)
  scheduler.run_frame(0.0)

  projectile.clear_history()
  assert len(history) == 0
  assert history.find(entry.entry_id) is None
  assert not projectile.replaying
  assert projectile.selected_entry_id is None
  assert scheduler.pending == 0


def test_entries_after_clear_keep_counting_ids(projectile, history):
  projectile.launch()
  run_to_settle(projectile)
  projectile.clear_history()
  projectile.launch()
  run_to_settle(projectile)
  assert [e.entry_id for e in history] == [2]
