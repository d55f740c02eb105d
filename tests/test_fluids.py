"""Buoyancy tank, pressure gauge and density column."""
import pytest

from simlab.constants import BUOYANCY_RELEASE_DEPTH, BUOYANCY_TANK_DEPTH
from simlab.data_models import BuoyancyParameters, PressureParameters
from simlab.errors import CatalogError, InvalidParameterError, NoActiveParametersError
from simlab.fluids import BuoyancySimulation, DensityColumn, PressureLab, pressure_summary
from simlab.presets_loader import load_catalog

from conftest import run_to_settle


# ============================================================
# Buoyancy
# ============================================================

def test_light_block_floats_to_surface(buoyancy, history):
  buoyancy.launch()
  run_to_settle(buoyancy)
  assert buoyancy.last_run.depth == 0.0
  assert buoyancy.last_run.velocity == 0.0
  entry = history.latest
  assert entry.result == pytest.approx(9.81)
  assert entry.quantities["net_force"] == pytest.approx(3.924)
  assert "floating" in entry.formula


def test_dense_block_sinks_to_bottom(scheduler, history):
  engine = BuoyancySimulation(scheduler, BuoyancyParameters(object_density=7800.0), history=history)
  engine.launch()
  run_to_settle(engine)
  assert engine.last_run.depth == BUOYANCY_TANK_DEPTH
  assert "sinking" in history.latest.formula


def test_neutral_block_stays_put(scheduler, history):
  engine = BuoyancySimulation(scheduler, BuoyancyParameters(object_density=1000.0), history=history)
  engine.launch()
  assert run_to_settle(engine) == 1
  assert engine.last_run.depth == pytest.approx(BUOYANCY_RELEASE_DEPTH)


def test_solve_volume_applies_required_volume(buoyancy):
  required = buoyancy.solve_volume(5.0)
  assert required == pytest.approx(5.0 / 9810.0)
  assert buoyancy.parameters.volume == pytest.approx(required)


def test_solve_volume_clamps_to_control_range(buoyancy):
  required = buoyancy.solve_volume(500.0)
  assert required > 0.005
  assert buoyancy.parameters.volume == 0.005


# ============================================================
# Pressure
# ============================================================

def test_pressure_summary_reference():
  summary = pressure_summary(PressureParameters())
  assert summary.result == pytest.approx(150375.0)
  assert summary.quantities["gauge_pressure"] == pytest.approx(49050.0)
  assert summary.formula.endswith("= 150375 Pa")


def test_initial_parameters_are_recorded(pressure, history):
  assert len(history) == 1
  assert history.latest.result == pytest.approx(150375.0)
  assert pressure.pressure == pytest.approx(150375.0)


def test_small_changes_are_not_recorded(pressure, history):
  pressure.parameters_changed(PressureParameters(depth=5.05))
  pressure.parameters_changed(PressureParameters(depth=5.05, fluid_density=1040.0))
  assert len(history) == 1


def test_larger_changes_are_recorded(pressure, history):
  pressure.parameters_changed(PressureParameters(depth=6.0))
  pressure.parameters_changed(PressureParameters(depth=6.0, fluid_density=1100.0))
  assert len(history) == 3
  assert history.latest.parameters.fluid_density == 1100.0


def test_solve_depth_clamps_and_records_target(pressure, history):
  required, entry = pressure.solve_depth(200.0)
  assert required == pytest.approx((200000.0 - 101325.0) / 9810.0)
  assert pressure.parameters.depth == 10.0
  assert entry is history.latest
  assert entry.formula == f"Target 200 kPa → h = {required:.2f} m"
  assert len(history) == 2


def test_replay_does_not_auto_record(pressure, scheduler, history):
  pressure.parameters_changed(PressureParameters(depth=9.0))
  first = history.newest_first()[-1]
  pressure.replay(first)
  for frame in range(20):
    scheduler.run_frame(frame / 60)
  assert pressure.parameters == first.parameters
  assert len(history) == 2


def test_pressure_profile(pressure):
  profile = pressure.pressure_profile(step=1.0)
  assert len(profile) == 11
  assert profile[0] == (0.0, pytest.approx(101325.0))
  assert profile[5][1] == pytest.approx(150375.0)


def test_pressure_without_parameters(scheduler):
  lab = PressureLab(scheduler)
  assert lab.pressure is None
  with pytest.raises(NoActiveParametersError):
    lab.solve_depth(150.0)


# ============================================================
# Density column
# ============================================================

@pytest.fixture
def column():
  return DensityColumn(catalog=load_catalog("substances"))


def test_denser_substance_sits_at_bottom(column):
  layers = column.layers()
  assert [layer.name for layer in layers] == ["Water", "Oil"]
  assert layers[0].top == pytest.approx(0.5)
  assert column.total_mass == pytest.approx(0.18)


def test_substance_swap_restacks(column):
  column.set_substance(1, "honey")
  assert [layer.name for layer in column.layers()] == ["Honey", "Water"]


def test_temperature_scales_densities(column):
  column.temperature = 70.0
  assert column.densities() == [pytest.approx(990.0), pytest.approx(792.0)]


def test_volume_share_sets_thickness(column):
  column.set_volume(0, 300.0)
  assert column.layers(column_height=2.0)[0].top == pytest.approx(1.5)


def test_unknown_substance_and_negative_volume(column):
  with pytest.raises(CatalogError):
    column.set_substance(0, "unobtainium")
  with pytest.raises(InvalidParameterError):
    column.set_volume(0, -1.0)


def test_material_and_fluid_from_catalogs(buoyancy, history):
  iron = load_catalog("materials")["iron"]
  mercury = load_catalog("fluids")["mercury"]
  buoyancy.use_material(iron)
  assert buoyancy.parameters.object_density == 7800.0
  assert buoyancy.material_color == iron.color

  buoyancy.launch()
  run_to_settle(buoyancy)
  assert buoyancy.last_run.depth == BUOYANCY_TANK_DEPTH

  buoyancy.use_fluid(mercury)
  assert buoyancy.parameters.fluid_density == 13534.0
  assert buoyancy.fluid_color == mercury.color
  buoyancy.launch()
  run_to_settle(buoyancy)
  assert buoyancy.last_run.depth == 0.0
  assert history.latest.parameters.fluid_density == 13534.0


def test_material_colour_drops_once_density_is_edited(buoyancy):
  buoyancy.use_material(load_catalog("materials")["wood"])
  buoyancy.parameters_changed(buoyancy.parameters.with_values(object_density=650.0))
  assert buoyancy.material_color is None
  assert buoyancy.fluid_color is None


def test_every_catalog_density_fits_the_buoyancy_controls():
  for kind, field in (("materials", "object_density"), ("fluids", "fluid_density")):
    spec = BuoyancyParameters.spec(field)
    assert all(spec.accepts(item.density) for item in load_catalog(kind).values())
