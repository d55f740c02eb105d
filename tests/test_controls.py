"""Control specs, numeric input parsing and the fixed-scale view transform."""
import pytest

from simlab.camera import ViewTransform, safe_point
from simlab.data_models import BuoyancyParameters, ProjectileParameters
from simlab.utils import parse_control_value, try_float


def test_specs_follow_field_order_and_defaults():
  specs = ProjectileParameters.specs()
  assert [s.name for s in specs][:3] == ["velocity", "angle", "gravity"]
  for spec in specs:
    assert spec.accepts(spec.default)
    assert getattr(ProjectileParameters(), spec.name) == spec.default


def test_gravity_range():
  spec = ProjectileParameters.spec("gravity")
  assert (spec.minimum, spec.maximum) == (1.0, 25.0)
  with pytest.raises(KeyError):
    ProjectileParameters.spec("spin")


def test_with_values_returns_new_snapshot():
  base = BuoyancyParameters()
  changed = base.with_values(volume=0.002)
  assert base.volume == 0.001
  assert changed.volume == 0.002
  assert changed.as_dict()["fluid_density"] == 1000.0


@pytest.mark.parametrize("text,expected", [("20", 20.0), (" 12.5 ", 12.5), ("abc", None),
                                           ("", None), ("75", None), ("0.5", None)])
def test_parse_control_value(text, expected):
  assert parse_control_value(text, ProjectileParameters.spec("velocity")) == expected


def test_try_float():
  assert try_float("3") == 3.0
  assert try_float(None) is None


def test_view_transform_is_y_up_from_anchor():
  view = ViewTransform((60, 460), (8.0, 12.0))
  assert view.world_to_screen((0.0, 0.0)) == (60, 460)
  assert view.world_to_screen((10.0, 5.0)) == (140, 400)
  assert view.screen_to_world((140, 400)) == pytest.approx((10.0, 5.0))
  assert view.visible((140, 400))
  assert not view.visible((-1, 400))


def test_view_transform_rejects_non_positive_scale():
  with pytest.raises(ValueError):
    ViewTransform((0, 0), 0.0)


def test_safe_point():
  assert safe_point((1.6, 2.2)) == (1, 2)
  assert safe_point((40000, 0)) is None
  assert safe_point((float("inf"), 0)) is None
