#!/usr/bin/env python3
"""
Catalog and parameter preset JSON loading utilities.

This module defines simple JSON schemas and loaders for:
- Catalogs: named materials, fluids and substances with a density (presets/<kind>.json)
- Templates: ready-made parameter snapshots for one simulation (presets/templates/*.json)

Schemas
=======
Catalog JSON (presets/materials.json, fluids.json, substances.json):
{
  "wood": {"name": "Wood", "density": 600, "color": [146, 64, 14]},
  "iron": {"name": "Iron", "density": 7800, "color": [55, 65, 81]}
}

Template JSON (presets/templates/*.json):
{
  "name": "Moon shot",
  "description": "Optional description",
  "simulation": "projectile",
  "parameters": {"velocity": 20.0, "angle": 45.0, "gravity": 1.62}
}

Template parameters left out take the control's default; values outside a control's
range are dropped with a warning. A missing or unreadable catalog file falls back to the
built-in table below.
"""
import json
import logging
import os
from typing import Dict, List, NamedTuple, Optional, Tuple, Type

from .data_models import (
  BalanceParameters,
  BuoyancyParameters,
  PressureParameters,
  ProjectileParameters,
  SimulationParameters,
)
from .errors import CatalogError

logger = logging.getLogger(__name__)

PRESETS_DIR = os.path.join(os.path.dirname(__file__), "presets")
TEMPLATES_DIR = os.path.join(PRESETS_DIR, "templates")

PARAMETER_TYPES: Dict[str, Type[SimulationParameters]] = {
  "projectile": ProjectileParameters,
  "balance": BalanceParameters,
  "pressure": PressureParameters,
  "buoyancy": BuoyancyParameters,
}


class CatalogItem(NamedTuple):
  key: str
  name: str
  density: float  # kg/m^3
  color: Tuple[int, int, int]


_BUILTIN_CATALOGS = {
  "materials": {
    "wood": ("Wood", 600, (146, 64, 14)),
    "ice": ("Ice", 917, (224, 242, 254)),
    "water": ("Water", 1000, (14, 165, 233)),
    "aluminum": ("Aluminum", 2700, (100, 116, 139)),
    "iron": ("Iron", 7800, (55, 65, 81)),
    "lead": ("Lead", 11340, (31, 41, 55)),
  },
  "fluids": {
    "mercury": ("Mercury", 13534, (156, 163, 175)),
    "water": ("Water", 1000, (6, 182, 212)),
    "oil": ("Oil", 800, (251, 191, 36)),
    "alcohol": ("Alcohol", 789, (192, 132, 252)),
    "gasoline": ("Gasoline", 680, (248, 113, 113)),
  },
  "substances": {
    "air": ("Air", 1.2, (243, 244, 246)),
    "water": ("Water", 1000, (59, 130, 246)),
    "oil": ("Oil", 800, (251, 191, 36)),
    "honey": ("Honey", 1400, (245, 158, 11)),
    "mercury": ("Mercury", 13534, (107, 114, 128)),
    "wood": ("Wood", 600, (146, 64, 14)),
    "aluminum": ("Aluminum", 2700, (100, 116, 139)),
    "iron": ("Iron", 7800, (55, 65, 81)),
  },
}


def _read_json(path: str) -> Optional[dict]:
  try:
    with open(path, "r", encoding="utf-8") as f:
      return json.load(f)
  except FileNotFoundError:
    return None
  except (OSError, ValueError) as exc:
    logger.warning("Could not read %s: %s", path, exc)
    return None


def _coerce_color(c) -> Tuple[int, int, int]:
  try:
    r, g, b = int(c[0]), int(c[1]), int(c[2])
  except (TypeError, ValueError, IndexError):
    return (200, 200, 255)
  r = max(0, min(255, r)); g = max(0, min(255, g)); b = max(0, min(255, b))
  return (r, g, b)


def load_catalog(kind: str, directory: str = PRESETS_DIR) -> Dict[str, CatalogItem]:
  """
  Load one catalog ("materials", "fluids" or "substances") keyed by its short name.
  Entries without a positive numeric density are skipped.
  """
  if kind not in _BUILTIN_CATALOGS:
    raise CatalogError(f"Unknown catalog '{kind}'")
  data = _read_json(os.path.join(directory, f"{kind}.json"))
  if not isinstance(data, dict):
    return {key: CatalogItem(key, name, float(density), color)
            for key, (name, density, color) in _BUILTIN_CATALOGS[kind].items()}

  items: Dict[str, CatalogItem] = {}
  for key, raw in data.items():
    try:
      density = float(raw["density"])
    except (KeyError, TypeError, ValueError):
      logger.warning("Skipping %s entry '%s': no numeric density", kind, key)
      continue
    if density <= 0:
      logger.warning("Skipping %s entry '%s': density must be positive", kind, key)
      continue
    items[key] = CatalogItem(key, str(raw.get("name", key)), density, _coerce_color(raw.get("color")))
  return items


def catalog_item(kind: str, key: str, directory: str = PRESETS_DIR) -> CatalogItem:
  items = load_catalog(kind, directory)
  try:
    return items[key]
  except KeyError:
    raise CatalogError(f"'{key}' is not in the {kind} catalog") from None


def list_templates(simulation: Optional[str] = None,
                   directory: str = TEMPLATES_DIR) -> List[Tuple[str, str]]:
  """Return list of (file_name, display_name) for available templates, optionally for one simulation."""
  items: List[Tuple[str, str]] = []
  if not os.path.isdir(directory):
    return items
  for fn in sorted(os.listdir(directory)):
    if not fn.lower().endswith(".json"):
      continue
    data = _read_json(os.path.join(directory, fn)) or {}
    if simulation is not None and data.get("simulation") != simulation:
      continue
    display = data.get("name") or os.path.splitext(fn)[0]
    items.append((fn, display))
  return items


def load_template(file_name: str,
                  directory: str = TEMPLATES_DIR) -> Tuple[str, SimulationParameters, str]:
  """
  Load a template JSON by file name.
  Returns (simulation, parameters, display_name)
  """
  path = os.path.join(directory, file_name)
  data = _read_json(path)
  if not isinstance(data, dict):
    raise CatalogError(f"Template '{file_name}' is missing or unreadable")
  simulation = data.get("simulation")
  params_type = PARAMETER_TYPES.get(simulation)
  if params_type is None:
    raise CatalogError(f"Template '{file_name}' names unknown simulation {simulation!r}")
  display_name = data.get("name") or os.path.splitext(file_name)[0]

  values: Dict[str, float] = {}
  raw_values = data.get("parameters") or {}
  for spec in params_type.specs():
    if spec.name not in raw_values:
      continue
    try:
      value = float(raw_values[spec.name])
    except (TypeError, ValueError):
      logger.warning("Template '%s': %s is not a number", file_name, spec.name)
      continue
    if not spec.accepts(value):
      logger.warning("Template '%s': %s=%g outside [%g, %g]",
                     file_name, spec.name, value, spec.minimum, spec.maximum)
      continue
    values[spec.name] = value
  return simulation, params_type(**values), display_name
