#!/usr/bin/env python3
"""
Shared constants for Physics Lab (SI units unless stated otherwise).

Keeping constants in one place helps ensure values are consistent across the
codebase and makes tuning easier.
"""

# Physical constants
STANDARD_GRAVITY = 9.81  # m/s^2
ATMOSPHERIC_PRESSURE = 101325.0  # Pa
REFERENCE_TEMPERATURE = 20.0  # degC, catalog densities are quoted at this temperature
THERMAL_DENSITY_COEFF = 0.0002  # fractional density change per degC

# Engine controls
FIXED_DT = 1 / 60.0  # seconds of simulation time per tick
MAX_SUBSTEPS = 30  # cap per frame so a stalled host cannot spiral
TRAIL_CAPACITY = 100
HISTORY_CAPACITY = 20
REPLAY_INCREMENT = 0.05  # progress per replay step => 20 steps

# Balance
BALANCE_TOLERANCE = 1.0  # N*m; |net torque| below this counts as balanced
BALANCE_TORQUE_TO_ANGLE = 0.3  # deg of tilt per N*m of net torque
BALANCE_MAX_ANGLE = 30.0  # deg
BALANCE_SMOOTHING = 0.08  # fraction of the remaining gap closed per tick
SETTLE_EPSILON = 0.1  # deg

# Buoyancy
BUOYANCY_EQUILIBRIUM_FORCE = 0.1  # N
BUOYANCY_DAMPING = 0.995  # velocity retained per tick
BUOYANCY_TANK_DEPTH = 2.5  # m
BUOYANCY_RELEASE_DEPTH = 1.25  # m below the surface
BUOYANCY_SETTLE_SPEED = 1e-3  # m/s

# Pressure auto-history thresholds
PRESSURE_DEPTH_THRESHOLD = 0.1  # m
PRESSURE_DENSITY_THRESHOLD = 50.0  # kg/m^3

# Rendering (viewport)
VIEW_WIDTH = 900
VIEW_HEIGHT = 520
BACKGROUND_COLOR = (10, 12, 18)
GRID_COLOR = (148, 163, 184)
TEXT_COLOR = (30, 41, 59)
SKY_TOP_COLOR = (0, 191, 255)
SKY_BOTTOM_COLOR = (135, 206, 235)
GROUND_COLOR = (50, 205, 50)
GROUND_DARK_COLOR = (34, 139, 34)
TRAIL_COLOR = (255, 20, 147)
PROJECTILE_COLOR = (255, 0, 0)
VELOCITY_VECTOR_COLOR = (0, 200, 0)
BEAM_COLOR = (139, 69, 19)
LEFT_MASS_COLOR = (255, 68, 68)
RIGHT_MASS_COLOR = (68, 136, 255)
FLUID_COLOR = (6, 182, 212)

# Fixed world-to-pixel scales per view (pixels per meter)
PROJECTILE_SCALE = (8.0, 12.0)
BALANCE_SCALE = 50.0
TANK_SCALE = 36.0  # px per meter of depth in the pressure view
COLUMN_HEIGHT_PX = 320  # density column drawn height

# Safety: avoid drawing outside reasonable integer pixel ranges
SAFE_COORD_LIMIT = 30000
