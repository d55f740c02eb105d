#!/usr/bin/env python3
"""
Scalar and 2D vector helpers.

These are small, fast functions used by the physics model, the engine and the
renderer.
"""
import math
from typing import Tuple


def clamp(x: float, a: float, b: float) -> float:
    """Clamp x to the inclusive range [a, b]."""
    return max(a, min(b, x))


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation: a at t=0, b at t=1."""
    return a + (b - a) * t


def vec_len(a: Tuple[float, float]) -> float:
    return math.hypot(a[0], a[1])
