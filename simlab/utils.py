#!/usr/bin/env python3
"""
General utilities for Physics Lab.
"""
from typing import Optional

from .data_models import ParameterSpec


def try_float(val) -> Optional[float]:
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def parse_control_value(text, spec: ParameterSpec) -> Optional[float]:
    """
    Parse numeric text typed into a control.

    Returns None when the text is not a number or falls outside the control's
    declared range; the control keeps its previous value in that case.
    """
    value = try_float(text)
    if value is None or not spec.accepts(value):
        return None
    return value
