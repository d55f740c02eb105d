#!/usr/bin/env python3
"""
Exception types raised by the Physics Lab core.

The UI catches SimulationError at its callback boundary and shows the message;
nothing in the core swallows these.
"""


class SimulationError(Exception):
    """Base exception for simulation-related errors."""
    pass


class InvalidParameterError(SimulationError, ValueError):
    """Raised when a physics function receives a value outside its domain."""

    def __init__(self, name: str, value, reason: str):
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class NoActiveParametersError(SimulationError):
    """Raised when a run is requested before any parameters were supplied."""
    pass


class CatalogError(SimulationError):
    """Raised when a material, fluid or substance key is not in the catalog."""
    pass
