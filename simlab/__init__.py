"""
Physics Lab core: physics model, fixed-timestep animation engine, bounded run history
and parameter replay. Nothing in this package imports a GUI toolkit.
"""

__version__ = "1.0.0"
