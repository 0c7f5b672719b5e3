"""
Simulation module for handover evaluation.

This module implements the SimPy simulation engine and the simulated
control plane.
"""

from .engine import SimulationEngine, SimulatedTerminal
from .control_plane import SimulatedControlPlane

__all__ = ['SimulationEngine', 'SimulatedTerminal', 'SimulatedControlPlane']
