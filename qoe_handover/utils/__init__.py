"""
Utility modules for handover simulations.

This module provides configuration parsing, metrics collection and
visualization utilities.
"""

from .config_parser import ConfigParser
from .metrics import MetricsCollector

__all__ = ['ConfigParser', 'MetricsCollector']
