"""Core configuration and error types."""

from .config import HandoverConfig, SimulationConfig
from .errors import HandoverError, MalformedReportError

__all__ = ['HandoverConfig', 'SimulationConfig', 'HandoverError', 'MalformedReportError']
