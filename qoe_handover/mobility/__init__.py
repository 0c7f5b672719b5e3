"""
Mobility module for QoE/QoS-aware handover decisions.

This module implements the neighbour measurement table, the multi-attribute
handover decision and the measurement-report ingestion path.
"""

from .measurements import MeasurementStore, NeighbourMeasurement, NO_CELL
from .handover import (CandidateCell, DecisionEvaluator, DecisionReason, HandoverDecision,
                       HandoverTrigger, RecordingHandoverTrigger)
from .algorithm import MeasurementReport, MultiAttributeHandoverAlgorithm, NeighbourReport

__all__ = ['MeasurementStore', 'NeighbourMeasurement', 'NO_CELL',
           'CandidateCell', 'DecisionEvaluator', 'DecisionReason', 'HandoverDecision',
           'HandoverTrigger', 'RecordingHandoverTrigger',
           'MeasurementReport', 'MultiAttributeHandoverAlgorithm', 'NeighbourReport']
