"""
QoE/QoS-aware Multi-Attribute Handover Framework

This package provides the decision core of a mobility controller that
hands terminals over between cells using a weighted blend of radio quality
(RSRQ), quality of experience (MOS) and quality of service (PDR), together
with a SimPy harness for evaluating it.
"""

__version__ = "1.0.0"
