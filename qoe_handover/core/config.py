"""
Configuration classes for the handover controller and its simulation harness
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Quantized RSRQ range (3GPP TS 36.133, section 9.1.7)
RSRQ_MIN = 0
RSRQ_MAX = 34

# Mean opinion score scale
QOE_MIN = 1.0
QOE_MAX = 5.0


@dataclass
class HandoverConfig:
    """Policy parameters consumed by the handover decision core"""
    serving_cell_threshold: int = 30   # RSRQ range, report subscription
    neighbour_cell_offset: int = 1     # RSRQ range, see apply_neighbour_offset
    apply_neighbour_offset: bool = False

    # Attribute weights (hand-tuned, not a probability distribution)
    rsrq_weight: float = 0.2
    qoe_weight: float = 0.4
    qos_weight: float = 0.1

    warmup_delay: float = 5.0               # seconds of simulated time
    score_floor: float = 5.0                # absolute composite-score floor
    qoe_satisfaction_ceiling: float = 3.0   # MOS above which a UE is left alone

    # Report subscription (event A4)
    time_to_trigger: float = 0.256  # seconds
    report_interval: float = 0.48   # seconds
    a4_threshold: int = 0

    @property
    def weights(self) -> Dict[str, float]:
        return {
            'rsrq': self.rsrq_weight,
            'qoe': self.qoe_weight,
            'qos': self.qos_weight
        }

    @property
    def neighbour_offset_margin(self) -> float:
        """Neighbour offset expressed in composite-score units"""
        return self.neighbour_cell_offset * self.rsrq_weight

    def validate(self):
        """
        Check value ranges that the JSON schema cannot express on its own.

        Raises:
            ValueError: If a parameter is out of range
        """
        for name in ('serving_cell_threshold', 'neighbour_cell_offset', 'a4_threshold'):
            value = getattr(self, name)
            if not RSRQ_MIN <= value <= RSRQ_MAX:
                raise ValueError(f"{name} must be within [{RSRQ_MIN}, {RSRQ_MAX}], got {value}")
        for name in ('rsrq_weight', 'qoe_weight', 'qos_weight'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.warmup_delay < 0:
            raise ValueError("warmup_delay must be non-negative")
        if self.time_to_trigger < 0:
            raise ValueError("time_to_trigger must be non-negative")
        if self.report_interval <= 0:
            raise ValueError("report_interval must be positive")
        if not QOE_MIN <= self.qoe_satisfaction_ceiling <= QOE_MAX:
            raise ValueError(f"qoe_satisfaction_ceiling must be within [{QOE_MIN}, {QOE_MAX}], "
                             f"got {self.qoe_satisfaction_ceiling}")


@dataclass
class SimulationConfig:
    """Configuration parameters for the simulation"""
    simulation_time: float = 60.0  # seconds
    random_seed: Optional[int] = None
    log_level: str = "INFO"
    output_directory: str = "results"
    enable_plots: bool = True

    # Cell layout: cells on a straight corridor, ids start at 1 (0 means no cell)
    num_cells: int = 3
    cell_spacing: float = 500.0  # meters
    rsrq_path_slope: float = 0.04  # RSRQ steps lost per meter
    rsrq_noise_std: float = 1.0

    # Terminal configuration
    num_terminals: int = 4
    initial_positions: Optional[List[float]] = None
    terminal_speed: float = 15.0  # m/s

    # Handover execution (simulated control plane)
    preparation_time: float = 0.05
    execution_time: float = 0.02
    completion_time: float = 0.01

    handover: HandoverConfig = field(default_factory=HandoverConfig)
