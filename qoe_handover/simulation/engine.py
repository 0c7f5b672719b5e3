"""
Simulation engine for QoE/QoS-aware handover evaluation.

This module implements a discrete event simulation using SimPy: terminals
move along a corridor of cells, send periodic measurement reports to the
handover algorithm and publish their experienced quality to an in-memory
quality collector. Approved handovers are executed by a simulated control
plane.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import simpy

from ..core.config import SimulationConfig, QOE_MAX, QOE_MIN, RSRQ_MAX, RSRQ_MIN
from ..mobility.algorithm import MultiAttributeHandoverAlgorithm, NeighbourReport
from ..mobility.measurements import NO_CELL
from ..qos.providers import InMemoryQualityProvider
from ..utils.metrics import MetricsCollector
from .control_plane import SimulatedControlPlane

logger = logging.getLogger(__name__)


@dataclass
class SimulatedTerminal:
    """Terminal moving along the corridor"""
    terminal_id: int
    position: float          # meters along the corridor
    velocity: float          # m/s, sign gives the direction
    serving_cell_id: int = NO_CELL
    rsrq: Dict[int, int] = field(default_factory=dict)
    # neighbour cell -> time it started satisfying the A4 condition
    a4_since: Dict[int, float] = field(default_factory=dict)
    qoe: float = QOE_MIN
    qos: float = 0.0

    def move(self, time_step: float, corridor_length: float):
        """Advance, bouncing at the corridor ends"""
        self.position += self.velocity * time_step
        if self.position < 0.0:
            self.position = -self.position
            self.velocity = -self.velocity
        elif self.position > corridor_length:
            self.position = 2 * corridor_length - self.position
            self.velocity = -self.velocity


def rsrq_to_quality(rsrq: float) -> tuple:
    """Map serving RSRQ to an experienced (MOS, PDR) pair"""
    ratio = float(np.clip(rsrq / RSRQ_MAX, 0.0, 1.0))
    mos = QOE_MIN + (QOE_MAX - QOE_MIN) * ratio
    pdr = 0.6 + 0.4 * ratio
    return mos, pdr


class SimulationEngine:
    """
    Main simulation engine coordinating terminals, quality collection,
    the handover algorithm and the simulated control plane
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.env = simpy.Environment()
        self.rng = np.random.default_rng(config.random_seed)

        self.quality = InMemoryQualityProvider()
        self.metrics = MetricsCollector()

        self.cells: Dict[int, float] = {}  # cell id -> position
        self.terminals: Dict[int, SimulatedTerminal] = {}
        self._measurement_id = 0

        self.control_plane = SimulatedControlPlane(
            env=self.env,
            get_serving_cell=self.get_serving_cell,
            set_serving_cell=self._set_serving_cell,
            cell_exists=lambda cell_id: cell_id in self.cells,
            metrics=self.metrics,
            preparation_time=config.preparation_time,
            execution_time=config.execution_time,
            completion_time=config.completion_time
        )
        self.algorithm = MultiAttributeHandoverAlgorithm(
            provider=self.quality,
            trigger=self.control_plane,
            clock=lambda: self.env.now,
            config=config.handover,
            serving_cell_resolver=self.get_serving_cell,
            decision_listener=self.metrics.record_decision
        )

        self.running = False
        logger.info(f"Simulation engine initialized with {config.num_cells} cells "
                    f"and {config.num_terminals} terminals")

    @property
    def corridor_length(self) -> float:
        return max(self.config.num_cells - 1, 1) * self.config.cell_spacing

    def setup_network(self):
        """Place cells and terminals and attach every terminal to its best cell"""
        logger.info("Setting up network topology")

        for i in range(self.config.num_cells):
            cell_id = i + 1
            self.cells[cell_id] = i * self.config.cell_spacing
            logger.debug(f"Created cell {cell_id} at {self.cells[cell_id]:.0f}m")

        positions = list(self.config.initial_positions or [])
        for i in range(self.config.num_terminals):
            terminal_id = i + 1
            if i < len(positions):
                position = float(positions[i])
            else:
                position = float(self.rng.uniform(0.0, self.corridor_length))
            direction = 1.0 if i % 2 == 0 else -1.0

            terminal = SimulatedTerminal(
                terminal_id=terminal_id,
                position=position,
                velocity=direction * self.config.terminal_speed
            )
            self._measure(terminal)
            terminal.serving_cell_id = max(terminal.rsrq, key=terminal.rsrq.get)
            self._update_terminal_quality(terminal)
            self.terminals[terminal_id] = terminal
            logger.info(f"Terminal {terminal_id} at {position:.0f}m attached to "
                        f"cell {terminal.serving_cell_id}")

        self._update_cell_quality()

    def get_serving_cell(self, terminal_id: int) -> Optional[int]:
        terminal = self.terminals.get(terminal_id)
        return terminal.serving_cell_id if terminal else None

    def _set_serving_cell(self, terminal_id: int, cell_id: int):
        terminal = self.terminals[terminal_id]
        terminal.serving_cell_id = cell_id
        terminal.a4_since.clear()

    def _rsrq_at(self, distance: float) -> int:
        noise = self.rng.normal(0.0, self.config.rsrq_noise_std) if self.config.rsrq_noise_std else 0.0
        value = RSRQ_MAX - self.config.rsrq_path_slope * distance + noise
        return int(np.clip(np.round(value), RSRQ_MIN, RSRQ_MAX))

    def _measure(self, terminal: SimulatedTerminal):
        terminal.rsrq = {
            cell_id: self._rsrq_at(abs(terminal.position - position))
            for cell_id, position in self.cells.items()
        }

    def _update_terminal_quality(self, terminal: SimulatedTerminal):
        terminal.qoe, terminal.qos = rsrq_to_quality(terminal.rsrq.get(terminal.serving_cell_id, 0))
        self.quality.set_terminal_quality(terminal.terminal_id, terminal.qoe, terminal.qos)

    def _update_cell_quality(self):
        """Aggregate terminal samples per serving cell; idle cells have no sample"""
        per_cell: Dict[int, List[SimulatedTerminal]] = {}
        for terminal in self.terminals.values():
            per_cell.setdefault(terminal.serving_cell_id, []).append(terminal)

        self.quality.cell_samples.clear()
        for cell_id, members in per_cell.items():
            self.quality.set_cell_quality(
                cell_id,
                float(np.mean([t.qoe for t in members])),
                float(np.mean([t.qos for t in members]))
            )

    def _reportable_neighbours(self, terminal: SimulatedTerminal) -> List[NeighbourReport]:
        """
        Neighbours satisfying event A4 for at least the time-to-trigger.

        Neighbours are only reported while the serving cell is below the
        serving-cell threshold.
        """
        handover_config = self.config.handover
        now = self.env.now
        serving_rsrq = terminal.rsrq.get(terminal.serving_cell_id, RSRQ_MIN)

        reports = []
        for cell_id, rsrq in terminal.rsrq.items():
            if cell_id == terminal.serving_cell_id:
                continue
            if rsrq > handover_config.a4_threshold:
                since = terminal.a4_since.setdefault(cell_id, now)
                if (serving_rsrq < handover_config.serving_cell_threshold
                        and now - since >= handover_config.time_to_trigger):
                    reports.append(NeighbourReport(cell_id=cell_id, rsrq=rsrq))
            else:
                terminal.a4_since.pop(cell_id, None)
        return reports

    def _terminal_process(self, terminal: SimulatedTerminal):
        """Mobility and measurement reporting of one terminal"""
        interval = self.config.handover.report_interval

        while True:
            terminal.move(interval, self.corridor_length)
            self._measure(terminal)
            self._update_terminal_quality(terminal)

            if not self.control_plane.in_handover(terminal.terminal_id):
                neighbours = self._reportable_neighbours(terminal)
                self._measurement_id += 1
                self.algorithm.report_measurement(
                    terminal.terminal_id,
                    terminal.rsrq.get(terminal.serving_cell_id, RSRQ_MIN),
                    self._measurement_id,
                    neighbours,
                    has_neighbour_results=bool(neighbours)
                )

            yield self.env.timeout(interval)

    def _quality_collection_process(self):
        """Periodic cell-quality aggregation and time series recording"""
        while True:
            self._update_cell_quality()
            if self.terminals:
                self.metrics.record_value('mean_terminal_qoe', self.env.now,
                                          float(np.mean([t.qoe for t in self.terminals.values()])))
                self.metrics.record_value('mean_terminal_qos', self.env.now,
                                          float(np.mean([t.qos for t in self.terminals.values()])))
                for terminal in self.terminals.values():
                    self.metrics.record_value(f'serving_cell_{terminal.terminal_id}',
                                              self.env.now, terminal.serving_cell_id)
            yield self.env.timeout(self.config.handover.report_interval)

    def run(self) -> Dict[str, Any]:
        """
        Run the simulation

        Returns:
            Dictionary containing simulation results and metrics
        """
        logger.info(f"Starting simulation for {self.config.simulation_time} seconds")

        self.setup_network()
        self.env.process(self._quality_collection_process())
        for terminal in self.terminals.values():
            self.env.process(self._terminal_process(terminal))

        self.running = True
        try:
            self.env.run(until=self.config.simulation_time)
        except Exception as e:
            logger.error(f"Simulation error: {e}")
            raise
        finally:
            self.running = False

        logger.info("Simulation completed")
        return self._collect_results()

    def _collect_results(self) -> Dict[str, Any]:
        """Collect and compile simulation results"""
        return {
            'config': asdict(self.config),
            'metrics': self.metrics.get_summary(),
            'network_summary': {
                'num_cells': len(self.cells),
                'num_terminals': len(self.terminals),
                'tracked_terminals': len(self.algorithm.store),
                'total_handovers': len(self.metrics.handover_events),
                'final_serving_cells': {tid: t.serving_cell_id for tid, t in self.terminals.items()}
            }
        }

    def save_results(self, results: Dict[str, Any], filename: str = None):
        """Save simulation results to the output directory"""
        if filename is None:
            filename = f"simulation_results_{int(self.env.now)}.json"

        filepath = f"{self.config.output_directory}/{filename}"

        try:
            with open(filepath, 'w') as f:
                json.dump(results, f, indent=2, default=str)
            logger.info(f"Results saved to {filepath}")
        except IOError as e:
            logger.error(f"Failed to save results: {e}")
            raise

    def get_current_state(self) -> Dict[str, Any]:
        """Get current simulation state"""
        return {
            'time': self.env.now,
            'running': self.running,
            'positions': {tid: t.position for tid, t in self.terminals.items()},
            'connections': {tid: t.serving_cell_id for tid, t in self.terminals.items()},
            'active_handovers': list(self.control_plane.active_handovers)
        }
