"""
Simulated control plane executing approved handovers.

Handovers run through preparation, execution and completion phases on the
SimPy clock; the terminal keeps its serving cell until completion.
"""

import logging
from typing import Callable, Dict, Optional

import simpy

from ..mobility.handover import HandoverTrigger
from ..utils.metrics import MetricsCollector

logger = logging.getLogger(__name__)


class SimulatedControlPlane(HandoverTrigger):
    """
    Handover execution for simulated terminals.

    ``get_serving_cell`` and ``set_serving_cell`` give access to the
    terminals' connection state; ``cell_exists`` decides whether a target
    cell can be joined (unknown targets fail at completion).
    """

    def __init__(self, env: simpy.Environment,
                 get_serving_cell: Callable[[int], Optional[int]],
                 set_serving_cell: Callable[[int, int], None],
                 cell_exists: Callable[[int], bool],
                 metrics: Optional[MetricsCollector] = None,
                 preparation_time: float = 0.05,
                 execution_time: float = 0.02,
                 completion_time: float = 0.01):
        self.env = env
        self.get_serving_cell = get_serving_cell
        self.set_serving_cell = set_serving_cell
        self.cell_exists = cell_exists
        self.metrics = metrics

        self.preparation_time = preparation_time
        self.execution_time = execution_time
        self.completion_time = completion_time

        # terminal id -> handover state
        self.active_handovers: Dict[int, Dict] = {}

    def trigger_handover(self, terminal_id: int, target_cell_id: int):
        """Start handover execution, unless one is already running for the terminal"""
        if terminal_id in self.active_handovers:
            logger.warning(f"RNTI {terminal_id} already in handover, ignoring new request")
            return

        self.active_handovers[terminal_id] = {
            'source_cell': self.get_serving_cell(terminal_id),
            'target_cell': target_cell_id,
            'start_time': self.env.now,
            'phase': 'preparation'
        }
        logger.info(f"Initiated handover for RNTI {terminal_id}: "
                    f"cell {self.active_handovers[terminal_id]['source_cell']} -> {target_cell_id}")

        self.env.process(self._execute_handover(terminal_id))

    def in_handover(self, terminal_id: int) -> bool:
        return terminal_id in self.active_handovers

    def _execute_handover(self, terminal_id: int):
        state = self.active_handovers[terminal_id]

        state['phase'] = 'preparation'
        yield self.env.timeout(self.preparation_time)

        state['phase'] = 'execution'
        yield self.env.timeout(self.execution_time)

        state['phase'] = 'completion'
        yield self.env.timeout(self.completion_time)

        success = self.cell_exists(state['target_cell'])
        self._complete_handover(terminal_id, success)

    def _complete_handover(self, terminal_id: int, success: bool):
        state = self.active_handovers.pop(terminal_id)
        duration = self.env.now - state['start_time']

        if success:
            self.set_serving_cell(terminal_id, state['target_cell'])

        if self.metrics is not None:
            self.metrics.record_handover(
                timestamp=self.env.now,
                terminal_id=terminal_id,
                source_cell_id=state['source_cell'],
                target_cell_id=state['target_cell'],
                duration=duration,
                success=success
            )

        logger.info(f"Handover {'completed' if success else 'failed'} for RNTI {terminal_id} "
                    f"in {duration * 1000:.1f}ms")
