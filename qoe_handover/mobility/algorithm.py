"""
Measurement-report ingestion for the multi-attribute handover algorithm.

The algorithm is the sole entry point of the decision core: every decoded
measurement report runs one handover evaluation for the reporting terminal
against the neighbour measurements known so far, and only then refreshes
them with the report's own neighbour results. A terminal's first report
therefore never triggers a handover.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..core.config import HandoverConfig
from ..core.errors import MalformedReportError
from ..qos.providers import QualitySampleProvider
from .handover import DecisionEvaluator, DecisionReason, HandoverDecision, HandoverTrigger
from .measurements import MeasurementStore, NO_CELL

logger = logging.getLogger(__name__)


@dataclass
class NeighbourReport:
    """Neighbour cell entry of a measurement report"""
    cell_id: int
    rsrq: Optional[int]


@dataclass
class MeasurementReport:
    """Decoded measurement report of a terminal"""
    terminal_id: int
    serving_cell_rsrq: int
    measurement_id: int
    neighbours: List[NeighbourReport] = field(default_factory=list)
    has_neighbour_results: bool = True
    serving_cell_id: Optional[int] = None


class MultiAttributeHandoverAlgorithm:
    """
    Handover algorithm combining RSRQ, QoE and QoS.

    Owns the measurement store; the evaluator only reads it. The serving
    cell of a reporting terminal is taken from the report itself or, when
    the report does not carry it, from ``serving_cell_resolver``.
    """

    def __init__(self, provider: QualitySampleProvider, trigger: HandoverTrigger,
                 clock: Callable[[], float], config: Optional[HandoverConfig] = None,
                 serving_cell_resolver: Optional[Callable[[int], Optional[int]]] = None,
                 neighbour_filter: Optional[Callable[[int], bool]] = None,
                 start_time: float = 0.0,
                 decision_listener: Optional[Callable[[HandoverDecision], None]] = None):
        self.config = config or HandoverConfig()
        self.config.validate()
        self.store = MeasurementStore()
        self.serving_cell_resolver = serving_cell_resolver
        self.decision_listener = decision_listener
        self.evaluator = DecisionEvaluator(
            store=self.store,
            provider=provider,
            trigger=trigger,
            clock=clock,
            config=self.config,
            start_time=start_time,
            neighbour_filter=neighbour_filter
        )

        logger.info(f"Multi-attribute handover algorithm initialized "
                    f"(weights={self.config.weights}, floor={self.config.score_floor}, "
                    f"warm-up={self.config.warmup_delay}s)")

    def report_measurement(self, terminal_id: int, serving_cell_rsrq: int,
                           measurement_id: int, neighbours: Sequence[NeighbourReport],
                           has_neighbour_results: bool = True,
                           serving_cell_id: Optional[int] = None) -> HandoverDecision:
        """
        Process a measurement report from a terminal.

        The evaluation sees the neighbour measurements of earlier reports;
        this report's neighbours are stored afterwards. A terminal whose
        serving cell cannot be resolved is not evaluated.

        Raises:
            MalformedReportError: If a reported neighbour lacks its RSRQ
        """
        neighbours = list(neighbours) if has_neighbour_results else []
        for neighbour in neighbours:
            if neighbour.rsrq is None:
                raise MalformedReportError(
                    f"RSRQ measurement is missing from cell {neighbour.cell_id} "
                    f"(RNTI {terminal_id}, measId {measurement_id})")

        if serving_cell_id is None:
            serving_cell_id = self._resolve_serving_cell(terminal_id)

        if serving_cell_id == NO_CELL:
            logger.debug(f"Skipping handover evaluation for RNTI {terminal_id}: "
                         f"serving cell unknown")
            decision = HandoverDecision(timestamp=self.evaluator.clock(), terminal_id=terminal_id,
                                        serving_cell_id=NO_CELL,
                                        reason=DecisionReason.UNKNOWN_SERVING_CELL)
        else:
            decision = self.evaluator.evaluate(terminal_id, serving_cell_id, serving_cell_rsrq)

        if neighbours:
            for neighbour in neighbours:
                self.store.update_neighbour(terminal_id, neighbour.cell_id, neighbour.rsrq)
        elif has_neighbour_results:
            logger.warning(f"Measurement report {measurement_id} from RNTI {terminal_id} "
                           f"received without measurement results from neighbouring cells")
        else:
            logger.debug(f"Serving-cell only report {measurement_id} from RNTI {terminal_id}")

        if self.decision_listener is not None:
            self.decision_listener(decision)
        return decision

    def ingest(self, report: MeasurementReport) -> HandoverDecision:
        """Process a decoded ``MeasurementReport``"""
        return self.report_measurement(
            report.terminal_id,
            report.serving_cell_rsrq,
            report.measurement_id,
            report.neighbours,
            has_neighbour_results=report.has_neighbour_results,
            serving_cell_id=report.serving_cell_id
        )

    def remove_terminal(self, terminal_id: int) -> bool:
        """Forget a disconnected terminal"""
        removed = self.store.remove_terminal(terminal_id)
        if removed:
            logger.info(f"RNTI {terminal_id} removed from handover algorithm")
        return removed

    def _resolve_serving_cell(self, terminal_id: int) -> int:
        if self.serving_cell_resolver is None:
            return NO_CELL
        cell_id = self.serving_cell_resolver(terminal_id)
        return NO_CELL if cell_id is None else cell_id
