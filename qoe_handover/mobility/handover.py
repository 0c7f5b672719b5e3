"""
Handover Decision Logic for QoE/QoS-aware Mobility Management

This module implements the multi-attribute handover decision: every
candidate cell is scored with a weighted sum of its radio quality (RSRQ),
the application experience seen on it (QoE, MOS) and its delivery quality
(QoS, PDR). A handover is triggered towards the best-scoring cell when it is
not the serving cell and its score clears an absolute floor.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..core.config import HandoverConfig
from ..qos.providers import QualitySample, QualitySampleProvider
from .measurements import MeasurementStore, NO_CELL

logger = logging.getLogger(__name__)


class DecisionReason(Enum):
    """Outcome of a single handover evaluation"""
    WARMUP = "warmup"                              # Warm-up delay not elapsed
    UNKNOWN_TERMINAL = "unknown_terminal"          # No neighbour measurements yet
    UNKNOWN_SERVING_CELL = "unknown_serving_cell"  # Set by the algorithm, never by evaluate()
    SATISFIED = "satisfied"                        # Terminal QoE already good
    SERVING_CELL_BEST = "serving_cell_best"        # Winner is the serving cell
    BELOW_FLOOR = "below_floor"                    # Winner score under the floor
    OFFSET_NOT_MET = "offset_not_met"              # Winner not far enough ahead
    TRIGGERED = "triggered"


@dataclass
class CandidateCell:
    """Candidate cell of one evaluation"""
    cell_id: int
    rsrq: float
    qoe: float
    qos: float
    score: float = 0.0
    serving: bool = False


@dataclass
class HandoverDecision:
    """Result of one handover evaluation"""
    timestamp: float
    terminal_id: int
    serving_cell_id: int
    reason: DecisionReason
    target_cell_id: Optional[int] = None
    candidates: List[CandidateCell] = field(default_factory=list)

    @property
    def triggered(self) -> bool:
        return self.reason is DecisionReason.TRIGGERED

    @property
    def best_candidate(self) -> Optional[CandidateCell]:
        if not self.candidates:
            return None
        return select_best_candidate(self.candidates)


class HandoverTrigger(ABC):
    """Control-plane sink executing approved handovers"""

    @abstractmethod
    def trigger_handover(self, terminal_id: int, target_cell_id: int):
        """Start the handover of ``terminal_id`` towards ``target_cell_id``"""


class RecordingHandoverTrigger(HandoverTrigger):
    """Trigger that only records the handovers it is asked to perform"""

    def __init__(self):
        self.commands: List[Tuple[int, int]] = []

    def trigger_handover(self, terminal_id: int, target_cell_id: int):
        self.commands.append((terminal_id, target_cell_id))


def _sample_values(sample: Optional[QualitySample]) -> Tuple[float, float]:
    """Normalize a missing sample, or missing fields, to zero"""
    if sample is None:
        return 0.0, 0.0
    qoe = sample.qoe if sample.qoe is not None else 0.0
    qos = sample.qos if sample.qos is not None else 0.0
    return float(qoe), float(qos)


def score_candidates(candidates: List[CandidateCell], config: HandoverConfig) -> np.ndarray:
    """Compute and store the composite score of every candidate"""
    if not candidates:
        return np.zeros(0)
    attributes = np.array([[c.rsrq, c.qoe, c.qos] for c in candidates], dtype=float)
    weights = np.array([config.rsrq_weight, config.qoe_weight, config.qos_weight])
    scores = attributes @ weights
    for candidate, score in zip(candidates, scores):
        candidate.score = float(score)
    return scores


def select_best_candidate(candidates: List[CandidateCell]) -> CandidateCell:
    """
    Pick the candidate with the strictly greatest score.

    On an exact tie the candidate constructed first wins: neighbours are
    built before the serving cell, so the serving cell only wins a tie it
    has with no neighbour.
    """
    scores = np.array([c.score for c in candidates], dtype=float)
    # argmax returns the first occurrence of the maximum
    return candidates[int(np.argmax(scores))]


class DecisionEvaluator:
    """
    Multi-attribute handover decision for a single terminal.

    The evaluator is stateless across calls: every evaluation reads the
    current neighbour measurements and quality samples, applies the warm-up,
    terminal-state and satisfaction guards, scores all candidates and fires
    the trigger at most once.
    """

    def __init__(self, store: MeasurementStore, provider: QualitySampleProvider,
                 trigger: HandoverTrigger, clock: Callable[[], float],
                 config: Optional[HandoverConfig] = None, start_time: float = 0.0,
                 neighbour_filter: Optional[Callable[[int], bool]] = None):
        self.store = store
        self.provider = provider
        self.trigger = trigger
        self.clock = clock
        self.config = config or HandoverConfig()
        self.start_time = start_time
        self.neighbour_filter = neighbour_filter

    def is_valid_neighbour(self, cell_id: int) -> bool:
        """
        Check whether a neighbour cell may be a handover target.

        Every cell is accepted unless a ``neighbour_filter`` was given.
        Subclasses can override this to add admission rules (e.g. neighbour
        relation tables or closed-access cells).
        """
        if self.neighbour_filter is not None:
            return bool(self.neighbour_filter(cell_id))
        return True

    def build_candidates(self, terminal_id: int, neighbours: dict,
                         serving_cell_id: int, serving_cell_rsrq: int,
                         terminal_sample: Optional[QualitySample]) -> List[CandidateCell]:
        """Neighbours first, in table order, then the serving cell"""
        candidates = []
        for cell_id, rsrq in neighbours.items():
            if not self.is_valid_neighbour(cell_id):
                logger.debug(f"RNTI {terminal_id}: cell {cell_id} rejected as handover target")
                continue
            qoe, qos = _sample_values(self.provider.read_cell_quality(cell_id))
            candidates.append(CandidateCell(cell_id=cell_id, rsrq=rsrq, qoe=qoe, qos=qos))

        # The serving cell is rated with the terminal's own experience
        qoe, qos = _sample_values(terminal_sample)
        candidates.append(CandidateCell(cell_id=serving_cell_id, rsrq=serving_cell_rsrq,
                                        qoe=qoe, qos=qos, serving=True))
        return candidates

    def evaluate(self, terminal_id: int, serving_cell_id: int,
                 serving_cell_rsrq: int) -> HandoverDecision:
        """Evaluate the handover conditions of a terminal"""
        now = self.clock()

        def decision(reason: DecisionReason, **kwargs) -> HandoverDecision:
            return HandoverDecision(timestamp=now, terminal_id=terminal_id,
                                    serving_cell_id=serving_cell_id, reason=reason, **kwargs)

        if now - self.start_time < self.config.warmup_delay:
            return decision(DecisionReason.WARMUP)

        neighbours = self.store.get_neighbours(terminal_id)
        if neighbours is None:
            logger.debug(f"Skipping handover evaluation for RNTI {terminal_id}: "
                         f"no neighbour measurements")
            return decision(DecisionReason.UNKNOWN_TERMINAL)

        terminal_sample = self.provider.read_terminal_quality(terminal_id)
        if (terminal_sample is not None and terminal_sample.qoe is not None
                and terminal_sample.qoe > self.config.qoe_satisfaction_ceiling):
            logger.debug(f"RNTI {terminal_id} satisfied (MOS {terminal_sample.qoe:.2f}), "
                         f"no handover")
            return decision(DecisionReason.SATISFIED)

        candidates = self.build_candidates(terminal_id, neighbours, serving_cell_id,
                                           serving_cell_rsrq, terminal_sample)
        score_candidates(candidates, self.config)
        best = select_best_candidate(candidates)
        serving = candidates[-1]

        if best.cell_id == NO_CELL or best.cell_id == serving_cell_id:
            return decision(DecisionReason.SERVING_CELL_BEST, candidates=candidates)
        if best.score <= self.config.score_floor:
            return decision(DecisionReason.BELOW_FLOOR, candidates=candidates)
        if (self.config.apply_neighbour_offset
                and best.score - serving.score < self.config.neighbour_offset_margin):
            return decision(DecisionReason.OFFSET_NOT_MET, candidates=candidates)

        self.trigger.trigger_handover(terminal_id, best.cell_id)
        self._log_candidates(candidates)
        logger.info(f"Triggering handover -- RNTI: {terminal_id} -- "
                    f"cell {serving_cell_id} -> {best.cell_id}")
        return decision(DecisionReason.TRIGGERED, target_cell_id=best.cell_id,
                        candidates=candidates)

    @staticmethod
    def _log_candidates(candidates: List[CandidateCell]):
        for c in candidates:
            tag = " (serving)" if c.serving else ""
            logger.info(f"Cell {c.cell_id}{tag} -- score {c.score:.3f} -- "
                        f"RSRQ {c.rsrq} -- MOS {c.qoe:.2f} -- PDR {c.qos:.3f}")
