"""
Metrics Collection System for Handover Evaluation

This module collects handover decisions, executed handovers and quality
time series, and turns them into summary statistics and exports.
"""

import json
import logging
import os
from collections import Counter, defaultdict
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..mobility.handover import HandoverDecision

logger = logging.getLogger(__name__)

PING_PONG_WINDOW = 5.0  # seconds


@dataclass
class DecisionMetric:
    """Outcome of one handover evaluation"""
    timestamp: float
    terminal_id: int
    serving_cell_id: int
    reason: str
    target_cell_id: Optional[int]
    best_cell_id: Optional[int]
    best_score: Optional[float]
    serving_score: Optional[float]
    num_candidates: int


@dataclass
class CandidateMetric:
    """Score of one candidate cell in one evaluation"""
    timestamp: float
    terminal_id: int
    cell_id: int
    serving: bool
    rsrq: float
    qoe: float
    qos: float
    score: float


@dataclass
class HandoverMetric:
    """Executed handover"""
    timestamp: float
    terminal_id: int
    source_cell_id: int
    target_cell_id: int
    duration: float
    success: bool
    ping_pong: bool = False


class MetricsCollector:
    """
    Metrics collection for handover decision analysis
    """

    def __init__(self):
        self.decisions: List[DecisionMetric] = []
        self.candidate_scores: List[CandidateMetric] = []
        self.handover_events: List[HandoverMetric] = []

        self.counters = {
            'total_evaluations': 0,
            'total_triggers': 0,
            'total_handovers': 0,
            'successful_handovers': 0,
            'failed_handovers': 0,
            'ping_pong_handovers': 0
        }
        self.reason_counts: Counter = Counter()

        # metric_name -> [(time, value), ...]
        self.time_series = defaultdict(list)

        logger.info("Metrics Collector initialized")

    def record_decision(self, decision: HandoverDecision):
        """Record the outcome of a handover evaluation"""
        best = decision.best_candidate
        serving = next((c for c in decision.candidates if c.serving), None)

        self.decisions.append(DecisionMetric(
            timestamp=decision.timestamp,
            terminal_id=decision.terminal_id,
            serving_cell_id=decision.serving_cell_id,
            reason=decision.reason.value,
            target_cell_id=decision.target_cell_id,
            best_cell_id=best.cell_id if best else None,
            best_score=best.score if best else None,
            serving_score=serving.score if serving else None,
            num_candidates=len(decision.candidates)
        ))
        for c in decision.candidates:
            self.candidate_scores.append(CandidateMetric(
                timestamp=decision.timestamp,
                terminal_id=decision.terminal_id,
                cell_id=c.cell_id,
                serving=c.serving,
                rsrq=c.rsrq,
                qoe=c.qoe,
                qos=c.qos,
                score=c.score
            ))

        self.counters['total_evaluations'] += 1
        self.reason_counts[decision.reason.value] += 1
        if decision.triggered:
            self.counters['total_triggers'] += 1

    def record_handover(self, timestamp: float, terminal_id: int, source_cell_id: int,
                        target_cell_id: int, duration: float, success: bool = True) -> HandoverMetric:
        """Record an executed handover"""
        ping_pong = success and self.is_ping_pong(timestamp, terminal_id,
                                                  source_cell_id, target_cell_id)
        metric = HandoverMetric(
            timestamp=timestamp,
            terminal_id=terminal_id,
            source_cell_id=source_cell_id,
            target_cell_id=target_cell_id,
            duration=duration,
            success=success,
            ping_pong=ping_pong
        )
        self.handover_events.append(metric)

        self.counters['total_handovers'] += 1
        if success:
            self.counters['successful_handovers'] += 1
        else:
            self.counters['failed_handovers'] += 1
        if ping_pong:
            self.counters['ping_pong_handovers'] += 1
        return metric

    def is_ping_pong(self, timestamp: float, terminal_id: int, source_cell_id: int,
                     target_cell_id: int) -> bool:
        """Check for a recent successful handover in the opposite direction"""
        cutoff_time = timestamp - PING_PONG_WINDOW

        for event in reversed(self.handover_events):
            if event.timestamp < cutoff_time:
                break
            if (event.terminal_id == terminal_id and
                    event.source_cell_id == target_cell_id and
                    event.target_cell_id == source_cell_id and
                    event.success):
                return True
        return False

    def record_value(self, metric_name: str, timestamp: float, value: float):
        self.time_series[metric_name].append((timestamp, value))

    def get_decision_statistics(self) -> Dict[str, Any]:
        """Calculate decision statistics"""
        total = self.counters['total_evaluations']
        stats = {
            'total_evaluations': total,
            'total_triggers': self.counters['total_triggers'],
            'trigger_rate': self.counters['total_triggers'] / total if total else 0.0,
            'reasons': dict(self.reason_counts)
        }

        best_scores = [d.best_score for d in self.decisions if d.best_score is not None]
        if best_scores:
            stats.update({
                'mean_best_score': float(np.mean(best_scores)),
                'max_best_score': float(np.max(best_scores)),
                'min_best_score': float(np.min(best_scores))
            })
        return stats

    def get_handover_statistics(self) -> Dict[str, Any]:
        """Calculate handover statistics"""
        if not self.handover_events:
            return {}

        total = len(self.handover_events)
        successful = [h for h in self.handover_events if h.success]
        stats = {
            'total_handovers': total,
            'successful_handovers': len(successful),
            'failed_handovers': total - len(successful),
            'success_rate': len(successful) / total,
            'ping_pong_handovers': self.counters['ping_pong_handovers'],
            'ping_pong_rate': self.counters['ping_pong_handovers'] / total
        }

        if successful:
            durations = [h.duration for h in successful]
            stats.update({
                'mean_handover_duration': float(np.mean(durations)),
                'max_handover_duration': float(np.max(durations))
            })
        return stats

    def get_summary(self) -> Dict[str, Any]:
        """Get comprehensive summary"""
        return {
            'counters': self.counters.copy(),
            'decision_statistics': self.get_decision_statistics(),
            'handover_statistics': self.get_handover_statistics(),
            'time_series_lengths': {name: len(data) for name, data in self.time_series.items()}
        }

    def decisions_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(d) for d in self.decisions],
                            columns=list(DecisionMetric.__dataclass_fields__))

    def candidates_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(c) for c in self.candidate_scores],
                            columns=list(CandidateMetric.__dataclass_fields__))

    def handovers_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(h) for h in self.handover_events],
                            columns=list(HandoverMetric.__dataclass_fields__))

    def export_to_csv(self, output_dir: str = "results"):
        """Export metrics to CSV files"""
        os.makedirs(output_dir, exist_ok=True)

        if self.decisions:
            self.decisions_dataframe().to_csv(f"{output_dir}/decision_metrics.csv", index=False)
        if self.candidate_scores:
            self.candidates_dataframe().to_csv(f"{output_dir}/candidate_scores.csv", index=False)
        if self.handover_events:
            self.handovers_dataframe().to_csv(f"{output_dir}/handover_metrics.csv", index=False)

        for metric_name, data in self.time_series.items():
            if data:
                ts_df = pd.DataFrame(data, columns=['timestamp', metric_name])
                ts_df.to_csv(f"{output_dir}/timeseries_{metric_name}.csv", index=False)

        logger.info(f"Metrics exported to {output_dir}/")

    def save_summary_json(self, filename: str = "simulation_summary.json"):
        """Save summary to JSON file"""
        with open(filename, 'w') as f:
            json.dump(self.get_summary(), f, indent=2, default=str)

        logger.info(f"Summary saved to {filename}")

    def reset(self):
        """Reset all collected metrics"""
        self.decisions.clear()
        self.candidate_scores.clear()
        self.handover_events.clear()
        self.time_series.clear()
        self.reason_counts.clear()
        for key in self.counters:
            self.counters[key] = 0
