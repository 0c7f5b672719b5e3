"""
Visualization utilities for handover simulations.

This module plots candidate scores, serving-cell timelines and decision
outcomes collected by the MetricsCollector.
"""

import logging
import os
from typing import List, Optional

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .metrics import MetricsCollector

logger = logging.getLogger(__name__)


class NetworkVisualizer:
    """Visualization for handover simulation results."""

    def __init__(self, style: str = 'whitegrid', dpi: int = 150):
        sns.set_theme(style=style)
        self.dpi = dpi

    def create_comprehensive_report(self, metrics: MetricsCollector,
                                    output_dir: str = "./results/") -> List[str]:
        """Create all plots, returning the files written"""
        os.makedirs(output_dir, exist_ok=True)
        created = [
            self.plot_candidate_scores(metrics, output_dir),
            self.plot_serving_cells(metrics, output_dir),
            self.plot_decision_outcomes(metrics, output_dir),
            self.plot_quality_over_time(metrics, output_dir)
        ]
        created = [path for path in created if path]
        logger.info(f"Visualization report created in {output_dir} ({len(created)} plots)")
        return created

    def _save(self, fig, output_dir: str, name: str) -> str:
        path = os.path.join(output_dir, name)
        fig.tight_layout()
        fig.savefig(path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)
        return path

    def plot_candidate_scores(self, metrics: MetricsCollector, output_dir: str,
                              terminal_id: Optional[int] = None) -> Optional[str]:
        """Composite score of every candidate cell over time"""
        df = metrics.candidates_dataframe()
        if df.empty:
            return None
        if terminal_id is None:
            terminal_id = int(df['terminal_id'].iloc[0])
        df = df[df['terminal_id'] == terminal_id]

        fig, ax = plt.subplots(figsize=(10, 6))
        sns.lineplot(data=df, x='timestamp', y='score', hue='cell_id',
                     style='serving', markers=True, palette='tab10', ax=ax)

        trigger_times = [d.timestamp for d in metrics.decisions
                         if d.terminal_id == terminal_id and d.reason == 'triggered']
        for t in trigger_times:
            ax.axvline(t, color='red', alpha=0.3, linestyle='--')

        ax.set_title(f'Candidate Scores (RNTI {terminal_id})', fontsize=14, fontweight='bold')
        ax.set_xlabel('Time (s)')
        ax.set_ylabel('Composite score')
        return self._save(fig, output_dir, f"candidate_scores_rnti_{terminal_id}.png")

    def plot_serving_cells(self, metrics: MetricsCollector, output_dir: str) -> Optional[str]:
        """Serving cell of every terminal over time"""
        frames = []
        for name, data in metrics.time_series.items():
            if name.startswith('serving_cell_') and data:
                frame = pd.DataFrame(data, columns=['timestamp', 'cell_id'])
                frame['terminal'] = name[len('serving_cell_'):]
                frames.append(frame)
        if not frames:
            return None

        df = pd.concat(frames, ignore_index=True)
        fig, ax = plt.subplots(figsize=(10, 6))
        sns.lineplot(data=df, x='timestamp', y='cell_id', hue='terminal',
                     drawstyle='steps-post', ax=ax)

        handovers = metrics.handovers_dataframe()
        if not handovers.empty:
            ax.scatter(handovers['timestamp'], handovers['target_cell_id'],
                       c='red', marker='x', s=60, label='handover', zorder=3)
        ax.set_title('Serving Cell per Terminal', fontsize=14, fontweight='bold')
        ax.set_xlabel('Time (s)')
        ax.set_ylabel('Cell ID')
        ax.legend()
        return self._save(fig, output_dir, "serving_cells.png")

    def plot_decision_outcomes(self, metrics: MetricsCollector, output_dir: str) -> Optional[str]:
        """Histogram of evaluation outcomes"""
        df = metrics.decisions_dataframe()
        if df.empty:
            return None

        fig, ax = plt.subplots(figsize=(8, 5))
        sns.countplot(data=df, x='reason', order=df['reason'].value_counts().index, ax=ax)
        ax.set_title('Handover Evaluation Outcomes', fontsize=14, fontweight='bold')
        ax.set_xlabel('Outcome')
        ax.set_ylabel('Evaluations')
        ax.tick_params(axis='x', rotation=30)
        return self._save(fig, output_dir, "decision_outcomes.png")

    def plot_quality_over_time(self, metrics: MetricsCollector, output_dir: str) -> Optional[str]:
        """Mean terminal QoE and QoS over time"""
        qoe = metrics.time_series.get('mean_terminal_qoe')
        qos = metrics.time_series.get('mean_terminal_qos')
        if not qoe:
            return None

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 8), sharex=True)
        qoe_df = pd.DataFrame(qoe, columns=['timestamp', 'mos'])
        ax1.plot(qoe_df['timestamp'], qoe_df['mos'], linewidth=2)
        ax1.set_title('Mean Terminal QoE (MOS)', fontsize=14, fontweight='bold')
        ax1.set_ylabel('MOS')
        ax1.set_ylim(1, 5)

        if qos:
            qos_df = pd.DataFrame(qos, columns=['timestamp', 'pdr'])
            ax2.plot(qos_df['timestamp'], qos_df['pdr'], color='green', linewidth=2)
        ax2.set_title('Mean Terminal QoS (PDR)', fontsize=14, fontweight='bold')
        ax2.set_xlabel('Time (s)')
        ax2.set_ylabel('PDR')
        ax2.set_ylim(0, 1)
        return self._save(fig, output_dir, "quality_over_time.png")
