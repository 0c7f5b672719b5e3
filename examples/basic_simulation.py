#!/usr/bin/env python3
"""
Basic Handover Decision Example

This script feeds a few measurement reports to the multi-attribute handover
algorithm and then runs a short corridor simulation.
"""

import logging
import os
import sys

import simpy

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from qoe_handover.core.config import SimulationConfig
from qoe_handover.mobility import (MultiAttributeHandoverAlgorithm, NeighbourReport,
                                   RecordingHandoverTrigger)
from qoe_handover.qos import InMemoryQualityProvider
from qoe_handover.simulation import SimulationEngine


def main():
    """Run basic handover example"""

    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    # Single decision: terminal 7 served by cell 1, neighbour cell 2 is busy and good
    env = simpy.Environment(initial_time=10.0)
    quality = InMemoryQualityProvider()
    quality.set_cell_quality(2, qoe=4.5, qos=0.9)
    trigger = RecordingHandoverTrigger()

    algorithm = MultiAttributeHandoverAlgorithm(provider=quality, trigger=trigger,
                                                clock=lambda: env.now)
    # The first report only registers the neighbour, the second one is evaluated against it
    for measurement_id in (1, 2):
        decision = algorithm.report_measurement(
            terminal_id=7, serving_cell_rsrq=10, measurement_id=measurement_id,
            neighbours=[NeighbourReport(cell_id=2, rsrq=30)], serving_cell_id=1
        )
        logger.info(f"Report {measurement_id}: {decision.reason.value}")
    for candidate in decision.candidates:
        logger.info(f"  cell {candidate.cell_id}: score {candidate.score:.2f}")
    logger.info(f"Decision: {decision.reason.value}, handovers sent: {trigger.commands}")

    # Corridor simulation
    config = SimulationConfig(simulation_time=30.0, random_seed=42, num_cells=3,
                              num_terminals=3, output_directory="examples/results")
    engine = SimulationEngine(config)
    results = engine.run()

    handover_stats = results['metrics']['handover_statistics']
    logger.info(f"Handovers: {handover_stats.get('total_handovers', 0)}")
    logger.info(f"Final serving cells: {results['network_summary']['final_serving_cells']}")

    os.makedirs(config.output_directory, exist_ok=True)
    engine.save_results(results, "basic_simulation_results.json")
    engine.metrics.export_to_csv(config.output_directory)

    logger.info(f"Results saved to {config.output_directory}/")


if __name__ == "__main__":
    main()
