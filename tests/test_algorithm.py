"""
Tests for measurement-report ingestion
"""

import unittest
import sys
import os

import simpy

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from qoe_handover.core.config import HandoverConfig
from qoe_handover.core.errors import HandoverError, MalformedReportError
from qoe_handover.mobility import (DecisionReason, MeasurementReport,
                                   MultiAttributeHandoverAlgorithm, NeighbourReport,
                                   RecordingHandoverTrigger)
from qoe_handover.qos.providers import InMemoryQualityProvider


class TestMultiAttributeHandoverAlgorithm(unittest.TestCase):
    """Test cases for report ingestion and evaluation"""

    def setUp(self):
        self.env = simpy.Environment(initial_time=10.0)
        self.quality = InMemoryQualityProvider()
        self.quality.set_cell_quality(2, qoe=4.5, qos=0.9)
        self.quality.set_terminal_quality(7, qoe=0.0)
        self.trigger = RecordingHandoverTrigger()
        self.serving_cells = {7: 1}
        self.decisions = []
        self.algorithm = MultiAttributeHandoverAlgorithm(
            provider=self.quality,
            trigger=self.trigger,
            clock=lambda: self.env.now,
            serving_cell_resolver=self.serving_cells.get,
            decision_listener=self.decisions.append
        )

    def test_first_report_never_triggers(self):
        """A terminal without earlier neighbour measurements is not evaluated"""
        decision = self.algorithm.report_measurement(
            7, 10, 1, [NeighbourReport(cell_id=2, rsrq=30)], serving_cell_id=1)

        self.assertEqual(decision.reason, DecisionReason.UNKNOWN_TERMINAL)
        self.assertEqual(self.trigger.commands, [])
        self.assertEqual(self.algorithm.store.get_neighbours(7), {2: 30})

    def test_second_report_triggers(self):
        self.algorithm.report_measurement(7, 10, 1, [NeighbourReport(cell_id=2, rsrq=30)])

        decision = self.algorithm.report_measurement(7, 10, 2, [NeighbourReport(cell_id=2, rsrq=30)])

        self.assertTrue(decision.triggered)
        self.assertEqual(self.trigger.commands, [(7, 2)])

    def test_evaluation_uses_earlier_measurements(self):
        """A report's own neighbour results only count from the next report on"""
        self.algorithm.report_measurement(7, 10, 1, [NeighbourReport(cell_id=2, rsrq=0)])

        decision = self.algorithm.report_measurement(7, 10, 2, [NeighbourReport(cell_id=2, rsrq=30)])

        self.assertEqual(decision.reason, DecisionReason.SERVING_CELL_BEST)
        self.assertEqual(decision.candidates[0].rsrq, 0)
        self.assertEqual(self.algorithm.store.get_neighbours(7), {2: 30})

    def test_serving_cell_from_report(self):
        self.algorithm.report_measurement(8, 10, 1, [NeighbourReport(cell_id=2, rsrq=30)],
                                          serving_cell_id=3)

        decision = self.algorithm.report_measurement(8, 10, 2, [], has_neighbour_results=False,
                                                     serving_cell_id=3)

        self.assertEqual(decision.serving_cell_id, 3)
        self.assertEqual(self.trigger.commands, [(8, 2)])

    def test_unresolved_serving_cell(self):
        """Terminals unknown to the resolver are not evaluated"""
        self.algorithm.report_measurement(8, 10, 1, [NeighbourReport(cell_id=2, rsrq=30)])

        decision = self.algorithm.report_measurement(8, 10, 2, [NeighbourReport(cell_id=2, rsrq=30)])

        self.assertEqual(decision.reason, DecisionReason.UNKNOWN_SERVING_CELL)
        self.assertEqual(decision.timestamp, 10.0)
        self.assertEqual(self.trigger.commands, [])
        self.assertEqual(self.algorithm.store.get_neighbours(8), {2: 30})

    def test_no_resolver(self):
        algorithm = MultiAttributeHandoverAlgorithm(self.quality, self.trigger,
                                                    clock=lambda: self.env.now)
        algorithm.report_measurement(7, 10, 1, [NeighbourReport(2, 30)])

        decision = algorithm.report_measurement(7, 10, 2, [NeighbourReport(2, 30)])

        self.assertEqual(decision.reason, DecisionReason.UNKNOWN_SERVING_CELL)
        self.assertEqual(self.trigger.commands, [])

    def test_missing_rsrq_is_rejected(self):
        """A malformed report leaves the store untouched"""
        neighbours = [NeighbourReport(cell_id=3, rsrq=20), NeighbourReport(cell_id=2, rsrq=None)]

        with self.assertRaises(MalformedReportError) as ctx:
            self.algorithm.report_measurement(7, 10, 4, neighbours)

        self.assertIsInstance(ctx.exception, HandoverError)
        self.assertIn("cell 2", str(ctx.exception))
        self.assertIsNone(self.algorithm.store.get_neighbours(7))
        self.assertEqual(self.trigger.commands, [])
        self.assertEqual(self.decisions, [])

    def test_empty_neighbour_results_warns(self):
        with self.assertLogs('qoe_handover.mobility.algorithm', level='WARNING') as logs:
            decision = self.algorithm.report_measurement(7, 10, 5, [])

        self.assertIn("without measurement results", logs.output[0])
        self.assertEqual(decision.reason, DecisionReason.UNKNOWN_TERMINAL)

    def test_serving_only_report_evaluates_known_terminal(self):
        """Known terminals are evaluated even without neighbour results"""
        self.algorithm.report_measurement(7, 25, 1, [NeighbourReport(2, 20)])
        self.trigger.commands.clear()

        decision = self.algorithm.report_measurement(7, 10, 2, [], has_neighbour_results=False)

        self.assertTrue(decision.triggered)
        self.assertEqual(decision.target_cell_id, 2)

    def test_ingest(self):
        first = self.algorithm.ingest(MeasurementReport(
            terminal_id=7, serving_cell_rsrq=10, measurement_id=3,
            neighbours=[NeighbourReport(2, 30)]))
        second = self.algorithm.ingest(MeasurementReport(
            terminal_id=7, serving_cell_rsrq=10, measurement_id=4,
            has_neighbour_results=False, serving_cell_id=1))

        self.assertEqual(first.reason, DecisionReason.UNKNOWN_TERMINAL)
        self.assertTrue(second.triggered)
        self.assertEqual(self.decisions, [first, second])

    def test_listener_sees_every_decision(self):
        self.algorithm.report_measurement(7, 10, 1, [])
        self.algorithm.report_measurement(7, 10, 2, [NeighbourReport(2, 30)])
        self.algorithm.report_measurement(7, 10, 3, [NeighbourReport(2, 30)])

        self.assertEqual([d.reason for d in self.decisions],
                         [DecisionReason.UNKNOWN_TERMINAL, DecisionReason.UNKNOWN_TERMINAL,
                          DecisionReason.TRIGGERED])

    def test_warmup(self):
        env = simpy.Environment()
        algorithm = MultiAttributeHandoverAlgorithm(self.quality, self.trigger,
                                                    clock=lambda: env.now)

        decision = algorithm.report_measurement(7, 10, 1, [NeighbourReport(2, 34)],
                                                serving_cell_id=1)

        self.assertEqual(decision.reason, DecisionReason.WARMUP)
        self.assertEqual(algorithm.store.get_neighbours(7), {2: 34})
        self.assertEqual(self.trigger.commands, [])

    def test_remove_terminal(self):
        self.algorithm.report_measurement(7, 10, 1, [NeighbourReport(2, 30)])

        self.assertTrue(self.algorithm.remove_terminal(7))
        self.assertFalse(self.algorithm.remove_terminal(7))
        self.assertNotIn(7, self.algorithm.store)

    def test_invalid_config_rejected(self):
        for config in (HandoverConfig(serving_cell_threshold=40),
                       HandoverConfig(qoe_satisfaction_ceiling=6.0)):
            with self.subTest(config=config):
                with self.assertRaises(ValueError):
                    MultiAttributeHandoverAlgorithm(self.quality, self.trigger,
                                                    clock=lambda: self.env.now, config=config)


if __name__ == '__main__':
    unittest.main()
