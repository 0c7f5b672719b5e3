"""
Tests for the multi-attribute handover decision.
"""

import unittest
import sys
import os

import simpy

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from qoe_handover.core.config import HandoverConfig
from qoe_handover.mobility.handover import (CandidateCell, DecisionEvaluator, DecisionReason,
                                            RecordingHandoverTrigger, score_candidates,
                                            select_best_candidate)
from qoe_handover.mobility.measurements import MeasurementStore, NO_CELL
from qoe_handover.qos.providers import InMemoryQualityProvider

TERMINAL = 7
SERVING_CELL = 1


class EvaluatorTestCase(unittest.TestCase):
    """Evaluator wired to in-memory collaborators, past the warm-up"""

    def setUp(self):
        self.env = simpy.Environment(initial_time=10.0)
        self.store = MeasurementStore()
        self.quality = InMemoryQualityProvider()
        self.trigger = RecordingHandoverTrigger()
        self.config = HandoverConfig()
        self.evaluator = self.make_evaluator()

    def make_evaluator(self, **kwargs):
        return DecisionEvaluator(self.store, self.quality, self.trigger,
                                 clock=lambda: self.env.now, config=self.config, **kwargs)

    def evaluate(self, serving_cell_rsrq=10):
        return self.evaluator.evaluate(TERMINAL, SERVING_CELL, serving_cell_rsrq)


class TestScenarios(EvaluatorTestCase):
    """Reference scenarios"""

    def setUp(self):
        super().setUp()
        self.store.update_neighbour(TERMINAL, 2, 30)
        self.quality.set_cell_quality(2, qoe=4.5, qos=0.9)

    def test_scenario_a_triggers_handover(self):
        """Good, loaded neighbour beats a poor serving cell"""
        self.quality.set_terminal_quality(TERMINAL, qoe=0.0)

        decision = self.evaluate()

        self.assertEqual(self.trigger.commands, [(TERMINAL, 2)])
        self.assertTrue(decision.triggered)
        self.assertEqual(decision.target_cell_id, 2)

        scores = {c.cell_id: c.score for c in decision.candidates}
        self.assertAlmostEqual(scores[2], 7.89, places=7)
        self.assertAlmostEqual(scores[SERVING_CELL], 2.0, places=7)

    def test_scenario_b_satisfied_terminal_is_left_alone(self):
        self.quality.set_terminal_quality(TERMINAL, qoe=4.0)

        decision = self.evaluate()

        self.assertEqual(self.trigger.commands, [])
        self.assertEqual(decision.reason, DecisionReason.SATISFIED)

    def test_satisfaction_ceiling_is_exclusive(self):
        """A MOS equal to the ceiling still allows a handover"""
        self.quality.set_terminal_quality(TERMINAL, qoe=3.0)

        decision = self.evaluate()

        self.assertTrue(decision.triggered)

    def test_scenario_c_serving_cell_only(self):
        """With every neighbour filtered out only the serving cell remains"""
        self.evaluator = self.make_evaluator(neighbour_filter=lambda cell_id: False)

        decision = self.evaluate(serving_cell_rsrq=34)

        self.assertEqual(decision.reason, DecisionReason.SERVING_CELL_BEST)
        self.assertEqual([c.cell_id for c in decision.candidates], [SERVING_CELL])
        self.assertEqual(self.trigger.commands, [])


class TestGuards(EvaluatorTestCase):
    """Warm-up and terminal-state guards"""

    def test_unknown_terminal(self):
        decision = self.evaluate()

        self.assertEqual(decision.reason, DecisionReason.UNKNOWN_TERMINAL)
        self.assertEqual(decision.candidates, [])
        self.assertEqual(self.trigger.commands, [])

    def test_warmup_blocks_qualifying_candidate(self):
        env = simpy.Environment()
        self.env = env
        self.store.update_neighbour(TERMINAL, 2, 34)
        self.quality.set_cell_quality(2, qoe=5.0, qos=1.0)

        env.run(until=4.9)
        decision = self.evaluate()
        self.assertEqual(decision.reason, DecisionReason.WARMUP)
        self.assertEqual(self.trigger.commands, [])

        env.run(until=5.0)
        decision = self.evaluate()
        self.assertTrue(decision.triggered)
        self.assertEqual(self.trigger.commands, [(TERMINAL, 2)])

    def test_warmup_counts_from_start_time(self):
        self.store.update_neighbour(TERMINAL, 2, 34)
        self.evaluator = self.make_evaluator(start_time=8.0)

        self.assertEqual(self.evaluate().reason, DecisionReason.WARMUP)

    def test_unset_serving_cell_is_still_evaluated(self):
        """A neighbour above the floor wins against an unset serving cell"""
        self.store.update_neighbour(TERMINAL, 2, 34)

        decision = self.evaluator.evaluate(TERMINAL, NO_CELL, 10)

        self.assertTrue(decision.triggered)
        self.assertEqual(self.trigger.commands, [(TERMINAL, 2)])

    def test_unset_serving_cell_never_targeted(self):
        self.store.update_neighbour(TERMINAL, 2, 20)

        decision = self.evaluator.evaluate(TERMINAL, NO_CELL, 34)

        self.assertEqual(decision.reason, DecisionReason.SERVING_CELL_BEST)
        self.assertEqual(decision.best_candidate.cell_id, NO_CELL)
        self.assertEqual(self.trigger.commands, [])


class TestScoring(EvaluatorTestCase):
    """Scoring, defaults and trigger condition"""

    def test_missing_samples_default_to_zero(self):
        """A neighbour without quality data is rated on RSRQ alone"""
        self.store.update_neighbour(TERMINAL, 2, 30)

        decision = self.evaluate()

        neighbour = decision.candidates[0]
        self.assertEqual((neighbour.qoe, neighbour.qos), (0.0, 0.0))
        self.assertAlmostEqual(neighbour.score, 6.0)
        self.assertEqual(self.trigger.commands, [(TERMINAL, 2)])

    def test_missing_fields_default_to_zero(self):
        self.store.update_neighbour(TERMINAL, 2, 20)
        self.quality.set_cell_quality(2, qoe=4.0)
        self.quality.set_terminal_quality(TERMINAL, qos=0.5)

        decision = self.evaluate()

        neighbour, serving = decision.candidates
        self.assertAlmostEqual(neighbour.score, 20 * 0.2 + 4.0 * 0.4)
        self.assertAlmostEqual(serving.score, 10 * 0.2 + 0.5 * 0.1)

    def test_serving_cell_uses_terminal_quality(self):
        """Serving cell is rated with the terminal's sample, not the cell aggregate"""
        self.store.update_neighbour(TERMINAL, 2, 10)
        self.quality.set_cell_quality(SERVING_CELL, qoe=5.0, qos=1.0)
        self.quality.set_terminal_quality(TERMINAL, qoe=1.5, qos=0.2)

        decision = self.evaluate()

        serving = decision.candidates[-1]
        self.assertTrue(serving.serving)
        self.assertEqual((serving.qoe, serving.qos), (1.5, 0.2))

    def test_below_floor(self):
        """Best neighbour beats the serving cell but not the absolute floor"""
        self.store.update_neighbour(TERMINAL, 2, 24)

        decision = self.evaluate()

        self.assertEqual(decision.reason, DecisionReason.BELOW_FLOOR)
        self.assertEqual(decision.best_candidate.cell_id, 2)
        self.assertEqual(self.trigger.commands, [])

    def test_serving_cell_best(self):
        self.store.update_neighbour(TERMINAL, 2, 26)

        decision = self.evaluate(serving_cell_rsrq=32)

        self.assertEqual(decision.reason, DecisionReason.SERVING_CELL_BEST)
        self.assertEqual(self.trigger.commands, [])

    def test_custom_weights(self):
        self.config = HandoverConfig(rsrq_weight=0.1, qoe_weight=1.0, qos_weight=0.0)
        self.evaluator = self.make_evaluator()
        self.store.update_neighbour(TERMINAL, 2, 30)
        self.quality.set_cell_quality(2, qoe=3.0, qos=1.0)

        decision = self.evaluate()

        self.assertAlmostEqual(decision.candidates[0].score, 6.0)
        self.assertTrue(decision.triggered)

    def test_single_trigger_with_many_neighbours(self):
        for cell_id, rsrq in ((2, 28), (3, 31), (4, 29)):
            self.store.update_neighbour(TERMINAL, cell_id, rsrq)

        decision = self.evaluate()

        self.assertEqual(self.trigger.commands, [(TERMINAL, 3)])
        self.assertEqual(len(decision.candidates), 4)


class TestTieBreak(EvaluatorTestCase):
    """Exact ties go to the candidate constructed first"""

    def test_first_neighbour_wins_tie(self):
        for cell_id in (3, 2):
            self.store.update_neighbour(TERMINAL, cell_id, 30)
            self.quality.set_cell_quality(cell_id, qoe=4.0, qos=0.5)

        decision = self.evaluate()

        self.assertEqual(decision.candidates[0].score, decision.candidates[1].score)
        self.assertEqual(self.trigger.commands, [(TERMINAL, 3)])

    def test_tie_order_follows_first_report(self):
        """Re-reporting a cell does not move it in the candidate order"""
        for cell_id in (2, 3):
            self.store.update_neighbour(TERMINAL, cell_id, 30)
        self.store.update_neighbour(TERMINAL, 3, 30)

        self.evaluate()

        self.assertEqual(self.trigger.commands, [(TERMINAL, 2)])

    def test_neighbour_wins_tie_with_serving_cell(self):
        """Neighbours are constructed before the serving cell"""
        self.store.update_neighbour(TERMINAL, 2, 20)
        self.quality.set_cell_quality(2, qoe=3.0, qos=0.5)
        self.quality.set_terminal_quality(TERMINAL, qoe=3.0, qos=0.5)

        decision = self.evaluate(serving_cell_rsrq=20)

        neighbour, serving = decision.candidates
        self.assertEqual(neighbour.score, serving.score)
        self.assertTrue(decision.triggered)
        self.assertEqual(decision.target_cell_id, 2)

    def test_select_best_candidate(self):
        candidates = [
            CandidateCell(cell_id=4, rsrq=10, qoe=1.0, qos=0.0),
            CandidateCell(cell_id=5, rsrq=30, qoe=2.0, qos=0.5),
            CandidateCell(cell_id=6, rsrq=30, qoe=2.0, qos=0.5),
        ]
        score_candidates(candidates, HandoverConfig())

        self.assertEqual(select_best_candidate(candidates).cell_id, 5)


class TestNeighbourValidity(EvaluatorTestCase):
    """Neighbour-validity extension point"""

    def setUp(self):
        super().setUp()
        self.store.update_neighbour(TERMINAL, 2, 34)
        self.store.update_neighbour(TERMINAL, 3, 30)

    def test_every_neighbour_valid_by_default(self):
        self.assertTrue(self.evaluator.is_valid_neighbour(2))
        self.assertEqual(len(self.evaluate().candidates), 3)

    def test_filter_callable(self):
        self.evaluator = self.make_evaluator(neighbour_filter=lambda cell_id: cell_id != 2)

        decision = self.evaluate()

        self.assertEqual(self.trigger.commands, [(TERMINAL, 3)])
        self.assertNotIn(2, [c.cell_id for c in decision.candidates])

    def test_subclass_override(self):
        class ClosedAccessEvaluator(DecisionEvaluator):
            def is_valid_neighbour(self, cell_id):
                return cell_id == 3

        self.evaluator = ClosedAccessEvaluator(self.store, self.quality, self.trigger,
                                               clock=lambda: self.env.now)
        self.evaluate()

        self.assertEqual(self.trigger.commands, [(TERMINAL, 3)])


class TestNeighbourOffset(EvaluatorTestCase):
    """Optional neighbour-offset margin"""

    def setUp(self):
        super().setUp()
        self.store.update_neighbour(TERMINAL, 2, 27)
        self.quality.set_terminal_quality(TERMINAL, qoe=2.0)

    def test_offset_ignored_by_default(self):
        self.config = HandoverConfig(neighbour_cell_offset=10)
        self.evaluator = self.make_evaluator()

        self.assertTrue(self.evaluate(serving_cell_rsrq=20).triggered)

    def test_offset_suppresses_marginal_handover(self):
        self.config = HandoverConfig(neighbour_cell_offset=10, apply_neighbour_offset=True)
        self.evaluator = self.make_evaluator()

        decision = self.evaluate(serving_cell_rsrq=20)

        self.assertEqual(decision.reason, DecisionReason.OFFSET_NOT_MET)
        self.assertEqual(self.trigger.commands, [])

    def test_offset_allows_clear_winner(self):
        self.config = HandoverConfig(neighbour_cell_offset=1, apply_neighbour_offset=True)
        self.evaluator = self.make_evaluator()

        self.assertTrue(self.evaluate(serving_cell_rsrq=20).triggered)


class TestDiagnostics(EvaluatorTestCase):
    """Candidate scores are logged with a fired trigger"""

    def test_candidates_logged_on_trigger(self):
        self.store.update_neighbour(TERMINAL, 2, 30)

        with self.assertLogs('qoe_handover.mobility.handover', level='INFO') as logs:
            self.evaluate()

        output = "\n".join(logs.output)
        self.assertIn("Cell 2 -- score 6.000", output)
        self.assertIn("(serving)", output)
        self.assertIn("Triggering handover", output)


if __name__ == '__main__':
    unittest.main()
