"""
Integration tests: full recurrence runs against an in-memory Todoist.
"""

import unittest
import os
import sys
from datetime import date
from unittest.mock import Mock

# Add project root and tests directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../'))

from fake_todoist import FakeTodoist, make_task
from recurdo_errors import RecurrenceValidationError
from recurrence_pipeline import RecurrencePipeline


class TestEndToEnd(unittest.TestCase):

    def setUp(self):
        self.logger = Mock()

    def test_parent_and_child_recur_once(self):
        client = FakeTodoist(
            tasks=[
                make_task("A", content="Monthly review", labels=["recur_P1M"], due="2024-01-10"),
                make_task("B", content="Export report", parent_id="A", due="2024-01-10"),
            ],
            label_names=["recur_P1M", "work"],
        )
        pipeline = RecurrencePipeline(client, cutoff=date(2024, 2, 1), logger=self.logger)

        total = pipeline.run()

        self.assertEqual(total, 1)
        self.assertEqual(pipeline.stats['passes'], 2)

        (a_request, a_id), (b_request, b_id) = client.created()
        self.assertEqual(a_request.content, "Monthly review")
        self.assertEqual(a_request.due_date, date(2024, 2, 10))
        self.assertIsNone(a_request.parent_id)
        self.assertEqual(b_request.content, "Export report")
        self.assertEqual(b_request.parent_id, a_id)
        self.assertEqual(b_request.due_date, date(2024, 2, 10))

        self.assertEqual(client.mutations()[-1], ("set_labels", "A", []))
        self.assertEqual(client.tasks["A"].labels, ())
        self.assertEqual(client.tasks[a_id].labels, ("recur_P1M",))

    def test_independent_candidates_in_one_pass(self):
        client = FakeTodoist(
            tasks=[
                make_task("w", labels=["recur_P1W"], due="2024-03-01"),
                make_task("y", labels=["recur_P1Y", "home"], due="2024-03-02"),
                make_task("n", labels=["home"], due="2024-03-02"),
            ],
            label_names=["recur_P1W", "recur_P1Y", "home"],
        )
        pipeline = RecurrencePipeline(client, cutoff=date(2024, 3, 5), logger=self.logger)

        self.assertEqual(pipeline.run(), 2)
        self.assertEqual(client.tasks["y"].labels, ("home",))
        self.assertEqual(client.tasks["n"].labels, ("home",))
        dues = sorted(new_task.due_date for new_task, _ in client.created())
        self.assertEqual(dues, [date(2024, 3, 8), date(2025, 3, 2)])

    def test_crash_after_clone_reprocesses_on_next_run(self):
        client = FakeTodoist(
            tasks=[make_task("A", labels=["recur_P1M"], due="2024-01-10")],
            label_names=["recur_P1M"],
        )
        original_set_labels = client.set_labels
        client.set_labels = Mock(side_effect=ConnectionError("network down"))

        with self.assertRaises(ConnectionError):
            RecurrencePipeline(client, cutoff=date(2024, 2, 1), logger=self.logger).run()
        self.assertEqual(len(client.created()), 1)
        self.assertEqual(client.tasks["A"].labels, ("recur_P1M",))

        client.set_labels = original_set_labels
        RecurrencePipeline(client, cutoff=date(2024, 2, 1), logger=self.logger).run()

        # the label was never stripped, so A is cloned a second time
        self.assertEqual(len(client.created()), 2)
        self.assertEqual(client.tasks["A"].labels, ())

    def test_invalid_subtree_anywhere_blocks_every_clone(self):
        client = FakeTodoist(
            tasks=[
                make_task("good", labels=["recur_P1M"], due="2024-01-10"),
                make_task("bad", labels=["recur_P1M"], due="2024-06-10"),
                make_task("timed", parent_id="bad", due="2024-06-10", datetime="2024-06-10T08:00:00Z"),
            ],
            label_names=["recur_P1M"],
        )
        with self.assertRaises(RecurrenceValidationError) as ctx:
            RecurrencePipeline(client, cutoff=date(2024, 2, 1), logger=self.logger).run()
        self.assertIn("timed", str(ctx.exception))
        self.assertEqual(client.mutations(), [])

    def test_nothing_due_terminates_after_one_pass(self):
        client = FakeTodoist(
            tasks=[make_task("A", labels=["recur_P1M"], due="2030-01-10")],
            label_names=["recur_P1M"],
        )
        pipeline = RecurrencePipeline(client, cutoff=date(2024, 2, 1), logger=self.logger)
        self.assertEqual(pipeline.run(), 0)
        self.assertEqual(pipeline.stats['passes'], 1)
        self.assertEqual(client.mutations(), [])


if __name__ == '__main__':
    unittest.main()
