"""
Unit tests for the recur_ label codec.
"""

import unittest
import os
import sys
from datetime import date

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../'))

from dateutil.relativedelta import relativedelta

from recur_labels import (
    LABEL_PREFIX, RecurrenceRule, format_period, is_forward, load_recurrence_rules,
    parse_period, rule_from_label,
)
from recurdo_errors import RecurrenceConfigError
from task_models import Label


class TestParsePeriod(unittest.TestCase):

    def test_single_components(self):
        self.assertEqual(parse_period("P1M"), relativedelta(months=1))
        self.assertEqual(parse_period("P2Y"), relativedelta(years=2))
        self.assertEqual(parse_period("P10D"), relativedelta(days=10))

    def test_weeks_fold_into_days(self):
        self.assertEqual(parse_period("P2W"), relativedelta(days=14))
        self.assertEqual(parse_period("P1W3D"), relativedelta(days=10))

    def test_combined_and_lowercase(self):
        self.assertEqual(parse_period("P1Y2M3D"), relativedelta(years=1, months=2, days=3))
        self.assertEqual(parse_period("p4m"), relativedelta(months=4))

    def test_signs(self):
        self.assertEqual(parse_period("-P1M"), relativedelta(months=-1))
        self.assertEqual(parse_period("P1M-3D"), relativedelta(months=1, days=-3))

    def test_rejects_malformed(self):
        for text in ("", "P", "1M", "P1H", "PT1H", "P1M2Y", "P1.5M", "monthly", "P1MX"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    parse_period(text)

    def test_calendar_arithmetic_clamps_to_month_end(self):
        self.assertEqual(date(2024, 1, 31) + parse_period("P1M"), date(2024, 2, 29))
        self.assertEqual(date(2023, 1, 31) + parse_period("P1M"), date(2023, 2, 28))
        self.assertEqual(date(2024, 2, 29) + parse_period("P1Y"), date(2025, 2, 28))

    def test_format_period(self):
        self.assertEqual(format_period(parse_period("P4M")), "P4M")
        self.assertEqual(format_period(parse_period("P1Y2M3D")), "P1Y2M3D")
        self.assertEqual(format_period(relativedelta()), "P0D")

    def test_is_forward(self):
        self.assertTrue(is_forward(parse_period("P1D")))
        self.assertFalse(is_forward(parse_period("P0D")))
        self.assertFalse(is_forward(parse_period("P1M-1D")))


class TestRuleFromLabel(unittest.TestCase):

    def test_label_without_prefix_is_not_a_rule(self):
        self.assertIsNone(rule_from_label(Label(id="1", name="errands")))
        self.assertIsNone(rule_from_label(Label(id="2", name="P1M")))

    def test_valid_recur_label(self):
        rule = rule_from_label(Label(id="7", name="recur_P1M"))
        self.assertEqual(rule, RecurrenceRule(label="recur_P1M", period=relativedelta(months=1), period_text="P1M"))
        self.assertEqual(str(rule), "recur_P1M")

    def test_bad_period_names_the_label(self):
        with self.assertRaises(RecurrenceConfigError) as ctx:
            rule_from_label(Label(id="9", name="recur_monthly"))
        self.assertEqual(ctx.exception.label_name, "recur_monthly")
        self.assertIn("recur_monthly", str(ctx.exception))

    def test_zero_period_rejected(self):
        with self.assertRaises(RecurrenceConfigError):
            rule_from_label(Label(id="9", name="recur_P0D"))

    def test_negative_period_rejected(self):
        with self.assertRaises(RecurrenceConfigError):
            rule_from_label(Label(id="9", name="recur_-P1M"))

    def test_load_recurrence_rules_skips_plain_labels(self):
        labels = [
            Label(id="1", name="work"),
            Label(id="2", name="recur_P1W"),
            Label(id="3", name="recur_P1Y"),
        ]
        rules = load_recurrence_rules(labels)
        self.assertEqual(set(rules), {"recur_P1W", "recur_P1Y"})
        self.assertEqual(rules["recur_P1W"].period, relativedelta(days=7))

    def test_one_bad_label_fails_the_whole_load(self):
        labels = [Label(id="1", name="recur_P1M"), Label(id="2", name=LABEL_PREFIX + "soon")]
        with self.assertRaises(RecurrenceConfigError):
            load_recurrence_rules(labels)


if __name__ == '__main__':
    unittest.main()
