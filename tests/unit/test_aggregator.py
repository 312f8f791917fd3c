"""
Unit Tests - Aggregation Primitives
"""
import math

import pytest

from pos_analytics.analytics.aggregator import (
    count_distinct,
    group_by,
    percent_change,
    round2,
    rows,
    safe_divide,
    sort_stable,
    sum_values,
    summarize,
    to_frame,
)


class TestPythonPrimitives:
    """Tests for the plain Python helpers"""

    def test_group_by_first_occurrence_order(self):
        """Test groups iterate in first-seen order"""
        groups = group_by(["b1", "a1", "b2", "c1", "a2"], lambda s: s[0])

        assert list(groups) == ["b", "a", "c"]
        assert groups["b"] == ["b1", "b2"]

    def test_sum_values(self):
        """Test exact float summation"""
        assert sum_values([0.1] * 10, lambda v: v) == 1.0

    def test_count_distinct_ignores_none(self):
        """Test None keys are not counted"""
        assert count_distinct(["x", None, "y", "x", None], lambda v: v) == 2

    def test_sort_stable_keeps_ties_in_input_order(self):
        """Test ties keep first-seen order in descending sorts"""
        items = [("a", 1), ("b", 2), ("c", 1), ("d", 2)]

        ordered = sort_stable(items, key=lambda i: i[1])

        assert [i[0] for i in ordered] == ["b", "d", "a", "c"]

    def test_sort_stable_limit(self):
        """Test limit truncates after sorting"""
        assert sort_stable([3, 1, 2], key=lambda v: v, descending=False, limit=2) == [1, 2]

    @pytest.mark.parametrize("numerator,denominator,expected", [
        (10, 4, 2.5),
        (10, 0, 0.0),
        (0, 0, 0.0),
        (math.inf, 1, 0.0),
    ])
    def test_safe_divide(self, numerator, denominator, expected):
        """Test division never yields NaN or Infinity"""
        assert safe_divide(numerator, denominator) == expected

    def test_round2(self):
        """Test rounding and non-finite handling"""
        assert round2(31.2333) == 31.23
        assert round2(None) == 0.0
        assert round2(float("nan")) == 0.0

    @pytest.mark.parametrize("current,previous,expected", [
        (150, 100, 50.0),
        (50, 100, -50.0),
        (10, 0, 100.0),
        (0, 0, 0.0),
    ])
    def test_percent_change(self, current, previous, expected):
        """Test growth from zero is 100 and flat zero is 0"""
        assert percent_change(current, previous) == expected


class TestFrameView:
    """Tests for the polars frame view"""

    def test_to_frame_columns(self, sample_transactions):
        """Test one row per transaction with calendar columns"""
        frame = to_frame(sample_transactions)

        assert frame.height == 3
        assert frame["day_of_week"].to_list() == [5, 5, 6]
        assert frame["hour"].to_list() == [10, 12, 13]

    def test_empty_frame(self):
        """Test empty input keeps the schema"""
        frame = to_frame([])

        assert frame.height == 0
        assert "amount" in frame.columns
        assert rows(summarize(frame, "date")) == []

    def test_summarize_by_date(self, sample_transactions):
        """Test grouped measures"""
        summary = rows(summarize(to_frame(sample_transactions), "date"))

        assert len(summary) == 2
        first = summary[0]
        assert first["revenue"] == pytest.approx(63.7)
        assert first["transactions"] == 2
        assert first["units"] == 2
        assert first["unique_customers"] == 1
        assert first["avg_transaction_value"] == pytest.approx(31.85)
