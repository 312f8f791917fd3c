"""
Unit Tests - Customer Analyzer
"""
from datetime import date, datetime, timedelta

import pytest

from pos_analytics.analytics import AnalyticsEngine
from pos_analytics.analytics.customers import (
    frequency_score,
    monetary_score,
    recency_score,
    score_customer,
    segment_for,
)
from pos_analytics.database import InMemoryTransactionSource
from pos_analytics.models import CustomerSegment, DateRange

TOKEN_A = "ANON-0000-0000-0001"
TOKEN_B = "ANON-0000-0000-0002"


def engine_for(transactions, settings):
    return AnalyticsEngine(InMemoryTransactionSource(transactions), settings=settings)


class TestRFMScoring:
    """Tests for the RFM scoring functions"""

    @pytest.mark.parametrize("days,score", [(0, 5), (7, 5), (8, 4), (14, 4), (30, 3), (60, 2), (61, 1)])
    def test_recency(self, days, score):
        assert recency_score(days) == score

    @pytest.mark.parametrize("visits,score", [(20, 5), (12, 4), (5, 3), (2, 2), (1, 1)])
    def test_frequency(self, visits, score):
        assert frequency_score(visits) == score

    @pytest.mark.parametrize("spent,score", [(220, 5), (100, 4), (50, 3), (20, 2), (19.99, 1)])
    def test_monetary(self, spent, score):
        assert monetary_score(spent) == score

    @pytest.mark.parametrize("total,segment", [
        (15, CustomerSegment.CHAMPIONS),
        (13, CustomerSegment.CHAMPIONS),
        (12, CustomerSegment.LOYAL),
        (10, CustomerSegment.LOYAL),
        (7, CustomerSegment.POTENTIAL_LOYALIST),
        (5, CustomerSegment.NEW),
        (4, CustomerSegment.AT_RISK),
        (3, CustomerSegment.AT_RISK),
    ])
    def test_segment_thresholds(self, total, segment):
        assert segment_for(total) is segment

    def test_champion_example(self):
        """Test recency 5, 12 visits and $220 scores 14"""
        rfm = score_customer(5, 12, 220)

        assert (rfm.recency, rfm.frequency, rfm.monetary) == (5, 4, 5)
        assert rfm.total == 14
        assert segment_for(rfm.total) is CustomerSegment.CHAMPIONS

    def test_total_score_bounds(self):
        """Test totals stay within 3..15"""
        assert score_customer(10_000, 1, 0.01).total == 3
        assert score_customer(0, 1_000, 1_000_000).total == 15


class TestProfiles:
    """Tests for customer profiles"""

    def test_champion_profile(self, make_transaction, test_settings, march_2024):
        """Test profile built from twelve visits"""
        last_visit = datetime(2024, 3, 26, 9)
        transactions = [
            make_transaction(last_visit - timedelta(days=i), amount=18.0, token=TOKEN_A)
            for i in range(12)
        ]

        (profile,) = engine_for(transactions, test_settings).customers.profiles(march_2024)

        assert profile.visit_count == 12
        assert profile.total_spent == pytest.approx(216.0)
        assert profile.recency_days == 5
        assert profile.last_seen == date(2024, 3, 26)
        assert profile.first_seen == date(2024, 3, 15)
        assert profile.lifespan_days == 11
        assert profile.rfm.total == 14
        assert profile.segment is CustomerSegment.CHAMPIONS

    def test_as_of(self, sample_engine, march_2024):
        """Test recency measured from an explicit date"""
        profiles = sample_engine.customers.profiles(march_2024, as_of=date(2024, 3, 10))

        assert [p.recency_days for p in profiles] == [9, 8]

    def test_untracked_sales_have_no_profile(self, sample_engine, march_2024):
        """Test cash sales are not customers"""
        profiles = sample_engine.customers.profiles(march_2024)
        assert [p.token for p in profiles] == [TOKEN_A, "ANON-0000-0000-0003"]


class TestInsights:
    """Tests for customer insights"""

    def test_counts(self, sample_engine, march_2024):
        """Test identified customers and untracked sales"""
        insights = sample_engine.customers.insights(march_2024)

        assert insights.total_customers == 2
        assert insights.identified_customers == 2
        assert insights.untracked_transactions == 1
        assert insights.new_customers == 2
        assert insights.returning_customers == 0
        assert insights.avg_spend_per_transaction == pytest.approx(93.7 / 3)
        assert insights.avg_spend_per_customer == pytest.approx(34.35)
        assert insights.segments.low_value == 2
        assert insights.segments.one_time == 2
        assert insights.top_customers[0].token == TOKEN_A

    def test_returning_uses_full_history(self, make_transaction, test_settings, march_2024):
        """Test a customer first seen before the range is returning"""
        engine = engine_for([
            make_transaction(datetime(2024, 2, 10, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 3, 5, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 3, 6, 9), token=TOKEN_B),
        ], test_settings)

        insights = engine.customers.insights(march_2024)

        assert insights.new_customers == 1
        assert insights.returning_customers == 1

    def test_value_segments(self, make_transaction, test_settings, march_2024):
        """Test value and frequency buckets"""
        transactions = [make_transaction(datetime(2024, 3, 1, 8, i), amount=11.0, token=TOKEN_A) for i in range(10)]
        transactions += [make_transaction(datetime(2024, 3, 2, 8, i), amount=20.0, token=TOKEN_B) for i in range(3)]

        segments = engine_for(transactions, test_settings).customers.insights(march_2024).segments

        assert segments.high_value == 1
        assert segments.medium_value == 1
        assert segments.frequent == 1
        assert segments.occasional == 1
        assert segments.one_time == 0


class TestSegments:
    """Tests for RFM segment summaries"""

    def test_canonical_order(self, sample_engine, march_2024):
        """Test every segment reported in fixed order"""
        result = sample_engine.customers.segments(march_2024)

        assert [s.name for s in result.segments] == list(CustomerSegment)
        assert sum(s.count for s in result.segments) == result.total_customers == 2
        assert result.as_of == date(2024, 3, 31)

    def test_segment_members(self, generated_engine):
        """Test percentages add up and top lists are bounded"""
        result = generated_engine.customers.segments(DateRange(date(2024, 1, 1), date(2024, 3, 31)))

        assert sum(s.percentage for s in result.segments) == pytest.approx(100, abs=0.1)
        for segment in result.segments:
            assert len(segment.top_customers) <= 5
            assert all(c.segment is segment.name for c in segment.top_customers)


class TestRetention:
    """Tests for retention and cohorts"""

    def test_month_over_month(self, make_transaction, test_settings):
        """Test one of two January customers returns in February"""
        engine = engine_for([
            make_transaction(datetime(2024, 1, 5, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 1, 6, 9), token=TOKEN_B),
            make_transaction(datetime(2024, 2, 7, 9), token=TOKEN_A),
        ], test_settings)

        report = engine.customers.retention(DateRange(date(2024, 1, 1), date(2024, 2, 29)))

        assert len(report.monthly) == 1
        january = report.monthly[0]
        assert january.month == "2024-01"
        assert january.base_customers == 2
        assert january.retained_customers == 1
        assert january.retention_rate == 50.0
        assert report.average_retention_rate == 50.0

    def test_cohorts(self, make_transaction, test_settings):
        """Test cohort cells by first purchase month"""
        engine = engine_for([
            make_transaction(datetime(2024, 1, 5, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 1, 6, 9), token=TOKEN_B),
            make_transaction(datetime(2024, 2, 7, 9), token=TOKEN_A),
        ], test_settings)

        cohorts = engine.customers.retention(DateRange(date(2024, 1, 1), date(2024, 2, 29))).cohorts

        assert [(c.cohort_month, c.activity_month) for c in cohorts] == [
            ("2024-01", "2024-01"),
            ("2024-01", "2024-02"),
        ]
        assert cohorts[0].cohort_size == 2
        assert cohorts[0].retention_rate == 100.0
        assert cohorts[1].active_customers == 1
        assert cohorts[1].months_since_first_purchase == 1
        assert cohorts[1].retention_rate == 50.0

    def test_empty_months_report_zero(self, sample_engine):
        """Test months without customers have rate 0"""
        report = sample_engine.customers.retention(DateRange(date(2024, 1, 1), date(2024, 3, 31)))

        assert [m.month for m in report.monthly] == ["2024-01", "2024-02"]
        assert all(m.retention_rate == 0 for m in report.monthly)
        assert report.average_retention_rate == 0


class TestLoyalty:
    """Tests for payment method loyalty"""

    def test_single_visits(self, sample_engine, march_2024):
        """Test one-time customers only"""
        report = sample_engine.customers.loyalty(march_2024)

        card = report.by_payment_method["card"]
        assert card.unique_customers == 2
        assert card.total_revenue == pytest.approx(68.7)
        assert report.repeat_customers == 0
        assert report.one_time_customers == 2
        assert report.loyalty_rate == 0
        assert [(v.visit_count, v.customer_count, v.percentage) for v in report.visit_frequency] == [(1, 2, 100.0)]

    def test_repeat_customers(self, make_transaction, test_settings, march_2024):
        """Test repeat share and visit distribution"""
        engine = engine_for([
            make_transaction(datetime(2024, 3, 1, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 3, 2, 9), token=TOKEN_A),
            make_transaction(datetime(2024, 3, 3, 9), token=TOKEN_B),
        ], test_settings)

        report = engine.customers.loyalty(march_2024)

        assert report.repeat_customers == 1
        assert report.loyalty_rate == 50.0
        assert [v.visit_count for v in report.visit_frequency] == [1, 2]
