"""
Unit Tests - Analytics Engine
"""
import json
from datetime import date

import pytest

from pos_analytics.analytics import AnalyticsEngine, Categorizer
from pos_analytics.database import InMemoryTransactionSource
from pos_analytics.models import Category, DateRange, to_dict

QUARTER = DateRange(date(2024, 1, 1), date(2024, 3, 31))


class TestEngine:
    """Tests for the engine facade"""

    def test_repeated_calls_are_identical(self, generated_engine):
        """Test results depend only on the source and arguments"""
        calls = [
            lambda: generated_engine.revenue.metrics(QUARTER),
            lambda: generated_engine.products.performance(QUARTER, sort_by="quantity"),
            lambda: generated_engine.traffic.weekly_patterns(QUARTER),
            lambda: generated_engine.customers.segments(QUARTER),
            lambda: generated_engine.inventory.stock_optimization(QUARTER),
        ]
        for call in calls:
            assert to_dict(call()) == to_dict(call())

    def test_results_are_json_ready(self, generated_engine):
        """Test every family serializes without custom encoders"""
        results = [
            generated_engine.revenue.trends(QUARTER, period="weekly"),
            generated_engine.products.seasonal(2024),
            generated_engine.traffic.capacity(QUARTER),
            generated_engine.customers.retention(QUARTER),
            generated_engine.inventory.demand_forecast(QUARTER),
            generated_engine.inventory.waste_analysis(QUARTER),
        ]
        for result in results:
            json.dumps(to_dict(result))

    def test_rfm_totals_in_bounds(self, generated_engine):
        """Test every customer scores between 3 and 15"""
        profiles = generated_engine.customers.profiles(QUARTER)

        assert profiles
        assert all(3 <= p.rfm.total <= 15 for p in profiles)

    def test_unique_customers_bounded(self, generated_engine):
        """Test identified customers never exceed transactions"""
        metrics = generated_engine.revenue.metrics(QUARTER)
        assert 0 < metrics.unique_customers <= metrics.transaction_count

    def test_custom_categorizer(self, sample_transactions, test_settings, march_2024):
        """Test injected rules drive every analyzer"""
        engine = AnalyticsEngine(
            InMemoryTransactionSource(sample_transactions),
            settings=test_settings,
            categorizer=Categorizer(rules=((("latte", "americano", "espresso"), Category.SPECIALTY),)),
        )

        categories = engine.products.performance(march_2024).category_performance

        assert [c.category for c in categories] == [Category.SPECIALTY]
        assert categories[0].percent_of_total == 100.0

    def test_source_is_not_mutated(self, sample_transactions, sample_engine, march_2024):
        """Test analytics never tag the stored transactions"""
        sample_engine.products.performance(march_2024)

        assert all(t.product_category is None for t in sample_engine.source.fetch())
        assert sample_transactions[0].product_category is None


class TestEmptySource:
    """Tests for a source with no transactions"""

    @pytest.fixture
    def empty_engine(self, test_settings):
        return AnalyticsEngine(InMemoryTransactionSource([]), settings=test_settings)

    def test_all_families_return_empty_results(self, empty_engine):
        """Test no family fails on empty data"""
        assert empty_engine.revenue.metrics(QUARTER).transaction_count == 0
        assert empty_engine.products.performance(QUARTER).top_products == []
        assert empty_engine.traffic.hourly(QUARTER).peak_hours == []
        assert empty_engine.customers.insights(QUARTER).total_customers == 0
        assert empty_engine.inventory.waste_analysis(QUARTER).products == []
