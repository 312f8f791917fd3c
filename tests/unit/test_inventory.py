"""
Unit Tests - Inventory Analyzer
"""
from datetime import date, datetime

import pytest

from pos_analytics.analytics import AnalyticsEngine
from pos_analytics.analytics.inventory import demand_statistics, forecast_confidence, stock_priority
from pos_analytics.database import InMemoryTransactionSource
from pos_analytics.errors import InsufficientData, InvalidParameter, MissingRequiredParameter, ResourceNotFound
from pos_analytics.models import Category, ForecastConfidence, RiskLevel


@pytest.fixture
def daily_sales(make_transaction, test_settings):
    """Build an engine from {product: [quantity per day starting 2024-03-01]}"""
    def build(plan):
        transactions = []
        for product, quantities in plan.items():
            for day, quantity in enumerate(quantities, start=1):
                transactions.append(make_transaction(
                    datetime(2024, 3, day, 9),
                    amount=4.0 * quantity,
                    quantity=quantity,
                    product_name=product,
                ))
        return AnalyticsEngine(InMemoryTransactionSource(transactions), settings=test_settings)

    return build


class TestDemandStatistics:
    """Tests for daily demand statistics"""

    def test_sample_stddev(self):
        """Test sample standard deviation"""
        stats = demand_statistics([4, 6, 5])

        assert stats.mean == 5.0
        assert stats.stddev == pytest.approx(1.0)
        assert not stats.stddev_estimated
        assert (stats.total, stats.max, stats.min, stats.active_days) == (15, 6, 4, 3)

    def test_single_point_uses_volatility_proxy(self):
        """Test fewer than two points substitutes mean * 0.2"""
        stats = demand_statistics([5])

        assert stats.stddev == pytest.approx(1.0)
        assert stats.stddev_estimated

    def test_no_data(self):
        """Test empty history"""
        stats = demand_statistics([])
        assert stats.mean == 0
        assert stats.active_days == 0

    @pytest.mark.parametrize("days,confidence", [
        (7, ForecastConfidence.HIGH),
        (3, ForecastConfidence.MEDIUM),
        (2, ForecastConfidence.LOW),
    ])
    def test_confidence(self, days, confidence):
        assert forecast_confidence(days) is confidence

    @pytest.mark.parametrize("mean,ratio,priority", [
        (12, 0.6, RiskLevel.HIGH),
        (12, 0.1, RiskLevel.HIGH),
        (5, 0.9, RiskLevel.MEDIUM),
        (0.5, 0.1, RiskLevel.LOW),
        (5, 0.2, RiskLevel.MEDIUM),
    ])
    def test_stock_priority(self, mean, ratio, priority):
        assert stock_priority(mean, ratio)[0] is priority


class TestDemandForecast:
    """Tests for the moving average forecast"""

    def test_forecast(self, daily_sales, march_2024):
        """Test average over three days repeated after the range"""
        engine = daily_sales({"Latte": [4, 6, 5]})

        report = engine.inventory.demand_forecast(march_2024)
        (latte,) = report.products

        assert report.forecast_days == 7
        assert latte.category is Category.LATTE
        assert latte.moving_average == 5.0
        assert latte.confidence is ForecastConfidence.MEDIUM
        assert [p.date for p in latte.forecast] == [date(2024, 4, d) for d in range(1, 8)]
        assert all(p.predicted_demand == 5.0 for p in latte.forecast)

    def test_window_uses_most_recent_days(self, daily_sales, march_2024):
        """Test only the last seven active days are averaged"""
        engine = daily_sales({"Latte": [1, 2, 3, 4, 5, 6, 7, 8]})

        (latte,) = engine.inventory.demand_forecast(march_2024, forecast_days=2).products

        assert latte.moving_average == 5.0
        assert latte.confidence is ForecastConfidence.HIGH
        assert len(latte.forecast) == 2

    def test_named_product_below_minimum(self, daily_sales, march_2024):
        """Test required history raises for a named product"""
        engine = daily_sales({"Latte": [4, 6, 5]})

        with pytest.raises(InsufficientData) as exc:
            engine.inventory.demand_forecast(march_2024, product_name="Latte", min_history_days=5)
        assert exc.value.status_code == 422

    def test_unnamed_products_below_minimum_dropped(self, daily_sales, march_2024):
        """Test short histories are skipped when no product is named"""
        engine = daily_sales({"Latte": [4, 6, 5], "Espresso": [1, 1, 1, 1, 1]})

        report = engine.inventory.demand_forecast(march_2024, min_history_days=5)

        assert [p.product_name for p in report.products] == ["Espresso"]

    def test_unknown_product(self, daily_sales, march_2024):
        """Test unknown product is not found"""
        with pytest.raises(ResourceNotFound):
            daily_sales({"Latte": [1]}).inventory.demand_forecast(march_2024, product_name="Mocha")

    def test_blank_product(self, daily_sales, march_2024):
        """Test blank product name is missing"""
        with pytest.raises(MissingRequiredParameter):
            daily_sales({"Latte": [1]}).inventory.demand_forecast(march_2024, product_name=" ")

    def test_invalid_forecast_days(self, daily_sales, march_2024):
        """Test forecast days must be positive"""
        with pytest.raises(InvalidParameter):
            daily_sales({"Latte": [1]}).inventory.demand_forecast(march_2024, forecast_days=0)


class TestStockOptimization:
    """Tests for safety stock, reorder point and EOQ"""

    def test_formulas(self, daily_sales, march_2024):
        """Test stock levels for daily demand 4, 6, 5"""
        engine = daily_sales({"Latte": [4, 6, 5]})

        (latte,) = engine.inventory.stock_optimization(march_2024).recommendations

        assert latte.average_daily_demand == 5.0
        assert latte.demand_stddev == 1.0
        assert latte.safety_stock == 7
        assert latte.reorder_point == 17
        assert latte.economic_order_quantity == 18
        assert latte.priority is RiskLevel.MEDIUM
        assert latte.recommendation.startswith("Moderate demand")

    def test_single_day_proxy(self, daily_sales, march_2024):
        """Test single data point uses the estimated volatility"""
        engine = daily_sales({"Latte": [5]})

        (latte,) = engine.inventory.stock_optimization(march_2024, min_active_days=1).recommendations

        assert latte.stddev_estimated
        assert latte.safety_stock == 7

    def test_min_active_days(self, daily_sales, march_2024):
        """Test products with too few active days are skipped"""
        engine = daily_sales({"Latte": [4, 6, 5], "Espresso": [3, 3]})

        report = engine.inventory.stock_optimization(march_2024)

        assert [r.product_name for r in report.recommendations] == ["Latte"]

    def test_ordered_by_total_sold(self, daily_sales, march_2024):
        """Test best sellers first with category stats"""
        engine = daily_sales({"Latte": [4, 6, 5], "Cappuccino": [12, 12, 12], "Green Tea": [1, 1, 2]})

        report = engine.inventory.stock_optimization(march_2024)

        assert [r.product_name for r in report.recommendations] == ["Cappuccino", "Latte", "Green Tea"]
        assert report.recommendations[0].priority is RiskLevel.HIGH
        assert report.high_priority_products == 1

        latte_stats = report.category_stats[0]
        assert latte_stats.category is Category.LATTE
        assert latte_stats.product_count == 2
        assert latte_stats.total_sold == 51
        assert latte_stats.high_priority_products == 1

    def test_category_filter(self, daily_sales, march_2024):
        """Test category filter and unknown category"""
        engine = daily_sales({"Latte": [4, 6, 5], "Mocha": [2, 2, 2]})

        latte = engine.inventory.stock_optimization(march_2024, category="latte")
        other = engine.inventory.stock_optimization(march_2024, category="pastries")

        assert [r.product_name for r in latte.recommendations] == ["Latte"]
        assert [r.product_name for r in other.recommendations] == ["Mocha"]


class TestWasteAnalysis:
    """Tests for waste risk"""

    def test_risk_levels_and_order(self, daily_sales, march_2024):
        """Test high, medium and low risk products in risk order"""
        engine = daily_sales({
            "Latte": [10, 1, 10, 10],
            "Espresso": [10, 1, 1, 10, 10],
            "Green Tea": [1, 1, 1, 20],
        })

        report = engine.inventory.waste_analysis(march_2024)

        assert [(p.product_name, p.waste_risk) for p in report.products] == [
            ("Green Tea", RiskLevel.HIGH),
            ("Espresso", RiskLevel.MEDIUM),
            ("Latte", RiskLevel.LOW),
        ]
        assert (report.high_risk_products, report.medium_risk_products, report.low_risk_products) == (1, 1, 1)

    def test_recommendations(self, daily_sales, march_2024):
        """Test advice follows the demand pattern"""
        engine = daily_sales({
            "Latte": [10, 1, 10, 10],
            "Espresso": [10, 1, 1, 10, 10],
            "Green Tea": [1, 1, 1, 20],
        })

        products = {p.product_name: p for p in engine.inventory.waste_analysis(march_2024).products}

        assert products["Latte"].recommendations == [
            "Product shows stable demand pattern - maintain current inventory levels"
        ]
        assert products["Espresso"].low_sales_days == 2
        assert products["Espresso"].recommendations == [
            "Frequent low-sales days detected - review product placement and marketing"
        ]
        assert products["Green Tea"].recommendations[0] == (
            "High demand variability - implement just-in-time ordering"
        )

    def test_slow_mover(self, daily_sales, march_2024):
        """Test low average demand advice"""
        engine = daily_sales({"Latte": [1, 1, 2]})

        (latte,) = engine.inventory.waste_analysis(march_2024).products

        assert "Reduce order quantities and frequency" in latte.recommendations

    def test_category_insights(self, daily_sales, march_2024):
        """Test per-category risk counts"""
        engine = daily_sales({"Latte": [10, 1, 10, 10], "Cappuccino": [1, 1, 1, 20]})

        (insight,) = engine.inventory.waste_analysis(march_2024).category_insights

        assert insight.category is Category.LATTE
        assert insight.total_products == 2
        assert insight.high_risk_products == 1
        assert insight.low_risk_products == 1
