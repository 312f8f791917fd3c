"""
Inventory Analyzer

Demand forecasting and stock planning from daily product demand:
- Moving-average demand forecast with history-based confidence
- Safety stock, reorder point and economic order quantity (EOQ)
- Waste risk classification with recommendations

Demand statistics are computed over a product's active days (dates with at
least one sale) using numpy. When fewer than two data points exist the
standard deviation is not computable; it is replaced by ``mean *
volatility_proxy_rate`` and the result is flagged ``stddev_estimated``.
"""

import math
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl
import structlog

from pos_analytics.analytics.aggregator import (
    group_by,
    round2,
    rows,
    safe_divide,
    sort_stable,
    summarize,
    to_frame,
)
from pos_analytics.analytics.base import BaseAnalyzer, require_positive
from pos_analytics.errors import InsufficientData, MissingRequiredParameter, ResourceNotFound
from pos_analytics.models.results import (
    CategoryStockStats,
    CategoryWasteInsight,
    DailyDemand,
    DemandForecastReport,
    DemandStats,
    ForecastConfidence,
    ForecastPoint,
    ProductForecast,
    RiskLevel,
    StockOptimizationReport,
    StockRecommendation,
    WasteAssessment,
    WasteReport,
)
from pos_analytics.models.transactions import Category, DateRange

logger = structlog.get_logger(__name__)

RISK_ORDER = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}


def demand_statistics(daily_quantities: Sequence[int], volatility_proxy_rate: float = 0.2) -> DemandStats:
    """
    Mean and sample standard deviation (ddof=1) of daily demand.

    Example:
        demand_statistics([4, 6, 5]).stddev   # 1.0
        demand_statistics([5]).stddev         # 1.0, estimated
    """
    values = np.asarray(daily_quantities, dtype=float)
    if values.size == 0:
        return DemandStats(active_days=0, total=0, mean=0.0, stddev=0.0, stddev_estimated=True, max=0, min=0)

    mean = float(values.mean())
    if values.size >= 2:
        stddev = float(values.std(ddof=1))
        estimated = False
    else:
        stddev = mean * volatility_proxy_rate
        estimated = True

    return DemandStats(
        active_days=int(values.size),
        total=int(values.sum()),
        mean=mean,
        stddev=stddev,
        stddev_estimated=estimated,
        max=int(values.max()),
        min=int(values.min()),
    )


def forecast_confidence(history_days: int) -> ForecastConfidence:
    if history_days >= 7:
        return ForecastConfidence.HIGH
    if history_days >= 3:
        return ForecastConfidence.MEDIUM
    return ForecastConfidence.LOW


def stock_priority(mean: float, volatility_ratio: float) -> Tuple[RiskLevel, str]:
    """Stocking priority and advice from demand level and variability."""
    if mean > 10 and volatility_ratio > 0.5:
        return RiskLevel.HIGH, (
            "High-volume, high-variability product. "
            "Maintain higher safety stock and monitor closely."
        )
    if mean > 10:
        return RiskLevel.HIGH, (
            "High-volume, stable product. "
            "Optimize for cost efficiency with regular reorders."
        )
    if volatility_ratio > 0.8:
        return RiskLevel.MEDIUM, (
            "Unpredictable demand. "
            "Consider demand smoothing strategies or promotional activities."
        )
    if mean < 1:
        return RiskLevel.LOW, "Low-demand product. Consider reducing stock levels or discontinuing."
    return RiskLevel.MEDIUM, "Moderate demand. Standard inventory management practices apply."


def waste_recommendations(mean: float, variability_ratio: float, low_sales_ratio: float) -> List[str]:
    recommendations = []
    if mean < 0.5:
        recommendations.append("Consider discontinuing this product due to very low demand")
    elif mean < 2:
        recommendations.append("Reduce order quantities and frequency")
        recommendations.append("Consider promotional activities to increase demand")

    if variability_ratio > 1:
        recommendations.append("High demand variability - implement just-in-time ordering")
        recommendations.append("Monitor daily sales closely and adjust orders accordingly")

    if low_sales_ratio > 0.3:
        recommendations.append("Frequent low-sales days detected - review product placement and marketing")

    if not recommendations:
        recommendations.append("Product shows stable demand pattern - maintain current inventory levels")
    return recommendations


class InventoryAnalyzer(BaseAnalyzer):
    """
    Inventory metric family.

    Costs, lead time and the service-level multiplier come from
    ``settings.inventory``.
    """

    domain = "inventory"

    def demand_forecast(
        self,
        date_range: DateRange,
        forecast_days: Optional[int] = None,
        product_name: Optional[str] = None,
        min_history_days: Optional[int] = None,
    ) -> DemandForecastReport:
        """
        Moving-average demand forecast for the days after ``date_range``.

        Raises:
            MissingRequiredParameter: ``product_name`` is blank
            ResourceNotFound: the named product never appears in the source
            InsufficientData: the named product has fewer active days than
                ``min_history_days``
        """
        config = self.settings.inventory
        if forecast_days is None:
            forecast_days = config.default_forecast_days
        require_positive("forecast_days", forecast_days)
        if min_history_days is not None:
            require_positive("min_history_days", min_history_days)
        if product_name is not None and not product_name.strip():
            raise MissingRequiredParameter("Product name is required", {"parameter": "product_name"})

        transactions = self._fetch(date_range)
        if product_name is not None:
            transactions = [t for t in transactions if t.product_name == product_name]
            if not transactions and not any(t.product_name == product_name for t in self.source.fetch()):
                raise ResourceNotFound(f"Product '{product_name}' not found", {"product_name": product_name})

        histories = self._daily_demand(to_frame(transactions))
        if product_name is not None and product_name not in histories:
            histories[product_name] = []

        products = []
        for name, history in histories.items():
            if min_history_days is not None and len(history) < min_history_days:
                if product_name is not None:
                    raise InsufficientData(
                        f"Product '{name}' has {len(history)} days of history, {min_history_days} required",
                        {"product_name": name, "history_days": len(history), "required": min_history_days},
                    )
                logger.info(
                    "Product skipped for insufficient history",
                    product=name,
                    history_days=len(history),
                    required=min_history_days,
                )
                continue
            products.append(self._forecast_product(name, history, date_range, forecast_days))

        products = sort_stable(products, key=lambda p: p.total_demand)
        logger.debug("Demand forecast computed", products=len(products), forecast_days=forecast_days)

        return DemandForecastReport(
            period=date_range,
            forecast_days=forecast_days,
            products=products,
            total_products=len(products),
        )

    def stock_optimization(
        self,
        date_range: DateRange,
        category: Optional[str] = None,
        min_active_days: int = 3,
    ) -> StockOptimizationReport:
        """
        Safety stock, reorder point and EOQ for products with at least
        ``min_active_days`` days of sales, best sellers first.
        """
        require_positive("min_active_days", min_active_days)
        config = self.settings.inventory

        recommendations = []
        for name, history in self._daily_demand(self._frame(date_range, category)).items():
            if len(history) < min_active_days:
                continue
            stats = demand_statistics([d.quantity for d in history], config.volatility_proxy_rate)

            safety_stock = math.ceil(stats.mean + config.service_level_z * stats.stddev)
            reorder_point = math.ceil(stats.mean * config.lead_time_days + safety_stock)
            eoq = 0
            if stats.mean > 0:
                eoq = math.ceil(math.sqrt(
                    2 * stats.total * config.order_cost / (stats.mean * config.holding_cost_rate)
                ))

            volatility_ratio = safe_divide(stats.stddev, stats.mean)
            priority, advice = stock_priority(stats.mean, volatility_ratio)

            recommendations.append(StockRecommendation(
                product_name=name,
                category=self.categorizer.categorize(name),
                active_days=stats.active_days,
                total_sold=stats.total,
                average_daily_demand=round2(stats.mean),
                demand_stddev=round2(stats.stddev),
                stddev_estimated=stats.stddev_estimated,
                volatility_ratio=round2(volatility_ratio),
                max_daily_demand=stats.max,
                min_daily_demand=stats.min,
                safety_stock=safety_stock,
                reorder_point=reorder_point,
                economic_order_quantity=eoq,
                priority=priority,
                recommendation=advice,
            ))

        recommendations = sort_stable(recommendations, key=lambda r: r.total_sold)

        return StockOptimizationReport(
            period=date_range,
            recommendations=recommendations,
            category_stats=self._category_stock_stats(recommendations),
            high_priority_products=sum(1 for r in recommendations if r.priority is RiskLevel.HIGH),
            medium_priority_products=sum(1 for r in recommendations if r.priority is RiskLevel.MEDIUM),
            low_priority_products=sum(1 for r in recommendations if r.priority is RiskLevel.LOW),
        )

    def waste_analysis(self, date_range: DateRange, category: Optional[str] = None) -> WasteReport:
        """Waste risk per product, riskiest and slowest moving first."""
        config = self.settings.inventory

        assessments = []
        for name, history in self._daily_demand(self._frame(date_range, category)).items():
            quantities = [d.quantity for d in history]
            stats = demand_statistics(quantities, config.volatility_proxy_rate)

            variability = safe_divide(stats.stddev, stats.mean)
            low_days = sum(1 for q in quantities if q < stats.mean * config.low_sales_fraction)
            low_ratio = safe_divide(low_days, stats.active_days)

            if stats.mean < 1 or variability > 1:
                risk = RiskLevel.HIGH
            elif low_ratio > config.low_sales_days_threshold:
                risk = RiskLevel.MEDIUM
            else:
                risk = RiskLevel.LOW

            assessments.append(WasteAssessment(
                product_name=name,
                category=self.categorizer.categorize(name),
                active_days=stats.active_days,
                average_daily_demand=round2(stats.mean),
                demand_stddev=round2(stats.stddev),
                variability_ratio=round2(variability),
                max_daily_demand=stats.max,
                min_daily_demand=stats.min,
                low_sales_days=low_days,
                low_sales_ratio=round2(low_ratio),
                waste_risk=risk,
                recommendations=waste_recommendations(stats.mean, variability, low_ratio),
            ))

        assessments.sort(key=lambda a: (RISK_ORDER[a.waste_risk], a.average_daily_demand))

        return WasteReport(
            period=date_range,
            products=assessments,
            category_insights=self._category_waste_insights(assessments),
            high_risk_products=sum(1 for a in assessments if a.waste_risk is RiskLevel.HIGH),
            medium_risk_products=sum(1 for a in assessments if a.waste_risk is RiskLevel.MEDIUM),
            low_risk_products=sum(1 for a in assessments if a.waste_risk is RiskLevel.LOW),
        )

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    def _frame(self, date_range: DateRange, category: Optional[str]) -> pl.DataFrame:
        frame = to_frame(self._fetch(date_range))
        if category is not None:
            frame = frame.filter(pl.col("category") == Category.parse(category).value)
        return frame

    @staticmethod
    def _daily_demand(frame: pl.DataFrame) -> Dict[str, List[DailyDemand]]:
        """Per product, quantity sold on each active day in date order."""
        daily = summarize(frame, ["product_name", "date"]).sort("date", maintain_order=True)
        histories: Dict[str, List[DailyDemand]] = {}
        for row in rows(daily):
            histories.setdefault(row["product_name"], []).append(DailyDemand(
                date=row["date"],
                quantity=row["units"],
                transactions=row["transactions"],
            ))
        return histories

    def _forecast_product(
        self,
        name: str,
        history: List[DailyDemand],
        date_range: DateRange,
        forecast_days: int,
    ) -> ProductForecast:
        window = self.settings.inventory.moving_average_window
        recent = np.asarray([d.quantity for d in history[-window:]], dtype=float)
        moving_average = float(recent.mean()) if recent.size else 0.0
        confidence = forecast_confidence(len(history))
        total = sum(d.quantity for d in history)

        return ProductForecast(
            product_name=name,
            category=self.categorizer.categorize(name),
            history=history,
            total_demand=total,
            average_daily_demand=round2(safe_divide(total, len(history))),
            moving_average=round2(moving_average),
            confidence=confidence,
            forecast=[
                ForecastPoint(
                    date=date_range.end + timedelta(days=offset),
                    predicted_demand=round2(moving_average),
                    confidence=confidence,
                )
                for offset in range(1, forecast_days + 1)
            ],
        )

    @staticmethod
    def _category_stock_stats(recommendations: Sequence[StockRecommendation]) -> List[CategoryStockStats]:
        stats = []
        for category, group in group_by(recommendations, lambda r: r.category).items():
            total_sold = sum(r.total_sold for r in group)
            stats.append(CategoryStockStats(
                category=category,
                product_count=len(group),
                total_sold=total_sold,
                average_sold=round2(safe_divide(total_sold, len(group))),
                high_priority_products=sum(1 for r in group if r.priority is RiskLevel.HIGH),
            ))
        return sort_stable(stats, key=lambda s: s.total_sold)

    @staticmethod
    def _category_waste_insights(assessments: Sequence[WasteAssessment]) -> List[CategoryWasteInsight]:
        insights = []
        for category, group in group_by(assessments, lambda a: a.category).items():
            insights.append(CategoryWasteInsight(
                category=category,
                total_products=len(group),
                high_risk_products=sum(1 for a in group if a.waste_risk is RiskLevel.HIGH),
                medium_risk_products=sum(1 for a in group if a.waste_risk is RiskLevel.MEDIUM),
                low_risk_products=sum(1 for a in group if a.waste_risk is RiskLevel.LOW),
                average_daily_demand=round2(
                    safe_divide(sum(a.average_daily_demand for a in group), len(group))
                ),
            ))
        return insights
