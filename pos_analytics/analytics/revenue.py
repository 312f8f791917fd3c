"""
Revenue Analyzer

Totals, averages, period-over-period growth, payment mix and time-bucketed
revenue trends.
"""

from typing import Dict, Optional, Sequence

import polars as pl
import structlog

from pos_analytics.analytics.aggregator import (
    count_distinct,
    group_by,
    percent_change,
    rows,
    safe_divide,
    sum_values,
    summarize,
    to_frame,
)
from pos_analytics.analytics.base import BaseAnalyzer, require_positive
from pos_analytics.errors import InvalidParameter, MissingRequiredParameter
from pos_analytics.models.results import (
    DailyBucket,
    PaymentStat,
    PeriodComparison,
    PeriodTotals,
    RevenueMetrics,
    RevenueTrends,
    TrendBucket,
)
from pos_analytics.models.transactions import DateRange, PaymentMethod, Transaction

logger = structlog.get_logger(__name__)


# period -> (bucket start expression, label format)
TREND_PERIODS = {
    "hourly": (pl.col("occurred_at").dt.truncate("1h"), "%Y-%m-%d %H:00"),
    "daily": (pl.col("date").cast(pl.Datetime("us")), "%Y-%m-%d"),
    "weekly": (pl.col("date").dt.truncate("1w").cast(pl.Datetime("us")), "%Y-%m-%d"),
    "monthly": (pl.col("date").dt.truncate("1mo").cast(pl.Datetime("us")), "%Y-%m-01"),
}


def validate_period(period: str) -> str:
    if period not in TREND_PERIODS:
        raise InvalidParameter(
            f"Invalid period '{period}'",
            {"parameter": "period", "allowed": sorted(TREND_PERIODS)},
        )
    return period


def bucket_by_period(frame: pl.DataFrame, period: str) -> pl.DataFrame:
    """Summarize ``frame`` per period bucket, newest bucket first."""
    expression, _ = TREND_PERIODS[period]
    frame = frame.with_columns(expression.alias("period_start"))
    return summarize(frame, "period_start").sort("period_start", descending=True, maintain_order=True)


def period_label(period: str, period_start) -> str:
    return period_start.strftime(TREND_PERIODS[period][1])


class RevenueAnalyzer(BaseAnalyzer):
    """
    Revenue metric family.

    Example:
        analyzer = RevenueAnalyzer(source)
        metrics = analyzer.metrics(DateRange.parse("2024-03-01", "2024-03-31"))
    """

    domain = "revenue"

    def metrics(self, date_range: DateRange) -> RevenueMetrics:
        """
        Totals, daily breakdown and payment mix for ``date_range``.

        ``daily_revenue`` sums to ``total_revenue`` and its transaction
        counts sum to ``transaction_count``.
        """
        transactions = self._fetch(date_range)
        frame = to_frame(transactions)

        total_revenue = sum_values(transactions, lambda t: t.amount)
        transaction_count = len(transactions)

        daily = summarize(frame, "date").sort("date", maintain_order=True)
        daily_revenue = [
            DailyBucket(
                date=row["date"],
                revenue=row["revenue"],
                transactions=row["transactions"],
                unique_customers=row["unique_customers"],
            )
            for row in rows(daily)
        ]

        metrics = RevenueMetrics(
            period=date_range,
            total_revenue=total_revenue,
            transaction_count=transaction_count,
            avg_transaction_value=safe_divide(total_revenue, transaction_count),
            unique_customers=count_distinct(transactions, lambda t: t.customer_token),
            growth_rate=self._growth_from(date_range, total_revenue),
            daily_revenue=daily_revenue,
            payment_method_breakdown=self._payment_breakdown(transactions),
        )

        logger.info(
            "Revenue metrics computed",
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            total_revenue=round(total_revenue, 2),
            transactions=transaction_count,
        )
        return metrics

    def growth_rate(self, date_range: DateRange) -> float:
        """
        Percentage revenue change against the equal-length period right
        before ``date_range``.
        """
        current = sum_values(
            self.source.fetch(date_range.start, date_range.end), lambda t: t.amount
        )
        return self._growth_from(date_range, current)

    def trends(
        self,
        date_range: DateRange,
        period: str = "daily",
        limit: int = 30,
    ) -> RevenueTrends:
        """Most recent ``limit`` buckets of ``period`` granularity, newest first."""
        validate_period(period)
        require_positive("limit", limit)

        frame = to_frame(self._fetch(date_range))
        buckets = bucket_by_period(frame, period).head(limit)

        return RevenueTrends(
            period_type=period,
            trends=[
                TrendBucket(
                    period=period_label(period, row["period_start"]),
                    period_start=row["period_start"],
                    revenue=row["revenue"],
                    transactions=row["transactions"],
                    avg_transaction_value=row["avg_transaction_value"],
                    unique_customers=row["unique_customers"],
                )
                for row in rows(buckets)
            ],
        )

    def comparison(
        self,
        current: Optional[DateRange],
        compare: Optional[DateRange],
    ) -> PeriodComparison:
        """Side-by-side totals of two ranges with percentage changes."""
        if current is None or compare is None:
            raise MissingRequiredParameter(
                "Both the current and the comparison date ranges are required",
                {"current": current is not None, "compare": compare is not None},
            )

        current_totals = self._totals(current)
        compare_totals = self._totals(compare)

        changes = {
            name: percent_change(getattr(current_totals, name), getattr(compare_totals, name))
            for name in ("revenue", "transactions", "avg_transaction_value", "unique_customers")
        }
        return PeriodComparison(current=current_totals, comparison=compare_totals, changes=changes)

    def _totals(self, date_range: DateRange) -> PeriodTotals:
        transactions = self.source.fetch(date_range.start, date_range.end)
        revenue = sum_values(transactions, lambda t: t.amount)
        return PeriodTotals(
            period=date_range,
            revenue=revenue,
            transactions=len(transactions),
            avg_transaction_value=safe_divide(revenue, len(transactions)),
            unique_customers=count_distinct(transactions, lambda t: t.customer_token),
        )

    def _growth_from(self, date_range: DateRange, current_revenue: float) -> float:
        previous = date_range.previous()
        previous_revenue = sum_values(
            self.source.fetch(previous.start, previous.end), lambda t: t.amount
        )
        return percent_change(current_revenue, previous_revenue)

    @staticmethod
    def _payment_breakdown(transactions: Sequence[Transaction]) -> Dict[str, PaymentStat]:
        breakdown = {method.value: PaymentStat(count=0, revenue=0.0) for method in PaymentMethod}
        for method, group in group_by(transactions, lambda t: t.payment_method.value).items():
            breakdown[method] = PaymentStat(
                count=len(group),
                revenue=sum_values(group, lambda t: t.amount),
            )
        return breakdown
