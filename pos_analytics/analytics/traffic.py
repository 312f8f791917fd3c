"""
Traffic Analyzer

Hour-of-day and day-of-week traffic, the 7x24 weekly matrix, staffing
recommendations and hourly capacity utilization.

All hour and day arrays are fully populated: hours or days without activity
report zeros instead of being absent. Day of week uses Sunday=0..Saturday=6.
"""

import math
from typing import List, Optional

import polars as pl
import structlog

from pos_analytics.analytics.aggregator import (
    group_by,
    round2,
    rows,
    safe_divide,
    sum_values,
    summarize,
    to_frame,
)
from pos_analytics.analytics.base import (
    DAY_NAMES,
    BaseAnalyzer,
    require_day_of_week,
    require_positive,
)
from pos_analytics.errors import MissingRequiredParameter
from pos_analytics.models.results import (
    CapacityPeriod,
    CapacityReport,
    DailyTraffic,
    DayOfWeekAverage,
    DayPattern,
    DayStat,
    HourBucket,
    HourlyTraffic,
    StaffingRecommendation,
    WeeklyPatterns,
)
from pos_analytics.models.transactions import DateRange

logger = structlog.get_logger(__name__)

HOURS = range(24)


def hour_buckets(frame: pl.DataFrame) -> List[HourBucket]:
    """Summarize ``frame`` into 24 hour buckets, zero-filled."""
    buckets = [HourBucket(hour=hour) for hour in HOURS]
    for row in rows(summarize(frame, "hour")):
        buckets[row["hour"]] = HourBucket(
            hour=row["hour"],
            transaction_count=row["transactions"],
            revenue=row["revenue"],
            unique_customers=row["unique_customers"],
            avg_transaction_value=row["avg_transaction_value"],
        )
    return buckets


def peak_hours(buckets: List[HourBucket], count: int = 3) -> List[int]:
    """Busiest hours by transaction count; ties go to the earlier hour."""
    busy = [b for b in buckets if b.transaction_count > 0]
    busy.sort(key=lambda b: (-b.transaction_count, b.hour))
    return [b.hour for b in busy[:count]]


def day_pattern(day_of_week: int, frame: pl.DataFrame) -> DayPattern:
    hourly = hour_buckets(frame)
    peaks = peak_hours(hourly, count=1)
    peak_hour = peaks[0] if peaks else None
    return DayPattern(
        day_of_week=day_of_week,
        day_name=DAY_NAMES[day_of_week],
        hourly=hourly,
        total_transactions=sum(b.transaction_count for b in hourly),
        peak_hour=peak_hour,
        peak_hour_transactions=hourly[peak_hour].transaction_count if peak_hour is not None else 0,
    )


class TrafficAnalyzer(BaseAnalyzer):
    """Traffic metric family."""

    domain = "traffic"

    def hourly(self, date_range: DateRange, day_of_week: Optional[int] = None) -> HourlyTraffic:
        """
        Hour-of-day traffic, optionally restricted to one day of the week.

        Returns all 24 hours; ``peak_hours`` holds at most
        ``traffic.peak_hour_count`` hours and never a zero-traffic hour.
        """
        require_day_of_week(day_of_week)

        frame = to_frame(self._fetch(date_range))
        if day_of_week is not None:
            frame = frame.filter(pl.col("day_of_week") == day_of_week)

        buckets = hour_buckets(frame)
        peaks = peak_hours(buckets, self.settings.traffic.peak_hour_count)

        return HourlyTraffic(
            period=date_range,
            day_of_week=day_of_week,
            hourly=buckets,
            peak_hours=peaks,
            total_transactions=frame.height,
            total_revenue=sum_values(buckets, lambda b: b.revenue),
            busiest_hour=peaks[0] if peaks else None,
        )

    def daily(self, date_range: DateRange) -> DailyTraffic:
        """Per-date traffic with day-of-week averages over active dates."""
        frame = to_frame(self._fetch(date_range))
        summary = summarize(frame, ["date", "day_of_week"]).sort("date", maintain_order=True)

        daily = [
            DayStat(
                date=row["date"],
                day_of_week=row["day_of_week"],
                day_name=DAY_NAMES[row["day_of_week"]],
                transaction_count=row["transactions"],
                revenue=row["revenue"],
                unique_customers=row["unique_customers"],
                avg_transaction_value=row["avg_transaction_value"],
            )
            for row in rows(summary)
        ]

        by_day = group_by(daily, lambda d: d.day_of_week)
        averages = []
        for dow, name in enumerate(DAY_NAMES):
            days = by_day.get(dow, [])
            averages.append(DayOfWeekAverage(
                day_of_week=dow,
                day_name=name,
                average_transactions=round2(safe_divide(sum(d.transaction_count for d in days), len(days))),
                average_revenue=round2(safe_divide(sum_values(days, lambda d: d.revenue), len(days))),
                data_points=len(days),
            ))

        return DailyTraffic(
            period=date_range,
            daily=daily,
            day_of_week_averages=averages,
            total_days=len(daily),
            average_daily_transactions=round2(safe_divide(frame.height, len(daily))),
            average_daily_revenue=round2(safe_divide(sum_values(daily, lambda d: d.revenue), len(daily))),
        )

    def weekly_patterns(self, date_range: DateRange) -> WeeklyPatterns:
        """7x24 day-by-hour matrix with per-day staffing recommendations."""
        frame = to_frame(self._fetch(date_range))

        days = [
            day_pattern(dow, frame.filter(pl.col("day_of_week") == dow))
            for dow in range(len(DAY_NAMES))
        ]
        staffing = [self._staffing_for(day) for day in days]

        busiest = max(days, key=lambda d: d.total_transactions)
        return WeeklyPatterns(
            period=date_range,
            days=days,
            staffing=staffing,
            total_transactions=frame.height,
            busiest_day=busiest.day_name if busiest.total_transactions > 0 else None,
        )

    def staffing_recommendation(
        self,
        date_range: DateRange,
        day_of_week: Optional[int],
    ) -> StaffingRecommendation:
        """
        Hours that need extra staff on ``day_of_week``.

        Raises:
            MissingRequiredParameter: no day of week given
            InvalidParameter: day of week outside 0..6
        """
        if day_of_week is None:
            raise MissingRequiredParameter("Day of week is required", {"parameter": "day_of_week"})
        require_day_of_week(day_of_week)

        frame = to_frame(self._fetch(date_range))
        pattern = day_pattern(day_of_week, frame.filter(pl.col("day_of_week") == day_of_week))
        return self._staffing_for(pattern)

    def capacity(
        self,
        date_range: DateRange,
        max_capacity_per_hour: Optional[int] = None,
    ) -> CapacityReport:
        """
        Utilization of every clock hour that saw traffic.

        Utilization is displayed capped at 100 while ``is_over_capacity``
        reflects the raw value.
        """
        if max_capacity_per_hour is None:
            max_capacity_per_hour = self.settings.traffic.default_max_capacity
        require_positive("max_capacity_per_hour", max_capacity_per_hour)

        frame = to_frame(self._fetch(date_range)).with_columns(
            pl.col("occurred_at").dt.truncate("1h").alias("period_start")
        )
        summary = summarize(frame, "period_start").sort("period_start", maintain_order=True)

        periods = []
        for row in rows(summary):
            raw = row["transactions"] / max_capacity_per_hour * 100
            periods.append(CapacityPeriod(
                period=row["period_start"].strftime("%Y-%m-%d %H:00"),
                transaction_count=row["transactions"],
                unique_customers=row["unique_customers"],
                utilization=min(100.0, round2(raw)),
                is_over_capacity=raw > 100,
            ))

        over_capacity = sum(1 for p in periods if p.is_over_capacity)
        average = round2(safe_divide(sum_values(periods, lambda p: p.utilization), len(periods)))

        logger.debug(
            "Capacity computed",
            periods=len(periods),
            over_capacity=over_capacity,
            max_capacity=max_capacity_per_hour,
        )

        return CapacityReport(
            period=date_range,
            max_capacity=max_capacity_per_hour,
            periods=periods,
            average_utilization=average,
            peak_utilization=max((p.utilization for p in periods), default=0.0),
            over_capacity_periods=over_capacity,
            increase_capacity=over_capacity > len(periods) * 0.1,
            optimize_staffing=bool(periods) and average < 60,
        )

    def _staffing_for(self, pattern: DayPattern) -> StaffingRecommendation:
        traffic = self.settings.traffic
        threshold = pattern.total_transactions / 24 * traffic.staffing_threshold
        return StaffingRecommendation(
            day_of_week=pattern.day_of_week,
            day_name=pattern.day_name,
            recommended_staff_hours=[
                b.hour for b in pattern.hourly if b.transaction_count > threshold
            ],
            peak_staffing_hour=pattern.peak_hour,
            estimated_staff_needed=math.ceil(
                pattern.peak_hour_transactions / traffic.transactions_per_staff
            ),
        )
