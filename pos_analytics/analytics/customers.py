"""
Customer Analyzer

Customer-level analytics over tokenized transactions:
- New vs returning customers and value/frequency segments
- RFM (Recency, Frequency, Monetary) scoring and segmentation
- Month-over-month retention and first-purchase cohorts
- Payment method loyalty and visit frequency distribution

Only transactions carrying a customer token identify a customer. Untracked
(cash) transactions count toward revenue and transaction totals but never
toward customer counts.
"""

from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog

from pos_analytics.analytics.aggregator import (
    count_distinct,
    group_by,
    round2,
    safe_divide,
    sort_stable,
    sum_values,
)
from pos_analytics.analytics.base import BaseAnalyzer
from pos_analytics.models.results import (
    CohortCell,
    CustomerInsights,
    CustomerProfile,
    CustomerSegment,
    CustomerSegments,
    LoyaltyReport,
    MonthlyRetention,
    PaymentLoyalty,
    RetentionReport,
    RFMScore,
    SegmentSummary,
    ValueSegments,
    VisitFrequency,
)
from pos_analytics.models.transactions import DateRange, Transaction, month_key, next_month

logger = structlog.get_logger(__name__)


# =============================================================================
# RFM SCORING
# =============================================================================

# (upper bound in days, score); anything older scores 1
RECENCY_THRESHOLDS = ((7, 5), (14, 4), (30, 3), (60, 2))
# (minimum visits, score)
FREQUENCY_THRESHOLDS = ((20, 5), (10, 4), (5, 3), (2, 2))
# (minimum spend, score)
MONETARY_THRESHOLDS = ((200, 5), (100, 4), (50, 3), (20, 2))
# (minimum total score, segment)
SEGMENT_THRESHOLDS = (
    (13, CustomerSegment.CHAMPIONS),
    (10, CustomerSegment.LOYAL),
    (7, CustomerSegment.POTENTIAL_LOYALIST),
    (5, CustomerSegment.NEW),
)

TOP_CUSTOMERS = 10
TOP_CUSTOMERS_PER_SEGMENT = 5


def recency_score(days: int) -> int:
    for bound, score in RECENCY_THRESHOLDS:
        if days <= bound:
            return score
    return 1


def frequency_score(visits: int) -> int:
    for minimum, score in FREQUENCY_THRESHOLDS:
        if visits >= minimum:
            return score
    return 1


def monetary_score(total_spent: float) -> int:
    for minimum, score in MONETARY_THRESHOLDS:
        if total_spent >= minimum:
            return score
    return 1


def segment_for(total_score: int) -> CustomerSegment:
    """Segment of an RFM total score (3..15)."""
    for minimum, segment in SEGMENT_THRESHOLDS:
        if total_score >= minimum:
            return segment
    return CustomerSegment.AT_RISK


def score_customer(recency_days: int, visits: int, total_spent: float) -> RFMScore:
    r = recency_score(recency_days)
    f = frequency_score(visits)
    m = monetary_score(total_spent)
    return RFMScore(recency=r, frequency=f, monetary=m, total=r + f + m)


def months_between(first: date, second: date) -> int:
    return (second.year - first.year) * 12 + second.month - first.month


# =============================================================================
# ANALYZER
# =============================================================================

class CustomerAnalyzer(BaseAnalyzer):
    """
    Customer metric family.

    Example:
        analyzer = CustomerAnalyzer(source)
        segments = analyzer.segments(DateRange.parse("2024-01-01", "2024-03-31"))
        for segment in segments.segments:
            print(segment.name.value, segment.count)
    """

    domain = "customers"

    def profiles(self, date_range: DateRange, as_of: Optional[date] = None) -> List[CustomerProfile]:
        """
        One RFM-scored profile per customer active in ``date_range``.

        Recency is measured from ``as_of`` (defaults to the range end) to
        the customer's last purchase in range. Profiles follow the order in
        which customers first appear.
        """
        return self._profiles(self._fetch(date_range), as_of or date_range.end)

    def insights(self, date_range: DateRange) -> CustomerInsights:
        """Customer counts, spend averages, value segments and top customers."""
        transactions = self._fetch(date_range)
        profiles = self._profiles(transactions, date_range.end)

        first_seen = self._first_purchases(self._fetch_history(date_range))
        new_customers = sum(1 for p in profiles if first_seen[p.token] >= date_range.start)

        tracked_revenue = sum_values(profiles, lambda p: p.total_spent)
        insights = CustomerInsights(
            period=date_range,
            total_customers=len(profiles),
            identified_customers=len(profiles),
            untracked_transactions=sum(1 for t in transactions if not t.is_tracked),
            new_customers=new_customers,
            returning_customers=len(profiles) - new_customers,
            avg_spend_per_transaction=safe_divide(
                sum_values(transactions, lambda t: t.amount), len(transactions)
            ),
            avg_spend_per_customer=safe_divide(tracked_revenue, len(profiles)),
            segments=self._value_segments(profiles),
            top_customers=sort_stable(profiles, key=lambda p: p.total_spent, limit=TOP_CUSTOMERS),
        )

        logger.debug(
            "Customer insights computed",
            customers=insights.total_customers,
            new=insights.new_customers,
            untracked=insights.untracked_transactions,
        )
        return insights

    def segments(self, date_range: DateRange, as_of: Optional[date] = None) -> CustomerSegments:
        """RFM segment summaries in canonical order, empty segments included."""
        as_of = as_of or date_range.end
        profiles = self._profiles(self._fetch(date_range), as_of)
        by_segment = group_by(profiles, lambda p: p.segment)

        summaries = []
        for segment in CustomerSegment:
            members = by_segment.get(segment, [])
            total_value = sum_values(members, lambda p: p.total_spent)
            summaries.append(SegmentSummary(
                name=segment,
                count=len(members),
                percentage=round2(safe_divide(len(members), len(profiles)) * 100),
                total_value=total_value,
                average_value=safe_divide(total_value, len(members)),
                average_frequency=round2(safe_divide(sum(p.visit_count for p in members), len(members))),
                average_recency=round2(safe_divide(sum(p.recency_days for p in members), len(members))),
                top_customers=sort_stable(
                    members, key=lambda p: p.total_spent, limit=TOP_CUSTOMERS_PER_SEGMENT
                ),
            ))

        return CustomerSegments(
            period=date_range,
            as_of=as_of,
            segments=summaries,
            total_customers=len(profiles),
        )

    def retention(self, date_range: DateRange) -> RetentionReport:
        """
        Month-over-month retention and first-purchase cohorts.

        A month is reported only when the following month also lies inside
        the range. Rates are percentages; an empty month reports 0.
        """
        transactions = self._fetch(date_range)
        active = self._active_by_month(transactions)

        monthly = []
        for month in date_range.months():
            following = next_month(month)
            if following > date_range.end:
                continue
            base = active.get(month, set())
            retained = base & active.get(following, set())
            monthly.append(MonthlyRetention(
                month=month_key(month),
                base_customers=len(base),
                retained_customers=len(retained),
                retention_rate=round2(safe_divide(len(retained), len(base)) * 100),
            ))

        return RetentionReport(
            period=date_range,
            monthly=monthly,
            average_retention_rate=round2(
                safe_divide(sum_values(monthly, lambda m: m.retention_rate), len(monthly))
            ),
            cohorts=self._cohorts(transactions, self._fetch_history(date_range)),
        )

    def loyalty(self, date_range: DateRange) -> LoyaltyReport:
        """Repeat behaviour per payment method and the visit count distribution."""
        tracked = [t for t in self._fetch(date_range) if t.is_tracked]

        by_payment_method = {}
        repeat_total = 0
        for method, group in group_by(tracked, lambda t: t.payment_method.value).items():
            visits = group_by(group, lambda t: t.customer_token)
            repeat = sum(1 for g in visits.values() if len(g) > 1)
            repeat_total += repeat
            revenue = sum_values(group, lambda t: t.amount)
            by_payment_method[method] = PaymentLoyalty(
                unique_customers=len(visits),
                total_transactions=len(group),
                total_revenue=revenue,
                avg_transaction_value=safe_divide(revenue, len(group)),
                repeat_customers=repeat,
            )

        total_customers = count_distinct(tracked, lambda t: t.customer_token)
        visit_counts = [len(g) for g in group_by(tracked, lambda t: t.customer_token).values()]
        distribution = group_by(sorted(visit_counts), lambda count: count)

        return LoyaltyReport(
            period=date_range,
            by_payment_method=by_payment_method,
            total_customers=total_customers,
            repeat_customers=repeat_total,
            one_time_customers=total_customers - repeat_total,
            loyalty_rate=round2(safe_divide(repeat_total, total_customers) * 100),
            visit_frequency=[
                VisitFrequency(
                    visit_count=count,
                    customer_count=len(customers),
                    percentage=round2(safe_divide(len(customers), total_customers) * 100),
                )
                for count, customers in distribution.items()
            ],
        )

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _profiles(transactions: Sequence[Transaction], as_of: date) -> List[CustomerProfile]:
        tracked = (t for t in transactions if t.is_tracked)
        profiles = []
        for token, visits in group_by(tracked, lambda t: t.customer_token).items():
            total_spent = sum_values(visits, lambda t: t.amount)
            first_seen = min(t.sale_date for t in visits)
            last_seen = max(t.sale_date for t in visits)
            recency_days = max(0, (as_of - last_seen).days)
            rfm = score_customer(recency_days, len(visits), total_spent)
            profiles.append(CustomerProfile(
                token=token,
                visit_count=len(visits),
                total_spent=total_spent,
                avg_transaction_value=safe_divide(total_spent, len(visits)),
                first_seen=first_seen,
                last_seen=last_seen,
                recency_days=recency_days,
                lifespan_days=(last_seen - first_seen).days,
                rfm=rfm,
                segment=segment_for(rfm.total),
            ))
        return profiles

    @staticmethod
    def _value_segments(profiles: Sequence[CustomerProfile]) -> ValueSegments:
        segments = ValueSegments()
        for p in profiles:
            if p.total_spent > 100:
                segments.high_value += 1
            elif p.total_spent >= 50:
                segments.medium_value += 1
            else:
                segments.low_value += 1

            if p.visit_count >= 10:
                segments.frequent += 1
            elif p.visit_count >= 3:
                segments.occasional += 1
            elif p.visit_count == 1:
                segments.one_time += 1
        return segments

    @staticmethod
    def _first_purchases(history: Sequence[Transaction]) -> Dict[str, date]:
        """Date of every customer's first-ever purchase."""
        first: Dict[str, date] = {}
        for t in history:
            if t.is_tracked and (t.customer_token not in first or t.sale_date < first[t.customer_token]):
                first[t.customer_token] = t.sale_date
        return first

    @staticmethod
    def _active_by_month(transactions: Sequence[Transaction]) -> Dict[date, Set[str]]:
        active: Dict[date, Set[str]] = {}
        for t in transactions:
            if t.is_tracked:
                active.setdefault(t.sale_date.replace(day=1), set()).add(t.customer_token)
        return active

    def _cohorts(
        self,
        transactions: Sequence[Transaction],
        history: Sequence[Transaction],
    ) -> List[CohortCell]:
        cohort_of = {
            token: first.replace(day=1)
            for token, first in self._first_purchases(history).items()
        }
        cohort_sizes = group_by(cohort_of.items(), lambda item: item[1])

        cells: Dict[Tuple[date, date], Set[str]] = {}
        for month, tokens in self._active_by_month(transactions).items():
            for token in tokens:
                cells.setdefault((cohort_of[token], month), set()).add(token)

        result = []
        for cohort, month in sorted(cells):
            size = len(cohort_sizes[cohort])
            active = len(cells[(cohort, month)])
            result.append(CohortCell(
                cohort_month=month_key(cohort),
                cohort_size=size,
                activity_month=month_key(month),
                active_customers=active,
                months_since_first_purchase=months_between(cohort, month),
                retention_rate=round2(safe_divide(active, size) * 100),
            ))
        return result
