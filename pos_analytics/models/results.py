"""
Analytics Result Models

Plain dataclasses returned by the analyzers. They are values: recomputed per
call, never shared between calls and never persisted by the engine.
``to_dict`` turns any of them into a JSON-ready structure for the response
cache and the route layer.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pos_analytics.models.transactions import Category, DateRange


class CustomerSegment(str, Enum):
    """RFM customer segments, best first"""
    CHAMPIONS = "Champions"
    LOYAL = "Loyal Customers"
    POTENTIAL_LOYALIST = "Potential Loyalists"
    NEW = "New Customers"
    AT_RISK = "At Risk"


class ForecastConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def to_dict(value: Any) -> Any:
    """Recursively convert a result into JSON-compatible primitives."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_dict(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_dict(k)): to_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dict(v) for v in value]
    return value


# =============================================================================
# REVENUE
# =============================================================================

@dataclass
class DailyBucket:
    date: date
    revenue: float
    transactions: int
    unique_customers: int


@dataclass
class PaymentStat:
    count: int
    revenue: float


@dataclass
class RevenueMetrics:
    """Revenue totals for a date range"""
    period: DateRange
    total_revenue: float
    transaction_count: int
    avg_transaction_value: float
    unique_customers: int
    growth_rate: float
    daily_revenue: List[DailyBucket] = field(default_factory=list)
    payment_method_breakdown: Dict[str, PaymentStat] = field(default_factory=dict)


@dataclass
class TrendBucket:
    period: str
    period_start: datetime
    revenue: float
    transactions: int
    avg_transaction_value: float
    unique_customers: int


@dataclass
class RevenueTrends:
    period_type: str
    trends: List[TrendBucket] = field(default_factory=list)


@dataclass
class PeriodTotals:
    period: DateRange
    revenue: float
    transactions: int
    avg_transaction_value: float
    unique_customers: int


@dataclass
class PeriodComparison:
    current: PeriodTotals
    comparison: PeriodTotals
    changes: Dict[str, float] = field(default_factory=dict)


# =============================================================================
# PRODUCTS
# =============================================================================

@dataclass
class ProductSummary:
    name: str
    category: Category
    revenue: float
    units_sold: int
    transaction_count: int
    avg_unit_price: float


@dataclass
class CategorySummary:
    category: Category
    revenue: float
    units_sold: int
    transaction_count: int
    product_count: int
    percent_of_total: float
    avg_unit_price: float
    min_unit_price: float
    max_unit_price: float


@dataclass
class ProductPerformance:
    period: DateRange
    sort_by: str
    top_products: List[ProductSummary]
    bottom_products: List[ProductSummary]
    category_performance: List[CategorySummary]
    total_revenue: float
    total_products: int


@dataclass
class ProductTrendBucket:
    period: str
    revenue: float
    units_sold: int
    transaction_count: int
    avg_unit_price: float


@dataclass
class ProductTrends:
    product_name: str
    category: Category
    period_type: str
    trends: List[ProductTrendBucket] = field(default_factory=list)


@dataclass
class MonthStat:
    month: int
    revenue: float = 0.0
    units_sold: int = 0
    transaction_count: int = 0


@dataclass
class ProductSeason:
    name: str
    category: Category
    monthly: List[MonthStat]


@dataclass
class SeasonalReport:
    year: int
    products: List[ProductSeason]
    total_products: int
    data_points: int


# =============================================================================
# TRAFFIC
# =============================================================================

@dataclass
class HourBucket:
    hour: int
    transaction_count: int = 0
    revenue: float = 0.0
    unique_customers: int = 0
    avg_transaction_value: float = 0.0


@dataclass
class HourlyTraffic:
    period: DateRange
    day_of_week: Optional[int]
    hourly: List[HourBucket]
    peak_hours: List[int]
    total_transactions: int
    total_revenue: float
    busiest_hour: Optional[int]


@dataclass
class DayStat:
    date: date
    day_of_week: int
    day_name: str
    transaction_count: int
    revenue: float
    unique_customers: int
    avg_transaction_value: float


@dataclass
class DayOfWeekAverage:
    day_of_week: int
    day_name: str
    average_transactions: float
    average_revenue: float
    data_points: int


@dataclass
class DailyTraffic:
    period: DateRange
    daily: List[DayStat]
    day_of_week_averages: List[DayOfWeekAverage]
    total_days: int
    average_daily_transactions: float
    average_daily_revenue: float


@dataclass
class DayPattern:
    day_of_week: int
    day_name: str
    hourly: List[HourBucket]
    total_transactions: int
    peak_hour: Optional[int]
    peak_hour_transactions: int


@dataclass
class StaffingRecommendation:
    day_of_week: int
    day_name: str
    recommended_staff_hours: List[int]
    peak_staffing_hour: Optional[int]
    estimated_staff_needed: int


@dataclass
class WeeklyPatterns:
    period: DateRange
    days: List[DayPattern]
    staffing: List[StaffingRecommendation]
    total_transactions: int
    busiest_day: Optional[str]


@dataclass
class CapacityPeriod:
    period: str
    transaction_count: int
    unique_customers: int
    utilization: float
    is_over_capacity: bool


@dataclass
class CapacityReport:
    period: DateRange
    max_capacity: int
    periods: List[CapacityPeriod]
    average_utilization: float
    peak_utilization: float
    over_capacity_periods: int
    increase_capacity: bool
    optimize_staffing: bool


# =============================================================================
# CUSTOMERS
# =============================================================================

@dataclass
class RFMScore:
    recency: int
    frequency: int
    monetary: int
    total: int


@dataclass
class CustomerProfile:
    token: str
    visit_count: int
    total_spent: float
    avg_transaction_value: float
    first_seen: date
    last_seen: date
    recency_days: int
    lifespan_days: int
    rfm: RFMScore
    segment: CustomerSegment


@dataclass
class ValueSegments:
    high_value: int = 0
    medium_value: int = 0
    low_value: int = 0
    frequent: int = 0
    occasional: int = 0
    one_time: int = 0


@dataclass
class CustomerInsights:
    period: DateRange
    total_customers: int
    identified_customers: int
    untracked_transactions: int
    new_customers: int
    returning_customers: int
    avg_spend_per_transaction: float
    avg_spend_per_customer: float
    segments: ValueSegments
    top_customers: List[CustomerProfile]


@dataclass
class SegmentSummary:
    name: CustomerSegment
    count: int
    percentage: float
    total_value: float
    average_value: float
    average_frequency: float
    average_recency: float
    top_customers: List[CustomerProfile]


@dataclass
class CustomerSegments:
    period: DateRange
    as_of: date
    segments: List[SegmentSummary]
    total_customers: int


@dataclass
class MonthlyRetention:
    month: str
    base_customers: int
    retained_customers: int
    retention_rate: float


@dataclass
class CohortCell:
    cohort_month: str
    cohort_size: int
    activity_month: str
    active_customers: int
    months_since_first_purchase: int
    retention_rate: float


@dataclass
class RetentionReport:
    period: DateRange
    monthly: List[MonthlyRetention]
    average_retention_rate: float
    cohorts: List[CohortCell]


@dataclass
class PaymentLoyalty:
    unique_customers: int
    total_transactions: int
    total_revenue: float
    avg_transaction_value: float
    repeat_customers: int


@dataclass
class VisitFrequency:
    visit_count: int
    customer_count: int
    percentage: float


@dataclass
class LoyaltyReport:
    period: DateRange
    by_payment_method: Dict[str, PaymentLoyalty]
    total_customers: int
    repeat_customers: int
    one_time_customers: int
    loyalty_rate: float
    visit_frequency: List[VisitFrequency]


# =============================================================================
# INVENTORY
# =============================================================================

@dataclass
class DemandStats:
    """Daily demand statistics for one product over its active days"""
    active_days: int
    total: int
    mean: float
    stddev: float
    stddev_estimated: bool
    max: int
    min: int


@dataclass
class DailyDemand:
    date: date
    quantity: int
    transactions: int


@dataclass
class ForecastPoint:
    date: date
    predicted_demand: float
    confidence: ForecastConfidence


@dataclass
class ProductForecast:
    product_name: str
    category: Category
    history: List[DailyDemand]
    total_demand: int
    average_daily_demand: float
    moving_average: float
    confidence: ForecastConfidence
    forecast: List[ForecastPoint]


@dataclass
class DemandForecastReport:
    period: DateRange
    forecast_days: int
    products: List[ProductForecast]
    total_products: int


@dataclass
class StockRecommendation:
    product_name: str
    category: Category
    active_days: int
    total_sold: int
    average_daily_demand: float
    demand_stddev: float
    stddev_estimated: bool
    volatility_ratio: float
    max_daily_demand: int
    min_daily_demand: int
    safety_stock: int
    reorder_point: int
    economic_order_quantity: int
    priority: RiskLevel
    recommendation: str


@dataclass
class CategoryStockStats:
    category: Category
    product_count: int = 0
    total_sold: int = 0
    average_sold: float = 0.0
    high_priority_products: int = 0


@dataclass
class StockOptimizationReport:
    period: DateRange
    recommendations: List[StockRecommendation]
    category_stats: List[CategoryStockStats]
    high_priority_products: int
    medium_priority_products: int
    low_priority_products: int


@dataclass
class WasteAssessment:
    product_name: str
    category: Category
    active_days: int
    average_daily_demand: float
    demand_stddev: float
    variability_ratio: float
    max_daily_demand: int
    min_daily_demand: int
    low_sales_days: int
    low_sales_ratio: float
    waste_risk: RiskLevel
    recommendations: List[str]


@dataclass
class CategoryWasteInsight:
    category: Category
    total_products: int = 0
    high_risk_products: int = 0
    medium_risk_products: int = 0
    low_risk_products: int = 0
    average_daily_demand: float = 0.0


@dataclass
class WasteReport:
    period: DateRange
    products: List[WasteAssessment]
    category_insights: List[CategoryWasteInsight]
    high_risk_products: int
    medium_risk_products: int
    low_risk_products: int
