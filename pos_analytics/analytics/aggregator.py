"""
Aggregation Primitives

The single group-by + reduce layer shared by every analyzer. Two views:

- plain Python helpers (``group_by``, ``sum_values``, ``count_distinct``)
  for per-customer and per-product passes
- a polars frame view (``to_frame`` + ``summarize``) for the bucketed
  revenue/traffic/product tables

Group iteration order is always first-occurrence order of the key in the
input, and every sort here is stable, so ties keep first-seen order.
"""

import math
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar, Union

import polars as pl

from pos_analytics.models.transactions import Transaction

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


FRAME_SCHEMA = {
    "id": pl.Utf8,
    "occurred_at": pl.Datetime("us"),
    "date": pl.Date,
    "hour": pl.Int32,
    "day_of_week": pl.Int32,  # Sunday=0 .. Saturday=6
    "month": pl.Int32,
    "year": pl.Int32,
    "amount": pl.Float64,
    "quantity": pl.Int64,
    "unit_price": pl.Float64,
    "payment_method": pl.Utf8,
    "customer_token": pl.Utf8,
    "product_name": pl.Utf8,
    "category": pl.Utf8,
}


# =============================================================================
# PYTHON PRIMITIVES
# =============================================================================

def group_by(items: Iterable[T], key_fn: Callable[[T], K]) -> Dict[K, List[T]]:
    """Group items by key; groups iterate in first-occurrence order."""
    groups: Dict[K, List[T]] = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups


def sum_values(items: Iterable[T], value_fn: Callable[[T], float]) -> float:
    """Exact (correctly rounded) floating point sum."""
    return math.fsum(value_fn(item) for item in items)


def count_distinct(items: Iterable[T], key_fn: Callable[[T], Optional[Hashable]]) -> int:
    """Number of distinct non-None keys."""
    return len({key for key in map(key_fn, items) if key is not None})


def sort_stable(
    items: Iterable[T],
    key: Callable[[T], float],
    descending: bool = True,
    limit: Optional[int] = None,
) -> List[T]:
    """Sort keeping input order among equal keys, optionally truncated."""
    ordered = sorted(items, key=key, reverse=descending)
    return ordered if limit is None else ordered[:limit]


def safe_divide(numerator: float, denominator: float) -> float:
    """Division that yields 0 instead of a zero-division fault, NaN or Infinity."""
    if not denominator:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def round2(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, 2)


def percent_change(current: float, previous: float) -> float:
    """Percentage change; 100 when growing from zero and 0 when both are zero."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round2((current - previous) / previous * 100)


# =============================================================================
# FRAME VIEW
# =============================================================================

def to_frame(transactions: Sequence[Transaction]) -> pl.DataFrame:
    """
    Build a polars frame with one row per transaction.

    Calendar columns are derived here once so every analyzer buckets the
    same way (``day_of_week`` uses Sunday=0).
    """
    columns: Dict[str, list] = {name: [] for name in FRAME_SCHEMA}

    for t in transactions:
        columns["id"].append(t.id)
        columns["occurred_at"].append(t.occurred_at)
        columns["date"].append(t.sale_date)
        columns["hour"].append(t.hour)
        columns["day_of_week"].append(t.day_of_week)
        columns["month"].append(t.occurred_at.month)
        columns["year"].append(t.occurred_at.year)
        columns["amount"].append(t.amount)
        columns["quantity"].append(t.quantity)
        columns["unit_price"].append(t.unit_price)
        columns["payment_method"].append(t.payment_method.value)
        columns["customer_token"].append(t.customer_token)
        columns["product_name"].append(t.product_name)
        columns["category"].append(t.category.value)

    return pl.DataFrame(columns, schema=FRAME_SCHEMA)


def summarize(
    frame: pl.DataFrame,
    by: Union[str, Sequence[str]],
    extra: Sequence[pl.Expr] = (),
) -> pl.DataFrame:
    """
    Group ``frame`` by ``by`` and reduce each group to standard measures.

    Output columns besides the keys: ``revenue``, ``transactions``,
    ``units``, ``unique_customers``, ``min_unit_price``,
    ``max_unit_price``, ``avg_transaction_value`` and ``avg_unit_price``
    (revenue per unit sold), plus any ``extra`` aggregations. Groups keep
    first-occurrence order.
    """
    keys = [by] if isinstance(by, str) else list(by)

    summary = frame.group_by(keys, maintain_order=True).agg([
        pl.col("amount").sum().alias("revenue"),
        pl.len().alias("transactions"),
        pl.col("quantity").sum().alias("units"),
        pl.col("customer_token").drop_nulls().n_unique().alias("unique_customers"),
        pl.col("unit_price").min().alias("min_unit_price"),
        pl.col("unit_price").max().alias("max_unit_price"),
        *extra,
    ])

    return summary.with_columns([
        (pl.col("revenue") / pl.col("transactions")).alias("avg_transaction_value"),
        (pl.col("revenue") / pl.col("units")).alias("avg_unit_price"),
    ])


def rows(frame: pl.DataFrame) -> List[dict]:
    """Frame rows as dictionaries, in frame order."""
    return frame.to_dicts()
