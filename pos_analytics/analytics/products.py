"""
Product Analyzer

Per-product and per-category performance, ranking, single-product trends
and the yearly seasonal matrix.
"""

from typing import List

import polars as pl
import structlog

from pos_analytics.analytics.aggregator import (
    round2,
    rows,
    safe_divide,
    sort_stable,
    sum_values,
    summarize,
    to_frame,
)
from pos_analytics.analytics.base import BaseAnalyzer, require_positive
from pos_analytics.analytics.revenue import bucket_by_period, period_label, validate_period
from pos_analytics.errors import InvalidSortField, MissingRequiredParameter, ResourceNotFound
from pos_analytics.models.results import (
    CategorySummary,
    MonthStat,
    ProductPerformance,
    ProductSeason,
    ProductSummary,
    ProductTrendBucket,
    ProductTrends,
    SeasonalReport,
)
from pos_analytics.models.transactions import Category, DateRange

logger = structlog.get_logger(__name__)


# sort key -> ProductSummary attribute
SORT_FIELDS = {
    "revenue": "revenue",
    "quantity": "units_sold",
    "transactions": "transaction_count",
    "avg_price": "avg_unit_price",
    "avgPrice": "avg_unit_price",
}


def validate_sort_field(sort_by: str) -> str:
    if sort_by not in SORT_FIELDS:
        raise InvalidSortField(
            f"Invalid sort field '{sort_by}'",
            {"parameter": "sort_by", "allowed": ["revenue", "quantity", "transactions", "avg_price"]},
        )
    return SORT_FIELDS[sort_by]


class ProductAnalyzer(BaseAnalyzer):
    """
    Product metric family.

    Category revenue always equals the sum of the revenue of the products in
    that category; categories without sales in range are omitted.
    """

    domain = "products"

    def performance(
        self,
        date_range: DateRange,
        sort_by: str = "revenue",
        limit: int = 10,
    ) -> ProductPerformance:
        """
        Top products by ``sort_by``, bottom products by revenue and the
        category breakdown.

        Raises:
            InvalidSortField: ``sort_by`` is not a supported key
            InvalidParameter: ``limit`` is not a positive integer
        """
        attribute = validate_sort_field(sort_by)
        require_positive("limit", limit)

        frame = to_frame(self._fetch(date_range))
        products = self._product_summaries(frame)
        categories = self._category_summaries(frame)

        logger.debug(
            "Product performance computed",
            products=len(products),
            categories=len(categories),
            sort_by=sort_by,
        )

        return ProductPerformance(
            period=date_range,
            sort_by=sort_by,
            top_products=sort_stable(products, key=lambda p: getattr(p, attribute), limit=limit),
            bottom_products=sort_stable(products, key=lambda p: p.revenue, descending=False, limit=limit),
            category_performance=categories,
            total_revenue=sum_values(products, lambda p: p.revenue),
            total_products=len(products),
        )

    def categories(self, date_range: DateRange) -> List[CategorySummary]:
        """Category statistics with unit price ranges, best selling first."""
        return self._category_summaries(to_frame(self._fetch(date_range)))

    def product_trends(
        self,
        product_name: str,
        date_range: DateRange,
        period: str = "daily",
        limit: int = 30,
    ) -> ProductTrends:
        """
        Per-period sales of a single product, newest first.

        Raises:
            MissingRequiredParameter: no product name given
            ResourceNotFound: the product never appears in the source
        """
        if not product_name or not product_name.strip():
            raise MissingRequiredParameter("Product name is required", {"parameter": "product_name"})
        validate_period(period)
        require_positive("limit", limit)

        matching = [t for t in self._fetch(date_range) if t.product_name == product_name]
        if not matching and not any(t.product_name == product_name for t in self.source.fetch()):
            raise ResourceNotFound(f"Product '{product_name}' not found", {"product_name": product_name})

        buckets = bucket_by_period(to_frame(matching), period).head(limit)

        return ProductTrends(
            product_name=product_name,
            category=self.categorizer.categorize(product_name),
            period_type=period,
            trends=[
                ProductTrendBucket(
                    period=period_label(period, row["period_start"]),
                    revenue=row["revenue"],
                    units_sold=row["units"],
                    transaction_count=row["transactions"],
                    avg_unit_price=row["avg_unit_price"],
                )
                for row in rows(buckets)
            ],
        )

    def seasonal(self, year: int) -> SeasonalReport:
        """
        Monthly sales per product for ``year``.

        Every product gets exactly 12 ``MonthStat`` entries; months without
        sales are zero-filled. Products are ordered by name.
        """
        frame = to_frame(self._fetch(DateRange.for_year(year)))
        cells = summarize(frame, ["product_name", "category", "month"])

        products = {}
        for row in rows(cells):
            season = products.get(row["product_name"])
            if season is None:
                season = ProductSeason(
                    name=row["product_name"],
                    category=Category.parse(row["category"]),
                    monthly=[MonthStat(month=m) for m in range(1, 13)],
                )
                products[row["product_name"]] = season
            season.monthly[row["month"] - 1] = MonthStat(
                month=row["month"],
                revenue=row["revenue"],
                units_sold=row["units"],
                transaction_count=row["transactions"],
            )

        ordered = [products[name] for name in sorted(products)]
        return SeasonalReport(
            year=year,
            products=ordered,
            total_products=len(ordered),
            data_points=cells.height,
        )

    @staticmethod
    def _product_summaries(frame: pl.DataFrame) -> List[ProductSummary]:
        return [
            ProductSummary(
                name=row["product_name"],
                category=Category.parse(row["category"]),
                revenue=row["revenue"],
                units_sold=row["units"],
                transaction_count=row["transactions"],
                avg_unit_price=row["avg_unit_price"],
            )
            for row in rows(summarize(frame, ["product_name", "category"]))
        ]

    @staticmethod
    def _category_summaries(frame: pl.DataFrame) -> List[CategorySummary]:
        summary = summarize(
            frame,
            "category",
            extra=[pl.col("product_name").n_unique().alias("product_count")],
        )
        total_revenue = summary["revenue"].sum() if summary.height else 0.0

        categories = [
            CategorySummary(
                category=Category.parse(row["category"]),
                revenue=row["revenue"],
                units_sold=row["units"],
                transaction_count=row["transactions"],
                product_count=row["product_count"],
                percent_of_total=round2(safe_divide(row["revenue"], total_revenue) * 100),
                avg_unit_price=row["avg_unit_price"],
                min_unit_price=row["min_unit_price"],
                max_unit_price=row["max_unit_price"],
            )
            for row in rows(summary)
        ]
        return sort_stable(categories, key=lambda c: c.revenue)
