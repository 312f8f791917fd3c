"""
Analytics Engine

Facade wiring the five analyzer families to one transaction source, one
categorizer and one settings object.
"""

from typing import Optional

import structlog

from pos_analytics.analytics.categorizer import Categorizer
from pos_analytics.analytics.customers import CustomerAnalyzer
from pos_analytics.analytics.inventory import InventoryAnalyzer
from pos_analytics.analytics.products import ProductAnalyzer
from pos_analytics.analytics.revenue import RevenueAnalyzer
from pos_analytics.analytics.traffic import TrafficAnalyzer
from pos_analytics.config import Settings, get_settings
from pos_analytics.database.sources import TransactionSource

logger = structlog.get_logger(__name__)


class AnalyticsEngine:
    """
    Entry point to every metric family.

    The engine holds no data of its own: each call fetches from the injected
    source, so results are a pure function of the source contents and the
    call arguments.

    Example:
        engine = AnalyticsEngine(InMemoryTransactionSource(transactions))
        period = DateRange.parse("2024-03-01", "2024-03-31")

        engine.revenue.metrics(period)
        engine.traffic.hourly(period, day_of_week=6)
        engine.inventory.stock_optimization(period, category="latte")
    """

    def __init__(
        self,
        source: TransactionSource,
        settings: Optional[Settings] = None,
        categorizer: Optional[Categorizer] = None,
    ):
        self.source = source
        self.settings = settings or get_settings()
        self.categorizer = categorizer or Categorizer()

        dependencies = dict(categorizer=self.categorizer, settings=self.settings)
        self.revenue = RevenueAnalyzer(source, **dependencies)
        self.products = ProductAnalyzer(source, **dependencies)
        self.traffic = TrafficAnalyzer(source, **dependencies)
        self.customers = CustomerAnalyzer(source, **dependencies)
        self.inventory = InventoryAnalyzer(source, **dependencies)

        logger.debug("Analytics engine initialized", source=type(source).__name__)
