"""
Analytics engine: categorization, aggregation and the five metric families.
"""

from pos_analytics.analytics.categorizer import CATEGORY_RULES, Categorizer
from pos_analytics.analytics.customers import CustomerAnalyzer
from pos_analytics.analytics.engine import AnalyticsEngine
from pos_analytics.analytics.inventory import InventoryAnalyzer
from pos_analytics.analytics.products import ProductAnalyzer
from pos_analytics.analytics.revenue import RevenueAnalyzer
from pos_analytics.analytics.traffic import TrafficAnalyzer

__all__ = [
    "AnalyticsEngine",
    "CATEGORY_RULES",
    "Categorizer",
    "CustomerAnalyzer",
    "InventoryAnalyzer",
    "ProductAnalyzer",
    "RevenueAnalyzer",
    "TrafficAnalyzer",
]
