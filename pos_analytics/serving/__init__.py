"""
Serving Module
"""
from .cache import AnalyticsCache, create_redis_client

__all__ = [
    "AnalyticsCache",
    "create_redis_client",
]
