"""
Shared analyzer plumbing.

Every analyzer receives its transaction source, categorizer and settings
explicitly. Each call fetches a fresh tuple from the source and works on
category-tagged copies, so concurrent analyzers never share a mutable
record.
"""

from typing import Optional, Tuple

import structlog

from pos_analytics.analytics.categorizer import Categorizer
from pos_analytics.config import Settings, get_settings
from pos_analytics.database.sources import TransactionSource
from pos_analytics.errors import InvalidParameter
from pos_analytics.models.transactions import DateRange, Transaction

logger = structlog.get_logger(__name__)


class BaseAnalyzer:
    """Common dependencies and fetch helpers for the metric families."""

    domain = "analytics"

    def __init__(
        self,
        source: TransactionSource,
        categorizer: Optional[Categorizer] = None,
        settings: Optional[Settings] = None,
    ):
        self.source = source
        self.categorizer = categorizer or Categorizer()
        self.settings = settings or get_settings()

    def _fetch(self, date_range: DateRange) -> Tuple[Transaction, ...]:
        """Category-tagged transactions inside ``date_range``."""
        transactions = self.categorizer.decorate(
            self.source.fetch(date_range.start, date_range.end)
        )
        logger.debug(
            "Transactions loaded",
            domain=self.domain,
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            rows=len(transactions),
        )
        return transactions

    def _fetch_history(self, date_range: DateRange) -> Tuple[Transaction, ...]:
        """All transactions up to the end of ``date_range``."""
        return self.categorizer.decorate(self.source.fetch(None, date_range.end))


def require_positive(name: str, value: int) -> int:
    """Reject non-integer or non-positive options before any work starts."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidParameter(
            f"'{name}' must be a positive integer",
            {"parameter": name, "value": value},
        )
    return value


def require_day_of_week(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise InvalidParameter(
            "'day_of_week' must be between 0 (Sunday) and 6 (Saturday)",
            {"parameter": "day_of_week", "value": value},
        )
    return value


DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
