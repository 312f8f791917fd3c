"""
Transaction Data Model

Strongly-typed point-of-sale records. A ``Transaction`` is validated once
when it is constructed and is immutable afterwards; the engine only ever
derives copies from it.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pos_analytics.errors import InvalidDateRange, InvalidParameter, MissingRequiredParameter


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PaymentMethod(str, Enum):
    """Payment method enumeration"""
    CASH = "cash"
    CARD = "card"


class Category(str, Enum):
    """Product category enumeration"""
    ESPRESSO = "espresso"
    LATTE = "latte"
    AMERICANO = "americano"
    HOT_CHOCOLATE = "hot_chocolate"
    TEA = "tea"
    SPECIALTY = "specialty"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Union[str, "Category", None]) -> "Category":
        """Resolve any string to a category; unknown values become OTHER."""
        if isinstance(value, Category):
            return value
        if value is None:
            return cls.OTHER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single point-of-sale transaction.

    ``customer_token`` is only ever present on card payments. Card payments
    without a token are valid and simply count as untracked customers.
    ``product_category`` stays empty until the categorizer produces a
    decorated copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    occurred_at: datetime
    amount: float = Field(gt=0)
    quantity: int = Field(default=1, gt=0)
    payment_method: PaymentMethod
    customer_token: Optional[str] = None
    product_name: str = Field(min_length=1)
    product_category: Optional[Category] = None

    @field_validator("occurred_at")
    @classmethod
    def wall_clock_time(cls, v: datetime) -> datetime:
        """Keep the local wall clock of aware timestamps and drop the offset."""
        return v.replace(tzinfo=None) if v.tzinfo is not None else v

    @field_validator("customer_token", mode="before")
    @classmethod
    def blank_token_is_missing(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @model_validator(mode="after")
    def check_token_payment_method(self) -> "Transaction":
        if self.payment_method == PaymentMethod.CASH and self.customer_token is not None:
            raise ValueError("cash transactions cannot carry a customer token")
        return self

    @property
    def sale_date(self) -> date:
        return self.occurred_at.date()

    @property
    def hour(self) -> int:
        return self.occurred_at.hour

    @property
    def day_of_week(self) -> int:
        """Day of week with Sunday=0 .. Saturday=6"""
        return self.occurred_at.isoweekday() % 7

    @property
    def unit_price(self) -> float:
        return self.amount / self.quantity

    @property
    def is_tracked(self) -> bool:
        return self.customer_token is not None

    @property
    def category(self) -> Category:
        return self.product_category or Category.OTHER

    def with_category(self, category: Category) -> "Transaction":
        """Return a copy tagged with ``category``; the original is untouched."""
        return self.model_copy(update={"product_category": category})


# =============================================================================
# DATE RANGE
# =============================================================================

def _coerce_date(value: Union[str, date, None], name: str) -> date:
    if value is None or value == "":
        raise MissingRequiredParameter(f"'{name}' is required", {"parameter": name})
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidParameter(
            f"'{name}' must be an ISO calendar date (YYYY-MM-DD)",
            {"parameter": name, "value": str(value)},
        ) from None


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range; reverse ranges are rejected."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidDateRange(
                "Start date cannot be after end date",
                {"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @classmethod
    def parse(
        cls,
        start: Union[str, date, None],
        end: Union[str, date, None],
    ) -> "DateRange":
        """Build a range from ISO strings or dates."""
        return cls(_coerce_date(start, "start_date"), _coerce_date(end, "end_date"))

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        if year < 1 or year > 9999:
            raise InvalidParameter("Year out of range", {"year": year})
        return cls(date(year, 1, 1), date(year, 12, 31))

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def previous(self) -> "DateRange":
        """Equal-length range immediately preceding this one."""
        prev_end = self.start - timedelta(days=1)
        return DateRange(prev_end - timedelta(days=self.days - 1), prev_end)

    def months(self) -> List[date]:
        """First day of every calendar month touched by the range."""
        months = []
        current = self.start.replace(day=1)
        while current <= self.end:
            months.append(current)
            current = next_month(current)
        return months

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def next_month(value: date) -> date:
    """First day of the month after ``value``."""
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"
