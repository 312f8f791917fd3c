"""
Synthetic Data Generator

Generates realistic coffee shop POS transactions for testing and development.
Includes:
- A fixed coffee menu with base prices and popularity
- Opening-hours traffic curve with morning and lunch peaks
- Busier weekends
- Card customers drawn from a tokenized pool with repeat visitors
- Anonymous cash sales

Every generator instance owns its own seeded Faker and numpy Generator, so
two generators built with the same seed produce identical data.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

import numpy as np
import polars as pl
import structlog
from faker import Faker

from pos_analytics.models.transactions import PaymentMethod, Transaction

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

# (name, base price, popularity weight)
MENU = [
    ("Espresso", 2.50, 6),
    ("Double Espresso", 3.50, 3),
    ("Americano", 3.00, 9),
    ("Long Black", 3.25, 2),
    ("Latte", 4.50, 14),
    ("Cappuccino", 4.00, 12),
    ("Flat White", 4.25, 6),
    ("Mocha", 5.00, 5),
    ("Hot Chocolate", 3.75, 5),
    ("Chai Latte", 4.25, 4),
    ("Green Tea", 2.75, 3),
    ("English Breakfast Tea", 2.75, 2),
    ("Irish Coffee", 6.50, 1),
    ("Macchiato", 4.75, 3),
]

# Opening hours 07:00-21:00
HOURLY_WEIGHTS = {
    7: 6, 8: 10, 9: 9, 10: 7, 11: 6, 12: 8, 13: 7,
    14: 5, 15: 5, 16: 4, 17: 4, 18: 3, 19: 2, 20: 1, 21: 1,
}

# Sunday=0 .. Saturday=6
DAY_FACTORS = [1.2, 0.9, 0.9, 0.95, 1.0, 1.1, 1.3]

QUANTITIES = [1, 2, 3, 4]
QUANTITY_WEIGHTS = [0.80, 0.14, 0.04, 0.02]


def _normalized(weights) -> np.ndarray:
    values = np.asarray(list(weights), dtype=float)
    return values / values.sum()


# =============================================================================
# GENERATOR
# =============================================================================

class TransactionGenerator:
    """
    Generate POS transactions over a date range.

    Example:
        generator = TransactionGenerator(seed=7)
        transactions = generator.generate(date(2024, 3, 1), date(2024, 3, 31))
    """

    def __init__(
        self,
        seed: int = 42,
        customer_pool_size: int = 150,
        card_share: float = 0.7,
    ):
        self.seed = seed
        self.card_share = card_share
        self.rng = np.random.default_rng(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

        self.customer_tokens = [
            self.fake.unique.numerify("ANON-####-####-####")
            for _ in range(customer_pool_size)
        ]
        # Long-tailed loyalty: a few regulars account for most card visits
        self.customer_weights = _normalized(1 / np.arange(1, customer_pool_size + 1))

        self.menu_weights = _normalized(weight for _, _, weight in MENU)
        self.hours = list(HOURLY_WEIGHTS)
        self.hour_weights = _normalized(HOURLY_WEIGHTS.values())

    def generate(
        self,
        start: date,
        end: date,
        per_day: int = 40,
    ) -> List[Transaction]:
        """Generate transactions for every day in ``[start, end]``, in time order."""
        transactions = []
        current = start
        while current <= end:
            factor = DAY_FACTORS[current.isoweekday() % 7]
            count = int(self.rng.poisson(per_day * factor))
            transactions.extend(self._day(current, count))
            current += timedelta(days=1)

        transactions.sort(key=lambda t: (t.occurred_at, t.id))
        logger.info(
            "Transactions generated",
            start=start.isoformat(),
            end=end.isoformat(),
            transactions=len(transactions),
            seed=self.seed,
        )
        return transactions

    def generate_frame(self, start: date, end: date, per_day: int = 40) -> pl.DataFrame:
        """Raw transaction rows as a polars frame, as an import would see them."""
        return to_raw_frame(self.generate(start, end, per_day))

    def _day(self, day: date, count: int) -> List[Transaction]:
        transactions = []
        for _ in range(count):
            hour = int(self.rng.choice(self.hours, p=self.hour_weights))
            occurred_at = datetime.combine(day, time(hour)) + timedelta(
                seconds=int(self.rng.integers(0, 3600))
            )

            name, price, _ = MENU[int(self.rng.choice(len(MENU), p=self.menu_weights))]
            quantity = int(self.rng.choice(QUANTITIES, p=QUANTITY_WEIGHTS))

            if self.rng.random() < self.card_share:
                payment_method = PaymentMethod.CARD
                token_index = int(self.rng.choice(len(self.customer_tokens), p=self.customer_weights))
                customer_token: Optional[str] = self.customer_tokens[token_index]
            else:
                payment_method = PaymentMethod.CASH
                customer_token = None

            transactions.append(Transaction(
                id=self.fake.uuid4(),
                occurred_at=occurred_at,
                amount=round(price * quantity, 2),
                quantity=quantity,
                payment_method=payment_method,
                customer_token=customer_token,
                product_name=name,
            ))
        return transactions


def to_raw_frame(transactions: List[Transaction]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "id": [t.id for t in transactions],
            "occurred_at": [t.occurred_at for t in transactions],
            "amount": [t.amount for t in transactions],
            "quantity": [t.quantity for t in transactions],
            "payment_method": [t.payment_method.value for t in transactions],
            "customer_token": [t.customer_token for t in transactions],
            "product_name": [t.product_name for t in transactions],
        },
        schema={
            "id": pl.Utf8,
            "occurred_at": pl.Datetime("us"),
            "amount": pl.Float64,
            "quantity": pl.Int64,
            "payment_method": pl.Utf8,
            "customer_token": pl.Utf8,
            "product_name": pl.Utf8,
        },
    )
