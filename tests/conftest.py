"""
Test Suite Configuration
"""
from datetime import date, datetime
from typing import Callable, List, Optional

import pytest

from pos_analytics.analytics import AnalyticsEngine
from pos_analytics.config import Settings
from pos_analytics.data import TransactionGenerator
from pos_analytics.database import InMemoryTransactionSource
from pos_analytics.models import DateRange, PaymentMethod, Transaction


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Default settings, independent of the cached application settings"""
    return Settings()


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for single transactions with sensible defaults"""
    counter = {"n": 0}

    def factory(
        occurred_at: datetime,
        amount: float = 5.0,
        product_name: str = "Latte",
        token: Optional[str] = None,
        quantity: int = 1,
        payment_method: Optional[PaymentMethod] = None,
    ) -> Transaction:
        counter["n"] += 1
        if payment_method is None:
            payment_method = PaymentMethod.CARD if token else PaymentMethod.CASH
        return Transaction(
            id=f"tx-{counter['n']:05d}",
            occurred_at=occurred_at,
            amount=amount,
            quantity=quantity,
            payment_method=payment_method,
            customer_token=token,
            product_name=product_name,
        )

    return factory


@pytest.fixture
def sample_transactions() -> List[Transaction]:
    """Three sales over two days: two card, one cash"""
    return [
        Transaction(
            id="t1",
            occurred_at=datetime(2024, 3, 1, 10, 15, 50),
            amount=38.7,
            payment_method=PaymentMethod.CARD,
            customer_token="ANON-0000-0000-0001",
            product_name="Latte",
        ),
        Transaction(
            id="t2",
            occurred_at=datetime(2024, 3, 1, 12, 19, 22),
            amount=25.0,
            payment_method=PaymentMethod.CASH,
            product_name="Americano",
        ),
        Transaction(
            id="t3",
            occurred_at=datetime(2024, 3, 2, 13, 46, 33),
            amount=30.0,
            payment_method=PaymentMethod.CARD,
            customer_token="ANON-0000-0000-0003",
            product_name="Espresso",
        ),
    ]


@pytest.fixture
def march_2024() -> DateRange:
    return DateRange(date(2024, 3, 1), date(2024, 3, 31))


@pytest.fixture
def sample_engine(sample_transactions, test_settings) -> AnalyticsEngine:
    return AnalyticsEngine(InMemoryTransactionSource(sample_transactions), settings=test_settings)


@pytest.fixture(scope="session")
def generated_transactions() -> List[Transaction]:
    """Three months of seeded synthetic sales"""
    return TransactionGenerator(seed=11).generate(date(2024, 1, 1), date(2024, 3, 31), per_day=30)


@pytest.fixture(scope="session")
def generated_engine(generated_transactions, test_settings) -> AnalyticsEngine:
    return AnalyticsEngine(InMemoryTransactionSource(generated_transactions), settings=test_settings)
