"""
Transaction Sources

The analytics engine never owns a database handle. It receives an object
implementing ``TransactionSource`` and asks it for transactions by date.
Two implementations are provided:

- ``InMemoryTransactionSource``: an already materialized collection
- ``SqlTransactionSource``: the ``pos_transactions`` table via SQLAlchemy 2.0
"""

from datetime import date
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import structlog
from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import Session

from pos_analytics.config import Settings, get_settings
from pos_analytics.database.models import Base, TransactionRecord
from pos_analytics.models.transactions import Transaction

logger = structlog.get_logger(__name__)


class TransactionSource(Protocol):
    """Read-only provider of transactions ordered by ``occurred_at``."""

    def fetch(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Transaction]:
        """
        Return transactions whose calendar date lies in ``[start, end]``.

        Either bound may be ``None`` to leave that side open.
        """
        ...


class InMemoryTransactionSource:
    """
    Transaction source over an in-memory collection.

    The input is sorted once by ``occurred_at`` (stable, so simultaneous
    sales keep their input order) and stored as a tuple.

    Example:
        source = InMemoryTransactionSource(transactions)
        march = source.fetch(date(2024, 3, 1), date(2024, 3, 31))
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._transactions: Tuple[Transaction, ...] = tuple(
            sorted(transactions, key=lambda t: t.occurred_at)
        )

    def __len__(self) -> int:
        return len(self._transactions)

    def fetch(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Tuple[Transaction, ...]:
        return tuple(
            t for t in self._transactions
            if (start is None or t.sale_date >= start)
            and (end is None or t.sale_date <= end)
        )


class SqlTransactionSource:
    """
    Transaction source backed by the ``pos_transactions`` table.

    Example:
        source = SqlTransactionSource.from_settings()
        source.create_schema()
        source.add_all(transactions)
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SqlTransactionSource":
        settings = settings or get_settings()
        engine = create_engine(
            settings.database.url,
            echo=settings.database.echo,
            pool_pre_ping=True,
        )
        return cls(engine)

    def create_schema(self) -> None:
        """Create the transaction table if it does not exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Transaction schema ready", url=str(self.engine.url))

    def add_all(self, transactions: Iterable[Transaction]) -> int:
        """Insert validated transactions; returns the number written."""
        records = [TransactionRecord.from_transaction(t) for t in transactions]

        with Session(self.engine) as session:
            try:
                session.add_all(records)
                session.commit()
            except Exception as e:
                logger.error("Transaction insert failed, rolling back", error=str(e))
                session.rollback()
                raise

        logger.info("Transactions stored", count=len(records))
        return len(records)

    def fetch(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Tuple[Transaction, ...]:
        query = select(TransactionRecord)
        if start is not None:
            query = query.where(TransactionRecord.transaction_date >= start)
        if end is not None:
            query = query.where(TransactionRecord.transaction_date <= end)
        query = query.order_by(TransactionRecord.occurred_at, TransactionRecord.id)

        with Session(self.engine) as session:
            records: List[TransactionRecord] = list(session.scalars(query))
            transactions = tuple(r.to_transaction() for r in records)

        logger.debug(
            "Transactions fetched",
            start=str(start) if start else None,
            end=str(end) if end else None,
            rows=len(transactions),
        )
        return transactions
