"""
Database Models

Storage schema for validated point-of-sale transactions. The import
pipeline writes rows here; the analytics engine only reads them through
``SqlTransactionSource``.
"""

from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pos_analytics.models.transactions import PaymentMethod, Transaction


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class TransactionRecord(Base):
    """
    Point-of-sale transaction table.

    ``transaction_date`` duplicates the calendar day of ``occurred_at`` so
    range filters can use a plain date index.
    """
    __tablename__ = "pos_transactions"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Measures
    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    customer_token: Mapped[Optional[str]] = mapped_column(String(100))

    # Product
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_pos_transactions_date", "transaction_date"),
        Index("ix_pos_transactions_occurred_at", "occurred_at"),
        Index("ix_pos_transactions_customer", "customer_token"),
    )

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionRecord":
        return cls(
            id=transaction.id,
            occurred_at=transaction.occurred_at,
            transaction_date=transaction.sale_date,
            amount=transaction.amount,
            quantity=transaction.quantity,
            payment_method=transaction.payment_method,
            customer_token=transaction.customer_token,
            product_name=transaction.product_name,
        )

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id,
            occurred_at=self.occurred_at,
            amount=float(self.amount),
            quantity=self.quantity,
            payment_method=self.payment_method,
            customer_token=self.customer_token,
            product_name=self.product_name,
        )
