"""
Database Module
"""
from .models import Base, TransactionRecord
from .sources import InMemoryTransactionSource, SqlTransactionSource, TransactionSource

__all__ = [
    "Base",
    "TransactionRecord",
    "InMemoryTransactionSource",
    "SqlTransactionSource",
    "TransactionSource",
]
