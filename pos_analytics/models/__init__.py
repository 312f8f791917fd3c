"""
Data Models Module
"""
from .transactions import Category, DateRange, PaymentMethod, Transaction
from .results import CustomerSegment, ForecastConfidence, RiskLevel, to_dict

__all__ = [
    "Category",
    "DateRange",
    "PaymentMethod",
    "Transaction",
    "CustomerSegment",
    "ForecastConfidence",
    "RiskLevel",
    "to_dict",
]
