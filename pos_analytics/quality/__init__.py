"""
Data Quality Module
"""
from .validators import (
    DataValidator,
    ValidationResult,
    ValidationRule,
    ValidationSeverity,
    ValidationStatus,
    create_transactions_validator,
    transactions_from_frame,
)

__all__ = [
    "DataValidator",
    "ValidationResult",
    "ValidationRule",
    "ValidationSeverity",
    "ValidationStatus",
    "create_transactions_validator",
    "transactions_from_frame",
]
