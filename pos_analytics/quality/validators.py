"""
Data Validation Module

Quality checks for raw POS transaction frames before they are turned into
``Transaction`` records.

Every check is a rule that counts the offending rows of a polars frame:
- missing values in required columns
- duplicate transaction ids
- non-positive amounts and quantities
- unknown payment methods
- malformed customer tokens (warning only)
- business rules such as "cash sales carry no customer token"

Validation reports problems; it never raises for bad data.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import polars as pl
import structlog

from pos_analytics.models.transactions import PaymentMethod, Transaction

logger = structlog.get_logger(__name__)

TRANSACTION_COLUMNS = [
    "id",
    "occurred_at",
    "amount",
    "quantity",
    "payment_method",
    "customer_token",
    "product_name",
]

REQUIRED_COLUMNS = ("id", "occurred_at", "amount", "payment_method", "product_name")

TOKEN_PATTERN = r"^ANON-\d{4}-\d{4}-\d{4}$"

# frame -> (offending rows, rows examined)
FailureCounter = Callable[[pl.DataFrame], Tuple[int, int]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # blocks the import
    WARNING = "warning"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Outcome of one rule"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Outcome of a whole validation run"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


@dataclass(frozen=True)
class ValidationRule:
    name: str
    count_failures: FailureCounter
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    column: Optional[str] = None

    def evaluate(self, df: pl.DataFrame) -> ValidationCheck:
        if self.column is not None and self.column not in df.columns:
            return ValidationCheck(
                name=self.name,
                passed=False,
                severity=self.severity,
                message=f"Column '{self.column}' not found",
            )

        try:
            failed, examined = self.count_failures(df)
        except pl.exceptions.PolarsError as e:
            return ValidationCheck(
                name=self.name,
                passed=False,
                severity=self.severity,
                message=f"Check failed with error: {e}",
            )

        return ValidationCheck(
            name=self.name,
            passed=failed == 0,
            severity=self.severity,
            message=self.message if failed else "Check passed",
            failed_rows=failed,
            total_rows=examined,
        )


def _rows_where(condition: pl.Expr) -> FailureCounter:
    return lambda df: (df.filter(condition).height, df.height)


class DataValidator:
    """
    Chainable frame validator.

    Example:
        result = (
            DataValidator()
            .add_not_null_check("id")
            .add_positive_check("amount")
            .validate(df)
        )
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # warnings fail the run
        self.rules: List[ValidationRule] = []

    def add_rule(self, rule: ValidationRule) -> "DataValidator":
        self.rules.append(rule)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        return self.add_rule(ValidationRule(
            name=f"not_null_{column}",
            count_failures=_rows_where(pl.col(column).is_null()),
            message=f"Column '{column}' has missing values",
            severity=severity,
            column=column,
        ))

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Count every repeat of an already seen value as a failure."""
        return self.add_rule(ValidationRule(
            name=f"unique_{column}",
            count_failures=lambda df: (df.height - df[column].n_unique(), df.height),
            message=f"Column '{column}' has duplicate values",
            severity=severity,
            column=column,
        ))

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = False,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        bad = pl.col(column) < 0 if allow_zero else pl.col(column) <= 0
        return self.add_rule(ValidationRule(
            name=f"positive_{column}",
            count_failures=_rows_where(bad),
            message=f"Column '{column}' has non-positive values",
            severity=severity,
            column=column,
        ))

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Regex check over the non-null values of ``column``."""
        def count(df: pl.DataFrame) -> Tuple[int, int]:
            present = df.filter(pl.col(column).is_not_null())
            return present.filter(~pl.col(column).str.contains(pattern)).height, present.height

        return self.add_rule(ValidationRule(
            name=f"pattern_{column}",
            count_failures=count,
            message=f"Column '{column}' has values not matching {pattern}",
            severity=severity,
            column=column,
        ))

    def add_enum_check(
        self,
        column: str,
        allowed_values: Sequence[str],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        allowed = list(allowed_values)
        return self.add_rule(ValidationRule(
            name=f"enum_{column}",
            count_failures=_rows_where(pl.col(column).is_not_null() & ~pl.col(column).is_in(allowed)),
            message=f"Column '{column}' has values outside {allowed}",
            severity=severity,
            column=column,
        ))

    def add_custom_check(
        self,
        name: str,
        failing_rows: Callable[[pl.DataFrame], pl.DataFrame],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """
        Add a business rule check.

        ``failing_rows`` returns the rows that break the rule. A rule that
        cannot be evaluated (e.g. a missing column) fails the check.
        """
        return self.add_rule(ValidationRule(
            name=name,
            count_failures=lambda df: (failing_rows(df).height, df.height),
            message=message_on_fail,
            severity=severity,
        ))

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """Evaluate every rule against ``df``."""
        started_at = _utcnow()
        logger.info("Running validation checks", checks=len(self.rules), rows=len(df))

        checks = [rule.evaluate(df) for rule in self.rules]
        for check in checks:
            if not check.passed:
                logger.warning(
                    "Validation check failed",
                    check=check.name,
                    message=check.message,
                    failed_rows=check.failed_rows,
                    severity=check.severity.value,
                )

        passed = sum(1 for c in checks if c.passed)
        errors = sum(1 for c in checks if not c.passed and c.severity is ValidationSeverity.ERROR)
        warnings = sum(1 for c in checks if not c.passed and c.severity is ValidationSeverity.WARNING)

        if errors or (warnings and self.strict_mode):
            status = ValidationStatus.FAILED
        elif warnings:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.info("Validation complete", status=status.value, passed=passed, failed=errors, warnings=warnings)

        return ValidationResult(
            status=status,
            total_checks=len(checks),
            passed_checks=passed,
            failed_checks=errors,
            warning_count=warnings,
            checks=checks,
            started_at=started_at,
            completed_at=_utcnow(),
        )


# =============================================================================
# TRANSACTION IMPORT
# =============================================================================

def create_transactions_validator(strict_mode: bool = False) -> DataValidator:
    """Pre-configured validator for raw transaction frames"""
    validator = DataValidator(strict_mode=strict_mode)
    for column in REQUIRED_COLUMNS:
        validator.add_not_null_check(column)

    return (
        validator
        .add_unique_check("id")
        .add_positive_check("amount")
        .add_positive_check("quantity")
        .add_enum_check("payment_method", [m.value for m in PaymentMethod])
        .add_pattern_check("customer_token", TOKEN_PATTERN, severity=ValidationSeverity.WARNING)
        .add_custom_check(
            "cash_without_token",
            lambda df: df.filter(
                (pl.col("payment_method") == PaymentMethod.CASH.value)
                & pl.col("customer_token").is_not_null()
            ),
            "Cash transactions must not carry a customer token",
        )
    )


def transactions_from_frame(
    df: pl.DataFrame,
    validator: Optional[DataValidator] = None,
) -> Tuple[List[Transaction], ValidationResult]:
    """
    Validate a raw frame and build ``Transaction`` records from it.

    Records are only built when validation does not fail; otherwise the
    list is empty and the result explains why.
    """
    validator = validator or create_transactions_validator()
    result = validator.validate(df)

    if result.status == ValidationStatus.FAILED:
        logger.error(
            "Transaction import rejected",
            rows=len(df),
            failed_checks=[c.name for c in result.failures()],
        )
        return [], result

    df = df.with_columns(pl.col("quantity").fill_null(1))
    transactions = [Transaction(**row) for row in df.select(TRANSACTION_COLUMNS).to_dicts()]
    logger.info("Transactions imported", rows=len(transactions))
    return transactions, result
