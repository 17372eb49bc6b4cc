"""
Data Validation Module

Rule-based quality checks on generated batches, run before a batch is
written when batch validation is enabled.

Features:
- Null, uniqueness, range, enum and pattern checks
- Foreign key range checks against the populated id ranges
- Table-specific business rules (derived totals, weekend flags,
  category/subcategory pairing)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import polars as pl
import structlog

from ormbench.data.generators import (
    BRANDS,
    CATEGORIES,
    CUSTOMER_SEGMENTS,
    ORDER_STATUSES,
    compute_total_amount,
)
from ormbench.ingestion.id_space import IdRange, IdSpaceAllocator

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - blocks the load
    WARNING = "warning"  # Non-critical - logged but continues


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def failed_error_checks(self) -> List[str]:
        """Names of failed checks with ERROR severity"""
        return [
            check.name
            for check in self.checks
            if not check.passed and check.severity == ValidationSeverity.ERROR
        ]


class DataValidator:
    """
    Data validator over polars DataFrames.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("email")
        validator.add_range_check("price", min_value=1)
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def _missing(self, name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing(name, column, severity)

            null_count = df[column].null_count()
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count},
                failed_rows=null_count,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{column}"
            if column not in df.columns:
                return self._missing(name, column, severity)

            total = len(df)
            duplicate_count = total - df[column].n_unique()
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        name: Optional[str] = None,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            check_name = name or f"range_{column}"
            if column not in df.columns:
                return self._missing(check_name, column, severity)

            # Decimal columns compare reliably once widened to floats
            values = pl.col(column).cast(pl.Float64)
            conditions = []
            if min_value is not None:
                conditions.append(values < min_value)
            if max_value is not None:
                conditions.append(values > max_value)

            if not conditions:
                return ValidationCheck(
                    name=check_name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            passed = out_of_range == 0

            return ValidationCheck(
                name=check_name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_id_range_check(
        self,
        column: str,
        ids: IdRange,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Foreign keys must point inside the referenced table's populated range"""
        return self.add_range_check(
            column,
            min_value=ids.first,
            max_value=ids.last,
            severity=severity,
            name=f"fk_{column}",
        )

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex pattern check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"pattern_{column}"
            if column not in df.columns:
                return self._missing(name, column, severity)

            non_matching = df.filter(
                ~pl.col(column).str.contains(pattern) & pl.col(column).is_not_null()
            ).height
            passed = non_matching == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {non_matching} values not matching pattern" if not passed else "All values match pattern",
                details={"pattern": pattern, "non_matching_count": non_matching},
                failed_rows=non_matching,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: Sequence[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._missing(name, column, severity)

            invalid = df.filter(
                ~pl.col(column).is_in(list(allowed_values)) & pl.col(column).is_not_null()
            ).height
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": list(allowed_values), "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message="Check passed" if passed else message_on_fail,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.now(timezone.utc)
        results = [check_func(df) for check_func in self._checks]

        for result in results:
            if not result.passed:
                logger.warning(
                    "Validation failed",
                    check=result.name,
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.debug(
            "Validation complete",
            status=status.value,
            rows=len(df),
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )


# =============================================================================
# BUSINESS RULES
# =============================================================================

def weekend_flag_matches(df: pl.DataFrame) -> bool:
    """``is_weekend`` is set exactly on Sundays (0) and Saturdays (6)"""
    expected = pl.col("day_of_week").is_in([0, 6])
    return df.filter(pl.col("is_weekend") != expected).height == 0


def subcategories_match(categories: Mapping[str, Sequence[str]]) -> Callable[[pl.DataFrame], bool]:
    def check(df: pl.DataFrame) -> bool:
        return all(
            subcategory in categories.get(category, ())
            for category, subcategory in df.select(["category", "subcategory"]).iter_rows()
        )
    return check


def total_amounts_match(df: pl.DataFrame) -> bool:
    """``total_amount`` equals the rounded discounted line value on every row"""
    rows = df.select(["quantity", "unit_price", "discount", "total_amount"]).iter_rows()
    return all(
        compute_total_amount(quantity, Decimal(str(unit_price)), Decimal(str(discount))) == Decimal(str(total))
        for quantity, unit_price, discount, total in rows
    )


# =============================================================================
# PRE-BUILT VALIDATORS
# =============================================================================

def create_users_validator() -> DataValidator:
    return (
        DataValidator()
        .add_not_null_check("email")
        .add_not_null_check("name")
        .add_unique_check("email")
        .add_pattern_check("email", r"^user\d+_.+@.+$")
    )


def create_products_validator() -> DataValidator:
    return (
        DataValidator()
        .add_not_null_check("name")
        .add_range_check("price", min_value=1, max_value=1000)
        .add_range_check("stock", min_value=0)
    )


def create_orders_validator(allocator: IdSpaceAllocator) -> DataValidator:
    return (
        DataValidator()
        .add_id_range_check("user_id", allocator.range_of("users"))
        .add_range_check("total_price", min_value=5, max_value=500)
        .add_enum_check("status", ORDER_STATUSES)
    )


def create_order_items_validator(allocator: IdSpaceAllocator) -> DataValidator:
    return (
        DataValidator()
        .add_id_range_check("order_id", allocator.range_of("orders"))
        .add_id_range_check("product_id", allocator.range_of("products"))
        .add_range_check("quantity", min_value=1, max_value=10)
    )


def create_dim_date_validator() -> DataValidator:
    return (
        DataValidator()
        .add_unique_check("full_date")
        .add_range_check("quarter", min_value=1, max_value=4)
        .add_range_check("day_of_week", min_value=0, max_value=6)
        .add_custom_check(
            name="weekend_flag",
            check_func=weekend_flag_matches,
            message_on_fail="is_weekend disagrees with day_of_week",
        )
    )


def create_dim_region_validator() -> DataValidator:
    return (
        DataValidator()
        .add_not_null_check("country")
        .add_not_null_check("state")
        .add_not_null_check("city")
    )


def create_dim_customer_validator(allocator: IdSpaceAllocator) -> DataValidator:
    return (
        DataValidator()
        .add_id_range_check("region_id", allocator.range_of("dim_region"))
        .add_enum_check("segment", CUSTOMER_SEGMENTS)
        .add_pattern_check("email", r"^cust\d+_.+@.+$")
    )


def create_dim_product_validator(
    categories: Mapping[str, Sequence[str]] = CATEGORIES,
    brands: Sequence[str] = BRANDS,
) -> DataValidator:
    return (
        DataValidator()
        .add_enum_check("category", list(categories))
        .add_enum_check("brand", brands)
        .add_range_check("unit_cost", min_value=1, max_value=200)
        .add_custom_check(
            name="subcategory_pairing",
            check_func=subcategories_match(categories),
            message_on_fail="Subcategory paired with a category it does not belong to",
        )
    )


def create_fact_sales_validator(allocator: IdSpaceAllocator) -> DataValidator:
    return (
        DataValidator()
        .add_id_range_check("date_id", allocator.range_of("dim_date"))
        .add_id_range_check("customer_id", allocator.range_of("dim_customer"))
        .add_id_range_check("product_id", allocator.range_of("dim_product"))
        .add_id_range_check("region_id", allocator.range_of("dim_region"))
        .add_range_check("quantity", min_value=1, max_value=20)
        .add_range_check("discount", min_value=0, max_value=0.3)
        .add_custom_check(
            name="total_amount_formula",
            check_func=total_amounts_match,
            message_on_fail="total_amount differs from round(quantity * unit_price * (1 - discount), 2)",
        )
    )


def create_validator_for(table: str, allocator: IdSpaceAllocator) -> DataValidator:
    """Pre-built validator for one generated table"""
    factories: Dict[str, Callable[[], DataValidator]] = {
        "users": create_users_validator,
        "products": create_products_validator,
        "orders": lambda: create_orders_validator(allocator),
        "order_items": lambda: create_order_items_validator(allocator),
        "dim_date": create_dim_date_validator,
        "dim_region": create_dim_region_validator,
        "dim_customer": lambda: create_dim_customer_validator(allocator),
        "dim_product": create_dim_product_validator,
        "fact_sales": lambda: create_fact_sales_validator(allocator),
    }
    if table not in factories:
        raise KeyError(f"No validator defined for table '{table}'")
    return factories[table]()
