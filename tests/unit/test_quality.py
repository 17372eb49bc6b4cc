"""
Unit Tests - Data Quality
"""
from datetime import date
from decimal import Decimal

import polars as pl
import pytest

from ormbench.data.generators import (
    DimDateGenerator,
    DimProductGenerator,
    FactSalesGenerator,
    UserGenerator,
)
from ormbench.ingestion.id_space import IdRange
from ormbench.quality.validators import (
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_dim_date_validator,
    create_dim_product_validator,
    create_fact_sales_validator,
    create_orders_validator,
    create_users_validator,
    create_validator_for,
)


def _frame(generator, count: int) -> pl.DataFrame:
    return pl.DataFrame([generator.row(i) for i in range(count)], infer_schema_length=None)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3]})

        result = DataValidator().add_not_null_check("id").validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_error_checks == ["not_null_id"]

    def test_unique_check_fails(self):
        """Test unique check with duplicates"""
        df = pl.DataFrame({"email": ["a@x.io", "b@x.io", "a@x.io"]})

        result = DataValidator().add_unique_check("email").validate(df)

        assert result.checks[0].failed_rows == 1

    def test_range_check_on_decimals(self):
        """Test range check over a decimal column"""
        df = pl.DataFrame({"price": [Decimal("10.00"), Decimal("1000.01"), Decimal("0.99")]})

        result = DataValidator().add_range_check("price", min_value=1, max_value=1000).validate(df)

        assert result.checks[0].failed_rows == 2

    def test_id_range_check(self):
        """Test foreign keys outside the populated range"""
        df = pl.DataFrame({"user_id": [1, 5, 6, 0]})

        result = DataValidator().add_id_range_check("user_id", IdRange("users", 1, 5)).validate(df)

        assert result.failed_error_checks == ["fk_user_id"]
        assert result.checks[0].failed_rows == 2

    def test_warning_only(self):
        """Test warnings give a partial result unless strict"""
        df = pl.DataFrame({"status": ["pending", "lost"]})

        lenient = DataValidator().add_enum_check("status", ["pending"], severity=ValidationSeverity.WARNING)
        strict = DataValidator(strict_mode=True).add_enum_check(
            "status", ["pending"], severity=ValidationSeverity.WARNING
        )

        assert lenient.validate(df).status == ValidationStatus.PARTIAL
        assert lenient.validate(df).failed_error_checks == []
        assert strict.validate(df).status == ValidationStatus.FAILED

    def test_missing_column(self):
        """Test a check on an absent column fails"""
        result = DataValidator().add_not_null_check("email").validate(pl.DataFrame({"id": [1]}))

        assert result.status == ValidationStatus.FAILED


class TestTableValidators:
    """Tests for the per-table validators on generated data"""

    def test_users_pass(self, source):
        """Test generated users pass their checks"""
        result = create_users_validator().validate(_frame(UserGenerator(source), 100))

        assert result.status == ValidationStatus.PASSED

    def test_dim_date_pass(self, source):
        """Test a generated calendar passes, including the weekend flag"""
        generator = DimDateGenerator(source, date(2024, 1, 1), date(2024, 3, 31))

        result = create_dim_date_validator().validate(_frame(generator, generator.row_count))

        assert result.status == ValidationStatus.PASSED

    def test_dim_date_wrong_weekend_flag(self):
        """Test a weekday flagged as weekend is caught"""
        df = pl.DataFrame({
            "full_date": [date(2024, 1, 8)],
            "quarter": [1],
            "day_of_week": [1],
            "is_weekend": [True],
        })

        result = create_dim_date_validator().validate(df)

        assert result.failed_error_checks == ["weekend_flag"]

    def test_subcategory_mismatch(self):
        """Test a subcategory from another category is caught"""
        df = pl.DataFrame({
            "category": ["Food"],
            "subcategory": ["Laptops"],
            "brand": ["BrandA"],
            "unit_cost": [Decimal("10.00")],
        })

        result = create_dim_product_validator().validate(df)

        assert result.failed_error_checks == ["subcategory_pairing"]

    def test_dim_product_pass(self, source):
        """Test generated warehouse products pass"""
        result = create_dim_product_validator().validate(_frame(DimProductGenerator(source), 200))

        assert result.status == ValidationStatus.PASSED

    def test_fact_sales_pass(self, source, allocator):
        """Test generated sales facts pass, including the total formula"""
        generator = FactSalesGenerator(
            source,
            date_ids=allocator.range_of("dim_date"),
            customer_ids=allocator.range_of("dim_customer"),
            product_ids=allocator.range_of("dim_product"),
            region_ids=allocator.range_of("dim_region"),
        )

        result = create_fact_sales_validator(allocator).validate(_frame(generator, 300))

        assert result.status == ValidationStatus.PASSED

    def test_fact_sales_wrong_total(self, allocator):
        """Test an inconsistent total_amount is caught"""
        df = pl.DataFrame({
            "date_id": [1],
            "customer_id": [1],
            "product_id": [1],
            "region_id": [1],
            "quantity": [3],
            "unit_price": [Decimal("10.00")],
            "discount": [Decimal("0.15")],
            "total_amount": [Decimal("30.00")],
        })

        result = create_fact_sales_validator(allocator).validate(df)

        assert result.failed_error_checks == ["total_amount_formula"]

    def test_orders_validator_uses_allocator(self, allocator):
        """Test order foreign keys are checked against the registered users"""
        df = pl.DataFrame({
            "user_id": [1, 101],
            "total_price": [Decimal("20.00"), Decimal("30.00")],
            "status": ["pending", "shipped"],
        })

        result = create_orders_validator(allocator).validate(df)

        assert result.failed_error_checks == ["fk_user_id"]

    def test_unknown_table(self, allocator):
        """Test there is no validator for unknown tables"""
        with pytest.raises(KeyError):
            create_validator_for("sessions", allocator)
