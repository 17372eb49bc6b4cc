"""
Unit Tests - Synthetic Row Generators
"""
from datetime import date
from decimal import Decimal

import pytest

from ormbench.data.generators import (
    CATEGORIES,
    ORDER_STATUSES,
    DimCustomerGenerator,
    DimDateGenerator,
    DimProductGenerator,
    FactSalesGenerator,
    OrderGenerator,
    OrderItemGenerator,
    ProductGenerator,
    RandomSource,
    UserGenerator,
    compute_total_amount,
    date_attributes,
)
from ormbench.exceptions import ConfigurationError
from ormbench.ingestion.id_space import IdRange


class TestRandomSource:
    """Tests for RandomSource"""

    def test_same_seed_same_rows(self):
        """Test a fixed seed reproduces the same rows"""
        first = UserGenerator(RandomSource(seed=7))
        second = UserGenerator(RandomSource(seed=7))

        assert [first.row(i) for i in range(20)] == [second.row(i) for i in range(20)]

    def test_price_has_two_decimals(self, source):
        """Test prices are exact cents inside the bounds"""
        for _ in range(200):
            price = source.price(5, 500)
            assert Decimal(5) <= price <= Decimal(500)
            assert price.as_tuple().exponent == -2

    def test_unseeded_source(self):
        """Test an unseeded source still generates rows"""
        source = RandomSource()

        assert source.seed is None
        assert 1 <= source.integer(1, 10) <= 10


class TestOltpGenerators:
    """Tests for the OLTP generators"""

    def test_user_emails_unique(self, source):
        """Test user emails carry their generation index"""
        generator = UserGenerator(source)
        rows = [generator.row(i) for i in range(500)]

        emails = [row["email"] for row in rows]
        assert len(set(emails)) == 500
        assert emails[3].startswith("user3_")
        assert set(rows[0]) == set(UserGenerator.columns)

    def test_product_ranges(self, source):
        """Test product price and stock bounds"""
        generator = ProductGenerator(source)

        for i in range(200):
            row = generator.row(i)
            assert Decimal(1) <= row["price"] <= Decimal(1000)
            assert 1 <= row["stock"] <= 100

    def test_order_foreign_keys(self, source):
        """Test orders reference registered users only"""
        users = IdRange("users", 1, 5)
        generator = OrderGenerator(source, user_ids=users)

        rows = [generator.row(i) for i in range(300)]

        assert all(row["user_id"] in users for row in rows)
        assert {row["status"] for row in rows} <= set(ORDER_STATUSES)
        assert all(Decimal(5) <= row["total_price"] <= Decimal(500) for row in rows)

    def test_order_item_foreign_keys(self, source):
        """Test order items reference both parent ranges"""
        orders = IdRange("orders", 1, 40)
        products = IdRange("products", 1, 3)
        generator = OrderItemGenerator(source, order_ids=orders, product_ids=products)

        for i in range(300):
            row = generator.row(i)
            assert row["order_id"] in orders
            assert row["product_id"] in products
            assert 1 <= row["quantity"] <= 10

    def test_empty_status_vocabulary(self, source):
        """Test an empty status list is a configuration error"""
        with pytest.raises(ConfigurationError):
            OrderGenerator(source, user_ids=IdRange("users", 1, 5), statuses=[])


class TestDimDateGenerator:
    """Tests for the calendar dimension"""

    def test_three_year_calendar(self, source):
        """Test 2022-01-01..2024-12-31 yields one row per day"""
        generator = DimDateGenerator(source, date(2022, 1, 1), date(2024, 12, 31))

        assert generator.row_count == 1096
        assert generator.row(0)["full_date"] == date(2022, 1, 1)
        assert generator.row(1095)["full_date"] == date(2024, 12, 31)

    def test_leap_day(self, source):
        """Test 2024-02-29 is present"""
        generator = DimDateGenerator(source, date(2024, 2, 28), date(2024, 3, 1))

        assert [generator.row(i)["full_date"] for i in range(generator.row_count)] == [
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
        ]

    def test_weekend_flag(self):
        """Test Sunday is 0 and weekends are flagged"""
        sunday = date_attributes(date(2024, 1, 7))
        saturday = date_attributes(date(2024, 1, 6))
        monday = date_attributes(date(2024, 1, 8))

        assert sunday["day_of_week"] == 0 and sunday["is_weekend"]
        assert saturday["day_of_week"] == 6 and saturday["is_weekend"]
        assert monday["day_of_week"] == 1 and not monday["is_weekend"]

    def test_quarters(self):
        """Test quarter derivation"""
        assert date_attributes(date(2023, 3, 31))["quarter"] == 1
        assert date_attributes(date(2023, 4, 1))["quarter"] == 2
        assert date_attributes(date(2023, 12, 31))["quarter"] == 4

    def test_inverted_range(self, source):
        """Test an end before the start is rejected"""
        with pytest.raises(ConfigurationError):
            DimDateGenerator(source, date(2024, 1, 2), date(2024, 1, 1))

    def test_index_outside_range(self, source):
        """Test asking past the last day fails"""
        generator = DimDateGenerator(source, date(2024, 1, 1), date(2024, 1, 1))

        with pytest.raises(IndexError):
            generator.row(1)


class TestOlapGenerators:
    """Tests for the OLAP generators"""

    def test_subcategory_belongs_to_category(self, source):
        """Test subcategories are drawn from their own category"""
        generator = DimProductGenerator(source)

        for i in range(500):
            row = generator.row(i)
            assert row["subcategory"] in CATEGORIES[row["category"]]
            assert Decimal(1) <= row["unit_cost"] <= Decimal(200)

    def test_category_without_subcategories(self, source):
        """Test a category with no subcategories is rejected"""
        with pytest.raises(ConfigurationError):
            DimProductGenerator(source, categories={"Electronics": ("Phones",), "Food": ()})

    def test_empty_brands(self, source):
        """Test an empty brand list is rejected"""
        with pytest.raises(ConfigurationError):
            DimProductGenerator(source, brands=())

    def test_options_checked_without_instance(self):
        """Test option checks run on the class, before any id range exists"""
        DimProductGenerator.check_options()
        DimCustomerGenerator.check_options(segments=("Consumer",))

        with pytest.raises(ConfigurationError):
            DimCustomerGenerator.check_options(segments=())
        with pytest.raises(ConfigurationError):
            DimDateGenerator.check_options(start=date(2024, 1, 2), end=date(2024, 1, 1))
        with pytest.raises(ConfigurationError):
            OrderGenerator.check_options(statuses=[])

    def test_customer_rows(self, source):
        """Test customers reference regions and carry unique emails"""
        regions = IdRange("dim_region", 1, 4)
        generator = DimCustomerGenerator(source, region_ids=regions)

        rows = [generator.row(i) for i in range(200)]

        assert all(row["region_id"] in regions for row in rows)
        assert len({row["email"] for row in rows}) == 200
        assert rows[10]["email"].startswith("cust10_")

    def test_fact_sales_rows(self, source):
        """Test sales facts stay consistent with their dimensions"""
        generator = FactSalesGenerator(
            source,
            date_ids=IdRange("dim_date", 1, 31),
            customer_ids=IdRange("dim_customer", 1, 50),
            product_ids=IdRange("dim_product", 1, 25),
            region_ids=IdRange("dim_region", 1, 10),
        )

        for i in range(500):
            row = generator.row(i)
            assert 1 <= row["date_id"] <= 31
            assert 1 <= row["customer_id"] <= 50
            assert 1 <= row["quantity"] <= 20
            assert Decimal(5) <= row["unit_price"] <= Decimal(500)
            assert Decimal(0) <= row["discount"] <= Decimal("0.30")
            assert row["total_amount"] == compute_total_amount(
                row["quantity"], row["unit_price"], row["discount"]
            )


class TestComputeTotalAmount:
    """Tests for the derived sale total"""

    def test_rounds_to_cents(self):
        """Test the documented example"""
        assert compute_total_amount(3, Decimal("10.00"), Decimal("0.15")) == Decimal("25.50")

    def test_rounds_half_up(self):
        """Test half cents round up"""
        assert compute_total_amount(1, Decimal("0.05"), Decimal("0.50")) == Decimal("0.03")

    def test_no_discount(self):
        """Test a zero discount keeps the full value"""
        assert compute_total_amount(2, Decimal("19.99"), Decimal("0.00")) == Decimal("39.98")
