"""
Synthetic Row Generators

Produces one row at a time for every table of the OLTP and OLAP datasets:
- OLTP users, products, orders and order items
- OLAP date, region, customer and product dimensions
- OLAP sales facts

Each generator is built once per table load, after the tables it references
have finished loading, and is then asked for ``row(index)`` in generation
order. Foreign keys are drawn from the id ranges handed in at construction.
"""

import random
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from faker import Faker

from ormbench.database.models import CustomerSegment, OrderStatus
from ormbench.exceptions import ConfigurationError
from ormbench.ingestion.id_space import IdRange

CENT = Decimal("0.01")


# =============================================================================
# CONFIGURATION
# =============================================================================

ORDER_STATUSES: Tuple[str, ...] = tuple(status.value for status in OrderStatus)
CUSTOMER_SEGMENTS: Tuple[str, ...] = tuple(segment.value for segment in CustomerSegment)

CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "Electronics": ("Phones", "Laptops", "Tablets", "Accessories"),
    "Clothing": ("Shirts", "Pants", "Shoes", "Outerwear"),
    "Home": ("Furniture", "Kitchen", "Decor", "Lighting"),
    "Sports": ("Equipment", "Apparel", "Footwear", "Accessories"),
    "Food": ("Snacks", "Beverages", "Dairy", "Produce"),
}

BRANDS: Tuple[str, ...] = ("BrandA", "BrandB", "BrandC", "BrandD", "BrandE")

PRODUCT_ADJECTIVES: Tuple[str, ...] = (
    "Small", "Ergonomic", "Rustic", "Intelligent", "Gorgeous", "Incredible",
    "Fantastic", "Practical", "Sleek", "Awesome", "Generic", "Handcrafted",
    "Handmade", "Licensed", "Refined", "Unbranded", "Tasty", "Modern",
)
PRODUCT_MATERIALS: Tuple[str, ...] = (
    "Steel", "Wooden", "Concrete", "Plastic", "Cotton", "Granite", "Rubber",
    "Metal", "Soft", "Fresh", "Frozen", "Bronze", "Ceramic", "Marble",
)
PRODUCT_NOUNS: Tuple[str, ...] = (
    "Chair", "Car", "Computer", "Keyboard", "Mouse", "Bike", "Ball", "Gloves",
    "Pants", "Shirt", "Table", "Shoes", "Hat", "Towels", "Soap", "Tuna",
    "Chicken", "Fish", "Cheese", "Bacon", "Pizza", "Salad", "Sausages", "Chips",
)


def require_vocabulary(name: str, values: Sequence[Any]) -> None:
    """Raise ``ConfigurationError`` when a categorical vocabulary is empty."""
    if not values:
        raise ConfigurationError(f"Vocabulary '{name}' has no options")


def require_categories(categories: Mapping[str, Sequence[str]]) -> None:
    """Every category needs at least one subcategory of its own."""
    require_vocabulary("categories", list(categories))
    for category, subcategories in categories.items():
        if not subcategories:
            raise ConfigurationError(f"Category '{category}' has no subcategories")


def compute_total_amount(quantity: int, unit_price: Decimal, discount: Decimal) -> Decimal:
    """``round(quantity * unit_price * (1 - discount), 2)`` in exact decimal arithmetic"""
    return (Decimal(quantity) * unit_price * (Decimal(1) - discount)).quantize(CENT, rounding=ROUND_HALF_UP)


def date_attributes(d: date) -> Dict[str, Any]:
    """Calendar attributes of one day; ``day_of_week`` is 0 for Sunday."""
    return {
        "full_date": d,
        "year": d.year,
        "quarter": (d.month - 1) // 3 + 1,
        "month": d.month,
        "day": d.day,
        "day_of_week": d.isoweekday() % 7,
        "is_weekend": d.isoweekday() >= 6,
    }


# =============================================================================
# RANDOM SOURCE
# =============================================================================

class RandomSource:
    """
    Pseudo-random source shared by all generators of a run.

    Wraps a ``random.Random`` and a ``Faker`` instance seeded together, so a
    fixed seed reproduces the same dataset. With ``seed=None`` both are
    seeded from system entropy.
    """

    def __init__(self, seed: Optional[int] = None, locale: str = "en_US"):
        self.seed = seed
        self.rng = random.Random(seed)
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]``"""
        return self.rng.randint(low, high)

    def unit(self) -> float:
        """Uniform float in ``[0, 1)``"""
        return self.rng.random()

    def choice(self, values: Sequence[Any]) -> Any:
        return values[self.rng.randrange(len(values))]

    def price(self, low: int, high: int) -> Decimal:
        """Currency amount in ``[low, high]`` with two decimal places"""
        return Decimal(self.rng.randint(low * 100, high * 100)).scaleb(-2)

    def foreign_key(self, ids: IdRange) -> int:
        return ids.sample(self.rng)

    def full_name(self) -> str:
        return self.fake.name()

    def email(self) -> str:
        return self.fake.email()

    def product_name(self) -> str:
        return " ".join((
            self.choice(PRODUCT_ADJECTIVES),
            self.choice(PRODUCT_MATERIALS),
            self.choice(PRODUCT_NOUNS),
        ))

    def country(self) -> str:
        return self.fake.country()

    def state(self) -> str:
        return self.fake.state()

    def city(self) -> str:
        return self.fake.city()


# =============================================================================
# GENERATORS
# =============================================================================

class RowGenerator:
    """Base class: one table, fixed column order, one row per index"""

    table: str = ""
    columns: Tuple[str, ...] = ()

    def __init__(self, source: RandomSource):
        self.source = source

    @classmethod
    def check_options(cls, **options: Any) -> None:
        """Reject unusable construction options before any row is generated"""

    def row(self, index: int) -> Dict[str, Any]:
        raise NotImplementedError


class UserGenerator(RowGenerator):
    """Users with unique, index-prefixed emails"""

    table = "users"
    columns = ("email", "name")

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "email": f"user{index}_{self.source.email()}",
            "name": self.source.full_name(),
        }


class ProductGenerator(RowGenerator):
    """Shop products with price and stock"""

    table = "products"
    columns = ("name", "price", "stock")

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "name": self.source.product_name(),
            "price": self.source.price(1, 1000),
            "stock": self.source.integer(1, 100),
        }


class OrderGenerator(RowGenerator):
    """Orders placed by existing users"""

    table = "orders"
    columns = ("user_id", "total_price", "status")

    def __init__(
        self,
        source: RandomSource,
        user_ids: IdRange,
        statuses: Sequence[str] = ORDER_STATUSES,
    ):
        super().__init__(source)
        self.check_options(statuses=statuses)
        self.user_ids = user_ids
        self.statuses = tuple(statuses)

    @classmethod
    def check_options(cls, statuses: Sequence[str] = ORDER_STATUSES, **options: Any) -> None:
        require_vocabulary("statuses", statuses)

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "user_id": self.source.foreign_key(self.user_ids),
            "total_price": self.source.price(5, 500),
            "status": self.source.choice(self.statuses),
        }


class OrderItemGenerator(RowGenerator):
    """Order lines pointing at existing orders and products"""

    table = "order_items"
    columns = ("order_id", "product_id", "quantity")

    def __init__(self, source: RandomSource, order_ids: IdRange, product_ids: IdRange):
        super().__init__(source)
        self.order_ids = order_ids
        self.product_ids = product_ids

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "order_id": self.source.foreign_key(self.order_ids),
            "product_id": self.source.foreign_key(self.product_ids),
            "quantity": self.source.integer(1, 10),
        }


class DimDateGenerator(RowGenerator):
    """
    Exhaustive calendar generator.

    Not sampled: row ``i`` is always ``start + i days``, and the generator
    decides its own row count from the date range.
    """

    table = "dim_date"
    columns = ("full_date", "year", "quarter", "month", "day", "day_of_week", "is_weekend")

    def __init__(self, source: RandomSource, start: date, end: date):
        super().__init__(source)
        self.check_options(start=start, end=end)
        self.start = start
        self.end = end

    @classmethod
    def check_options(cls, start: Optional[date] = None, end: Optional[date] = None, **options: Any) -> None:
        if start is not None and end is not None and end < start:
            raise ConfigurationError(f"Date range is empty: {start} > {end}")

    @property
    def row_count(self) -> int:
        return (self.end - self.start).days + 1

    def row(self, index: int) -> Dict[str, Any]:
        if not 0 <= index < self.row_count:
            raise IndexError(f"Day {index} is outside {self.start}..{self.end}")
        return date_attributes(self.start + timedelta(days=index))


class DimRegionGenerator(RowGenerator):
    """Country / state / city triples"""

    table = "dim_region"
    columns = ("country", "state", "city")

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "country": self.source.country(),
            "state": self.source.state(),
            "city": self.source.city(),
        }


class DimCustomerGenerator(RowGenerator):
    """Warehouse customers living in existing regions"""

    table = "dim_customer"
    columns = ("name", "email", "segment", "region_id")

    def __init__(
        self,
        source: RandomSource,
        region_ids: IdRange,
        segments: Sequence[str] = CUSTOMER_SEGMENTS,
    ):
        super().__init__(source)
        self.check_options(segments=segments)
        self.region_ids = region_ids
        self.segments = tuple(segments)

    @classmethod
    def check_options(cls, segments: Sequence[str] = CUSTOMER_SEGMENTS, **options: Any) -> None:
        require_vocabulary("segments", segments)

    def row(self, index: int) -> Dict[str, Any]:
        return {
            "name": self.source.full_name(),
            "email": f"cust{index}_{self.source.email()}",
            "segment": self.source.choice(self.segments),
            "region_id": self.source.foreign_key(self.region_ids),
        }


class DimProductGenerator(RowGenerator):
    """Warehouse products; subcategory is always drawn from its own category"""

    table = "dim_product"
    columns = ("name", "category", "subcategory", "brand", "unit_cost")

    def __init__(
        self,
        source: RandomSource,
        categories: Mapping[str, Sequence[str]] = CATEGORIES,
        brands: Sequence[str] = BRANDS,
    ):
        super().__init__(source)
        self.check_options(categories=categories, brands=brands)
        self.categories = {name: tuple(subs) for name, subs in categories.items()}
        self.category_names = tuple(self.categories)
        self.brands = tuple(brands)

    @classmethod
    def check_options(
        cls,
        categories: Mapping[str, Sequence[str]] = CATEGORIES,
        brands: Sequence[str] = BRANDS,
        **options: Any,
    ) -> None:
        require_categories(categories)
        require_vocabulary("brands", brands)

    def row(self, index: int) -> Dict[str, Any]:
        category = self.source.choice(self.category_names)
        return {
            "name": self.source.product_name(),
            "category": category,
            "subcategory": self.source.choice(self.categories[category]),
            "brand": self.source.choice(self.brands),
            "unit_cost": self.source.price(1, 200),
        }


class FactSalesGenerator(RowGenerator):
    """Sales facts over all four dimensions"""

    table = "fact_sales"
    columns = (
        "date_id", "customer_id", "product_id", "region_id",
        "quantity", "unit_price", "discount", "total_amount",
    )

    def __init__(
        self,
        source: RandomSource,
        date_ids: IdRange,
        customer_ids: IdRange,
        product_ids: IdRange,
        region_ids: IdRange,
    ):
        super().__init__(source)
        self.date_ids = date_ids
        self.customer_ids = customer_ids
        self.product_ids = product_ids
        self.region_ids = region_ids

    def row(self, index: int) -> Dict[str, Any]:
        source = self.source
        date_id = source.foreign_key(self.date_ids)
        customer_id = source.foreign_key(self.customer_ids)
        product_id = source.foreign_key(self.product_ids)
        region_id = source.foreign_key(self.region_ids)
        quantity = source.integer(1, 20)
        unit_price = source.price(5, 500)
        discount = Decimal(f"{source.unit() * 0.3:.2f}")

        return {
            "date_id": date_id,
            "customer_id": customer_id,
            "product_id": product_id,
            "region_id": region_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "discount": discount,
            "total_amount": compute_total_amount(quantity, unit_price, discount),
        }
