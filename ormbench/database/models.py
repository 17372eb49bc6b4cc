"""
Database Models - OLTP and Star Schema

Two independent schemas, each on its own declarative base so a dataset
can be dropped and recreated without touching the other one.

OLTP (``OltpBase``):
- User -> Order -> OrderItem <- Product

OLAP star schema (``OlapBase``):
- FactSales referencing DimDate, DimCustomer, DimProduct and DimRegion
- DimCustomer referencing DimRegion

Primary keys are plain autoincrementing integers; the generator relies on
them being assigned contiguously from 1 in insertion order.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class OltpBase(DeclarativeBase):
    """Base class for the OLTP schema"""
    pass


class OlapBase(DeclarativeBase):
    """Base class for the OLAP star schema"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CustomerSegment(str, Enum):
    """Customer segment enumeration"""
    CONSUMER = "Consumer"
    CORPORATE = "Corporate"
    ENTERPRISE = "Enterprise"
    GOVERNMENT = "Government"


# =============================================================================
# OLTP TABLES
# =============================================================================

class User(OltpBase):
    """Registered shop user"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, unique=True)
    name: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    orders: Mapped[List["Order"]] = relationship(back_populates="user")


class Product(OltpBase):
    """Sellable product with stock level"""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    stock: Mapped[int] = mapped_column(Integer)

    order_items: Mapped[List["OrderItem"]] = relationship(back_populates="product")


class Order(OltpBase):
    """Customer order header"""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(Text)

    user: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(back_populates="order")


class OrderItem(OltpBase):
    """Order line"""
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"))
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    quantity: Mapped[int] = mapped_column(Integer)

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship(back_populates="order_items")


# =============================================================================
# OLAP DIMENSION TABLES
# =============================================================================

class DimDate(OlapBase):
    """
    Date Dimension Table

    One row per calendar day. ``day_of_week`` is 0 for Sunday through 6 for
    Saturday.
    """
    __tablename__ = "dim_date"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_date: Mapped[date] = mapped_column(Date)
    year: Mapped[int] = mapped_column(Integer)
    quarter: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    day: Mapped[int] = mapped_column(Integer)
    day_of_week: Mapped[int] = mapped_column(Integer)
    is_weekend: Mapped[bool] = mapped_column(Boolean)

    sales: Mapped[List["FactSales"]] = relationship(back_populates="date")


class DimRegion(OlapBase):
    """Geographic dimension"""
    __tablename__ = "dim_region"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    country: Mapped[str] = mapped_column(Text)
    state: Mapped[str] = mapped_column(Text)
    city: Mapped[str] = mapped_column(Text)

    customers: Mapped[List["DimCustomer"]] = relationship(back_populates="region")
    sales: Mapped[List["FactSales"]] = relationship(back_populates="region")


class DimCustomer(OlapBase):
    """Customer dimension"""
    __tablename__ = "dim_customer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[str] = mapped_column(Text)
    segment: Mapped[str] = mapped_column(Text)
    region_id: Mapped[int] = mapped_column(ForeignKey("dim_region.id"))

    region: Mapped["DimRegion"] = relationship(back_populates="customers")
    sales: Mapped[List["FactSales"]] = relationship(back_populates="customer")


class DimProduct(OlapBase):
    """Product dimension with category hierarchy"""
    __tablename__ = "dim_product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(Text)
    subcategory: Mapped[str] = mapped_column(Text)
    brand: Mapped[str] = mapped_column(Text)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    sales: Mapped[List["FactSales"]] = relationship(back_populates="product")


# =============================================================================
# OLAP FACT TABLE
# =============================================================================

class FactSales(OlapBase):
    """
    Sales Fact Table

    Grain: one sale line. ``total_amount`` is always
    ``round(quantity * unit_price * (1 - discount), 2)``.
    """
    __tablename__ = "fact_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date_id: Mapped[int] = mapped_column(ForeignKey("dim_date.id"))
    customer_id: Mapped[int] = mapped_column(ForeignKey("dim_customer.id"))
    product_id: Mapped[int] = mapped_column(ForeignKey("dim_product.id"))
    region_id: Mapped[int] = mapped_column(ForeignKey("dim_region.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    date: Mapped["DimDate"] = relationship(back_populates="sales")
    customer: Mapped["DimCustomer"] = relationship(back_populates="sales")
    product: Mapped["DimProduct"] = relationship(back_populates="sales")
    region: Mapped["DimRegion"] = relationship(back_populates="sales")


DATASET_METADATA: dict[str, MetaData] = {
    "oltp": OltpBase.metadata,
    "olap": OlapBase.metadata,
}
