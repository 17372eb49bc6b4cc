"""
SQLAlchemy ORM access layer

The same queries expressed through mapped entities and an ``AsyncSession``.
Every function returns the materialized result rows (or entities), writes
return the affected row count or the new primary key.
"""

from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ormbench.database.models import (
    DimCustomer,
    DimDate,
    DimProduct,
    DimRegion,
    FactSales,
    Order,
    OrderItem,
    Product,
    User,
)


def _present(entity: Any) -> Sequence[Any]:
    return [entity] if entity is not None else []


# =============================================================================
# OLTP QUERIES
# =============================================================================

async def get_user_by_id(session: AsyncSession, id: int) -> Sequence[Any]:
    return _present(await session.get(User, id))


async def get_user_by_email(session: AsyncSession, email: str) -> Sequence[Any]:
    result = await session.scalars(select(User).where(User.email == email))
    return result.all()


async def get_product_by_id(session: AsyncSession, id: int) -> Sequence[Any]:
    return _present(await session.get(Product, id))


async def get_order_by_id(session: AsyncSession, id: int) -> Sequence[Any]:
    return _present(await session.get(Order, id))


async def get_orders_by_user(session: AsyncSession, user_id: int) -> Sequence[Any]:
    """User's orders with item details"""
    stmt = (
        select(
            Order.id.label("order_id"),
            Order.status,
            Order.total_price,
            Product.name.label("product"),
            OrderItem.quantity,
        )
        .select_from(Order)
        .join(Order.items)
        .join(OrderItem.product)
        .where(Order.user_id == user_id)
        .order_by(Order.id.desc())
    )
    result = await session.execute(stmt)
    return result.all()


async def get_product_stock(session: AsyncSession, id: int) -> Sequence[Any]:
    result = await session.execute(select(Product.id, Product.name, Product.stock).where(Product.id == id))
    return result.all()


async def get_recent_orders(session: AsyncSession, limit: int, offset: int) -> Sequence[Any]:
    stmt = (
        select(Order.id, User.name.label("customer"), Order.total_price, Order.status)
        .select_from(Order)
        .join(Order.user)
        .order_by(Order.id.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(stmt)
    return result.all()


async def search_users_by_name(session: AsyncSession, name: str) -> Sequence[Any]:
    stmt = select(User.id, User.name, User.email).where(User.name.ilike(f"%{name}%")).limit(20)
    result = await session.execute(stmt)
    return result.all()


async def insert_order(session: AsyncSession, user_id: int, total_price: Decimal, status: str) -> int:
    order = Order(user_id=user_id, total_price=total_price, status=status)
    session.add(order)
    await session.flush()
    return order.id


async def insert_order_item(session: AsyncSession, order_id: int, product_id: int, quantity: int) -> int:
    session.add(OrderItem(order_id=order_id, product_id=product_id, quantity=quantity))
    await session.flush()
    return 1


async def update_order_status(session: AsyncSession, order_id: int, new_status: str) -> int:
    order = await session.get(Order, order_id)
    if order is None:
        return 0
    order.status = new_status
    await session.flush()
    return 1


async def decrement_stock(session: AsyncSession, product_id: int, amount: int) -> int:
    """Never takes stock below zero"""
    product = await session.get(Product, product_id)
    if product is None or product.stock < amount:
        return 0
    product.stock -= amount
    await session.flush()
    return 1


# =============================================================================
# OLAP QUERIES
# =============================================================================

_revenue = func.sum(FactSales.total_amount).label("revenue")
_num_sales = func.count().label("num_sales")


async def revenue_by_quarter(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimDate.year, DimDate.quarter, _revenue)
        .select_from(FactSales)
        .join(FactSales.date)
        .group_by(DimDate.year, DimDate.quarter)
        .order_by(DimDate.year, DimDate.quarter)
    )
    return (await session.execute(stmt)).all()


async def monthly_revenue_trend(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimDate.year, DimDate.month, _revenue, _num_sales)
        .select_from(FactSales)
        .join(FactSales.date)
        .group_by(DimDate.year, DimDate.month)
        .order_by(DimDate.year, DimDate.month)
    )
    return (await session.execute(stmt)).all()


async def top_products_by_revenue(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimProduct.name, DimProduct.category, _revenue, func.sum(FactSales.quantity).label("units_sold"))
        .select_from(FactSales)
        .join(FactSales.product)
        .group_by(DimProduct.id, DimProduct.name, DimProduct.category)
        .order_by(_revenue.desc())
        .limit(10)
    )
    return (await session.execute(stmt)).all()


async def revenue_by_category_and_year(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimProduct.category, DimDate.year, _revenue)
        .select_from(FactSales)
        .join(FactSales.product)
        .join(FactSales.date)
        .group_by(DimProduct.category, DimDate.year)
        .order_by(DimProduct.category, DimDate.year)
    )
    return (await session.execute(stmt)).all()


async def revenue_by_country(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimRegion.country, _revenue, _num_sales)
        .select_from(FactSales)
        .join(FactSales.region)
        .group_by(DimRegion.country)
        .order_by(_revenue.desc())
        .limit(20)
    )
    return (await session.execute(stmt)).all()


async def revenue_by_segment(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(
            DimCustomer.segment,
            _revenue,
            func.count(DimCustomer.id.distinct()).label("customers"),
            func.count().label("transactions"),
        )
        .select_from(FactSales)
        .join(FactSales.customer)
        .group_by(DimCustomer.segment)
        .order_by(_revenue.desc())
    )
    return (await session.execute(stmt)).all()


async def top_customers_by_spend(session: AsyncSession) -> Sequence[Any]:
    total_spend = func.sum(FactSales.total_amount).label("total_spend")
    stmt = (
        select(DimCustomer.name, DimCustomer.segment, total_spend, func.count().label("num_orders"))
        .select_from(FactSales)
        .join(FactSales.customer)
        .group_by(DimCustomer.id, DimCustomer.name, DimCustomer.segment)
        .order_by(total_spend.desc())
        .limit(10)
    )
    return (await session.execute(stmt)).all()


async def weekend_vs_weekday_sales(session: AsyncSession) -> Sequence[Any]:
    stmt = (
        select(DimDate.is_weekend, _num_sales, _revenue, func.avg(FactSales.total_amount).label("avg_sale"))
        .select_from(FactSales)
        .join(FactSales.date)
        .group_by(DimDate.is_weekend)
    )
    return (await session.execute(stmt)).all()


async def avg_discount_by_brand(session: AsyncSession) -> Sequence[Any]:
    avg_discount = func.avg(FactSales.discount).label("avg_discount")
    stmt = (
        select(DimProduct.brand, avg_discount, _revenue)
        .select_from(FactSales)
        .join(FactSales.product)
        .group_by(DimProduct.brand)
        .order_by(avg_discount.desc())
    )
    return (await session.execute(stmt)).all()


async def yoy_growth_by_category(session: AsyncSession) -> Sequence[Any]:
    yearly = (
        select(DimProduct.category, DimDate.year, _revenue)
        .select_from(FactSales)
        .join(FactSales.product)
        .join(FactSales.date)
        .group_by(DimProduct.category, DimDate.year)
        .cte("yearly")
    )
    curr = yearly.alias("curr")
    prev = yearly.alias("prev")
    stmt = (
        select(
            curr.c.category,
            curr.c.year,
            curr.c.revenue,
            prev.c.revenue.label("prev_year_revenue"),
            func.round((curr.c.revenue - prev.c.revenue) / prev.c.revenue * 100, 2).label("growth_pct"),
        )
        .select_from(curr)
        .outerjoin(prev, and_(prev.c.category == curr.c.category, prev.c.year == curr.c.year - 1))
        .order_by(curr.c.category, curr.c.year)
    )
    return (await session.execute(stmt)).all()


OLTP_QUERIES = {
    "get_user_by_id": get_user_by_id,
    "get_user_by_email": get_user_by_email,
    "get_product_by_id": get_product_by_id,
    "get_order_by_id": get_order_by_id,
    "get_orders_by_user": get_orders_by_user,
    "get_product_stock": get_product_stock,
    "get_recent_orders": get_recent_orders,
    "search_users_by_name": search_users_by_name,
}

OLAP_QUERIES = {
    "revenue_by_quarter": revenue_by_quarter,
    "monthly_revenue_trend": monthly_revenue_trend,
    "top_products_by_revenue": top_products_by_revenue,
    "revenue_by_category_and_year": revenue_by_category_and_year,
    "revenue_by_country": revenue_by_country,
    "revenue_by_segment": revenue_by_segment,
    "top_customers_by_spend": top_customers_by_spend,
    "weekend_vs_weekday_sales": weekend_vs_weekday_sales,
    "avg_discount_by_brand": avg_discount_by_brand,
    "yoy_growth_by_category": yoy_growth_by_category,
}

WRITE_QUERIES = {
    "insert_order": insert_order,
    "insert_order_item": insert_order_item,
    "update_order_status": update_order_status,
    "decrement_stock": decrement_stock,
}
