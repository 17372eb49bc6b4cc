"""
SQLAlchemy Core access layer

The same queries as the raw SQL layer, built with the expression language
against the mapped tables. Statements take their parameters through
``bindparam`` so each one is compiled once and reused.
"""

from sqlalchemy import Text, and_, bindparam, func, insert, literal, select, update

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

users = User.__table__
products = Product.__table__
orders = Order.__table__
order_items = OrderItem.__table__

dim_date = DimDate.__table__
dim_region = DimRegion.__table__
dim_customer = DimCustomer.__table__
dim_product = DimProduct.__table__
fact_sales = FactSales.__table__

# =============================================================================
# OLTP QUERIES
# =============================================================================

GET_USER_BY_ID = select(users).where(users.c.id == bindparam("id"))
GET_USER_BY_EMAIL = select(users).where(users.c.email == bindparam("email"))
GET_PRODUCT_BY_ID = select(products).where(products.c.id == bindparam("id"))
GET_ORDER_BY_ID = select(orders).where(orders.c.id == bindparam("id"))

GET_ORDERS_BY_USER = (
    select(
        orders.c.id.label("order_id"),
        orders.c.status,
        orders.c.total_price,
        products.c.name.label("product"),
        order_items.c.quantity,
    )
    .select_from(
        orders.join(order_items, order_items.c.order_id == orders.c.id)
        .join(products, products.c.id == order_items.c.product_id)
    )
    .where(orders.c.user_id == bindparam("user_id"))
    .order_by(orders.c.id.desc())
)

GET_PRODUCT_STOCK = (
    select(products.c.id, products.c.name, products.c.stock)
    .where(products.c.id == bindparam("id"))
)

GET_RECENT_ORDERS = (
    select(orders.c.id, users.c.name.label("customer"), orders.c.total_price, orders.c.status)
    .select_from(orders.join(users, users.c.id == orders.c.user_id))
    .order_by(orders.c.id.desc())
    .limit(bindparam("limit"))
    .offset(bindparam("offset"))
)

SEARCH_USERS_BY_NAME = (
    select(users.c.id, users.c.name, users.c.email)
    .where(users.c.name.ilike(literal("%") + bindparam("name", type_=Text) + literal("%")))
    .limit(20)
)

# Column values come from the execution parameters
INSERT_ORDER = insert(orders).returning(orders.c.id)
INSERT_ORDER_ITEM = insert(order_items)

UPDATE_ORDER_STATUS = (
    update(orders)
    .where(orders.c.id == bindparam("order_id"))
    .values(status=bindparam("new_status"))
)

DECREMENT_STOCK = (
    update(products)
    .where(and_(products.c.id == bindparam("product_id"), products.c.stock >= bindparam("amount")))
    .values(stock=products.c.stock - bindparam("amount"))
)

# =============================================================================
# OLAP QUERIES
# =============================================================================

_revenue = func.sum(fact_sales.c.total_amount).label("revenue")
_num_sales = func.count().label("num_sales")

REVENUE_BY_QUARTER = (
    select(dim_date.c.year, dim_date.c.quarter, _revenue)
    .select_from(fact_sales.join(dim_date, dim_date.c.id == fact_sales.c.date_id))
    .group_by(dim_date.c.year, dim_date.c.quarter)
    .order_by(dim_date.c.year, dim_date.c.quarter)
)

MONTHLY_REVENUE_TREND = (
    select(dim_date.c.year, dim_date.c.month, _revenue, _num_sales)
    .select_from(fact_sales.join(dim_date, dim_date.c.id == fact_sales.c.date_id))
    .group_by(dim_date.c.year, dim_date.c.month)
    .order_by(dim_date.c.year, dim_date.c.month)
)

TOP_PRODUCTS_BY_REVENUE = (
    select(
        dim_product.c.name,
        dim_product.c.category,
        _revenue,
        func.sum(fact_sales.c.quantity).label("units_sold"),
    )
    .select_from(fact_sales.join(dim_product, dim_product.c.id == fact_sales.c.product_id))
    .group_by(dim_product.c.id, dim_product.c.name, dim_product.c.category)
    .order_by(_revenue.desc())
    .limit(10)
)

REVENUE_BY_CATEGORY_AND_YEAR = (
    select(dim_product.c.category, dim_date.c.year, _revenue)
    .select_from(
        fact_sales.join(dim_product, dim_product.c.id == fact_sales.c.product_id)
        .join(dim_date, dim_date.c.id == fact_sales.c.date_id)
    )
    .group_by(dim_product.c.category, dim_date.c.year)
    .order_by(dim_product.c.category, dim_date.c.year)
)

REVENUE_BY_COUNTRY = (
    select(dim_region.c.country, _revenue, _num_sales)
    .select_from(fact_sales.join(dim_region, dim_region.c.id == fact_sales.c.region_id))
    .group_by(dim_region.c.country)
    .order_by(_revenue.desc())
    .limit(20)
)

REVENUE_BY_SEGMENT = (
    select(
        dim_customer.c.segment,
        _revenue,
        func.count(dim_customer.c.id.distinct()).label("customers"),
        func.count().label("transactions"),
    )
    .select_from(fact_sales.join(dim_customer, dim_customer.c.id == fact_sales.c.customer_id))
    .group_by(dim_customer.c.segment)
    .order_by(_revenue.desc())
)

_total_spend = func.sum(fact_sales.c.total_amount).label("total_spend")

TOP_CUSTOMERS_BY_SPEND = (
    select(dim_customer.c.name, dim_customer.c.segment, _total_spend, func.count().label("num_orders"))
    .select_from(fact_sales.join(dim_customer, dim_customer.c.id == fact_sales.c.customer_id))
    .group_by(dim_customer.c.id, dim_customer.c.name, dim_customer.c.segment)
    .order_by(_total_spend.desc())
    .limit(10)
)

WEEKEND_VS_WEEKDAY_SALES = (
    select(
        dim_date.c.is_weekend,
        _num_sales,
        _revenue,
        func.avg(fact_sales.c.total_amount).label("avg_sale"),
    )
    .select_from(fact_sales.join(dim_date, dim_date.c.id == fact_sales.c.date_id))
    .group_by(dim_date.c.is_weekend)
)

_avg_discount = func.avg(fact_sales.c.discount).label("avg_discount")

AVG_DISCOUNT_BY_BRAND = (
    select(dim_product.c.brand, _avg_discount, _revenue)
    .select_from(fact_sales.join(dim_product, dim_product.c.id == fact_sales.c.product_id))
    .group_by(dim_product.c.brand)
    .order_by(_avg_discount.desc())
)

_yearly = (
    select(dim_product.c.category, dim_date.c.year, _revenue)
    .select_from(
        fact_sales.join(dim_product, dim_product.c.id == fact_sales.c.product_id)
        .join(dim_date, dim_date.c.id == fact_sales.c.date_id)
    )
    .group_by(dim_product.c.category, dim_date.c.year)
    .cte("yearly")
)
_curr = _yearly.alias("curr")
_prev = _yearly.alias("prev")

YOY_GROWTH_BY_CATEGORY = (
    select(
        _curr.c.category,
        _curr.c.year,
        _curr.c.revenue,
        _prev.c.revenue.label("prev_year_revenue"),
        func.round((_curr.c.revenue - _prev.c.revenue) / _prev.c.revenue * 100, 2).label("growth_pct"),
    )
    .select_from(
        _curr.outerjoin(
            _prev,
            and_(_prev.c.category == _curr.c.category, _prev.c.year == _curr.c.year - 1),
        )
    )
    .order_by(_curr.c.category, _curr.c.year)
)


OLTP_QUERIES = {
    "get_user_by_id": GET_USER_BY_ID,
    "get_user_by_email": GET_USER_BY_EMAIL,
    "get_product_by_id": GET_PRODUCT_BY_ID,
    "get_order_by_id": GET_ORDER_BY_ID,
    "get_orders_by_user": GET_ORDERS_BY_USER,
    "get_product_stock": GET_PRODUCT_STOCK,
    "get_recent_orders": GET_RECENT_ORDERS,
    "search_users_by_name": SEARCH_USERS_BY_NAME,
}

OLAP_QUERIES = {
    "revenue_by_quarter": REVENUE_BY_QUARTER,
    "monthly_revenue_trend": MONTHLY_REVENUE_TREND,
    "top_products_by_revenue": TOP_PRODUCTS_BY_REVENUE,
    "revenue_by_category_and_year": REVENUE_BY_CATEGORY_AND_YEAR,
    "revenue_by_country": REVENUE_BY_COUNTRY,
    "revenue_by_segment": REVENUE_BY_SEGMENT,
    "top_customers_by_spend": TOP_CUSTOMERS_BY_SPEND,
    "weekend_vs_weekday_sales": WEEKEND_VS_WEEKDAY_SALES,
    "avg_discount_by_brand": AVG_DISCOUNT_BY_BRAND,
    "yoy_growth_by_category": YOY_GROWTH_BY_CATEGORY,
}

WRITE_QUERIES = {
    "insert_order": INSERT_ORDER,
    "insert_order_item": INSERT_ORDER_ITEM,
    "update_order_status": UPDATE_ORDER_STATUS,
    "decrement_stock": DECREMENT_STOCK,
}
