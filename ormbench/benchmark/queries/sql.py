"""
Raw SQL access layer

Hand-written PostgreSQL statements executed through ``sqlalchemy.text``.
"""

from sqlalchemy import text

# =============================================================================
# OLTP QUERIES
# =============================================================================

GET_USER_BY_ID = text("SELECT * FROM users WHERE id = :id")
GET_USER_BY_EMAIL = text("SELECT * FROM users WHERE email = :email")
GET_PRODUCT_BY_ID = text("SELECT * FROM products WHERE id = :id")
GET_ORDER_BY_ID = text("SELECT * FROM orders WHERE id = :id")

# User's orders with item details
GET_ORDERS_BY_USER = text("""
    SELECT o.id AS order_id, o.status, o.total_price,
           p.name AS product, oi.quantity
    FROM orders o
    JOIN order_items oi ON oi.order_id = o.id
    JOIN products p ON p.id = oi.product_id
    WHERE o.user_id = :user_id
    ORDER BY o.id DESC
""")

GET_PRODUCT_STOCK = text("SELECT id, name, stock FROM products WHERE id = :id")

GET_RECENT_ORDERS = text("""
    SELECT o.id, u.name AS customer, o.total_price, o.status
    FROM orders o
    JOIN users u ON u.id = o.user_id
    ORDER BY o.id DESC
    LIMIT :limit OFFSET :offset
""")

SEARCH_USERS_BY_NAME = text("""
    SELECT id, name, email FROM users WHERE name ILIKE '%' || :name || '%' LIMIT 20
""")

INSERT_ORDER = text("""
    INSERT INTO orders (user_id, total_price, status)
    VALUES (:user_id, :total_price, :status)
    RETURNING id
""")

INSERT_ORDER_ITEM = text("""
    INSERT INTO order_items (order_id, product_id, quantity)
    VALUES (:order_id, :product_id, :quantity)
""")

UPDATE_ORDER_STATUS = text("UPDATE orders SET status = :new_status WHERE id = :order_id")

DECREMENT_STOCK = text("""
    UPDATE products SET stock = stock - :amount WHERE id = :product_id AND stock >= :amount
""")

# =============================================================================
# OLAP QUERIES
# =============================================================================

REVENUE_BY_QUARTER = text("""
    SELECT d.year, d.quarter, SUM(f.total_amount) AS revenue
    FROM fact_sales f
    JOIN dim_date d ON d.id = f.date_id
    GROUP BY d.year, d.quarter
    ORDER BY d.year, d.quarter
""")

MONTHLY_REVENUE_TREND = text("""
    SELECT d.year, d.month, SUM(f.total_amount) AS revenue, COUNT(*) AS num_sales
    FROM fact_sales f
    JOIN dim_date d ON d.id = f.date_id
    GROUP BY d.year, d.month
    ORDER BY d.year, d.month
""")

TOP_PRODUCTS_BY_REVENUE = text("""
    SELECT p.name, p.category, SUM(f.total_amount) AS revenue, SUM(f.quantity) AS units_sold
    FROM fact_sales f
    JOIN dim_product p ON p.id = f.product_id
    GROUP BY p.id, p.name, p.category
    ORDER BY revenue DESC
    LIMIT 10
""")

REVENUE_BY_CATEGORY_AND_YEAR = text("""
    SELECT p.category, d.year, SUM(f.total_amount) AS revenue
    FROM fact_sales f
    JOIN dim_product p ON p.id = f.product_id
    JOIN dim_date d ON d.id = f.date_id
    GROUP BY p.category, d.year
    ORDER BY p.category, d.year
""")

REVENUE_BY_COUNTRY = text("""
    SELECT r.country, SUM(f.total_amount) AS revenue, COUNT(*) AS num_sales
    FROM fact_sales f
    JOIN dim_region r ON r.id = f.region_id
    GROUP BY r.country
    ORDER BY revenue DESC
    LIMIT 20
""")

REVENUE_BY_SEGMENT = text("""
    SELECT c.segment, SUM(f.total_amount) AS revenue,
           COUNT(DISTINCT c.id) AS customers, COUNT(*) AS transactions
    FROM fact_sales f
    JOIN dim_customer c ON c.id = f.customer_id
    GROUP BY c.segment
    ORDER BY revenue DESC
""")

TOP_CUSTOMERS_BY_SPEND = text("""
    SELECT c.name, c.segment, SUM(f.total_amount) AS total_spend, COUNT(*) AS num_orders
    FROM fact_sales f
    JOIN dim_customer c ON c.id = f.customer_id
    GROUP BY c.id, c.name, c.segment
    ORDER BY total_spend DESC
    LIMIT 10
""")

WEEKEND_VS_WEEKDAY_SALES = text("""
    SELECT d.is_weekend, COUNT(*) AS num_sales, SUM(f.total_amount) AS revenue,
           AVG(f.total_amount) AS avg_sale
    FROM fact_sales f
    JOIN dim_date d ON d.id = f.date_id
    GROUP BY d.is_weekend
""")

AVG_DISCOUNT_BY_BRAND = text("""
    SELECT p.brand, AVG(f.discount) AS avg_discount, SUM(f.total_amount) AS revenue
    FROM fact_sales f
    JOIN dim_product p ON p.id = f.product_id
    GROUP BY p.brand
    ORDER BY avg_discount DESC
""")

YOY_GROWTH_BY_CATEGORY = text("""
    WITH yearly AS (
        SELECT p.category, d.year, SUM(f.total_amount) AS revenue
        FROM fact_sales f
        JOIN dim_product p ON p.id = f.product_id
        JOIN dim_date d ON d.id = f.date_id
        GROUP BY p.category, d.year
    )
    SELECT curr.category, curr.year, curr.revenue,
           prev.revenue AS prev_year_revenue,
           ROUND(((curr.revenue - prev.revenue) / prev.revenue) * 100, 2) AS growth_pct
    FROM yearly curr
    LEFT JOIN yearly prev ON prev.category = curr.category AND prev.year = curr.year - 1
    ORDER BY curr.category, curr.year
""")


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
