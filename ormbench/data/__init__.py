"""
Data Generation Module
"""
from .generators import (
    RandomSource,
    RowGenerator,
    UserGenerator,
    ProductGenerator,
    OrderGenerator,
    OrderItemGenerator,
    DimDateGenerator,
    DimRegionGenerator,
    DimCustomerGenerator,
    DimProductGenerator,
    FactSalesGenerator,
)

__all__ = [
    "RandomSource",
    "RowGenerator",
    "UserGenerator",
    "ProductGenerator",
    "OrderGenerator",
    "OrderItemGenerator",
    "DimDateGenerator",
    "DimRegionGenerator",
    "DimCustomerGenerator",
    "DimProductGenerator",
    "FactSalesGenerator",
]
