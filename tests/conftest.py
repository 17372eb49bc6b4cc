"""
Test Suite Configuration
"""
from datetime import date
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from ormbench.config import Settings
from ormbench.config.settings import BenchmarkSettings, GenerationSettings
from ormbench.data.generators import RandomSource
from ormbench.database.connection import open_store
from ormbench.ingestion.id_space import IdSpaceAllocator


@pytest.fixture
def generation_settings() -> GenerationSettings:
    """Small, seeded dataset sizes"""
    return GenerationSettings(
        batch_size=50,
        seed=42,
        log_every_batches=1,
        users=120,
        products=15,
        orders=200,
        order_items=300,
        date_start=date(2024, 1, 1),
        date_end=date(2024, 1, 31),
        regions=10,
        customers=60,
        dim_products=25,
        sales=250,
    )


@pytest.fixture
def test_settings(generation_settings: GenerationSettings) -> Settings:
    """Create test settings"""
    return Settings(
        generation=generation_settings,
        benchmark=BenchmarkSettings(repeat=2),
    )


@pytest.fixture
def source() -> RandomSource:
    """Seeded random source"""
    return RandomSource(seed=42)


@pytest.fixture
def allocator() -> IdSpaceAllocator:
    """Allocator with the tables of both datasets already loaded"""
    allocator = IdSpaceAllocator()
    for table, count in {
        "users": 100,
        "products": 20,
        "orders": 300,
        "dim_date": 31,
        "dim_region": 10,
        "dim_customer": 50,
        "dim_product": 25,
    }.items():
        allocator.register(table, count)
    return allocator


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite database standing in for PostgreSQL"""
    return f"sqlite+aiosqlite:///{tmp_path / 'ormbench.db'}"


@pytest.fixture
async def test_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine"""
    async with open_store(database_url) as engine:
        yield engine
