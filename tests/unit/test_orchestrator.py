"""
Unit Tests - Dataset Orchestrator
"""
import pytest
from sqlalchemy import func, select

from ormbench.config import Settings
from ormbench.config.settings import DatabaseSettings
from ormbench.data.generators import OrderGenerator, ProductGenerator, UserGenerator
from ormbench.database.models import (
    DimCustomer,
    DimDate,
    DimProduct,
    FactSales,
    Order,
    OrderItem,
    OltpBase,
    Product,
    User,
)
from ormbench.exceptions import ConfigurationError, SequencingError, StoreWriteError
from ormbench.ingestion.batch_loader import LoadStatus
from ormbench.ingestion.orchestrator import (
    DatasetOrchestrator,
    TablePlan,
    olap_plan,
    oltp_plan,
    populate_dataset,
)
from ormbench.ingestion.schema import SchemaBuilder


async def _scalar(engine, stmt):
    async with engine.connect() as conn:
        return (await conn.execute(stmt)).scalar_one()


async def _count(engine, model) -> int:
    return await _scalar(engine, select(func.count()).select_from(model.__table__))


class DuplicateEmailUsers(UserGenerator):
    """Users whose emails collide from the 61st row on"""

    def row(self, index):
        values = super().row(index)
        if index >= 60:
            values["email"] = "duplicate@example.com"
        return values


class TestTablePlans:
    """Tests for the dataset table plans"""

    def test_oltp_order(self, generation_settings):
        """Test OLTP parents come before their dependents"""
        names = [plan.name for plan in oltp_plan(generation_settings)]

        assert names == ["users", "products", "orders", "order_items"]

    def test_olap_order(self, generation_settings):
        """Test dimensions come before the fact table"""
        plans = olap_plan(generation_settings)
        names = [plan.name for plan in plans]

        assert names[-1] == "fact_sales"
        assert names.index("dim_region") < names.index("dim_customer")
        assert sorted(plans[-1].depends_on) == ["dim_customer", "dim_date", "dim_product", "dim_region"]


class TestOltpPopulation:
    """Tests for populating the OLTP dataset"""

    async def test_exact_counts(self, test_engine, generation_settings):
        """Test every table receives exactly its target count"""
        report = await DatasetOrchestrator(test_engine, "oltp", settings=generation_settings).populate()

        assert report.status == LoadStatus.COMPLETED
        assert report.id_ranges == {"users": 120, "products": 15, "orders": 200, "order_items": 300}
        assert report.total_rows == 635
        assert await _count(test_engine, User) == 120
        assert await _count(test_engine, OrderItem) == 300

    async def test_foreign_keys_in_range(self, test_engine, generation_settings):
        """Test foreign keys only point at populated ids"""
        await DatasetOrchestrator(test_engine, "oltp", settings=generation_settings).populate()

        assert await _scalar(test_engine, select(func.min(Order.user_id))) >= 1
        assert await _scalar(test_engine, select(func.max(Order.user_id))) <= 120
        assert await _scalar(test_engine, select(func.max(OrderItem.order_id))) <= 200
        assert await _scalar(test_engine, select(func.max(OrderItem.product_id))) <= 15

    async def test_rerun_resets_ids(self, test_engine, generation_settings):
        """Test a second run starts again from id 1"""
        orchestrator = DatasetOrchestrator(test_engine, "oltp", settings=generation_settings)

        await orchestrator.populate()
        report = await orchestrator.populate()

        assert report.id_ranges["users"] == 120
        assert await _count(test_engine, User) == 120
        assert await _scalar(test_engine, select(func.max(User.id))) == 120

    async def test_seeded_runs_match(self, test_engine, generation_settings):
        """Test the same seed regenerates the same users"""
        emails = select(User.email).order_by(User.id).limit(10)

        await DatasetOrchestrator(test_engine, "oltp", settings=generation_settings).populate()
        async with test_engine.connect() as conn:
            first = (await conn.execute(emails)).scalars().all()

        await DatasetOrchestrator(test_engine, "oltp", settings=generation_settings).populate()
        async with test_engine.connect() as conn:
            second = (await conn.execute(emails)).scalars().all()

        assert first == second

    async def test_small_catalogue(self, test_engine, generation_settings):
        """Test 200 products at batch size 1000 load in a single batch"""
        settings = generation_settings.model_copy(update={"products": 200, "batch_size": 1000})

        report = await DatasetOrchestrator(test_engine, "oltp", settings=settings).populate()

        products = next(r for r in report.tables if r.table == "products")
        assert products.batches == 1
        assert products.rows_loaded == 200

    async def test_with_batch_validation(self, test_engine, generation_settings):
        """Test generated data passes every quality check"""
        settings = generation_settings.model_copy(update={"validate_batches": True})

        report = await DatasetOrchestrator(test_engine, "oltp", settings=settings).populate()

        assert report.status == LoadStatus.COMPLETED


class TestOlapPopulation:
    """Tests for populating the OLAP dataset"""

    async def test_star_schema(self, test_engine, generation_settings):
        """Test dimensions and facts load with consistent keys"""
        settings = generation_settings.model_copy(update={"validate_batches": True})

        report = await DatasetOrchestrator(test_engine, "olap", settings=settings).populate()

        assert report.id_ranges == {
            "dim_date": 31,
            "dim_region": 10,
            "dim_customer": 60,
            "dim_product": 25,
            "fact_sales": 250,
        }
        assert await _count(test_engine, DimDate) == 31
        assert await _scalar(test_engine, select(func.max(FactSales.date_id))) <= 31
        assert await _scalar(test_engine, select(func.max(FactSales.customer_id))) <= 60
        assert await _scalar(test_engine, select(func.max(DimCustomer.region_id))) <= 10

    async def test_dim_product_categories(self, test_engine, generation_settings):
        """Test warehouse products use the fixed category list"""
        await DatasetOrchestrator(test_engine, "olap", settings=generation_settings).populate()

        async with test_engine.connect() as conn:
            categories = set((await conn.execute(select(DimProduct.category).distinct())).scalars())

        assert categories <= {"Electronics", "Clothing", "Home", "Sports", "Food"}


class TestFailures:
    """Tests for configuration and sequencing failures"""

    async def test_out_of_order_plan(self, test_engine, generation_settings):
        """Test a table planned before its parent fails and later tables never load"""
        plan = [
            TablePlan(Product, ProductGenerator, 15),
            TablePlan(Order, OrderGenerator, 20, references={"user_ids": "users"}),
            TablePlan(User, UserGenerator, 10),
        ]
        orchestrator = DatasetOrchestrator(test_engine, "oltp", settings=generation_settings, plan=plan)

        with pytest.raises(SequencingError) as exc_info:
            await orchestrator.populate()

        assert exc_info.value.table == "users"
        assert await _count(test_engine, Product) == 15
        assert await _count(test_engine, Order) == 0
        assert await _count(test_engine, User) == 0

    async def test_empty_parent(self, test_engine, generation_settings):
        """Test a dependent of an empty table is rejected before generation"""
        settings = generation_settings.model_copy(update={"users": 0})

        with pytest.raises(ConfigurationError):
            await DatasetOrchestrator(test_engine, "oltp", settings=settings).populate()

    async def test_empty_dependent_allowed(self, test_engine, generation_settings):
        """Test empty tables are fine when nothing draws from them"""
        settings = generation_settings.model_copy(update={"orders": 0, "order_items": 0})

        report = await DatasetOrchestrator(test_engine, "oltp", settings=settings).populate()

        assert report.id_ranges["orders"] == 0
        assert await _count(test_engine, Order) == 0

    async def test_negative_count(self, test_engine, generation_settings):
        """Test negative targets are rejected"""
        settings = generation_settings.model_copy(update={"sales": -1})

        with pytest.raises(ConfigurationError):
            await DatasetOrchestrator(test_engine, "olap", settings=settings).populate()

    async def test_parameter_budget(self, test_engine, generation_settings):
        """Test oversize batches are rejected before any table is touched"""
        settings = generation_settings.model_copy(update={"batch_size": 5000})

        with pytest.raises(ConfigurationError):
            await DatasetOrchestrator(test_engine, "olap", settings=settings).populate()

    async def test_empty_vocabulary_rejected_before_loading(self, test_engine, generation_settings):
        """Test an empty status list fails before the first table is generated"""
        await SchemaBuilder(test_engine, OltpBase.metadata).reset()
        plan = [
            TablePlan(User, UserGenerator, 120),
            TablePlan(Product, ProductGenerator, 15),
            TablePlan(Order, OrderGenerator, 20, references={"user_ids": "users"}, options={"statuses": ()}),
        ]
        orchestrator = DatasetOrchestrator(test_engine, "oltp", settings=generation_settings, plan=plan)

        with pytest.raises(ConfigurationError):
            await orchestrator.populate()

        assert await _count(test_engine, User) == 0
        assert await _count(test_engine, Product) == 0

    async def test_failed_batch_aborts_run(self, test_engine, generation_settings):
        """Test a rejected batch stops its table and every table after it"""
        plan = [
            TablePlan(User, DuplicateEmailUsers, 120),
            TablePlan(Product, ProductGenerator, 15),
            TablePlan(Order, OrderGenerator, 20, references={"user_ids": "users"}),
        ]
        orchestrator = DatasetOrchestrator(test_engine, "oltp", settings=generation_settings, plan=plan)
        report = None

        with pytest.raises(StoreWriteError) as exc_info:
            report = await orchestrator.populate()

        assert report is None
        assert exc_info.value.table == "users"
        assert exc_info.value.batch_index == 1
        assert await _count(test_engine, User) == 50
        assert await _count(test_engine, Product) == 0
        assert await _count(test_engine, Order) == 0

    def test_unknown_dataset(self, test_engine, generation_settings):
        """Test only oltp and olap exist"""
        with pytest.raises(ConfigurationError):
            DatasetOrchestrator(test_engine, "warehouse", settings=generation_settings)


class TestPopulateDataset:
    """Tests for the store-scoped entry point"""

    async def test_populate_dataset(self, database_url, generation_settings):
        """Test the store is opened from settings and populated"""
        settings = Settings(
            database=DatabaseSettings(oltp_url=database_url),
            generation=generation_settings,
        )

        report = await populate_dataset("oltp", settings)

        assert report.status == LoadStatus.COMPLETED
        assert report.id_ranges["order_items"] == 300
