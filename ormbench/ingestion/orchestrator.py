"""
Dataset Orchestrator

Populates one dataset (OLTP or OLAP) from scratch:
1. Validate the table plan and loader configuration
2. Drop and recreate every table of the dataset
3. Load each table in dependency order, registering its id range before
   the next table starts drawing foreign keys from it

A dataset is only reported as populated once every table has loaded.
Any failure aborts the run; the next run starts again from empty tables.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import Table, func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from ormbench.config import Settings, get_settings
from ormbench.config.settings import GenerationSettings
from ormbench.data.generators import (
    DimCustomerGenerator,
    DimDateGenerator,
    DimProductGenerator,
    DimRegionGenerator,
    FactSalesGenerator,
    OrderGenerator,
    OrderItemGenerator,
    ProductGenerator,
    RandomSource,
    RowGenerator,
    UserGenerator,
)
from ormbench.database.connection import open_store, store_url
from ormbench.database.models import (
    DATASET_METADATA,
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
from ormbench.exceptions import ConfigurationError, StoreWriteError, describe_error
from ormbench.ingestion.batch_loader import BatchLoader, LoadResult, LoadStatus
from ormbench.ingestion.id_space import IdSpaceAllocator
from ormbench.ingestion.schema import SchemaBuilder
from ormbench.quality.validators import create_validator_for

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TablePlan:
    """
    How to populate one table.

    ``references`` maps a generator keyword argument to the table whose id
    range it receives. ``target_count=None`` lets the generator decide its
    own row count (exhaustive generators such as the calendar).
    """
    model: Type[Any]
    generator: Type[RowGenerator]
    target_count: Optional[int]
    references: Mapping[str, str] = field(default_factory=dict)
    options: Mapping[str, Any] = field(default_factory=dict)

    @property
    def table(self) -> Table:
        return self.model.__table__

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def depends_on(self) -> List[str]:
        return list(self.references.values())

    def build(self, source: RandomSource, allocator: IdSpaceAllocator) -> RowGenerator:
        """Create the generator; fails with ``SequencingError`` if a referenced table is not loaded"""
        id_ranges = {arg: allocator.range_of(table) for arg, table in self.references.items()}
        return self.generator(source, **id_ranges, **self.options)


def oltp_plan(settings: GenerationSettings) -> List[TablePlan]:
    """users, products -> orders -> order_items"""
    return [
        TablePlan(User, UserGenerator, settings.users),
        TablePlan(Product, ProductGenerator, settings.products),
        TablePlan(Order, OrderGenerator, settings.orders, references={"user_ids": "users"}),
        TablePlan(
            OrderItem,
            OrderItemGenerator,
            settings.order_items,
            references={"order_ids": "orders", "product_ids": "products"},
        ),
    ]


def olap_plan(settings: GenerationSettings) -> List[TablePlan]:
    """dim_date, dim_region -> dim_customer, dim_product -> fact_sales"""
    return [
        TablePlan(
            DimDate,
            DimDateGenerator,
            None,
            options={"start": settings.date_start, "end": settings.date_end},
        ),
        TablePlan(DimRegion, DimRegionGenerator, settings.regions),
        TablePlan(DimCustomer, DimCustomerGenerator, settings.customers, references={"region_ids": "dim_region"}),
        TablePlan(DimProduct, DimProductGenerator, settings.dim_products),
        TablePlan(
            FactSales,
            FactSalesGenerator,
            settings.sales,
            references={
                "date_ids": "dim_date",
                "customer_ids": "dim_customer",
                "product_ids": "dim_product",
                "region_ids": "dim_region",
            },
        ),
    ]


DATASET_PLANS = {
    "oltp": oltp_plan,
    "olap": olap_plan,
}


class DatasetReport(BaseModel):
    """Outcome of one dataset population run"""
    dataset: str
    status: LoadStatus
    tables: List[LoadResult] = Field(default_factory=list)
    id_ranges: Dict[str, int] = Field(default_factory=dict)
    total_rows: int = 0
    duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None


class DatasetOrchestrator:
    """
    Sequences schema reset and per-table loading for one dataset.

    Example:
        async with open_store(store_url("olap")) as engine:
            report = await DatasetOrchestrator(engine, "olap").populate()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        dataset: str,
        settings: Optional[GenerationSettings] = None,
        plan: Optional[List[TablePlan]] = None,
        source: Optional[RandomSource] = None,
    ):
        if dataset not in DATASET_METADATA:
            raise ConfigurationError(f"Unknown dataset '{dataset}', expected one of {sorted(DATASET_METADATA)}")

        self.engine = engine
        self.dataset = dataset
        self.settings = settings or get_settings().generation
        self.plan = plan if plan is not None else DATASET_PLANS[dataset](self.settings)
        self.source = source or RandomSource(self.settings.seed)
        self.allocator = IdSpaceAllocator()
        self.schema = SchemaBuilder(engine, DATASET_METADATA[dataset])
        self.loader = BatchLoader(
            engine,
            batch_size=self.settings.batch_size,
            log_every_batches=self.settings.log_every_batches,
        )

    def _validate_plan(self) -> None:
        """Reject plans that can never load, before any row is generated"""
        planned = {p.name for p in self.plan}
        counts: Dict[str, Optional[int]] = {}
        for table_plan in self.plan:
            count = table_plan.target_count
            if count is not None and count < 0:
                raise ConfigurationError(f"Target row count of '{table_plan.name}' is negative: {count}")

            self.loader.check_parameter_budget(table_plan.name, len(table_plan.generator.columns))
            table_plan.generator.check_options(**table_plan.options)

            if count != 0:
                for parent in table_plan.depends_on:
                    if parent not in planned:
                        raise ConfigurationError(
                            f"Table '{table_plan.name}' references '{parent}', which is not part of the plan"
                        )
                    if counts.get(parent) == 0:
                        raise ConfigurationError(
                            f"Table '{table_plan.name}' needs rows in '{parent}', but '{parent}' is configured empty"
                        )
            counts[table_plan.name] = count

    async def _verify_id_range(self, table: Table, expected: int) -> None:
        """Stored ids must be exactly ``1..expected``"""
        async with self.engine.connect() as conn:
            result = await conn.execute(
                select(func.count(), func.min(table.c.id), func.max(table.c.id)).select_from(table)
            )
            count, min_id, max_id = result.one()

        contiguous = count == expected and (expected == 0 or (min_id == 1 and max_id == expected))
        if not contiguous:
            raise StoreWriteError(
                f"Stored ids are not 1..{expected} (count={count}, min={min_id}, max={max_id})",
                table.name,
            )

    async def _populate_table(self, table_plan: TablePlan) -> LoadResult:
        generator = table_plan.build(self.source, self.allocator)
        target = table_plan.target_count
        if target is None:
            target = generator.row_count

        validator = None
        if self.settings.validate_batches:
            validator = create_validator_for(table_plan.name, self.allocator)

        result = await self.loader.load(
            table_plan.table,
            target,
            generator.row,
            generator.columns,
            validator=validator,
        )
        await self._verify_id_range(table_plan.table, result.rows_loaded)
        self.allocator.register(table_plan.name, result.rows_loaded)
        return result

    async def populate(self) -> DatasetReport:
        """
        Recreate and fill every table of the dataset.

        Returns:
            DatasetReport: Per-table results, only when every table loaded

        Raises:
            ConfigurationError: Invalid plan, detected before generation
            SequencingError: A table was planned before one it references
            StoreWriteError: A batch or id range check failed
        """
        with structlog.contextvars.bound_contextvars(dataset=self.dataset):
            self._validate_plan()

            report = DatasetReport(
                dataset=self.dataset,
                status=LoadStatus.RUNNING,
                started_at=datetime.now(timezone.utc),
            )
            start = time.perf_counter()

            logger.info(
                "Populating dataset",
                tables=[p.name for p in self.plan],
                batch_size=self.settings.batch_size,
                seed=self.source.seed,
            )

            await self.schema.reset()
            self.allocator.reset()

            for table_plan in self.plan:
                try:
                    result = await self._populate_table(table_plan)
                except Exception as e:
                    report.status = LoadStatus.FAILED
                    logger.error(
                        "Dataset population aborted",
                        table=table_plan.name,
                        batch_index=getattr(e, "batch_index", None),
                        error=describe_error(e),
                        error_type=type(e).__name__,
                    )
                    raise
                report.tables.append(result)

            report.status = LoadStatus.COMPLETED
            report.id_ranges = self.allocator.snapshot()
            report.total_rows = sum(r.rows_loaded for r in report.tables)
            report.duration_seconds = time.perf_counter() - start
            report.completed_at = datetime.now(timezone.utc)

            logger.info(
                "Dataset populated",
                total_rows=report.total_rows,
                duration_seconds=round(report.duration_seconds, 3),
            )
            return report


async def populate_dataset(dataset: str, settings: Optional[Settings] = None) -> DatasetReport:
    """Open the dataset's store, populate it and release the store."""
    settings = settings or get_settings()
    async with open_store(store_url(dataset, settings), echo=settings.database.echo) as engine:
        orchestrator = DatasetOrchestrator(engine, dataset, settings=settings.generation)
        return await orchestrator.populate()
