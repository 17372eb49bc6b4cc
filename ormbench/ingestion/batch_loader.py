"""
Batch Data Loader

Bulk insertion of generated rows in fixed-size batches:
- One multi-row INSERT per batch, in generation order
- One transaction per batch, so a batch is written entirely or not at all
- Batches issued strictly one after another
- Optional data quality checks on every batch before it is written
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import polars as pl
import structlog
from pydantic import BaseModel
from sqlalchemy import Table, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ormbench.exceptions import ConfigurationError, DataQualityError, StoreWriteError, describe_error

logger = structlog.get_logger(__name__)

# PostgreSQL wire protocol limit on bind parameters per statement
MAX_BIND_PARAMETERS = 32767

RowFunction = Callable[[int], Dict[str, Any]]


class LoadStatus(str, Enum):
    """Table load status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Batch:
    """Half-open slice ``[start, stop)`` of a table's row indexes"""
    index: int
    start: int
    stop: int

    @property
    def size(self) -> int:
        return self.stop - self.start

    def parameter_count(self, columns: Sequence[str]) -> int:
        return self.size * len(columns)


class LoadResult(BaseModel):
    """Result of loading one table"""
    table: str
    status: LoadStatus
    target_count: int
    rows_loaded: int = 0
    batches: int = 0
    first_id: Optional[int] = None
    last_id: Optional[int] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None


def plan_batches(target_count: int, batch_size: int) -> Iterator[Batch]:
    """
    Partition ``[0, target_count)`` into consecutive batches.

    Every batch holds ``batch_size`` rows except possibly the last one.

    Raises:
        ConfigurationError: On a non-positive batch size or negative target
    """
    if batch_size <= 0:
        raise ConfigurationError(f"Batch size must be positive, got {batch_size}")
    if target_count < 0:
        raise ConfigurationError(f"Target row count must not be negative, got {target_count}")

    for index, start in enumerate(range(0, target_count, batch_size)):
        yield Batch(index=index, start=start, stop=min(start + batch_size, target_count))


class BatchLoader:
    """
    Sequential bulk loader for generated rows.

    Example:
        loader = BatchLoader(engine, batch_size=1000)
        result = await loader.load(User.__table__, 1_000_000, generator.row, generator.columns)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        batch_size: int = 1000,
        log_every_batches: int = 100,
    ):
        if batch_size <= 0:
            raise ConfigurationError(f"Batch size must be positive, got {batch_size}")
        self.engine = engine
        self.batch_size = batch_size
        self.log_every_batches = max(log_every_batches, 1)

    def check_parameter_budget(self, table: str, column_count: int) -> None:
        """A full batch must fit in a single statement's bind parameters"""
        parameters = self.batch_size * column_count
        if parameters > MAX_BIND_PARAMETERS:
            raise ConfigurationError(
                f"Batch size {self.batch_size} x {column_count} columns of '{table}' "
                f"needs {parameters} bind parameters, limit is {MAX_BIND_PARAMETERS}"
            )

    def _build_rows(self, batch: Batch, row_fn: RowFunction) -> List[Dict[str, Any]]:
        return [row_fn(i) for i in range(batch.start, batch.stop)]

    def _validate_batch(self, table: str, batch: Batch, rows: List[Dict[str, Any]], validator: Any) -> None:
        """Run data quality checks on a batch before it is written"""
        df = pl.DataFrame(rows, infer_schema_length=None)
        result = validator.validate(df)
        failed = result.failed_error_checks
        if failed:
            logger.error(
                "Batch failed data quality checks",
                table=table,
                batch_index=batch.index,
                failed_checks=failed,
            )
            raise DataQualityError(table, batch.index, failed)

    async def _flush(self, table: Table, batch: Batch, rows: List[Dict[str, Any]]) -> None:
        """Write one batch as a single INSERT inside its own transaction"""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(table).values(rows))
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Batch flush failed",
                table=table.name,
                batch_index=batch.index,
                rows=batch.size,
                error=describe_error(e),
                error_type=type(e).__name__,
            )
            raise StoreWriteError("Batch insert failed", table.name, batch.index, e) from e

    async def load(
        self,
        table: Table,
        target_count: int,
        row_fn: RowFunction,
        columns: Sequence[str],
        validator: Any = None,
    ) -> LoadResult:
        """
        Generate and insert ``target_count`` rows into ``table``.

        Args:
            table: Target table
            target_count: Exact number of rows to insert
            row_fn: Produces the row for a given generation index
            columns: Column names every row provides
            validator: Optional ``DataValidator`` run on every batch

        Returns:
            LoadResult: Ids ``1..target_count`` on a freshly created table

        Raises:
            ConfigurationError: Invalid target or batch size
            StoreWriteError: A batch could not be written; later batches are not attempted
            DataQualityError: A batch failed validation; it is not written
        """
        self.check_parameter_budget(table.name, len(columns))
        batches = plan_batches(target_count, self.batch_size)

        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        result = LoadResult(
            table=table.name,
            status=LoadStatus.RUNNING,
            target_count=target_count,
            started_at=started_at,
        )

        logger.info(
            "Starting table load",
            table=table.name,
            target_count=target_count,
            batch_size=self.batch_size,
        )

        try:
            for batch in batches:
                rows = self._build_rows(batch, row_fn)
                if validator is not None:
                    self._validate_batch(table.name, batch, rows, validator)
                await self._flush(table, batch, rows)

                result.rows_loaded += batch.size
                result.batches += 1

                if result.batches % self.log_every_batches == 0:
                    logger.info(
                        "Load progress",
                        table=table.name,
                        batches=result.batches,
                        rows_loaded=result.rows_loaded,
                        target_count=target_count,
                    )
        except Exception:
            result.status = LoadStatus.FAILED
            result.completed_at = datetime.now(timezone.utc)
            result.load_duration_seconds = time.perf_counter() - start
            logger.error(
                "Table load failed",
                table=table.name,
                rows_loaded=result.rows_loaded,
                batches=result.batches,
            )
            raise

        result.status = LoadStatus.COMPLETED
        result.completed_at = datetime.now(timezone.utc)
        result.load_duration_seconds = time.perf_counter() - start
        if result.rows_loaded:
            result.first_id = 1
            result.last_id = result.rows_loaded

        logger.info(
            "Table load completed",
            table=table.name,
            rows_loaded=result.rows_loaded,
            batches=result.batches,
            duration_seconds=round(result.load_duration_seconds, 3),
        )
        return result
