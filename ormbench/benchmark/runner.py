"""
Benchmark Runner

Times the same queries through the raw SQL, SQLAlchemy Core and ORM access
layers against a populated dataset. Reads run on a plain connection (or
session); OLTP writes run as one "place an order" scenario inside a
transaction that is rolled back, so the dataset is left unchanged.
"""

import time
from contextlib import asynccontextmanager
from decimal import Decimal
from statistics import mean
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession
from sqlalchemy.sql import Executable

from ormbench.benchmark.queries import core, orm, sql
from ormbench.config import get_settings
from ormbench.config.settings import BenchmarkSettings
from ormbench.database.connection import session_scope
from ormbench.database.models import OrderStatus, User
from ormbench.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

QueryFunction = Callable[..., Awaitable[Any]]

QUERY_MODULES = {
    "sql": sql,
    "core": core,
    "orm": orm,
}

LAYERS = tuple(QUERY_MODULES)


class BenchmarkResult(BaseModel):
    """Timing of one query through one access layer"""
    dataset: str
    layer: str
    query: str
    kind: str = "read"
    runs: int
    row_count: int
    durations_ms: List[float] = Field(default_factory=list)

    @property
    def best_ms(self) -> float:
        return min(self.durations_ms)

    @property
    def mean_ms(self) -> float:
        return mean(self.durations_ms)


def _bind_statement(statement: Executable, kind: str) -> QueryFunction:
    """Wrap an executable statement in the call signature of the ORM layer"""

    async def run(conn: AsyncConnection, **params: Any) -> Any:
        result = await conn.execute(statement, params)
        if kind == "read":
            return result.all()
        if result.returns_rows:
            return result.scalar_one()
        return result.rowcount

    return run


def layer_queries(layer: str, dataset: Optional[str] = None, kind: str = "read") -> Dict[str, QueryFunction]:
    """
    Query callables of one access layer.

    Every callable takes the layer's executor (connection or session) and
    keyword parameters. Reads return the result rows; writes return the
    affected row count, or the new primary key for ``insert_order``.
    """
    if layer not in QUERY_MODULES:
        raise ConfigurationError(f"Unknown access layer '{layer}', expected one of {list(LAYERS)}")

    module = QUERY_MODULES[layer]
    if kind == "write":
        registry = module.WRITE_QUERIES
    elif dataset == "oltp":
        registry = module.OLTP_QUERIES
    elif dataset == "olap":
        registry = module.OLAP_QUERIES
    else:
        raise ConfigurationError(f"Unknown dataset '{dataset}'")

    if layer == "orm":
        return dict(registry)
    return {name: _bind_statement(statement, kind) for name, statement in registry.items()}


@asynccontextmanager
async def _executor(engine: AsyncEngine, layer: str) -> AsyncGenerator[Any, None]:
    """Connection (sql, core) or session (orm) for one layer"""
    if layer == "orm":
        async with session_scope(engine) as session:
            yield session
    else:
        async with engine.connect() as conn:
            yield conn


def _forget(executor: Any) -> None:
    # Identity map hits would skip the round trip on repeated lookups
    if isinstance(executor, AsyncSession):
        executor.expunge_all()


async def _timed(fn: QueryFunction, executor: Any, params: Mapping[str, Any]) -> tuple:
    start = time.perf_counter()
    outcome = await fn(executor, **params)
    elapsed_ms = (time.perf_counter() - start) * 1000
    _forget(executor)
    return outcome, elapsed_ms


async def resolve_sample_email(engine: AsyncEngine, user_id: int) -> Optional[str]:
    """Email of an existing user, used by the email lookup"""
    async with engine.connect() as conn:
        result = await conn.execute(select(User.__table__.c.email).where(User.__table__.c.id == user_id))
        return result.scalar_one_or_none()


def read_parameters(dataset: str, settings: BenchmarkSettings, email: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Bind parameters for every read query of a dataset"""
    if dataset == "olap":
        return {name: {} for name in sql.OLAP_QUERIES}
    return {
        "get_user_by_id": {"id": settings.sample_id},
        "get_user_by_email": {"email": email or ""},
        "get_product_by_id": {"id": settings.sample_id},
        "get_order_by_id": {"id": settings.sample_id},
        "get_orders_by_user": {"user_id": settings.sample_id},
        "get_product_stock": {"id": settings.sample_id},
        "get_recent_orders": {"limit": settings.page_size, "offset": 0},
        "search_users_by_name": {"name": settings.search_name},
    }


def _result(dataset: str, layer: str, query: str, kind: str, row_count: int, durations: Sequence[float]) -> BenchmarkResult:
    result = BenchmarkResult(
        dataset=dataset,
        layer=layer,
        query=query,
        kind=kind,
        runs=len(durations),
        row_count=row_count,
        durations_ms=list(durations),
    )
    logger.info(
        "Benchmark query completed",
        dataset=dataset,
        layer=layer,
        query=query,
        kind=kind,
        rows=row_count,
        best_ms=round(result.best_ms, 3),
        mean_ms=round(result.mean_ms, 3),
    )
    return result


async def _run_reads(
    engine: AsyncEngine,
    dataset: str,
    layer: str,
    repeat: int,
    parameters: Mapping[str, Mapping[str, Any]],
) -> List[BenchmarkResult]:
    results = []
    async with _executor(engine, layer) as executor:
        for name, fn in layer_queries(layer, dataset).items():
            durations = []
            rows: Sequence[Any] = []
            for _ in range(repeat):
                rows, elapsed_ms = await _timed(fn, executor, parameters[name])
                durations.append(elapsed_ms)
            results.append(_result(dataset, layer, name, "read", len(rows), durations))
    return results


async def _run_writes(engine: AsyncEngine, layer: str, repeat: int, settings: BenchmarkSettings) -> List[BenchmarkResult]:
    """Place an order, add a line, ship it and take the stock, then roll everything back"""
    queries = layer_queries(layer, kind="write")
    durations: Dict[str, List[float]] = {name: [] for name in queries}
    affected: Dict[str, int] = {}

    async with _executor(engine, layer) as executor:
        for _ in range(repeat):
            order_id, elapsed_ms = await _timed(
                queries["insert_order"],
                executor,
                {"user_id": settings.sample_id, "total_price": Decimal("19.99"), "status": OrderStatus.PENDING.value},
            )
            durations["insert_order"].append(elapsed_ms)
            affected["insert_order"] = 1

            steps = {
                "insert_order_item": {"order_id": order_id, "product_id": settings.sample_id, "quantity": 1},
                "update_order_status": {"order_id": order_id, "new_status": OrderStatus.SHIPPED.value},
                "decrement_stock": {"product_id": settings.sample_id, "amount": 1},
            }
            for name, params in steps.items():
                count, elapsed_ms = await _timed(queries[name], executor, params)
                durations[name].append(elapsed_ms)
                affected[name] = count

        await executor.rollback()

    return [
        _result("oltp", layer, name, "write", affected.get(name, 0), durations[name])
        for name in queries
    ]


async def run_benchmarks(
    engine: AsyncEngine,
    dataset: str,
    layers: Optional[Sequence[str]] = None,
    repeat: Optional[int] = None,
    settings: Optional[BenchmarkSettings] = None,
) -> List[BenchmarkResult]:
    """
    Time every query of ``dataset`` through each access layer.

    Args:
        engine: Engine of a populated dataset
        dataset: ``oltp`` or ``olap``
        layers: Access layers to run, defaults to the configured ones
        repeat: Timed executions per query
        settings: Benchmark settings, defaults to the application settings

    Returns:
        List[BenchmarkResult]: One record per query and layer
    """
    settings = settings or get_settings().benchmark
    layers = list(layers or settings.layers)
    repeat = repeat if repeat is not None else settings.repeat

    if dataset not in ("oltp", "olap"):
        raise ConfigurationError(f"Unknown dataset '{dataset}'")
    if repeat < 1:
        raise ConfigurationError(f"Repeat count must be at least 1, got {repeat}")
    for layer in layers:
        if layer not in QUERY_MODULES:
            raise ConfigurationError(f"Unknown access layer '{layer}', expected one of {list(LAYERS)}")

    email = None
    if dataset == "oltp":
        email = await resolve_sample_email(engine, settings.sample_id)
        if email is None:
            logger.warning("Sample user not found, email lookup will match nothing", user_id=settings.sample_id)
    parameters = read_parameters(dataset, settings, email)

    results: List[BenchmarkResult] = []
    with structlog.contextvars.bound_contextvars(dataset=dataset):
        logger.info("Running benchmarks", layers=layers, repeat=repeat)
        for layer in layers:
            results.extend(await _run_reads(engine, dataset, layer, repeat, parameters))
            if dataset == "oltp" and settings.include_writes:
                results.extend(await _run_writes(engine, layer, repeat, settings))
    return results
