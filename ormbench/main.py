"""
ormbench command line

Usage:
    ormbench seed {oltp,olap,all}           Recreate and populate datasets
    ormbench bench {oltp,olap,all}          Time the access layers
    ormbench run                            Seed both datasets, then benchmark both
"""

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from ormbench.benchmark.runner import LAYERS, BenchmarkResult, run_benchmarks
from ormbench.config import Settings, get_settings
from ormbench.config.logging import configure_logging, get_logger
from ormbench.config.settings import DATASETS
from ormbench.database.connection import open_store, store_url
from ormbench.exceptions import OrmBenchError
from ormbench.ingestion.orchestrator import DatasetReport, populate_dataset

logger = get_logger(__name__)


def _datasets(target: str) -> List[str]:
    return list(DATASETS) if target == "all" else [target]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ormbench",
        description="Synthetic OLTP/OLAP data generator and access-layer benchmark",
    )
    parser.add_argument("--log-level", help="Override log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--batch-size", type=int, help="Rows per bulk insert")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible datasets")

    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Recreate and populate datasets")
    seed.add_argument("dataset", choices=[*DATASETS, "all"])

    bench = commands.add_parser("bench", help="Benchmark queries against populated datasets")
    bench.add_argument("dataset", choices=[*DATASETS, "all"])
    bench.add_argument("--layer", action="append", choices=LAYERS, help="Access layer, repeatable")
    bench.add_argument("--repeat", type=int, help="Timed executions per query")

    commands.add_parser("run", help="Seed both datasets, then benchmark both")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Copy of ``settings`` with the command line overrides applied"""
    settings = settings.model_copy(deep=True)
    updates = {}
    if args.batch_size is not None:
        updates["batch_size"] = args.batch_size
    if args.seed is not None:
        updates["seed"] = args.seed
    if updates:
        settings.generation = settings.generation.model_copy(update=updates)
    return settings


async def seed(datasets: Sequence[str], settings: Settings) -> List[DatasetReport]:
    reports = []
    for dataset in datasets:
        reports.append(await populate_dataset(dataset, settings))
    return reports


async def bench(
    datasets: Sequence[str],
    settings: Settings,
    layers: Optional[Sequence[str]] = None,
    repeat: Optional[int] = None,
) -> List[BenchmarkResult]:
    results = []
    for dataset in datasets:
        async with open_store(store_url(dataset, settings), echo=settings.database.echo) as engine:
            results.extend(
                await run_benchmarks(engine, dataset, layers=layers, repeat=repeat, settings=settings.benchmark)
            )
    return results


async def run_command(args: argparse.Namespace, settings: Settings) -> None:
    if args.command == "seed":
        await seed(_datasets(args.dataset), settings)
    elif args.command == "bench":
        await bench(_datasets(args.dataset), settings, layers=args.layer, repeat=args.repeat)
    else:
        await seed(DATASETS, settings)
        await bench(DATASETS, settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)

    try:
        configure_logging(args.log_level, settings)
        asyncio.run(run_command(args, settings))
    except OrmBenchError as e:
        logger.error("ormbench failed", command=args.command, error=str(e), error_type=type(e).__name__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
