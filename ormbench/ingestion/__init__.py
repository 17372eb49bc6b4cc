"""
Data Ingestion Module

Import the dataset orchestrator from ``ormbench.ingestion.orchestrator``.
"""
from .batch_loader import Batch, BatchLoader, LoadResult, LoadStatus, plan_batches
from .id_space import IdRange, IdSpaceAllocator
from .schema import SchemaBuilder

__all__ = [
    "Batch",
    "BatchLoader",
    "LoadResult",
    "LoadStatus",
    "plan_batches",
    "IdRange",
    "IdSpaceAllocator",
    "SchemaBuilder",
]
