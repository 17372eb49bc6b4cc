"""
Schema Builder

Drops and recreates every table of one dataset before it is loaded.
"""

from typing import List

import structlog
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


class SchemaBuilder:
    """Provision the tables of one declarative metadata in dependency order"""

    def __init__(self, engine: AsyncEngine, metadata: MetaData):
        self.engine = engine
        self.metadata = metadata

    def table_names(self) -> List[str]:
        """Table names, referenced tables first"""
        return [table.name for table in self.metadata.sorted_tables]

    async def reset(self) -> None:
        """Drop all tables (dependents first) and create them empty again"""
        async with self.engine.begin() as conn:
            await conn.run_sync(self.metadata.drop_all)
            await conn.run_sync(self.metadata.create_all)
        logger.info("Recreated tables", tables=self.table_names())
