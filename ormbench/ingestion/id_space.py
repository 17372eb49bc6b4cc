"""
Identifier Space Allocator

Tracks the primary-key range ``[1, row_count]`` of every table that has
finished loading in the current dataset run, so dependent tables can draw
valid foreign keys.
"""

from dataclasses import dataclass
from random import Random
from typing import Dict

import structlog

from ormbench.exceptions import SequencingError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IdRange:
    """Closed range of ids assigned to one table"""
    table: str
    first: int
    last: int

    @property
    def size(self) -> int:
        return max(self.last - self.first + 1, 0)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.first <= value <= self.last

    def sample(self, rng: Random) -> int:
        """Draw a uniformly distributed id from the range"""
        if self.size == 0:
            raise SequencingError(self.table, f"Cannot sample a foreign key from empty table '{self.table}'")
        return rng.randint(self.first, self.last)


class IdSpaceAllocator:
    """
    Registry of populated id ranges for one dataset run.

    Ranges only grow within a run and are cleared by ``reset()`` at the
    start of the next one.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def reset(self) -> None:
        self._counts.clear()

    def register(self, table: str, row_count: int) -> IdRange:
        """Record that ``table`` now holds ids ``1..row_count``."""
        previous = self._counts.get(table, 0)
        if row_count < previous:
            raise SequencingError(
                table,
                f"Id range of '{table}' cannot shrink from {previous} to {row_count} within a run",
            )
        self._counts[table] = row_count
        logger.debug("Registered id range", table=table, row_count=row_count)
        return IdRange(table, 1, row_count)

    def is_registered(self, table: str) -> bool:
        return table in self._counts

    def range_of(self, table: str) -> IdRange:
        """
        Get the valid id range of a populated table.

        Raises:
            SequencingError: If ``table`` has not finished loading yet
        """
        if table not in self._counts:
            raise SequencingError(table)
        return IdRange(table, 1, self._counts[table])

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counts)
