"""
Custom exceptions for the benchmark data generator.

Every failure during a dataset run is fatal to that run: none of these
errors are retried, and the dataset must be regenerated from a clean schema.
"""

from typing import List, Optional


def describe_error(error: BaseException) -> str:
    """Driver message of a database error, without the statement and bound parameters"""
    orig = getattr(error, "orig", None)
    return str(orig if orig is not None else error)


class OrmBenchError(Exception):
    """Base exception for all generator and benchmark errors."""

    pass


class ConfigurationError(OrmBenchError):
    """Raised before generation starts when the run cannot be configured.

    Covers empty categorical vocabularies, non-positive batch sizes,
    negative target counts and plans whose foreign keys can never be
    satisfied.
    """

    pass


class SequencingError(OrmBenchError):
    """Raised when a table asks for the id range of a table not yet populated."""

    def __init__(self, table: str, message: Optional[str] = None):
        self.table = table
        super().__init__(message or f"Id range for table '{table}' requested before it was populated")


class StoreWriteError(OrmBenchError):
    """Raised when a batch could not be written to the relational store."""

    def __init__(
        self,
        message: str,
        table: str,
        batch_index: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.table = table
        self.batch_index = batch_index
        self.original_error = original_error

        location = f"table '{table}'"
        if batch_index is not None:
            location = f"{location}, batch {batch_index}"
        message = f"{message} ({location})"
        if original_error is not None:
            message = f"{message}: {describe_error(original_error)}"

        super().__init__(message)


class DataQualityError(OrmBenchError):
    """Raised when a generated batch fails its data quality checks."""

    def __init__(self, table: str, batch_index: int, failed_checks: List[str]):
        self.table = table
        self.batch_index = batch_index
        self.failed_checks = failed_checks
        super().__init__(
            f"Batch {batch_index} of table '{table}' failed checks: {', '.join(failed_checks)}"
        )
