"""Storage module."""

from medinvoice.storage.duckdb_store import AmountOutOfRangeError, DuckDBStore, DuplicateRecordError
from medinvoice.storage.reference import ReferenceData, insert_reference_data, load_reference_data

__all__ = [
    "AmountOutOfRangeError",
    "DuckDBStore",
    "DuplicateRecordError",
    "ReferenceData",
    "load_reference_data",
    "insert_reference_data",
]
