"""Per-table operations facade and base class for table wrappers."""

from .base import TableBase
from .operations import QueryResult, TableOperations, TransactionResult, generate_primary_key

__all__ = [
    "TableBase",
    "TableOperations",
    "QueryResult",
    "TransactionResult",
    "generate_primary_key",
]
