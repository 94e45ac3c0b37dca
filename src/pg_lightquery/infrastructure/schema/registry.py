"""Table schema registry.

Unlike a module-level dictionary, each registry is an explicit instance that
callers construct and pass around, so several logical databases (or tests)
can keep independent sets of tables.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .core import TableSchema


class TableRegistry:
    """Name-keyed collection of table schemas."""

    def __init__(self, schemas: Iterable[TableSchema] = ()):
        self._tables: Dict[str, TableSchema] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: TableSchema, name: str = "") -> None:
        """Register a table schema under ``name`` (defaults to its table name)."""
        key = name or schema.table_name
        if key in self._tables:
            raise ValueError(
                f"Table '{key}' is already registered. "
                "Use a different name or build a new registry."
            )
        self._tables[key] = schema

    def get(self, name: str) -> TableSchema:
        """Retrieve a table schema from the registry by name."""
        if name not in self._tables:
            available = self.names()
            raise KeyError(f"Table '{name}' not found in registry. Available: {available}")
        return self._tables[name]

    def has(self, name: str) -> bool:
        return name in self._tables

    def names(self) -> List[str]:
        """List all registered table names."""
        return sorted(self._tables.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __len__(self) -> int:
        return len(self._tables)


__all__ = ["TableRegistry"]
