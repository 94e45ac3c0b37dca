"""Base class for concrete table wrappers.

Subclasses declare ``table_schema`` and expose their own intention-revealing
methods built on ``self.db``; the raw builders stay off their public API.

Example:
    >>> class UsersTable(TableBase):
    ...     table_schema = USERS
    ...
    ...     def select_users(self, where=None):
    ...         return self.db.select(where, ["id", "name", "email"])
"""

from typing import Any, Optional

from pg_lightquery.exceptions import SchemaError
from pg_lightquery.infrastructure.schema.core import TableSchema
from pg_lightquery.infrastructure.schema.registry import TableRegistry
from pg_lightquery.infrastructure.sql.operations.chain import ChainedStatementBuilder

from .operations import TableOperations


class TableBase:
    """Composition wrapper around TableOperations with related-table support."""

    table_schema: Optional[TableSchema] = None

    def __init__(
        self,
        schema: Optional[TableSchema] = None,
        gateway: Any = None,
        related: Optional[TableRegistry] = None,
    ):
        schema = schema or self.table_schema
        if schema is None:
            raise SchemaError(f"{type(self).__name__} does not declare a table_schema")
        self.db = TableOperations(schema, gateway=gateway)
        self._related = related if related is not None else TableRegistry()
        if not self._related.has(schema.table_name):
            self._related.register(schema)

    @property
    def table_name(self) -> str:
        return self.db.table_name

    @property
    def schema(self) -> TableSchema:
        return self.db.schema

    def generate_primary_key(self, prefix: str) -> str:
        return self.db.generate_primary_key(prefix)

    def register_related_table(self, schema: TableSchema, name: str = "") -> None:
        """Make another table addressable by name inside chains."""
        self._related.register(schema, name)

    def related_table(self, name: str) -> TableOperations:
        return TableOperations(self._related.get(name), gateway=self.db.gateway)

    def chained(self) -> ChainedStatementBuilder:
        """New CTE chain that resolves this table and its related tables by name."""
        return self.db.chain(registry=self._related)


__all__ = ["TableBase"]
