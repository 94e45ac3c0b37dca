"""
SQL INSERT statement builders.

Provides high-level builders for constructing parameterized INSERT
statements with upsert (INSERT ... ON CONFLICT) and RETURNING support.
"""

from typing import Any, Mapping, Optional

from pg_lightquery.infrastructure.schema.core import TableSchema

from ..core.query import QueryObject
from .assignments import extract_assignments
from .statements import Dialect, InsertStatement, Returning


class InsertBuilder:
    """
    High-level builder for INSERT statements.

    Example:
        >>> from pg_lightquery.infrastructure.sql import InsertBuilder, PostgreSQLDialect
        >>> builder = InsertBuilder(PostgreSQLDialect())
        >>> query = builder.insert(users_schema, {"name": "John", "email": "john@x.com"})
        >>> print(query.sql_text)
        INSERT INTO users ("name","email","lastChangedBy") VALUES ($1,$2,$3)
        >>> query.values
        ('John', 'john@x.com', 'SERVER')
    """

    def __init__(
        self,
        dialect: Dialect,
        audit_column: Optional[str] = "lastChangedBy",
        default_user: str = "SERVER",
    ):
        """
        Initialize the InsertBuilder.

        Args:
            dialect: SQL dialect to use for statement generation
            audit_column: Column stamped with the acting user when the
                schema declares it (None disables stamping)
            default_user: User recorded when the caller passes none
        """
        self.dialect = dialect
        self.audit_column = audit_column
        self.default_user = default_user

    def statement(
        self,
        schema: TableSchema,
        data: Optional[Mapping[str, Any]],
        allowed: Any = "*",
        *,
        return_field: Any = None,
        upsert: bool = False,
        id_user: Optional[str] = None,
    ) -> InsertStatement:
        """
        Build the INSERT node without rendering it.

        Args:
            schema: Target table schema
            data: Column to value mapping; ``None`` values are skipped
            allowed: ``"*"`` or explicit columns that may be written
            return_field: ``None``, ``"*"``, one column or a column list
            upsert: Add ``ON CONFLICT (<primary keys>) DO UPDATE``
            id_user: Acting user for the audit column

        Raises:
            ValidationError: Bad allow-list, unknown returning column, or an
                upsert on a table without primary keys
        """
        assignments = extract_assignments(
            schema,
            data,
            allowed,
            audit_column=self.audit_column,
            id_user=id_user,
            default_user=self.default_user,
        )
        return InsertStatement(
            table=schema.table_name,
            columns=assignments.columns,
            slots=assignments.slots,
            pg_schema=schema.pg_schema,
            upsert=upsert,
            conflict_columns=schema.primary_keys if upsert else (),
            returning=Returning.parse(
                return_field, schema.column_names, table=schema.table_name
            ),
        )

    def insert(
        self,
        schema: TableSchema,
        data: Optional[Mapping[str, Any]],
        allowed: Any = "*",
        *,
        return_field: Any = None,
        id_user: Optional[str] = None,
    ) -> QueryObject:
        """
        Build a simple INSERT statement.

        Returns:
            QueryObject with ``$1..$N`` placeholders
        """
        return self.statement(
            schema, data, allowed, return_field=return_field, id_user=id_user
        ).render(self.dialect)

    def upsert(
        self,
        schema: TableSchema,
        data: Optional[Mapping[str, Any]],
        allowed: Any = "*",
        *,
        return_field: Any = None,
        id_user: Optional[str] = None,
    ) -> QueryObject:
        """
        Build an INSERT ... ON CONFLICT (upsert) statement.

        Conflicts are detected on the primary key columns; every other
        inserted column is overwritten from EXCLUDED. When only key columns
        are inserted the conflict is ignored (DO NOTHING).

        Returns:
            QueryObject with ``$1..$N`` placeholders
        """
        return self.statement(
            schema,
            data,
            allowed,
            return_field=return_field,
            upsert=True,
            id_user=id_user,
        ).render(self.dialect)


__all__ = ["InsertBuilder"]
