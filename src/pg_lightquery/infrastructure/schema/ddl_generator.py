"""DDL SQL generation for table schemas."""

from __future__ import annotations

from typing import Iterable, List

from pg_lightquery.infrastructure.sql.core.identifier import (
    qualify_table,
    quote_identifier,
    quote_literal,
)

from .core import ColumnDef, ColumnType, TableSchema


def _column_type_to_sql(col: ColumnDef) -> str:
    """Convert a ColumnDef to SQL type definition."""
    if col.column_type == ColumnType.VARCHAR:
        length = col.length or 255
        return f"VARCHAR({length})"
    if col.column_type == ColumnType.NUMERIC:
        if col.precision is None:
            return "NUMERIC"
        return f"NUMERIC({col.precision}, {col.scale or 0})"
    if col.column_type == ColumnType.ENUM:
        # Members are enforced with a CHECK constraint
        return "TEXT"
    return col.column_type.value


def _column_sql(col: ColumnDef, inline_primary_key: bool) -> str:
    parts = [quote_identifier(col.name), _column_type_to_sql(col)]
    if col.auto_increment and col.column_type == ColumnType.INTEGER:
        parts.append("GENERATED BY DEFAULT AS IDENTITY")
    if inline_primary_key and col.primary_key:
        parts.append("PRIMARY KEY")
    elif col.not_null:
        parts.append("NOT NULL")
    if col.unique and not col.primary_key:
        parts.append("UNIQUE")
    if col.default is not None:
        parts.append(f"DEFAULT {col.default}")
    if col.column_type == ColumnType.ENUM and col.enum_values:
        members = ", ".join(quote_literal(str(value)) for value in col.enum_values)
        parts.append(f"CHECK ({quote_identifier(col.name)} IN ({members}))")
    return " ".join(parts)


def generate_create_table_sql(schema: TableSchema, if_not_exists: bool = True) -> str:
    """Generate the CREATE TABLE statement for a table schema.

    A single primary key is declared inline; a composite key becomes a
    table-level ``PRIMARY KEY (...)`` constraint.
    """
    qualified_table = qualify_table(schema.table_name, schema.pg_schema)
    primary_keys = schema.primary_keys
    inline_pk = len(primary_keys) == 1

    exists_clause = "IF NOT EXISTS " if if_not_exists else ""
    definitions: List[str] = [_column_sql(col, inline_pk) for col in schema.columns]
    if len(primary_keys) > 1:
        keys = ", ".join(quote_identifier(name) for name in primary_keys)
        definitions.append(f"PRIMARY KEY ({keys})")

    lines = [f"CREATE TABLE {exists_clause}{qualified_table} ("]
    lines.append(",\n".join(f"  {definition}" for definition in definitions))
    lines.append(");")
    return "\n".join(lines)


def generate_schema_ddl(schemas: Iterable[TableSchema], if_not_exists: bool = True) -> str:
    """CREATE TABLE statements for several tables, separated by blank lines."""
    return "\n\n".join(
        generate_create_table_sql(schema, if_not_exists=if_not_exists) for schema in schemas
    )


__all__ = [
    "generate_create_table_sql",
    "generate_schema_ddl",
]
