"""Core table schema types for pg-lightquery.

A TableSchema is built once per table and treated as read-only for the life
of the process, so instances are frozen and safe to share between threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from pg_lightquery.exceptions import SchemaError


class ColumnType(Enum):
    """Supported base column types."""

    VARCHAR = "VARCHAR"
    INTEGER = "INTEGER"
    NUMERIC = "NUMERIC"
    TEXT = "TEXT"
    DATE = "DATE"
    ENUM = "ENUM"
    TIMESTAMP = "TIMESTAMP WITHOUT TIME ZONE"
    BOOLEAN = "BOOLEAN"
    JSONB = "JSONB"

    @classmethod
    def parse(cls, value: Any) -> "ColumnType":
        """Resolve a column type from its enum name or SQL spelling."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.name, member.value):
                return member
        raise SchemaError(f"Unknown column type: {value!r}")


@dataclass(frozen=True)
class ColumnDef:
    """Definition of a single column in a table schema."""

    name: str
    column_type: ColumnType
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    auto_increment: bool = False
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    enum_values: Tuple[Any, ...] = ()
    default: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class TableSchema:
    """Complete schema definition for a table."""

    table_name: str
    columns: Tuple[ColumnDef, ...] = field(default_factory=tuple)
    pg_schema: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.table_name:
            raise SchemaError("Table name must be a non-empty string")
        # Accept any iterable of columns but store a tuple
        object.__setattr__(self, "columns", tuple(self.columns))
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise SchemaError(
                    f"Duplicate column '{column.name}' in table '{self.table_name}'"
                )
            seen.add(column.name)

    @property
    def column_map(self) -> Mapping[str, ColumnDef]:
        """Ordered, read-only mapping of column name to definition."""
        return MappingProxyType({column.name: column for column in self.columns})

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def primary_keys(self) -> Tuple[str, ...]:
        """Primary key columns in declaration order."""
        return tuple(column.name for column in self.columns if column.primary_key)

    def has_column(self, name: str) -> bool:
        return any(column.name == name for column in self.columns)

    def get_column(self, name: str) -> ColumnDef:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"Column '{name}' not found in table '{self.table_name}'")

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_column(name)


__all__ = [
    "ColumnType",
    "ColumnDef",
    "TableSchema",
]
