"""Table schema definitions, registry, DDL generation and YAML loading.

``core`` and ``registry`` are imported before ``ddl_generator`` because the
generator pulls in the SQL package, whose builders depend on them.
"""

from .core import ColumnDef, ColumnType, TableSchema
from .registry import TableRegistry
from .ddl_generator import generate_create_table_sql, generate_schema_ddl
from .loader import load_registry, load_table_schemas, parse_table_schemas

__all__ = [
    "ColumnType",
    "ColumnDef",
    "TableSchema",
    "TableRegistry",
    "generate_create_table_sql",
    "generate_schema_ddl",
    "load_table_schemas",
    "load_registry",
    "parse_table_schemas",
]
