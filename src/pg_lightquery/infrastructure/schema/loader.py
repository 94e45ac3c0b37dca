"""
YAML loader for table definitions.

This module provides Pydantic models to validate the structure of a tables
YAML file and turns each entry into a frozen TableSchema. Column flags may be
written in snake_case or camelCase (``primary_key`` / ``primaryKey``).

Example file::

    tables:
      users:
        columns:
          id: {type: INTEGER, primaryKey: true, autoIncrement: true}
          name: {type: TEXT, notNull: true}
          email: {type: TEXT, unique: true}
          lastChangedBy: {type: VARCHAR, length: 64}
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pg_lightquery.exceptions import SchemaError

from .core import ColumnDef, ColumnType, TableSchema
from .registry import TableRegistry

logger = structlog.get_logger(__name__)


class ColumnConfig(BaseModel):
    """Schema for a single column entry."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    type: str = Field(..., description="Column type name or SQL spelling")
    primary_key: bool = Field(False, alias="primaryKey")
    not_null: bool = Field(False, alias="notNull")
    unique: bool = False
    auto_increment: bool = Field(False, alias="autoIncrement")
    length: Optional[int] = Field(None, gt=0)
    precision: Optional[int] = Field(None, gt=0)
    scale: Optional[int] = Field(None, ge=0)
    enum_values: List[Union[str, int]] = Field(default_factory=list, alias="enumValues")
    default: Optional[Union[str, int, float, bool]] = None
    description: str = ""


class TableConfig(BaseModel):
    """Schema for one table entry."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    pg_schema: Optional[str] = Field(None, alias="schema")
    columns: Dict[str, ColumnConfig] = Field(..., min_length=1)


class TablesFile(BaseModel):
    """Schema for the complete tables YAML structure."""

    tables: Dict[str, TableConfig] = Field(default_factory=dict)


def _default_sql(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def _to_schema(name: str, config: TableConfig) -> TableSchema:
    columns = [
        ColumnDef(
            name=column_name,
            column_type=ColumnType.parse(column.type),
            primary_key=column.primary_key,
            not_null=column.not_null,
            unique=column.unique,
            auto_increment=column.auto_increment,
            length=column.length,
            precision=column.precision,
            scale=column.scale,
            enum_values=tuple(column.enum_values),
            default=_default_sql(column.default),
            description=column.description,
        )
        for column_name, column in config.columns.items()
    ]
    return TableSchema(table_name=name, columns=tuple(columns), pg_schema=config.pg_schema)


def parse_table_schemas(data: Any, source: str = "<memory>") -> List[TableSchema]:
    """
    Validate already-parsed YAML content and build TableSchemas.

    Raises:
        SchemaError: If the content does not match the expected shape
    """
    if data is None:
        return []
    if not isinstance(data, dict):
        raise SchemaError(
            f"Invalid tables format in {source}: expected mapping, got {type(data).__name__}"
        )
    try:
        parsed = TablesFile(**data)
    except ValidationError as e:
        raise SchemaError(f"Table definitions in {source} failed validation: {e}") from e
    return [_to_schema(name, config) for name, config in parsed.tables.items()]


def load_table_schemas(path: Union[str, Path]) -> List[TableSchema]:
    """
    Load table definitions from a YAML file.

    Behavior:
    - Missing file: raises SchemaError
    - Empty file: returns an empty list
    - Invalid YAML or shape: raises SchemaError with the filename

    Args:
        path: Path to the YAML file

    Returns:
        TableSchemas in file order
    """
    file_path = Path(path)
    if not file_path.exists():
        raise SchemaError(f"Table definitions file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(
            "schema_loader.yaml_parse_error",
            file_path=str(file_path),
            error=str(e),
        )
        raise SchemaError(f"Invalid YAML in {file_path}: {e}") from e

    schemas = parse_table_schemas(content, source=str(file_path))
    logger.debug(
        "schema_loader.loaded",
        file_path=str(file_path),
        tables=[schema.table_name for schema in schemas],
    )
    return schemas


def load_registry(path: Union[str, Path]) -> TableRegistry:
    """Load a YAML file straight into a new TableRegistry."""
    return TableRegistry(load_table_schemas(path))


__all__ = [
    "ColumnConfig",
    "TableConfig",
    "TablesFile",
    "parse_table_schemas",
    "load_table_schemas",
    "load_registry",
]
