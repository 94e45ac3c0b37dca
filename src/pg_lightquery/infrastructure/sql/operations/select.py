"""
SQL SELECT statement builder.

Builds ``SELECT <projection> FROM <table> <where>`` from a filter map, or
appends the compiled filter to caller-supplied SQL (``predefined``), shifting
the filter's placeholders past the ones the predefined text already uses.
"""

from typing import Any, Iterable, Mapping, Optional

from pg_lightquery.exceptions import ValidationError
from pg_lightquery.infrastructure.schema.core import TableSchema

from ..core.identifier import format_identifier
from ..core.placeholders import merge_fragments
from ..core.query import QueryObject
from .predicates import AllowList
from .statements import Dialect
from .where import build_where_clause


class SelectBuilder:
    """High-level builder for SELECT statements."""

    def __init__(self, dialect: Dialect):
        self.dialect = dialect

    def select(
        self,
        schema: TableSchema,
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        columns_to_return: Any = None,
        alias: Optional[str] = None,
        predefined: Optional[QueryObject] = None,
    ) -> QueryObject:
        """
        Build a SELECT over ``schema``.

        Args:
            schema: Table to read
            where: Filter map (``limit``/``offset`` honored)
            allowed: Columns usable in the filter, ``"*"`` for every column
            columns_to_return: Projection; defaults to ``allowed``
            alias: Table alias used for filter columns
            predefined: SQL to extend with the compiled filter instead of
                building ``SELECT ... FROM``

        Raises:
            ValidationError: Non-unique or unknown columns in ``allowed`` or
                ``columns_to_return``, or an invalid filter
        """
        table = schema.table_name
        allow_list = AllowList.resolve(allowed, schema_columns=schema.column_names, table=table)
        clause = build_where_clause(
            where, allow_list, alias=alias, allow_pagination=True, table=table
        )

        if predefined is not None:
            return merge_fragments(predefined, QueryObject(clause.sql_query, clause.values))

        projection = columns_to_return if columns_to_return is not None else allowed
        if projection == "*":
            columns: Iterable[str] = ()
        else:
            columns = AllowList.resolve(projection, schema_columns=schema.column_names, table=table)

        sql = self.dialect.build_select(table, list(columns), schema=schema.pg_schema)
        if alias:
            sql = f"{sql} AS {format_identifier(alias)}"
        if clause.sql_query:
            sql = f"{sql} {clause.sql_query}"
        return QueryObject(sql, clause.values)

    def select_with_custom_schema(
        self,
        predefined: Optional[QueryObject],
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        schema_columns: Optional[Iterable[str]] = None,
        alias: Optional[str] = None,
    ) -> QueryObject:
        """
        Extend ``predefined`` SQL (joins, CTEs, views) with a compiled filter.

        Column validation uses ``schema_columns`` when given; otherwise an
        explicit allow-list is trusted as-is and ``"*"`` admits any plain
        identifier.

        Raises:
            ValidationError: If ``predefined`` is missing
        """
        if predefined is None or not predefined.sql_text.strip():
            raise ValidationError("Predefined SQL is required for a custom-schema select")
        clause = build_where_clause(
            where,
            allowed,
            schema_columns=schema_columns,
            alias=alias,
            allow_pagination=True,
        )
        return merge_fragments(predefined, QueryObject(clause.sql_query, clause.values))


__all__ = ["SelectBuilder"]
