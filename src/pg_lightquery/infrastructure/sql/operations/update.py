"""
SQL UPDATE statement builder.

The WHERE predicate is compiled with the same query constructor used for
SELECT, so filter suffixes behave identically. An UPDATE is refused before
any SQL is produced unless the predicate is non-empty or the caller opts
into updating every row.
"""

from typing import Any, Mapping, Optional

from pg_lightquery.exceptions import ValidationError
from pg_lightquery.infrastructure.schema.core import TableSchema

from ..core.query import QueryObject
from .assignments import extract_assignments
from .statements import Dialect, Returning, UpdateStatement
from .where import build_where_clause


class UpdateBuilder:
    """High-level builder for UPDATE statements."""

    def __init__(
        self,
        dialect: Dialect,
        audit_column: Optional[str] = "lastChangedBy",
        default_user: str = "SERVER",
    ):
        self.dialect = dialect
        self.audit_column = audit_column
        self.default_user = default_user

    def statement(
        self,
        schema: TableSchema,
        data: Optional[Mapping[str, Any]],
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        return_field: Any = None,
        id_user: Optional[str] = None,
        allow_update_all: bool = False,
    ) -> UpdateStatement:
        """
        Build the UPDATE node without rendering it.

        Args:
            schema: Target table schema
            data: Column to value mapping for the SET list
            where: Filter map compiled into the WHERE predicate
            allowed: ``"*"`` or explicit columns usable in SET and WHERE
            return_field: ``None``, ``"*"``, one column or a column list
            id_user: Acting user for the audit column
            allow_update_all: Permit an UPDATE without a predicate

        Raises:
            ValidationError: Empty predicate without ``allow_update_all``,
                ORDER BY or LIMIT in the predicate, or nothing to set
        """
        table = schema.table_name
        clause = build_where_clause(
            where,
            allowed,
            schema_columns=schema.column_names,
            allow_pagination=True,
            table=table,
        )
        if clause.order_by or clause.limit is not None or clause.offset is not None:
            raise ValidationError(
                "ORDER BY, LIMIT and OFFSET are not supported in an UPDATE predicate",
                table=table,
            )
        if not clause.has_predicate and not allow_update_all:
            raise ValidationError(
                "Refusing to UPDATE without a predicate; pass allow_update_all=True "
                "to update every row",
                table=table,
            )

        assignments = extract_assignments(
            schema,
            data,
            allowed,
            audit_column=self.audit_column,
            id_user=id_user,
            default_user=self.default_user,
        )
        return UpdateStatement(
            table=table,
            columns=assignments.columns,
            slots=assignments.slots,
            where=clause.predicate_fragment(),
            pg_schema=schema.pg_schema,
            allow_update_all=allow_update_all,
            returning=Returning.parse(return_field, schema.column_names, table=table),
        )

    def update(
        self,
        schema: TableSchema,
        data: Optional[Mapping[str, Any]],
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        return_field: Any = None,
        id_user: Optional[str] = None,
        allow_update_all: bool = False,
    ) -> QueryObject:
        """Build ``UPDATE ... SET ... WHERE ... [RETURNING ...]``."""
        return self.statement(
            schema,
            data,
            where,
            allowed,
            return_field=return_field,
            id_user=id_user,
            allow_update_all=allow_update_all,
        ).render(self.dialect)


__all__ = ["UpdateBuilder"]
