"""
Per-table operations facade.

TableOperations binds one TableSchema to the statement builders and an
execution gateway. Every operation returns its QueryObject for inspection
together with an ``execute`` callable; nothing touches the database until
``execute`` is called.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional

from pg_lightquery.config import Settings, get_settings
from pg_lightquery.exceptions import ExecutionError
from pg_lightquery.infrastructure.schema.core import TableSchema
from pg_lightquery.infrastructure.schema.registry import TableRegistry
from pg_lightquery.infrastructure.sql.core.query import QueryObject
from pg_lightquery.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from pg_lightquery.infrastructure.sql.operations.chain import ChainedStatementBuilder
from pg_lightquery.infrastructure.sql.operations.insert import InsertBuilder
from pg_lightquery.infrastructure.sql.operations.select import SelectBuilder
from pg_lightquery.infrastructure.sql.operations.update import UpdateBuilder
from pg_lightquery.utils.logging import get_logger

logger = get_logger(__name__)


def generate_primary_key(prefix: str) -> str:
    """
    Generate a unique text primary key.

    Examples:
        >>> generate_primary_key("USR")  # doctest: +SKIP
        'USR_3F2B8C0E9A1D4E6F8B7C5A4D3E2F1A0B'
    """
    return f"{prefix}_{uuid.uuid4().hex.upper()}"


@dataclass(frozen=True)
class QueryResult:
    """A built statement plus a callable that runs it."""

    query: QueryObject
    executor: Optional[Callable[[str, Any], List[dict]]] = field(
        default=None, repr=False, compare=False
    )

    @property
    def sql_text(self) -> str:
        return self.query.sql_text

    @property
    def values(self):
        return self.query.values

    def execute(self) -> List[dict]:
        if self.executor is None:
            raise ExecutionError("No execution gateway configured for this table")
        return self.executor(self.query.sql_text, self.query.values)


class TransactionResult:
    """
    Ordered list of independent statements executed in one transaction.

    Unlike a chain, each statement keeps its own placeholders; the gateway
    runs them one by one between BEGIN and COMMIT.
    """

    def __init__(self, queries: Iterable[QueryObject] = (), gateway: Any = None):
        self.queries: List[QueryObject] = list(queries)
        self._gateway = gateway

    def add(self, query: Any) -> "TransactionResult":
        """Append a QueryObject (or anything exposing ``query``)."""
        self.queries.append(getattr(query, "query", query))
        return self

    def execute(self) -> List[List[dict]]:
        if self._gateway is None:
            raise ExecutionError("No execution gateway configured for this transaction")
        return self._gateway.execute_transaction(self.queries)

    def __len__(self) -> int:
        return len(self.queries)


class TableOperations:
    """Statement building and execution for a single table."""

    def __init__(
        self,
        schema: TableSchema,
        gateway: Any = None,
        dialect: Optional[PostgreSQLDialect] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            schema: Table the operations target
            gateway: Execution gateway (``execute``/``execute_transaction``);
                without one, statements can be built but not executed
            dialect: SQL dialect, PostgreSQL by default
            settings: Audit defaults source, ``get_settings()`` by default
        """
        settings = settings or get_settings()
        self.schema = schema
        self.gateway = gateway
        self.dialect = dialect or PostgreSQLDialect()
        self.audit_column = settings.audit_column
        self.default_user = settings.default_audit_user
        self.select_builder = SelectBuilder(self.dialect)
        self.insert_builder = InsertBuilder(self.dialect, self.audit_column, self.default_user)
        self.update_builder = UpdateBuilder(self.dialect, self.audit_column, self.default_user)

    @property
    def table_name(self) -> str:
        return self.schema.table_name

    def _result(self, query: QueryObject, operation: str) -> QueryResult:
        logger.debug(
            "query.built",
            table=self.table_name,
            operation=operation,
            parameter_count=len(query.values),
        )
        executor = self.gateway.execute if self.gateway is not None else None
        return QueryResult(query=query, executor=executor)

    def select(
        self,
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        columns_to_return: Any = None,
        alias: Optional[str] = None,
        predefined: Optional[QueryObject] = None,
    ) -> QueryResult:
        """SELECT filtered by ``where``; ``allowed`` limits the filterable columns."""
        query = self.select_builder.select(
            self.schema,
            where,
            allowed,
            columns_to_return=columns_to_return,
            alias=alias,
            predefined=predefined,
        )
        return self._result(query, "select")

    def select_with_custom_schema(
        self,
        predefined: QueryObject,
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        schema_columns: Optional[Iterable[str]] = None,
        alias: Optional[str] = None,
    ) -> QueryResult:
        """Extend predefined SQL (joins, views) with a filter over its own columns."""
        query = self.select_builder.select_with_custom_schema(
            predefined, where, allowed, schema_columns=schema_columns, alias=alias
        )
        return self._result(query, "select")

    def insert(
        self,
        data: Optional[Mapping[str, Any]],
        allowed: Any = "*",
        *,
        return_field: Any = None,
        upsert: bool = False,
        id_user: Optional[str] = None,
    ) -> QueryResult:
        statement = self.insert_builder.statement(
            self.schema,
            data,
            allowed,
            return_field=return_field,
            upsert=upsert,
            id_user=id_user,
        )
        return self._result(statement.render(self.dialect), "insert")

    def update(
        self,
        data: Optional[Mapping[str, Any]],
        where: Optional[Mapping[str, Any]] = None,
        allowed: Any = "*",
        *,
        return_field: Any = None,
        id_user: Optional[str] = None,
        allow_update_all: bool = False,
    ) -> QueryResult:
        query = self.update_builder.update(
            self.schema,
            data,
            where,
            allowed,
            return_field=return_field,
            id_user=id_user,
            allow_update_all=allow_update_all,
        )
        return self._result(query, "update")

    def transaction(self, queries: Iterable[QueryObject] = ()) -> TransactionResult:
        return TransactionResult(queries, gateway=self.gateway)

    def chain(self, registry: Optional[TableRegistry] = None) -> ChainedStatementBuilder:
        """New CTE chain sharing this table's gateway, dialect and audit settings."""
        return ChainedStatementBuilder(
            dialect=self.dialect,
            registry=registry,
            gateway=self.gateway,
            audit_column=self.audit_column,
            default_user=self.default_user,
        )

    def generate_primary_key(self, prefix: str) -> str:
        return generate_primary_key(prefix)


__all__ = [
    "generate_primary_key",
    "QueryResult",
    "TransactionResult",
    "TableOperations",
]
