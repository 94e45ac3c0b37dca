"""
Query constructor: filter map to WHERE / ORDER BY / LIMIT / OFFSET text.

Each allow-listed entry is compiled independently with the next free
placeholder index and the fragments are folded in filter-map order, so
placeholders always run ``$start..$start+len(values)-1`` without gaps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple

from pg_lightquery.exceptions import ValidationError
from pg_lightquery.utils.logging import get_logger

from ..core.placeholders import adjust_placeholders
from ..core.query import Fragment
from .predicates import ORDER_BY, AllowList, FilterKey, compile_predicate

logger = get_logger(__name__)

LIMIT_KEY = "limit"
OFFSET_KEY = "offset"
PAGINATION_KEYS = (LIMIT_KEY, OFFSET_KEY)


@dataclass(frozen=True)
class WhereClause:
    """Compiled filter map: predicate, ordering, pagination and bound values.

    ``values`` binds ``sql_query`` as a whole: predicate values first, then
    the trailing ``order_values`` bound by ORDER BY items.
    """

    conditions: Tuple[str, ...] = ()
    order_by: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    values: Tuple[Any, ...] = field(default_factory=tuple)
    order_values: Tuple[Any, ...] = field(default_factory=tuple)

    @property
    def predicate_sql(self) -> str:
        """Conditions AND-joined, without the WHERE keyword."""
        return " AND ".join(self.conditions)

    @property
    def predicate_values(self) -> Tuple[Any, ...]:
        return self.values[: len(self.values) - len(self.order_values)]

    @property
    def has_predicate(self) -> bool:
        return bool(self.conditions)

    @property
    def sql_query(self) -> str:
        parts = []
        if self.conditions:
            parts.append(f"WHERE {self.predicate_sql}")
        if self.order_by:
            parts.append("ORDER BY " + ", ".join(self.order_by))
        if self.limit is not None:
            parts.append(f"LIMIT {self.limit}")
        if self.offset is not None:
            parts.append(f"OFFSET {self.offset}")
        return " ".join(parts)

    def to_fragment(self) -> Fragment:
        return Fragment(self.sql_query, self.values)

    def predicate_fragment(self) -> Fragment:
        return Fragment(self.predicate_sql, self.predicate_values)


def _pagination_value(key: str, value: Any) -> int:
    """Integer check for LIMIT/OFFSET, which are interpolated."""
    if isinstance(value, bool):
        raise ValidationError(f"{key.upper()} must be a non-negative integer", column=key)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f"{key.upper()} must be a non-negative integer", column=key)
    if number < 0:
        raise ValidationError(f"{key.upper()} must be a non-negative integer", column=key)
    return number


def build_where_clause(
    filters: Optional[Mapping[str, Any]],
    allowed: Any = "*",
    *,
    schema_columns: Optional[Iterable[str]] = None,
    alias: Optional[str] = None,
    allow_pagination: bool = False,
    start_index: int = 1,
    table: Optional[str] = None,
) -> WhereClause:
    """
    Compile a filter map into a WhereClause.

    Keys whose base field is not allow-listed are dropped without error.
    ``limit``/``offset`` are honored only with ``allow_pagination`` and are
    never checked against the allow-list.

    Args:
        filters: Mapping of ``field[.suffix]`` to value
        allowed: ``"*"``, explicit column collection or AllowList
        schema_columns: Table columns used to resolve ``"*"`` and validate
            explicit allow-lists
        alias: Optional table alias for every column reference
        allow_pagination: Honor the ``limit``/``offset`` pseudo-fields
        start_index: First placeholder index to use
        table: Table name for error and log context

    Raises:
        ValidationError: Non-unique or unknown allow-list columns, unknown
            suffix, malformed value, or a non-integer limit/offset
    """
    allow_list = AllowList.resolve(allowed, schema_columns=schema_columns, table=table)

    conditions = []
    ordering = []
    values: list = []
    limit = None
    offset = None

    for key, value in (filters or {}).items():
        filter_key = FilterKey.parse(key)

        if allow_pagination and filter_key.suffix is None and filter_key.field in PAGINATION_KEYS:
            if filter_key.field == LIMIT_KEY:
                limit = _pagination_value(LIMIT_KEY, value)
            else:
                offset = _pagination_value(OFFSET_KEY, value)
            continue

        if not allow_list.permits(filter_key.field):
            logger.debug("query.where.field_dropped", key=str(key), table=table)
            continue

        compiled = compile_predicate(
            key,
            value,
            allow_list,
            start_index=start_index + len(values),
            alias=alias,
            table=table,
        )
        if compiled.clause == ORDER_BY:
            ordering.append((compiled.fragment, start_index + len(values)))
        elif compiled.fragment:
            conditions.append(compiled.fragment.sql)
            values.extend(compiled.fragment.values)

    # ORDER BY values bind after every WHERE value
    order_by = []
    order_values: list = []
    for fragment, compiled_at in ordering:
        position = start_index + len(values) + len(order_values)
        order_by.append(adjust_placeholders(fragment.sql, position - compiled_at))
        order_values.extend(fragment.values)

    return WhereClause(
        conditions=tuple(conditions),
        order_by=tuple(order_by),
        limit=limit,
        offset=offset,
        values=tuple(values) + tuple(order_values),
        order_values=tuple(order_values),
    )


def query_constructor(
    allowed: Any,
    filters: Optional[Mapping[str, Any]],
    alias: Optional[str] = None,
    allow_pagination: bool = True,
) -> Fragment:
    """Shorthand returning only the ``(sql_query, values)`` fragment."""
    return build_where_clause(
        filters, allowed, alias=alias, allow_pagination=allow_pagination
    ).to_fragment()


__all__ = [
    "LIMIT_KEY",
    "OFFSET_KEY",
    "WhereClause",
    "build_where_clause",
    "query_constructor",
]
