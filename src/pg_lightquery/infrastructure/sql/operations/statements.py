"""
Typed INSERT/UPDATE statement nodes.

Builders produce these nodes instead of finished text so that the chained
CTE builder can point one column at an earlier step's output by swapping a
value slot, without re-parsing rendered SQL. ``render`` numbers placeholders
from ``$1``; composing statements is left to the placeholder reconciler.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from pg_lightquery.exceptions import ValidationError

from ..core.placeholders import adjust_placeholders
from ..core.query import Fragment, QueryObject


class Dialect(Protocol):
    """Protocol for SQL dialects."""

    name: str

    def quote(self, identifier: str) -> str: ...
    def qualify(self, table: str, schema: Optional[str] = None) -> str: ...
    def placeholder(self, index: int) -> str: ...
    def build_insert(
        self, table: str, columns: List[str], placeholders: List[str], schema: Optional[str] = None
    ) -> str: ...
    def build_insert_on_conflict_do_nothing(
        self, table: str, columns: List[str], placeholders: List[str], conflict_columns: List[str], schema: Optional[str] = None
    ) -> str: ...
    def build_insert_on_conflict_do_update(
        self, table: str, columns: List[str], placeholders: List[str], conflict_columns: List[str], update_columns: List[str], schema: Optional[str] = None
    ) -> str: ...
    def build_update(
        self, table: str, columns: List[str], placeholders: List[str], where_sql: str = "", schema: Optional[str] = None
    ) -> str: ...
    def build_returning(self, columns: Sequence[str], star: bool = False) -> str: ...
    def build_scalar_subquery(self, source: str, column: str) -> str: ...


def _default_dialect() -> Dialect:
    from ..dialects.postgresql import PostgreSQLDialect

    return PostgreSQLDialect()


@dataclass(frozen=True)
class BoundValue:
    """A value bound through a positional placeholder."""

    value: Any


@dataclass(frozen=True)
class SubqueryValue:
    """A value read from an earlier CTE: ``(SELECT "column" FROM source)``."""

    source: str
    column: str


ValueSlot = Union[BoundValue, SubqueryValue]


@dataclass(frozen=True)
class Returning:
    """RETURNING projection: nothing, ``*`` or explicit columns."""

    columns: Tuple[str, ...] = ()
    star: bool = False

    @classmethod
    def parse(
        cls,
        return_field: Any,
        schema_columns: Optional[Iterable[str]] = None,
        table: Optional[str] = None,
    ) -> "Returning":
        """
        Accept ``None``, ``"*"``, a single column or a column list.

        Raises:
            ValidationError: If a column is not in ``schema_columns``
        """
        if return_field is None or isinstance(return_field, Returning):
            return return_field or cls()
        if return_field == "*":
            return cls(star=True)
        if isinstance(return_field, str):
            columns: Tuple[str, ...] = (return_field,)
        else:
            columns = tuple(dict.fromkeys(return_field))
        if "*" in columns:
            return cls(star=True)
        if schema_columns is not None:
            known = set(schema_columns)
            for column in columns:
                if column not in known:
                    raise ValidationError(
                        "Returning column is not part of the table schema",
                        column=column,
                        table=table,
                    )
        return cls(columns=columns)

    def render(self, dialect: Dialect) -> str:
        return dialect.build_returning(self.columns, self.star)

    def __bool__(self) -> bool:
        return self.star or bool(self.columns)


def _render_slots(slots: Sequence[ValueSlot], dialect: Dialect) -> Tuple[List[str], List[Any]]:
    expressions = []
    values: List[Any] = []
    for slot in slots:
        if isinstance(slot, SubqueryValue):
            expressions.append(dialect.build_scalar_subquery(slot.source, slot.column))
        else:
            values.append(slot.value)
            expressions.append(dialect.placeholder(len(values)))
    return expressions, values


def _with_slot(
    columns: Tuple[str, ...], slots: Tuple[ValueSlot, ...], column: str, slot: ValueSlot
) -> Tuple[Tuple[str, ...], Tuple[ValueSlot, ...]]:
    if column in columns:
        position = columns.index(column)
        return columns, slots[:position] + (slot,) + slots[position + 1 :]
    return columns + (column,), slots + (slot,)


@dataclass(frozen=True)
class InsertStatement:
    """INSERT node: target table, ordered column/value slots, upsert and RETURNING."""

    operation: ClassVar[str] = "insert"

    table: str
    columns: Tuple[str, ...] = ()
    slots: Tuple[ValueSlot, ...] = ()
    pg_schema: Optional[str] = None
    upsert: bool = False
    conflict_columns: Tuple[str, ...] = ()
    returning: Returning = field(default_factory=Returning)

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "slots", tuple(self.slots))
        object.__setattr__(self, "conflict_columns", tuple(self.conflict_columns))
        if len(self.columns) != len(self.slots):
            raise ValueError("Every insert column needs exactly one value slot")
        if self.upsert and not self.conflict_columns:
            raise ValidationError(
                "Upsert requires primary key columns for ON CONFLICT", table=self.table
            )

    @property
    def parameter_count(self) -> int:
        return sum(1 for slot in self.slots if isinstance(slot, BoundValue))

    @property
    def update_columns(self) -> Tuple[str, ...]:
        """Columns overwritten from EXCLUDED on conflict (never the conflict keys)."""
        if not self.upsert:
            return ()
        return tuple(c for c in self.columns if c not in self.conflict_columns)

    def with_reference(self, column: str, source: str, source_column: str) -> "InsertStatement":
        """Copy with ``column`` sourced from ``source``'s ``source_column``."""
        columns, slots = _with_slot(
            self.columns, self.slots, column, SubqueryValue(source, source_column)
        )
        return dataclasses.replace(self, columns=columns, slots=slots)

    def with_returning(self, returning: Returning) -> "InsertStatement":
        return dataclasses.replace(self, returning=returning)

    def render(self, dialect: Optional[Dialect] = None) -> QueryObject:
        dialect = dialect or _default_dialect()
        expressions, values = _render_slots(self.slots, dialect)
        columns = list(self.columns)

        if not self.upsert:
            sql = dialect.build_insert(self.table, columns, expressions, self.pg_schema)
        elif self.update_columns:
            sql = dialect.build_insert_on_conflict_do_update(
                self.table,
                columns,
                expressions,
                list(self.conflict_columns),
                list(self.update_columns),
                self.pg_schema,
            )
        else:
            sql = dialect.build_insert_on_conflict_do_nothing(
                self.table, columns, expressions, list(self.conflict_columns), self.pg_schema
            )

        if self.returning:
            sql = f"{sql} {self.returning.render(dialect)}"
        return QueryObject(sql, values)


@dataclass(frozen=True)
class UpdateStatement:
    """
    UPDATE node: SET slots plus a predicate fragment numbered from ``$1``.

    Construction fails unless there is something to set and either a
    predicate or ``allow_update_all``.
    """

    operation: ClassVar[str] = "update"

    table: str
    columns: Tuple[str, ...] = ()
    slots: Tuple[ValueSlot, ...] = ()
    where: Fragment = field(default_factory=lambda: Fragment(""))
    pg_schema: Optional[str] = None
    allow_update_all: bool = False
    returning: Returning = field(default_factory=Returning)

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "slots", tuple(self.slots))
        if len(self.columns) != len(self.slots):
            raise ValueError("Every update column needs exactly one value slot")
        if not self.columns:
            raise ValidationError("Update has no columns to set", table=self.table)
        if not self.where and not self.allow_update_all:
            raise ValidationError(
                "Refusing to UPDATE without a predicate; pass allow_update_all=True "
                "to update every row",
                table=self.table,
            )

    @property
    def parameter_count(self) -> int:
        bound = sum(1 for slot in self.slots if isinstance(slot, BoundValue))
        return bound + len(self.where.values)

    def with_reference(self, column: str, source: str, source_column: str) -> "UpdateStatement":
        """Copy with ``column`` set from ``source``'s ``source_column``."""
        columns, slots = _with_slot(
            self.columns, self.slots, column, SubqueryValue(source, source_column)
        )
        return dataclasses.replace(self, columns=columns, slots=slots)

    def with_returning(self, returning: Returning) -> "UpdateStatement":
        return dataclasses.replace(self, returning=returning)

    def render(self, dialect: Optional[Dialect] = None) -> QueryObject:
        dialect = dialect or _default_dialect()
        expressions, values = _render_slots(self.slots, dialect)
        where_sql = adjust_placeholders(self.where.sql, len(values))
        sql = dialect.build_update(
            self.table, list(self.columns), expressions, where_sql, self.pg_schema
        )
        if self.returning:
            sql = f"{sql} {self.returning.render(dialect)}"
        return QueryObject(sql, tuple(values) + tuple(self.where.values))


Statement = Union[InsertStatement, UpdateStatement]


__all__ = [
    "Dialect",
    "BoundValue",
    "SubqueryValue",
    "ValueSlot",
    "Returning",
    "InsertStatement",
    "UpdateStatement",
    "Statement",
]
