"""
Predicate compilation for filter maps.

A filter entry is ``"field"`` or ``"field.suffix"`` paired with a value. Each
entry compiles to an immutable Fragment whose placeholders start at the index
the caller supplies, so the query constructor can fold fragments together
without a shared value accumulator.

Suffix handlers live in a registry; additional operators are added with
``register_suffix``. Every handler receives an already-quoted column
reference, so caller-supplied names only ever reach SQL text after passing
the allow-list check in ``compile_predicate``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

from pg_lightquery.exceptions import ValidationError

from ..core.identifier import format_identifier, is_simple_identifier, quote_identifier, quote_literal
from ..core.query import Fragment

SUFFIX_SEPARATOR = "."

# Clause a compiled predicate belongs to
WHERE = "where"
ORDER_BY = "order_by"

_ORDER_DIRECTION = re.compile(
    r"^(?P<direction>ASC|DESC)(?:\s+NULLS\s+(?P<nulls>FIRST|LAST))?$", re.IGNORECASE
)

PredicateFunction = Callable[[str, Any, int], Fragment]


@dataclass(frozen=True)
class FilterKey:
    """Parsed ``field[.suffix]`` filter key."""

    field: str
    suffix: Optional[str] = None

    @classmethod
    def parse(cls, key: str) -> "FilterKey":
        field, separator, suffix = str(key).partition(SUFFIX_SEPARATOR)
        return cls(field=field, suffix=suffix if separator else None)

    def __str__(self) -> str:
        if self.suffix is None:
            return self.field
        return f"{self.field}{SUFFIX_SEPARATOR}{self.suffix}"


@dataclass(frozen=True)
class CompiledPredicate:
    """One compiled filter entry: the clause it feeds and its fragment."""

    key: FilterKey
    clause: str
    fragment: Fragment


@dataclass(frozen=True)
class SuffixHandler:
    compile: PredicateFunction
    clause: str = WHERE


_SUFFIX_HANDLERS: Dict[str, SuffixHandler] = {}


def register_suffix(name: str, clause: str = WHERE) -> Callable[[PredicateFunction], PredicateFunction]:
    """
    Register a filter suffix handler.

    The handler is called as ``handler(column_sql, value, start_index)`` and
    must return a Fragment whose placeholders begin at ``$start_index``.

    Raises:
        ValueError: If the suffix is already registered or the clause is unknown
    """
    if clause not in (WHERE, ORDER_BY):
        raise ValueError(f"Unknown clause '{clause}' for suffix '{name}'")

    def decorator(func: PredicateFunction) -> PredicateFunction:
        if name in _SUFFIX_HANDLERS:
            raise ValueError(f"Filter suffix '{name}' is already registered")
        _SUFFIX_HANDLERS[name] = SuffixHandler(compile=func, clause=clause)
        return func

    return decorator


def registered_suffixes() -> Tuple[str, ...]:
    return tuple(sorted(_SUFFIX_HANDLERS))


@dataclass(frozen=True)
class AllowList:
    """
    Columns a call may reference in its WHERE/SET text.

    ``wildcard`` stands for "every schema column" when no schema column list
    was available to resolve it; it still only admits plain identifiers.
    """

    columns: Tuple[str, ...] = ()
    wildcard: bool = False

    @classmethod
    def resolve(
        cls,
        allowed: Any,
        schema_columns: Optional[Iterable[str]] = None,
        table: Optional[str] = None,
    ) -> "AllowList":
        """
        Build an allow-list from ``"*"`` or an explicit column collection.

        Raises:
            ValidationError: On duplicate names, or names missing from
                ``schema_columns`` when it is given
        """
        if isinstance(allowed, AllowList):
            return allowed
        known = tuple(schema_columns) if schema_columns is not None else None

        if allowed == "*":
            if known is None:
                return cls(wildcard=True)
            return cls(columns=known)

        if isinstance(allowed, str):
            allowed = (allowed,)
        columns = tuple(allowed)

        seen = set()
        for column in columns:
            if column in seen:
                raise ValidationError(
                    "Allowed columns must be unique", column=column, table=table
                )
            seen.add(column)

        if known is not None:
            for column in columns:
                if column not in known:
                    raise ValidationError(
                        "Column is not part of the table schema",
                        column=column,
                        table=table,
                    )
        return cls(columns=columns)

    def permits(self, name: str) -> bool:
        if self.wildcard:
            return is_simple_identifier(name)
        return name in self.columns

    def __iter__(self) -> Iterator[str]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)


def column_reference(field: str, alias: Optional[str] = None) -> str:
    """Quoted column reference, ``alias."field"`` when an alias is given."""
    if alias:
        return f"{format_identifier(alias)}.{quote_identifier(field)}"
    return quote_identifier(field)


def compile_predicate(
    key: str,
    value: Any,
    allowed: Any = "*",
    start_index: int = 1,
    alias: Optional[str] = None,
    table: Optional[str] = None,
) -> CompiledPredicate:
    """
    Compile one filter entry.

    Args:
        key: ``"field"`` or ``"field.suffix"``
        value: Filter value
        allowed: AllowList, ``"*"`` or explicit column collection
        start_index: Index of the first placeholder the fragment may use
        alias: Optional table alias prefixed to the column
        table: Table name used in error context

    Raises:
        ValidationError: If the field is not allow-listed, the suffix is
            unknown, or the value cannot be compiled
    """
    filter_key = FilterKey.parse(key)
    allow_list = AllowList.resolve(allowed, table=table)
    if not allow_list.permits(filter_key.field):
        raise ValidationError(
            "Column is not allowed in this query", column=filter_key.field, table=table
        )

    column = column_reference(filter_key.field, alias)

    if filter_key.suffix is None:
        if isinstance(value, Mapping):
            fragment = _json_containment(column, value, start_index)
        else:
            fragment = _equality(column, value, start_index)
        return CompiledPredicate(filter_key, WHERE, fragment)

    handler = _SUFFIX_HANDLERS.get(filter_key.suffix)
    if handler is None:
        raise ValidationError(
            f"Unknown filter suffix '{filter_key.suffix}'. "
            f"Supported: {', '.join(registered_suffixes())}",
            column=str(filter_key),
            table=table,
        )
    try:
        fragment = handler.compile(column, value, start_index)
    except ValidationError as exc:
        if exc.column is None:
            raise ValidationError(str(exc), column=str(filter_key), table=table) from exc
        raise
    return CompiledPredicate(filter_key, handler.clause, fragment)


def _equality(column: str, value: Any, start: int) -> Fragment:
    if value is None:
        return Fragment(f"{column} IS NULL")
    return Fragment(f"{column} = ${start}", (value,))


def _json_text(value: Any) -> Any:
    # ->> yields text, so nested values are compared in their JSON text form
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _json_containment(column: str, value: Mapping, start: int) -> Fragment:
    conditions = []
    values = []
    for json_key, json_value in value.items():
        path = f"{column} ->> {quote_literal(str(json_key))}"
        if json_value is None:
            conditions.append(f"{path} IS NULL")
            continue
        conditions.append(f"{path} = ${start + len(values)}")
        values.append(_json_text(json_value))
    return Fragment(" AND ".join(conditions), values)


@register_suffix("not")
def _not_equal(column: str, value: Any, start: int) -> Fragment:
    if value is None:
        return Fragment(f"{column} IS NOT NULL")
    return Fragment(f"{column} <> ${start}", (value,))


@register_suffix("null")
def _is_null(column: str, value: Any, start: int) -> Fragment:
    is_null = value is True or (isinstance(value, str) and value.strip().lower() == "true")
    return Fragment(f"{column} IS NULL" if is_null else f"{column} IS NOT NULL")


@register_suffix("like")
def _like(column: str, value: Any, start: int) -> Fragment:
    return Fragment(f"{column} LIKE ${start}", (value,))


def _in_candidates(value: Any) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return (value,)


@register_suffix("in")
def _in(column: str, value: Any, start: int) -> Fragment:
    candidates = _in_candidates(value)
    if not candidates:
        # Nothing can match an empty candidate list
        return Fragment("FALSE")
    markers = ", ".join(f"${start + offset}" for offset in range(len(candidates)))
    return Fragment(f"{column} IN ({markers})", candidates)


def coerce_date(value: Any) -> Any:
    """Coerce a filter value to a date or datetime.

    Raises:
        ValidationError: If the value is not a date or an ISO-8601 string
    """
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        text = value.strip()
        # fromisoformat only accepts a trailing Z from Python 3.11 on
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError(f"Cannot interpret {value!r} as a date")


@register_suffix("startDate")
def _start_date(column: str, value: Any, start: int) -> Fragment:
    return Fragment(f"{column} >= ${start}", (coerce_date(value),))


@register_suffix("endDate")
def _end_date(column: str, value: Any, start: int) -> Fragment:
    return Fragment(f"{column} <= ${start}", (coerce_date(value),))


def normalize_direction(value: Any) -> str:
    """Validate an ORDER BY direction; it is interpolated, never bound.

    Raises:
        ValidationError: Unless the value is ASC or DESC with optional NULLS FIRST/LAST
    """
    text = " ".join(str(value).split()) if value is not None else ""
    match = _ORDER_DIRECTION.match(text)
    if not match:
        raise ValidationError(
            f"Invalid ORDER BY direction {value!r}; expected ASC or DESC"
        )
    direction = match.group("direction").upper()
    if match.group("nulls"):
        direction += f" NULLS {match.group('nulls').upper()}"
    return direction


@register_suffix("orderBy", clause=ORDER_BY)
def _order_by(column: str, value: Any, start: int) -> Fragment:
    return Fragment(f"{column} {normalize_direction(value)}")


__all__ = [
    "WHERE",
    "ORDER_BY",
    "FilterKey",
    "CompiledPredicate",
    "AllowList",
    "register_suffix",
    "registered_suffixes",
    "column_reference",
    "compile_predicate",
    "coerce_date",
    "normalize_direction",
]
