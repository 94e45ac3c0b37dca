"""
Column/value extraction shared by the INSERT and UPDATE builders.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from pg_lightquery.infrastructure.schema.core import TableSchema
from pg_lightquery.utils.logging import get_logger

from .predicates import AllowList
from .statements import BoundValue

logger = get_logger(__name__)


@dataclass(frozen=True)
class Assignments:
    """Ordered columns and their bound value slots."""

    columns: Tuple[str, ...]
    slots: Tuple[BoundValue, ...]

    @property
    def values(self) -> Tuple[Any, ...]:
        return tuple(slot.value for slot in self.slots)


def extract_assignments(
    schema: TableSchema,
    data: Optional[Mapping[str, Any]],
    allowed: Any = "*",
    *,
    audit_column: Optional[str] = None,
    id_user: Optional[str] = None,
    default_user: str = "SERVER",
) -> Assignments:
    """
    Select the columns a write statement sets, in data-map order.

    ``None`` values and columns outside the allow-list are dropped. When the
    schema declares ``audit_column`` it is always appended last with
    ``id_user`` (or ``default_user``), replacing any value the data carried.

    Raises:
        ValidationError: If the allow-list is non-unique or names columns
            outside the schema
    """
    allow_list = AllowList.resolve(
        allowed, schema_columns=schema.column_names, table=schema.table_name
    )
    stamp_audit = bool(audit_column) and schema.has_column(audit_column)

    columns = []
    slots = []
    for column, value in (data or {}).items():
        if value is None:
            continue
        if stamp_audit and column == audit_column:
            continue
        if not allow_list.permits(column):
            logger.debug(
                "query.write.column_dropped", column=column, table=schema.table_name
            )
            continue
        columns.append(column)
        slots.append(BoundValue(value))

    if stamp_audit:
        columns.append(audit_column)
        slots.append(BoundValue(id_user or default_user))

    return Assignments(columns=tuple(columns), slots=tuple(slots))


__all__ = ["Assignments", "extract_assignments"]
