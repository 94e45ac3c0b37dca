"""
Query value objects.

QueryObject is the finished, ready-to-execute statement. Fragment is the same
shape for a partial clause (one predicate, a WHERE body) whose placeholders
are numbered from wherever its caller told it to start.
"""

from dataclasses import dataclass, field
from typing import Any, Tuple


@dataclass(frozen=True)
class QueryObject:
    """
    A fully parameterized statement.

    Every value corresponds 1:1, in order, to a ``$i`` placeholder in
    ``sql_text``.
    """

    sql_text: str
    values: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def to_dict(self) -> dict:
        """Wire shape: ``{"sqlText": ..., "values": [...]}``."""
        return {"sqlText": self.sql_text, "values": list(self.values)}


@dataclass(frozen=True)
class Fragment:
    """An SQL clause fragment plus the values its placeholders bind."""

    sql: str
    values: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def __bool__(self) -> bool:
        return bool(self.sql)


__all__ = ["QueryObject", "Fragment"]
