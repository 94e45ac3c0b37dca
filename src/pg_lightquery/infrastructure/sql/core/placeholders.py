"""
Positional placeholder bookkeeping.

Two independently parameterized fragments can only be concatenated after the
second one's ``$n`` markers are shifted past the first one's. The scanner
below walks the statement token by token so that text inside string literals,
quoted identifiers, dollar-quoted bodies and comments is never mistaken for a
placeholder.
"""

import re
from typing import Callable, Iterator, Tuple

from .query import QueryObject

_TOKEN = re.compile(
    r"""
      (?P<estring>(?<![\w$])[eE]'(?:\\.|''|[^'\\])*')
    | (?P<string>'(?:''|[^'])*')
    | (?P<ident>"(?:""|[^"])*")
    | (?P<line_comment>--[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<dollar_body>(?<![\w$])\$\$.*?\$\$)
    | (?P<tagged_body>(?<![\w$])\$(?P<tag>[A-Za-z_][A-Za-z0-9_]*)\$.*?\$(?P=tag)\$)
    | (?<![\w$])\$(?P<index>\d+)
    """,
    re.VERBOSE | re.DOTALL,
)

_TRAILING_TERMINATORS = re.compile(r"[\s;]+$")


def iter_tokens(sql: str) -> Iterator[Tuple[str, str]]:
    """
    Split ``sql`` into ``(kind, text)`` tokens.

    ``kind`` is ``"placeholder"`` (text is the index digits), ``"quoted"``
    (literal, quoted identifier, dollar body or comment, passed through
    verbatim) or ``"text"`` (everything else).
    """
    position = 0
    for match in _TOKEN.finditer(sql):
        if match.start() > position:
            yield "text", sql[position : match.start()]
        if match.group("index") is not None:
            yield "placeholder", match.group("index")
        else:
            yield "quoted", match.group(0)
        position = match.end()
    if position < len(sql):
        yield "text", sql[position:]


def rewrite_placeholders(sql: str, on_placeholder: Callable[[int], str]) -> str:
    """Rebuild ``sql`` replacing each ``$n`` with ``on_placeholder(n)``."""
    parts = []
    for kind, text in iter_tokens(sql):
        parts.append(on_placeholder(int(text)) if kind == "placeholder" else text)
    return "".join(parts)


def find_max_placeholder(sql: str) -> int:
    """
    Return the highest ``$n`` index used in ``sql`` (0 when there is none).

    Examples:
        >>> find_max_placeholder('SELECT * FROM t WHERE a = $1 AND b = $3')
        3
        >>> find_max_placeholder("SELECT '$9' AS price")
        0
    """
    highest = 0
    for kind, text in iter_tokens(sql):
        if kind == "placeholder":
            highest = max(highest, int(text))
    return highest


def adjust_placeholders(sql: str, offset: int) -> str:
    """
    Shift every ``$n`` in ``sql`` by ``offset``.

    Offset 0 returns the text unchanged, and shifting by ``a`` then ``b`` is
    the same as shifting once by ``a + b``.

    Examples:
        >>> adjust_placeholders('"name" = $1 AND "age" > $2', 3)
        '"name" = $4 AND "age" > $5'
    """
    if offset == 0:
        return sql
    return rewrite_placeholders(sql, lambda index: f"${index + offset}")


def strip_terminators(sql: str) -> str:
    """Trim surrounding whitespace and any trailing semicolons."""
    return _TRAILING_TERMINATORS.sub("", sql.strip())


def merge_fragments(
    first: QueryObject, second: QueryObject, separator: str = " "
) -> QueryObject:
    """
    Concatenate two independently parameterized statements.

    The second statement's placeholders are shifted past the highest index
    found in the first, and the value lists are joined first-then-second.

    Examples:
        >>> merged = merge_fragments(
        ...     QueryObject("SELECT * FROM users WHERE active = $1", (True,)),
        ...     QueryObject('AND "name" = $1', ("Ann",)),
        ... )
        >>> merged.sql_text
        'SELECT * FROM users WHERE active = $1 AND "name" = $2'
        >>> merged.values
        (True, 'Ann')
    """
    first_sql = strip_terminators(first.sql_text)
    offset = find_max_placeholder(first_sql)
    second_sql = adjust_placeholders(second.sql_text.strip(), offset)
    sql_text = separator.join(part for part in (first_sql, second_sql) if part)
    return QueryObject(sql_text, tuple(first.values) + tuple(second.values))


__all__ = [
    "iter_tokens",
    "rewrite_placeholders",
    "find_max_placeholder",
    "adjust_placeholders",
    "strip_terminators",
    "merge_fragments",
]
