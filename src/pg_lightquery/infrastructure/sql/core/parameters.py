"""
SQL parameter binding utilities.

Statements are built with PostgreSQL-native ``$n`` placeholders, while
psycopg2 binds parameters with pyformat markers. These helpers translate one
into the other using indexed parameter names (p1, p2, ...) so a placeholder
that appears twice binds the same value twice.
"""

from typing import Any, Dict, List, Sequence, Tuple

from .placeholders import iter_tokens


def build_indexed_params(values: Sequence[Any]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Build indexed parameter names for positional values.

    Args:
        values: Values in placeholder order ($1 first)

    Returns:
        Tuple of (parameter name to value mapping, list of pyformat markers)

    Examples:
        >>> params, markers = build_indexed_params(["Ann", 42])
        >>> params
        {'p1': 'Ann', 'p2': 42}
        >>> markers
        ['%(p1)s', '%(p2)s']
    """
    params = {f"p{index}": value for index, value in enumerate(values, start=1)}
    markers = [f"%({name})s" for name in params]
    return params, markers


def to_pyformat(sql: str, values: Sequence[Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Convert a ``$n`` statement into psycopg2 pyformat with named parameters.

    Literal ``%`` characters are doubled everywhere (psycopg2 scans the whole
    text, literals included), and every ``$n`` becomes ``%(pn)s``.

    Raises:
        ValueError: If a placeholder has no corresponding value

    Examples:
        >>> to_pyformat('SELECT * FROM t WHERE "name" LIKE $1', ["%Doe%"])
        ('SELECT * FROM t WHERE "name" LIKE %(p1)s', {'p1': '%Doe%'})
    """
    params, _ = build_indexed_params(values)

    def _marker(index: int) -> str:
        name = f"p{index}"
        if name not in params:
            raise ValueError(
                f"Placeholder ${index} has no bound value ({len(params)} supplied)"
            )
        return f"%({name})s"

    parts = []
    for kind, text in iter_tokens(sql):
        if kind == "placeholder":
            parts.append(_marker(int(text)))
        else:
            parts.append(text.replace("%", "%%"))
    return "".join(parts), params


__all__ = ["build_indexed_params", "to_pyformat"]
