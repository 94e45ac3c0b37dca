"""
SQL identifier handling utilities.

Provides functions for quoting and qualifying SQL identifiers (table names,
column names, CTE names) and string literals so that caller-influenced names
can never break out of their position in the statement.
"""

import re
from typing import Optional

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH = 63

_BARE_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")
_SIMPLE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Reserved words that must stay quoted even when lowercase
_RESERVED_WORDS = frozenset(
    {
        "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
        "asymmetric", "both", "case", "cast", "check", "collate", "column",
        "constraint", "create", "current_date", "current_role", "current_time",
        "current_timestamp", "current_user", "default", "deferrable", "desc",
        "distinct", "do", "else", "end", "except", "false", "fetch", "for",
        "foreign", "from", "grant", "group", "having", "in", "initially",
        "intersect", "into", "lateral", "leading", "limit", "localtime",
        "localtimestamp", "not", "null", "offset", "on", "only", "or", "order",
        "placing", "primary", "references", "returning", "select",
        "session_user", "some", "symmetric", "table", "then", "to", "trailing",
        "true", "union", "unique", "user", "using", "variadic", "when", "where",
        "window", "with",
    }
)


def _validate_identifier(name: str) -> None:
    if not name or not isinstance(name, str):
        raise ValueError("Identifier name must be non-empty string")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Identifier too long (max {MAX_IDENTIFIER_LENGTH} characters)"
        )


def quote_identifier(name: str) -> str:
    """
    Quote a SQL identifier (table or column name).

    Args:
        name: The identifier to quote

    Returns:
        Properly quoted identifier

    Raises:
        ValueError: If name is empty or too long

    Examples:
        >>> quote_identifier("userId")
        '"userId"'
        >>> quote_identifier('column"name')
        '"column""name"'
    """
    _validate_identifier(name)
    # Escape internal double quotes by doubling them
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def is_simple_identifier(name: str) -> bool:
    """Return True when ``name`` is a plain ASCII word usable as a CTE/alias name."""
    return bool(name) and len(name) <= MAX_IDENTIFIER_LENGTH and bool(
        _SIMPLE_IDENTIFIER.match(name)
    )


def format_identifier(name: str) -> str:
    """
    Render an identifier bare when PostgreSQL would fold it to itself.

    Lowercase, non-reserved words are emitted as-is; everything else is
    double-quoted. Both spellings name the same object.

    Examples:
        >>> format_identifier("users")
        'users'
        >>> format_identifier("Users")
        '"Users"'
        >>> format_identifier("user")
        '"user"'
    """
    _validate_identifier(name)
    if _BARE_IDENTIFIER.match(name) and name not in _RESERVED_WORDS:
        return name
    return quote_identifier(name)


def qualify_table(table: str, schema: Optional[str] = None) -> str:
    """
    Create a table reference with optional schema prefix.

    Args:
        table: Table name
        schema: Optional schema name

    Returns:
        Qualified table name

    Examples:
        >>> qualify_table("users")
        'users'
        >>> qualify_table("users", schema="crm")
        'crm.users'
        >>> qualify_table("Places", schema="public")
        'public."Places"'
    """
    formatted_table = format_identifier(table)
    if schema and str(schema).strip():
        return f"{format_identifier(str(schema))}.{formatted_table}"
    return formatted_table


def quote_literal(value: str) -> str:
    """
    Quote a string as a SQL literal by doubling embedded single quotes.

    Used only for schema-declared text (JSON keys, ENUM members in DDL);
    caller values always travel as bound parameters.

    Examples:
        >>> quote_literal("city")
        "'city'"
        >>> quote_literal("o'brien")
        "'o''brien'"
    """
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"
