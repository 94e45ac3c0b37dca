"""
Exception hierarchy for pg-lightquery.

Every builder either fully produces a QueryObject or raises one of these
before returning; there is no partial success. Errors raised by the database
driver itself are not wrapped and reach the caller unmodified.
"""

from typing import Optional


class LightQueryError(Exception):
    """Base exception for all pg-lightquery errors."""

    pass


class SchemaError(LightQueryError):
    """Raised when a table or column definition is malformed."""

    pass


class ValidationError(LightQueryError):
    """
    Raised when caller input cannot be turned into safe SQL.

    Covers disallowed or unknown columns, non-unique allow-lists, updates
    without a predicate and malformed filter values. Always raised before any
    SQL text is produced.

    Args:
        message: Error description
        column: Column or filter key that was rejected (optional)
        table: Table the statement targets (optional)
    """

    def __init__(
        self,
        message: str,
        column: Optional[str] = None,
        table: Optional[str] = None,
    ):
        self.column = column
        self.table = table

        context_parts = []
        if table:
            context_parts.append(f"table='{table}'")
        if column:
            context_parts.append(f"column='{column}'")

        if context_parts:
            full_message = f"{message} ({', '.join(context_parts)})"
        else:
            full_message = message

        super().__init__(full_message)


class ComposeError(LightQueryError):
    """
    Raised when a chained CTE statement cannot be composed.

    Args:
        message: Error description
        step_name: Name of the CTE step that caused the failure (optional)
    """

    def __init__(self, message: str, step_name: Optional[str] = None):
        self.step_name = step_name
        if step_name:
            message = f"{message} (step='{step_name}')"
        super().__init__(message)


class ExecutionError(LightQueryError):
    """Raised when the execution gateway itself fails (pool, connection, setup)."""

    pass


__all__ = [
    "LightQueryError",
    "SchemaError",
    "ValidationError",
    "ComposeError",
    "ExecutionError",
]
