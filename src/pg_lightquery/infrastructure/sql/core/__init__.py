"""Core SQL utilities package."""

from .identifier import (
    format_identifier,
    is_simple_identifier,
    qualify_table,
    quote_identifier,
    quote_literal,
)
from .parameters import build_indexed_params, to_pyformat
from .placeholders import (
    adjust_placeholders,
    find_max_placeholder,
    merge_fragments,
    strip_terminators,
)
from .query import Fragment, QueryObject

__all__ = [
    "quote_identifier",
    "format_identifier",
    "is_simple_identifier",
    "qualify_table",
    "quote_literal",
    "build_indexed_params",
    "to_pyformat",
    "find_max_placeholder",
    "adjust_placeholders",
    "strip_terminators",
    "merge_fragments",
    "Fragment",
    "QueryObject",
]
