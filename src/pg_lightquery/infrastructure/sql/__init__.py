"""
SQL module for parameterized statement construction.

This module provides reusable utilities for building PostgreSQL statements
with ``$n`` positional placeholders, proper identifier quoting, schema
qualification, and CTE composition of several writes into one statement.
"""

from .core.identifier import qualify_table, quote_identifier
from .core.parameters import build_indexed_params, to_pyformat
from .core.placeholders import adjust_placeholders, find_max_placeholder, merge_fragments
from .core.query import Fragment, QueryObject
from .dialects.postgresql import PostgreSQLDialect
from .operations.chain import ChainedStatementBuilder, ChainResult, StepReference
from .operations.insert import InsertBuilder
from .operations.select import SelectBuilder
from .operations.update import UpdateBuilder
from .operations.where import build_where_clause, query_constructor

__all__ = [
    "quote_identifier",
    "qualify_table",
    "build_indexed_params",
    "to_pyformat",
    "find_max_placeholder",
    "adjust_placeholders",
    "merge_fragments",
    "Fragment",
    "QueryObject",
    "PostgreSQLDialect",
    "InsertBuilder",
    "UpdateBuilder",
    "SelectBuilder",
    "ChainedStatementBuilder",
    "ChainResult",
    "StepReference",
    "build_where_clause",
    "query_constructor",
]
