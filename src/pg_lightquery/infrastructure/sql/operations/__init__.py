"""Statement builders: predicates, WHERE clauses, INSERT/UPDATE/SELECT and CTE chains."""

from .chain import ChainedStatementBuilder, ChainResult, ChainState, CTEStep, StepReference
from .insert import InsertBuilder
from .predicates import AllowList, FilterKey, compile_predicate, register_suffix
from .select import SelectBuilder
from .statements import (
    BoundValue,
    InsertStatement,
    Returning,
    SubqueryValue,
    UpdateStatement,
)
from .update import UpdateBuilder
from .where import WhereClause, build_where_clause, query_constructor

__all__ = [
    "AllowList",
    "FilterKey",
    "compile_predicate",
    "register_suffix",
    "WhereClause",
    "build_where_clause",
    "query_constructor",
    "BoundValue",
    "SubqueryValue",
    "Returning",
    "InsertStatement",
    "UpdateStatement",
    "InsertBuilder",
    "UpdateBuilder",
    "SelectBuilder",
    "ChainState",
    "StepReference",
    "CTEStep",
    "ChainResult",
    "ChainedStatementBuilder",
]
