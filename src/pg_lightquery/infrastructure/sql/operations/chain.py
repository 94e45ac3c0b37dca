"""
Chained CTE statement builder.

Several INSERT/UPDATE statements are composed into one
``WITH a AS (...), b AS (...) SELECT ... FROM a;`` statement, executed
atomically by the database. A later step can take one column's value from an
earlier step's RETURNING output; the reference is injected into the typed
statement node (the column's value slot becomes a scalar subquery), so no
rendered SQL is ever re-parsed.

Example:
    >>> result = (
    ...     ChainedStatementBuilder()
    ...     .insert("u", users, {"name": "Ann"}, return_field="*")
    ...     .insert_with_reference(
    ...         "p", posts, {"title": "Hi"},
    ...         StepReference(from_step="u", source_column="id", target_column="userId"),
    ...     )
    ...     .select_from("u")
    ...     .build()
    ... )
    >>> result.query.sql_text
    'WITH u AS (INSERT INTO users ...), p AS (INSERT INTO posts (..., "userId") VALUES (..., (SELECT "id" FROM u)) ...) SELECT * FROM u;'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from pg_lightquery.exceptions import ComposeError, ExecutionError
from pg_lightquery.infrastructure.schema.core import TableSchema
from pg_lightquery.infrastructure.schema.registry import TableRegistry
from pg_lightquery.utils.logging import bind_context

from ..core.identifier import is_simple_identifier
from ..core.placeholders import adjust_placeholders, strip_terminators
from ..core.query import QueryObject
from .insert import InsertBuilder
from .statements import Dialect, Statement
from .update import UpdateBuilder


# Placeholder value for a SET column whose value comes from another step
_REFERENCED = object()


class ChainState(Enum):
    """Builder lifecycle: steps may only be added before BUILT."""

    UNBUILT = "unbuilt"
    ACCUMULATING = "accumulating"
    BUILT = "built"


@dataclass(frozen=True)
class StepReference:
    """Take ``target_column``'s value from ``from_step``'s ``source_column``."""

    from_step: str
    source_column: str
    target_column: str

    @classmethod
    def coerce(cls, reference: Any) -> "StepReference":
        """Accept a StepReference or a ``{"from", "field", "to"}`` mapping."""
        if isinstance(reference, cls):
            return reference
        if isinstance(reference, Mapping):
            try:
                return cls(
                    from_step=reference["from"],
                    source_column=reference["field"],
                    target_column=reference["to"],
                )
            except KeyError as exc:
                raise ComposeError(
                    f"Step reference is missing key {exc.args[0]!r}; expected 'from', 'field' and 'to'"
                ) from exc
        raise ComposeError(f"Unsupported step reference: {reference!r}")


@dataclass(frozen=True)
class CTEStep:
    """One named statement in a chain."""

    name: str
    statement: Statement
    reference: Optional[StepReference] = None
    table_columns: Tuple[str, ...] = ()

    @property
    def operation(self) -> str:
        return self.statement.operation

    @property
    def base_query(self) -> QueryObject:
        """The step rendered on its own, placeholders from ``$1``."""
        return self.statement.render()


@dataclass(frozen=True)
class ChainResult:
    """Finished chain: one statement plus a way to run it."""

    query: QueryObject
    step_names: Tuple[str, ...]
    executor: Optional[Callable[[List[QueryObject]], List[Any]]] = field(
        default=None, repr=False, compare=False
    )

    @property
    def queries(self) -> List[QueryObject]:
        return [self.query]

    def execute(self) -> Any:
        """
        Run the statement in a transaction and return the final SELECT's rows.

        Raises:
            ExecutionError: If the builder was created without a gateway
        """
        if self.executor is None:
            raise ExecutionError("No execution gateway configured for this chain")
        results = self.executor(self.queries)
        return results[0] if results else []


TableArgument = Union[TableSchema, str, Any]


class ChainedStatementBuilder:
    """
    Fluent builder composing INSERT/UPDATE steps into one CTE statement.

    A table argument may be a TableSchema, a name registered in ``registry``,
    or any object exposing ``schema`` (a TableOperations facade), whose own
    insert/update builders and gateway are then used.
    """

    def __init__(
        self,
        dialect: Optional[Dialect] = None,
        registry: Optional[TableRegistry] = None,
        gateway: Any = None,
        audit_column: Optional[str] = "lastChangedBy",
        default_user: str = "SERVER",
    ):
        if dialect is None:
            from ..dialects.postgresql import PostgreSQLDialect

            dialect = PostgreSQLDialect()
        self.dialect = dialect
        self.registry = registry
        self.gateway = gateway
        self.insert_builder = InsertBuilder(dialect, audit_column, default_user)
        self.update_builder = UpdateBuilder(dialect, audit_column, default_user)
        self._steps: List[CTEStep] = []
        self._final_step: Optional[str] = None
        self._final_columns: Tuple[str, ...] = ()
        self._state = ChainState.UNBUILT

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def steps(self) -> Tuple[CTEStep, ...]:
        return tuple(self._steps)

    # ------------------------------------------------------------------ #
    # Step registration
    # ------------------------------------------------------------------ #

    def insert(
        self,
        name: str,
        table: TableArgument,
        data: Optional[Mapping[str, Any]],
        *,
        return_field: Any = "*",
        upsert: bool = False,
        id_user: Optional[str] = None,
        allowed: Any = "*",
    ) -> "ChainedStatementBuilder":
        """Add an INSERT step (RETURNING ``*`` unless told otherwise)."""
        self._ensure_open(name)
        schema, builder = self._resolve(table, "insert")
        statement = builder.statement(
            schema,
            data,
            allowed,
            return_field=return_field,
            upsert=upsert,
            id_user=id_user,
        )
        return self._add(CTEStep(name, statement, None, schema.column_names))

    def insert_if(self, condition: bool, name: str, table: TableArgument, data, **options) -> "ChainedStatementBuilder":
        self._ensure_open(name)
        if not condition:
            return self
        return self.insert(name, table, data, **options)

    def insert_with_reference(
        self,
        name: str,
        table: TableArgument,
        data: Optional[Mapping[str, Any]],
        reference: Any,
        *,
        return_field: Any = "*",
        upsert: bool = False,
        id_user: Optional[str] = None,
        allowed: Any = "*",
    ) -> "ChainedStatementBuilder":
        """Add an INSERT step whose ``reference.target_column`` comes from an earlier step."""
        self._ensure_open(name)
        ref = StepReference.coerce(reference)
        schema, builder = self._resolve(table, "insert")
        statement = builder.statement(
            schema,
            _without(data, ref.target_column),
            allowed,
            return_field=return_field,
            upsert=upsert,
            id_user=id_user,
        ).with_reference(ref.target_column, ref.from_step, ref.source_column)
        return self._add(CTEStep(name, statement, ref, schema.column_names))

    def insert_with_reference_if(
        self, condition: bool, name: str, table: TableArgument, data, reference, **options
    ) -> "ChainedStatementBuilder":
        self._ensure_open(name)
        if not condition:
            return self
        return self.insert_with_reference(name, table, data, reference, **options)

    def update(
        self,
        name: str,
        table: TableArgument,
        data: Optional[Mapping[str, Any]],
        where: Optional[Mapping[str, Any]] = None,
        *,
        return_field: Any = "*",
        id_user: Optional[str] = None,
        allowed: Any = "*",
        allow_update_all: bool = False,
    ) -> "ChainedStatementBuilder":
        """Add an UPDATE step; the predicate rules of a standalone UPDATE apply."""
        self._ensure_open(name)
        schema, builder = self._resolve(table, "update")
        statement = builder.statement(
            schema,
            data,
            where,
            allowed,
            return_field=return_field,
            id_user=id_user,
            allow_update_all=allow_update_all,
        )
        return self._add(CTEStep(name, statement, None, schema.column_names))

    def update_if(
        self, condition: bool, name: str, table: TableArgument, data, where=None, **options
    ) -> "ChainedStatementBuilder":
        self._ensure_open(name)
        if not condition:
            return self
        return self.update(name, table, data, where, **options)

    def update_with_reference(
        self,
        name: str,
        table: TableArgument,
        data: Optional[Mapping[str, Any]],
        where: Optional[Mapping[str, Any]],
        reference: Any,
        *,
        return_field: Any = "*",
        id_user: Optional[str] = None,
        allowed: Any = "*",
        allow_update_all: bool = False,
    ) -> "ChainedStatementBuilder":
        """Add an UPDATE step that sets ``reference.target_column`` from an earlier step."""
        self._ensure_open(name)
        ref = StepReference.coerce(reference)
        schema, builder = self._resolve(table, "update")
        # Reserve the target column's SET position; its slot becomes a subquery below
        seeded = _without(data, ref.target_column)
        seeded[ref.target_column] = _REFERENCED
        statement = builder.statement(
            schema,
            seeded,
            where,
            allowed,
            return_field=return_field,
            id_user=id_user,
            allow_update_all=allow_update_all,
        ).with_reference(ref.target_column, ref.from_step, ref.source_column)
        return self._add(CTEStep(name, statement, ref, schema.column_names))

    def update_with_reference_if(
        self, condition: bool, name: str, table: TableArgument, data, where, reference, **options
    ) -> "ChainedStatementBuilder":
        self._ensure_open(name)
        if not condition:
            return self
        return self.update_with_reference(name, table, data, where, reference, **options)

    def select_from(self, name: str, columns: Union[str, Sequence[str]] = "*") -> "ChainedStatementBuilder":
        """Choose the step the final SELECT projects (default: first step, ``*``)."""
        self._ensure_open()
        self._final_step = name
        self._final_columns = _projection(columns)
        return self

    # ------------------------------------------------------------------ #
    # Finalization
    # ------------------------------------------------------------------ #

    def build(self) -> ChainResult:
        """
        Compose every step into one statement. May be called once.

        Raises:
            ComposeError: No steps, a reference to an undeclared or later
                step, a missing referenced column, or an unknown final step
        """
        self._ensure_open()
        if not self._steps:
            raise ComposeError("No insert or update steps defined")

        final_step = self._final_step or self._steps[0].name
        by_name = {step.name: step for step in self._steps}
        if final_step not in by_name:
            raise ComposeError("select_from names an unknown step", step_name=final_step)
        if not by_name[final_step].statement.returning:
            raise ComposeError(
                "Final SELECT reads a step without a RETURNING clause", step_name=final_step
            )

        chain_logger = bind_context(__name__, final_step=final_step, step_count=len(self._steps))
        definitions = []
        values: List[Any] = []
        declared = {}
        for step in self._steps:
            if step.reference is not None:
                self._check_reference(step, declared)

            rendered = step.statement.render(self.dialect)
            body = adjust_placeholders(strip_terminators(rendered.sql_text), len(values))
            definitions.append((step.name, body))
            chain_logger.debug(
                "query.chain.step_rendered",
                step=step.name,
                operation=step.operation,
                first_placeholder=len(values) + 1,
                parameter_count=len(rendered.values),
            )
            values.extend(rendered.values)
            declared[step.name] = step

        sql = self.dialect.build_with(definitions, final_step, self._final_columns)
        query = QueryObject(sql, values)
        self._state = ChainState.BUILT

        chain_logger.debug(
            "query.chain.built",
            steps=[step.name for step in self._steps],
            parameter_count=len(values),
        )
        executor = self.gateway.execute_transaction if self.gateway is not None else None
        return ChainResult(
            query=query,
            step_names=tuple(step.name for step in self._steps),
            executor=executor,
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _ensure_open(self, name: Optional[str] = None) -> None:
        if self._state is ChainState.BUILT:
            raise ComposeError("Chain is already built; create a new builder", step_name=name)

    def _add(self, step: CTEStep) -> "ChainedStatementBuilder":
        if not is_simple_identifier(step.name):
            raise ComposeError("Step name must be a plain identifier", step_name=step.name)
        if any(existing.name == step.name for existing in self._steps):
            raise ComposeError("Duplicate step name", step_name=step.name)
        self._steps.append(step)
        self._state = ChainState.ACCUMULATING
        return self

    def _resolve(self, table: TableArgument, operation: str):
        if isinstance(table, TableSchema):
            schema = table
            owner = None
        elif isinstance(table, str):
            if self.registry is None:
                raise ComposeError(f"No table registry configured to resolve '{table}'")
            try:
                schema = self.registry.get(table)
            except KeyError as exc:
                raise ComposeError(str(exc.args[0])) from exc
            owner = None
        elif isinstance(getattr(table, "schema", None), TableSchema):
            schema = table.schema
            owner = table
        else:
            raise ComposeError(f"Unsupported table argument: {table!r}")

        if owner is not None and self.gateway is None:
            self.gateway = getattr(owner, "gateway", None)
        attribute = "insert_builder" if operation == "insert" else "update_builder"
        builder = getattr(owner, attribute, None) or getattr(self, attribute)
        return schema, builder

    def _check_reference(self, step: CTEStep, declared: Mapping[str, CTEStep]) -> None:
        ref = step.reference
        source = declared.get(ref.from_step)
        if source is None:
            later = any(other.name == ref.from_step for other in self._steps)
            detail = "a later step" if later else "an undeclared step"
            raise ComposeError(
                f"Reference to {detail} '{ref.from_step}'", step_name=step.name
            )
        returning = source.statement.returning
        if not returning.star and ref.source_column not in returning.columns:
            raise ComposeError(
                f"Step '{ref.from_step}' does not return column '{ref.source_column}'",
                step_name=step.name,
            )
        if ref.target_column not in step.table_columns:
            raise ComposeError(
                f"Reference target column '{ref.target_column}' is not in table "
                f"'{step.statement.table}'",
                step_name=step.name,
            )


def _without(data: Optional[Mapping[str, Any]], column: str) -> dict:
    return {key: value for key, value in (data or {}).items() if key != column}


def _projection(columns: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    if columns == "*" or not columns:
        return ()
    if isinstance(columns, str):
        columns = [part.strip() for part in columns.split(",")]
    names = tuple(columns)
    for name in names:
        if name == "*":
            return ()
    return names


__all__ = [
    "ChainState",
    "StepReference",
    "CTEStep",
    "ChainResult",
    "ChainedStatementBuilder",
]
